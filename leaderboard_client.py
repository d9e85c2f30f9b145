import requests
import logging
import os
from dotenv import load_dotenv
from requests.adapters import HTTPAdapter
from urllib3.util import Retry
import certifi

from entries import get_members

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "aoc-raffle-wheel (leaderboard raffle bot)"


class LeaderboardError(Exception):
    """Raised when the leaderboard could not be fetched"""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


def parse_id_list(value):
    """Parse a comma separated list of numeric ids ("1, 2,x" -> {1, 2})"""
    return {int(part.strip()) for part in (value or '').split(',') if part.strip().isdigit()}


def filter_members(data, excluded_ids):
    """Return a copy of the payload without the excluded members"""
    members = get_members(data)
    if not excluded_ids:
        return data
    kept = {
        member_id: member
        for member_id, member in members.items()
        if int(member.get('id', member_id)) not in excluded_ids
    }
    removed = len(members) - len(kept)
    if removed:
        logger.info(f"Excluded {removed} member(s) from the leaderboard")
    return {**data, 'members': kept}


class LeaderboardClient:
    def __init__(self, cache=None):
        self.year = os.getenv('YEAR')
        self.session_token = os.getenv('SESSION_TOKEN')
        self.leaderboard_id = os.getenv('LEADERBOARD_ID')
        self.user_agent = os.getenv('AOC_USER_AGENT', DEFAULT_USER_AGENT)
        self.excluded_ids = parse_id_list(os.getenv('EXCLUDED_MEMBER_IDS', ''))
        self.base_url = "https://adventofcode.com"
        self.cache = cache
        self.verify_ssl = True
        disable_verify = os.getenv('AOC_DISABLE_TLS_VERIFY', 'false').lower() in ['1', 'true', 'yes']
        if disable_verify:
            logger.warning("AOC_DISABLE_TLS_VERIFY is enabled. SSL verification is disabled. Use only for local debugging!")
            self.verify_ssl = False

        if not self.year or not self.session_token or not self.leaderboard_id:
            raise ValueError("Missing YEAR, SESSION_TOKEN or LEADERBOARD_ID in .env file")

        # Prepare a resilient HTTP session with retries and CA bundle
        self.session = requests.Session()
        retries = Retry(
            total=3,
            connect=3,
            read=3,
            backoff_factor=0.5,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retries, pool_connections=4, pool_maxsize=4)
        self.session.mount('https://', adapter)
        self.session.mount('http://', adapter)

    @property
    def url(self):
        return f"{self.base_url}/{self.year}/leaderboard/private/view/{self.leaderboard_id}.json"

    def fetch_leaderboard(self):
        """Fetch the leaderboard JSON from Advent of Code"""
        headers = {
            "Cookie": f"session={self.session_token}",
            "User-Agent": self.user_agent,
        }

        logger.info(f"Fetching leaderboard from: {self.url}")
        try:
            response = self.session.get(
                self.url,
                headers=headers,
                timeout=20,
                verify=(certifi.where() if self.verify_ssl else False),
                allow_redirects=False,
            )
        except requests.exceptions.SSLError as e:
            logger.error(f"Leaderboard fetch SSL error: {e}")
            raise LeaderboardError(f"SSL error while fetching leaderboard: {e}") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Leaderboard fetch error: {e}")
            raise LeaderboardError(f"Failed to fetch leaderboard: {e}") from e

        # An expired session cookie gets redirected to the login page
        if response.status_code != 200:
            logger.error(f"Advent of Code responded with {response.status_code}: {response.reason}")
            raise LeaderboardError(
                f"Advent of Code responded with {response.status_code}: {response.reason}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise LeaderboardError("Leaderboard response was not valid JSON (is the session token still valid?)") from e

        get_members(data)
        return data

    def get_leaderboard(self, force=False):
        """Get the leaderboard, served from the cache while it is fresh"""
        data = None
        if self.cache is not None and not force:
            data = self.cache.get(self.year, self.leaderboard_id)
            if data is not None:
                logger.info("Using cached leaderboard")

        if data is None:
            data = self.fetch_leaderboard()
            if self.cache is not None:
                self.cache.put(self.year, self.leaderboard_id, data)

        return filter_members(data, self.excluded_ids)
