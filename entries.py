import logging
import random
from collections import namedtuple

logger = logging.getLogger(__name__)

# Slice colors, cycled by running entry index
PALETTE = [
    '#ef4444', '#f97316', '#f59e0b', '#84cc16', '#10b981',
    '#06b6d4', '#3b82f6', '#6366f1', '#8b5cf6', '#d946ef', '#f43f5e'
]
PALETTE_SIZE = len(PALETTE)

Entry = namedtuple("Entry", ["name", "color_index"])


class InvalidData(ValueError):
    """Raised when a leaderboard payload does not have the expected shape"""


def get_members(data):
    """Return the members mapping of a leaderboard payload, or raise InvalidData"""
    if not isinstance(data, dict):
        raise InvalidData("Leaderboard data must be a JSON object")
    if "members" not in data:
        raise InvalidData("Leaderboard data is missing the 'members' key")
    members = data["members"]
    if not isinstance(members, dict):
        raise InvalidData("'members' must be a mapping of member id to member")
    return members


def list_available_days(data):
    """Get every day that at least one member has completion data for, ascending"""
    days = set()
    for member in get_members(data).values():
        completion = member.get("completion_day_level") or {}
        for day in completion:
            days.add(int(day))
    return sorted(days)


def display_name(member):
    name = member.get("name")
    if name:
        return name
    return f"(Anon #{member.get('id')})"


def count_stars(member, day):
    """Number of parts the member completed on the given day (0 when none)"""
    completion = member.get("completion_day_level") or {}
    parts = completion.get(str(day))
    if not parts:
        return 0
    return len(parts)


def shuffle_entries(entries, rng=None):
    """Fisher-Yates shuffle in place"""
    rng = rng or random
    for i in range(len(entries) - 1, 0, -1):
        j = rng.randint(0, i)
        entries[i], entries[j] = entries[j], entries[i]
    return entries


def build_entries(members, day, rng=None):
    """Build the shuffled raffle entries for a day: one entry per star earned.

    `members` may be the payload's members mapping or any iterable of member
    dicts. Colors are assigned by running index before the shuffle, so they
    cycle evenly across the wheel no matter how the shuffle lands.
    """
    if isinstance(members, dict):
        members = members.values()

    entries = []
    for member in members:
        stars = count_stars(member, day)
        if stars <= 0:
            continue
        name = display_name(member)
        for _ in range(stars):
            entries.append(Entry(name, len(entries) % PALETTE_SIZE))

    shuffle_entries(entries, rng)
    logger.info(f"Day {day}: {len(entries)} entries generated")
    return entries


def entry_counts(entries):
    """Entries per name, most entries first then alphabetical"""
    counts = {}
    for entry in entries:
        counts[entry.name] = counts.get(entry.name, 0) + 1
    return sorted(counts.items(), key=lambda item: (-item[1], item[0].lower()))
