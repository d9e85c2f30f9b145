"""
🎯 Raffle Wheel Draw Script

Run this script when you're ready to conduct the draw outside Telegram.
It loads the leaderboard (from a JSON export or Advent of Code), spins the
wheel for the chosen day and prints the winner.
"""

import argparse
import json
import logging
import random
import sys

from pymongo.errors import PyMongoError

from database import create_cache
from draw_controller import DrawController
from entries import InvalidData, entry_counts
from leaderboard_client import LeaderboardClient, LeaderboardError
from wheel_renderer import DEFAULT_FRAME_MS, save_spin_gif

logger = logging.getLogger(__name__)


def load_data(path=None):
    """Load the leaderboard from a file, or fetch it (cached) when no path is given"""
    if path:
        with open(path, encoding='utf-8') as f:
            return json.load(f)
    client = LeaderboardClient()
    client.cache = create_cache()
    try:
        return client.get_leaderboard()
    finally:
        if client.cache is not None:
            client.cache.close_connection()


def conduct_draw(data, day, rng=None, gif_path=None, frame_ms=DEFAULT_FRAME_MS):
    """Conduct the raffle draw for one day. Returns the winning entry, or None."""
    controller = DrawController(rng=rng)
    controller.load(data)

    entries = controller.select_day(day)
    if not entries:
        print(f"❌ Nobody earned a star on day {day}!")
        return None

    print(f"🎟️ Total entries for day {day}: {len(entries)}")
    for name, count in entry_counts(entries):
        print(f"   {name}: {count}")
    print("🎯 Spinning the wheel...")

    rotations = controller.run_spin(0.0, frame_ms)
    winner = controller.winner

    if gif_path:
        bio = save_spin_gif(entries, rotations, frame_ms=frame_ms, highlight=controller.winner_index)
        with open(gif_path, 'wb') as f:
            f.write(bio.getvalue())
        print(f"🎞️ Spin animation saved to {gif_path}")

    print(f"""
🎉 WINNER SELECTED! 🎉

👤 Winner: {winner.name}
🎡 Final rotation: {controller.wheel.rotation:.4f} rad

Congratulations! 🎊
    """)
    return winner


def main(argv=None):
    parser = argparse.ArgumentParser(description="Spin the raffle wheel for a leaderboard day")
    parser.add_argument("--file", help="Leaderboard JSON export (fetched from Advent of Code when omitted)")
    parser.add_argument("--day", type=int, help="Day to draw for (lists available days when omitted)")
    parser.add_argument("--gif", help="Write the spin animation to this GIF file")
    parser.add_argument("--seed", type=int, help="Seed the random source to replay a draw")
    args = parser.parse_args(argv)

    logging.basicConfig(format='%(asctime)s - %(name)s - %(levelname)s - %(message)s', level=logging.WARNING)

    try:
        data = load_data(args.file)
        controller = DrawController()
        controller.load(data)
    except (OSError, ValueError, LeaderboardError, PyMongoError) as e:
        print(f"❌ Could not load leaderboard: {e}")
        return 1

    days = controller.available_days()
    if args.day is None:
        print("📅 Available days: " + (", ".join(str(day) for day in days) or "none"))
        return 0

    rng = random.Random(args.seed) if args.seed is not None else None
    try:
        winner = conduct_draw(data, args.day, rng=rng, gif_path=args.gif)
    except InvalidData as e:
        print(f"❌ Invalid leaderboard: {e}")
        return 1
    return 0 if winner else 2


if __name__ == "__main__":
    sys.exit(main())
