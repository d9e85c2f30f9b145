import random
from collections import Counter

import pytest

from entries import (
    PALETTE_SIZE, Entry, InvalidData, build_entries, entry_counts, get_members,
    list_available_days, shuffle_entries,
)


def test_two_stars_and_one_star(leaderboard):
    entries = build_entries(leaderboard["members"], 1, random.Random(1))
    assert len(entries) == 3
    assert Counter(e.name for e in entries) == {"Alice": 2, "Bob": 1}


def test_entry_count_matches_stars(leaderboard):
    for day in (1, 2, 3):
        expected = sum(
            len(m["completion_day_level"].get(str(day), {}))
            for m in leaderboard["members"].values()
        )
        assert len(build_entries(leaderboard["members"], day)) == expected


def test_anonymous_member_label(leaderboard):
    entries = build_entries(leaderboard["members"], 2, random.Random(3))
    assert Counter(e.name for e in entries) == {"Alice": 1, "(Anon #3)": 2}


def test_day_as_string_or_int(leaderboard):
    assert len(build_entries(leaderboard["members"], "3")) == len(build_entries(leaderboard["members"], 3))


def test_accepts_member_list(leaderboard):
    entries = build_entries(list(leaderboard["members"].values()), 1)
    assert len(entries) == 3


def test_no_qualifying_members(leaderboard):
    assert build_entries(leaderboard["members"], 25) == []
    assert build_entries({}, 1) == []


def test_zero_star_record_is_skipped():
    members = [{"id": 9, "name": "Zed", "completion_day_level": {"1": {}}}]
    assert build_entries(members, 1) == []


def test_colors_cycle_by_running_index():
    members = [{"id": i, "name": f"m{i}", "completion_day_level": {"1": {"1": {}, "2": {}}}} for i in range(10)]
    entries = build_entries(members, 1, random.Random(7))
    indexes = sorted(e.color_index for e in entries)
    assert indexes == sorted(i % PALETTE_SIZE for i in range(20))


def test_shuffle_is_a_permutation():
    entries = [Entry(f"n{i}", i % PALETTE_SIZE) for i in range(30)]
    before = list(entries)
    shuffle_entries(entries, random.Random(42))
    assert sorted(entries) == sorted(before)


def test_shuffle_uses_fisher_yates_swaps():
    class FixedRng:
        def __init__(self):
            self.calls = []

        def randint(self, a, b):
            self.calls.append((a, b))
            return a

    rng = FixedRng()
    items = ["a", "b", "c", "d"]
    shuffle_entries(items, rng)
    assert rng.calls == [(0, 3), (0, 2), (0, 1)]
    assert items == ["b", "c", "d", "a"]


def test_available_days_sorted_numerically():
    data = {"members": {
        "1": {"id": 1, "completion_day_level": {"10": {"1": {}}, "2": {"1": {}}}},
        "2": {"id": 2, "completion_day_level": {"9": {"1": {}}, "2": {"1": {}, "2": {}}}},
        "3": {"id": 3},
    }}
    assert list_available_days(data) == [2, 9, 10]


@pytest.mark.parametrize("data", [None, [], {}, {"event": "2024"}, {"members": []}])
def test_invalid_data(data):
    with pytest.raises(InvalidData):
        get_members(data)
    with pytest.raises(InvalidData):
        list_available_days(data)


def test_entry_counts_ordering():
    entries = [Entry("bob", 0), Entry("Alice", 1), Entry("bob", 2), Entry("carl", 3)]
    assert entry_counts(entries) == [("bob", 2), ("Alice", 1), ("carl", 1)]
