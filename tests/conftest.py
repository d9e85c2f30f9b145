import pytest


def make_member(member_id, name, days):
    """days: {day: number of parts completed}"""
    completion = {
        str(day): {str(part): {"get_star_ts": 1700000000 + part} for part in range(1, parts + 1)}
        for day, parts in days.items()
    }
    return {"id": member_id, "name": name, "stars": sum(days.values()), "completion_day_level": completion}


@pytest.fixture
def leaderboard():
    return {
        "event": "2024",
        "owner_id": 1,
        "members": {
            "1": make_member(1, "Alice", {1: 2, 2: 1}),
            "2": make_member(2, "Bob", {1: 1, 3: 2}),
            "3": make_member(3, None, {2: 2}),
            "4": {"id": 4, "name": "Idle Ivan", "stars": 0, "completion_day_level": {}},
        },
    }
