import random
from collections import Counter

import pytest

from draw_controller import IDLE, READY, RESOLVED, SPINNING, DrawController
from entries import InvalidData
from winner_resolver import resolve_winner


@pytest.fixture
def controller(leaderboard):
    controller = DrawController(rng=random.Random(11))
    controller.load(leaderboard)
    return controller


def test_load_starts_idle(controller):
    assert controller.state == IDLE
    assert controller.entries == []
    assert controller.available_days() == [1, 2, 3]
    assert controller.request_spin(0.0) is None


def test_invalid_data_keeps_previous_state(controller):
    controller.select_day(1)
    with pytest.raises(InvalidData):
        controller.load({"event": "2024"})
    assert controller.state == READY
    assert len(controller.entries) == 3


def test_select_day_without_data():
    with pytest.raises(RuntimeError):
        DrawController().select_day(1)


def test_empty_day_is_inert(controller):
    assert controller.select_day(20) == []
    assert controller.state == IDLE
    assert not controller.can_spin
    assert controller.request_spin(0.0) is None


def test_full_draw(controller):
    controller.select_day(1)
    assert controller.state == READY

    job = controller.request_spin(0.0)
    assert controller.state == SPINNING
    assert controller.request_spin(1.0) is None

    controller.on_frame(job, 1000.0)
    assert controller.state == SPINNING
    final = controller.on_frame(job, job.duration)
    assert final == job.target_rotation
    assert controller.state == RESOLVED
    assert controller.winner == resolve_winner(controller.entries, final)
    assert controller.entries[controller.winner_index] == controller.winner
    assert controller.request_spin(job.duration + 1) is None


def test_dismiss_keeps_same_entries(controller):
    entries = list(controller.select_day(1))
    rotations = controller.run_spin(0.0, 50.0)
    assert controller.state == RESOLVED
    assert rotations[-1] == controller.wheel.rotation

    assert controller.dismiss()
    assert controller.state == READY
    assert controller.winner is None
    assert controller.entries == entries

    start = controller.wheel.rotation
    controller.run_spin(10000.0, 50.0)
    assert controller.state == RESOLVED
    assert controller.wheel.rotation > start
    assert controller.entries == entries


def test_dismiss_only_from_resolved(controller):
    assert not controller.dismiss()
    controller.select_day(1)
    assert not controller.dismiss()
    assert controller.state == READY


def test_day_change_cancels_spin(controller):
    controller.select_day(1)
    job = controller.request_spin(0.0)
    controller.on_frame(job, 100.0)

    controller.select_day(3)
    assert controller.state == READY
    assert controller.wheel.rotation == 0.0
    # A late frame for the old spin is ignored
    assert controller.on_frame(job, 200.0) is None
    assert controller.wheel.rotation == 0.0
    assert Counter(e.name for e in controller.entries) == {"Bob": 2}

    assert controller.request_spin(300.0) is not None


def test_reload_cancels_spin(controller, leaderboard):
    controller.select_day(2)
    job = controller.request_spin(0.0)
    controller.load(leaderboard)
    assert controller.state == IDLE
    assert controller.on_frame(job, job.duration) is None
    assert controller.winner is None


def test_run_spin_rotations_non_decreasing(controller):
    controller.select_day(2)
    rotations = controller.run_spin(0.0, 16.0)
    assert rotations[0] == 0.0
    assert all(b >= a for a, b in zip(rotations, rotations[1:]))
    assert controller.state == RESOLVED


def test_run_spin_rejected_when_idle(controller):
    assert controller.run_spin(0.0, 50.0) == []


@pytest.mark.parametrize("frame_ms", [0, -16.0])
def test_run_spin_needs_positive_frame_interval(controller, frame_ms):
    controller.select_day(1)
    with pytest.raises(ValueError):
        controller.run_spin(0.0, frame_ms)
    assert controller.state == READY
