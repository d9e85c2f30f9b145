import logging

from entries import build_entries, get_members, list_available_days
from spin_animator import SpinAlreadyActive, SpinAnimator
from winner_resolver import resolve_winner, winning_index

logger = logging.getLogger(__name__)

IDLE = "idle"
READY = "ready"
SPINNING = "spinning"
RESOLVED = "resolved"


class WheelState:
    """Entries on the wheel and how far it has turned (radians)"""

    def __init__(self, entries=None, rotation=0.0):
        self.entries = entries or []
        self.rotation = rotation

    def __repr__(self):
        return f"WheelState(entries={len(self.entries)}, rotation={self.rotation:.4f})"


class DrawController:
    """Runs one wheel: load data, pick a day, spin, resolve, dismiss.

    Idle -> Ready -> Spinning -> Resolved -> Ready (dismiss), and any load or
    day change goes back to Idle/Ready and drops an in-flight spin.
    """

    def __init__(self, rng=None):
        self.rng = rng
        self.animator = SpinAnimator(rng)
        self.data = None
        self.day = None
        self.wheel = WheelState()
        self.state = IDLE
        self.job = None
        self.winner = None
        self.winner_index = None

    def _reset(self):
        self.animator.cancel()
        self.job = None
        self.winner = None
        self.winner_index = None
        self.wheel = WheelState()
        self.state = IDLE

    def load(self, data):
        """Load a new leaderboard payload. Raises InvalidData before touching current state."""
        get_members(data)
        self._reset()
        self.data = data
        self.day = None
        logger.info(f"Leaderboard loaded with {len(data['members'])} members")

    def available_days(self):
        if self.data is None:
            return []
        return list_available_days(self.data)

    def select_day(self, day):
        if self.data is None:
            raise RuntimeError("No leaderboard loaded")
        self._reset()
        self.day = int(day)
        entries = build_entries(get_members(self.data), self.day, self.rng)
        self.wheel = WheelState(entries)
        self.state = READY if entries else IDLE
        return entries

    @property
    def entries(self):
        return self.wheel.entries

    @property
    def can_spin(self):
        return self.state == READY

    def request_spin(self, now):
        """Start a spin at time now (ms). Returns the SpinJob, or None when rejected."""
        if self.state != READY:
            logger.warning(f"Spin request ignored in state {self.state}")
            return None
        try:
            job = self.animator.start_spin(self.wheel.rotation, now)
        except SpinAlreadyActive as e:
            logger.warning(f"Spin request ignored: {e}")
            return None
        self.job = job
        self.winner = None
        self.winner_index = None
        self.state = SPINNING
        return job

    def on_frame(self, job, now):
        """Apply one animation frame. Frames for a cancelled or finished job are ignored."""
        if job is None or job is not self.job or self.state != SPINNING:
            return None

        rotation, done = self.animator.advance(job, now)
        self.wheel.rotation = rotation
        if done:
            self.job = None
            self.winner_index = winning_index(len(self.wheel.entries), rotation)
            self.winner = resolve_winner(self.wheel.entries, rotation)
            self.state = RESOLVED
        return rotation

    def dismiss(self):
        """Close the winner display and allow another spin with the same entries"""
        if self.state != RESOLVED:
            return False
        self.winner = None
        self.winner_index = None
        self.state = READY
        return True

    def run_spin(self, now, frame_ms):
        """Spin and drive frames at a fixed interval until the winner is resolved.

        Returns the rotation of every frame, starting with the resting position,
        or an empty list if the spin was rejected.
        """
        if frame_ms <= 0:
            raise ValueError(f"frame_ms must be positive, got {frame_ms}")

        job = self.request_spin(now)
        if job is None:
            return []

        rotations = [self.wheel.rotation]
        while self.state == SPINNING:
            now += frame_ms
            rotations.append(self.on_frame(job, now))
        return rotations
