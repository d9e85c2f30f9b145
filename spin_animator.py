import itertools
import logging
import math
import random

logger = logging.getLogger(__name__)

MIN_DURATION_MS = 3000
MAX_DURATION_MS = 5000
MIN_EXTRA_TURNS = 5
MAX_EXTRA_TURNS = 10

_job_ids = itertools.count(1)


class SpinAlreadyActive(RuntimeError):
    """Raised when a spin is requested while another one is still running"""


class SpinJob:
    """One spin: eases the wheel from start_rotation to target_rotation over duration ms"""

    def __init__(self, start_rotation, target_rotation, start_time, duration):
        self.job_id = next(_job_ids)
        self.start_rotation = start_rotation
        self.target_rotation = target_rotation
        self.start_time = start_time
        self.duration = duration
        self.last_time = start_time
        self.done = False

    def __repr__(self):
        return (f"SpinJob(id={self.job_id}, start={self.start_rotation:.3f}, "
                f"target={self.target_rotation:.3f}, duration={self.duration:.0f}ms)")


def ease_out_cubic(progress):
    return 1 - (1 - progress) ** 3


class SpinAnimator:
    def __init__(self, rng=None):
        self.rng = rng or random
        self.active_job = None

    @property
    def is_spinning(self):
        return self.active_job is not None

    def start_spin(self, current_rotation, now):
        """Start a new spin from current_rotation at time now (ms)"""
        if self.active_job is not None:
            raise SpinAlreadyActive(f"Spin in progress: {self.active_job!r}")

        duration = self.rng.uniform(MIN_DURATION_MS, MAX_DURATION_MS)
        extra_rotations = self.rng.uniform(MIN_EXTRA_TURNS, MAX_EXTRA_TURNS) * 2 * math.pi
        # random() is in [0, 1), so the stop angle can land anywhere on the wheel
        offset = self.rng.random() * 2 * math.pi
        target_rotation = current_rotation + extra_rotations + offset

        job = SpinJob(current_rotation, target_rotation, now, duration)
        self.active_job = job
        logger.info(f"Spin started: {job!r}")
        return job

    def advance(self, job, now):
        """Step the animation to time now. Returns (rotation, done)."""
        if now < job.last_time:
            raise ValueError(f"Frame time went backwards for job {job.job_id}: {now} < {job.last_time}")
        job.last_time = now

        progress = (now - job.start_time) / job.duration
        progress = min(max(progress, 0.0), 1.0)

        if progress >= 1.0:
            job.done = True
            if self.active_job is job:
                self.active_job = None
            return job.target_rotation, True

        eased = ease_out_cubic(progress)
        rotation = job.start_rotation + (job.target_rotation - job.start_rotation) * eased
        return rotation, False

    def cancel(self):
        """Drop the active spin, if any"""
        if self.active_job is not None:
            logger.info(f"Spin cancelled: {self.active_job!r}")
        self.active_job = None
