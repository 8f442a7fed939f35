"""
Gravity Engine — Outcome-Space Sampler

Evaluates the trial classifier over a (speed x angle) grid of launch conditions.

A SamplerSession is a cancellable unit of work: every call to `step()` processes
one batch of samples, then hands control back to whoever drives it (the
regeneration controller, a game loop, a test). The cancel token is checked
before every batch and once more before publication, so a cancel request is
honoured within one batch and a cancelled session never exposes a grid.

Session lifecycle: idle -> running -> {completed | cancelled}
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Tuple

import numpy as np

from gravity_engine.bodies import AttractorSnapshot
from gravity_engine.classifier import simulate_trial
from gravity_engine.config import SimConfig
from gravity_engine.geometry import velocity_from_polar

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class StatusKind(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    CANCELLED = "cancelled"
    PUBLISHED = "published"
    ERROR = "error"


@dataclass(frozen=True)
class SessionStatus:
    """One entry of the status stream reported to the renderer."""
    kind: StatusKind
    progress: float = 0.0                 # percent
    min_finite: Optional[float] = None
    max_finite: Optional[float] = None
    message: str = ""

    def describe(self) -> str:
        if self.kind == StatusKind.GENERATING:
            return f"Generating map... ({self.progress:.0f}%)"
        if self.kind == StatusKind.PUBLISHED:
            lo = "n/a" if self.min_finite is None else f"{self.min_finite:.2f}"
            hi = "n/a" if self.max_finite is None else f"{self.max_finite:.2f}"
            return f"Performance map generated (min finite={lo}, max finite={hi})"
        if self.kind == StatusKind.CANCELLED:
            return "Map generation cancelled."
        if self.kind == StatusKind.ERROR:
            return f"Error: {self.message}"
        return self.message or "Idle"


class CancelToken:
    """Cooperative cancellation flag shared between a session and its owner."""

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


def sample_axes(config: SimConfig) -> Tuple[np.ndarray, np.ndarray]:
    """Angle (degrees) and speed samples for the configured grid.

    Angles cover [0, 360) evenly; speeds cover [min_speed, max_speed] inclusive.
    A single speed step, or an empty speed range, collapses to min_speed.
    """
    speed_steps, angle_steps = config.grid_shape()
    angles = np.arange(angle_steps, dtype=np.float64) * (360.0 / angle_steps)

    span = config.max_speed - config.min_speed
    speed_step = span / (speed_steps - 1) if speed_steps > 1 else 0.0
    speeds = config.min_speed + np.arange(speed_steps, dtype=np.float64) * speed_step
    return angles, speeds


@dataclass(frozen=True, eq=False)
class OutcomeGrid:
    """Published outcome field, indexed [speed_index][angle_index]."""
    values: np.ndarray
    angles_deg: np.ndarray
    speeds: np.ndarray
    min_finite: Optional[float] = None
    max_finite: Optional[float] = None

    @classmethod
    def build(cls, values: np.ndarray, angles_deg: np.ndarray, speeds: np.ndarray) -> "OutcomeGrid":
        values = np.array(values, dtype=np.float64)
        finite = values[np.isfinite(values)]
        for arr in (values, angles_deg, speeds):
            arr.setflags(write=False)
        return cls(
            values=values,
            angles_deg=angles_deg,
            speeds=speeds,
            min_finite=float(finite.min()) if finite.size else None,
            max_finite=float(finite.max()) if finite.size else None,
        )

    @property
    def shape(self) -> Tuple[int, int]:
        return self.values.shape

    def velocity_at(self, speed_index: int, angle_index: int) -> Tuple[float, float]:
        """Launch velocity that produced cell [speed_index][angle_index]."""
        return velocity_from_polar(self.angles_deg[angle_index], self.speeds[speed_index])

    def nearest_cell(self, angle_deg: float, speed: float) -> Tuple[int, int]:
        """(speed_index, angle_index) of the sample closest to a launch."""
        n_angles = len(self.angles_deg)
        angle_step = 360.0 / n_angles
        angle_index = int(round((angle_deg % 360.0) / angle_step)) % n_angles
        speed_index = int(np.argmin(np.abs(self.speeds - speed)))
        return speed_index, angle_index

    def outcome_at(self, angle_deg: float, speed: float) -> float:
        j, i = self.nearest_cell(angle_deg, speed)
        return float(self.values[j, i])

    def hit_mask(self) -> np.ndarray:
        return self.values == 0.0


class SamplerSession:
    """One pass of the outcome-space sampler.

    Args:
        snapshot: Attractor layout; must contain exactly one target.
        config: Grid resolution, speed range, batch size and trial parameters.
        gravity_constant: Overrides config.gravity_constant when given.
        token: Cancel token; a fresh one is created when omitted.

    Raises:
        ConfigurationError: when the snapshot has no target attractor.
    """

    _ids = 0

    def __init__(
        self,
        snapshot: AttractorSnapshot,
        config: SimConfig,
        gravity_constant: float = None,
        token: CancelToken = None,
    ):
        snapshot.require_target()

        SamplerSession._ids += 1
        self.session_id = SamplerSession._ids
        self.snapshot = snapshot
        self.config = config
        self.gravity_constant = config.gravity_constant if gravity_constant is None else gravity_constant
        self.token = token or CancelToken()

        self.angles_deg, self.speeds = sample_axes(config)
        self.total = len(self.angles_deg) * len(self.speeds)
        self.processed = 0
        self.state = SessionState.IDLE
        self.grid: Optional[OutcomeGrid] = None

        self._work: Optional[Iterator[None]] = None
        self._values: Optional[np.ndarray] = None

    # ---------- Lifecycle ----------
    @property
    def done(self) -> bool:
        return self.state in (SessionState.COMPLETED, SessionState.CANCELLED)

    @property
    def progress(self) -> float:
        return 100.0 * self.processed / self.total if self.total else 100.0

    def cancel(self) -> None:
        """Request cancellation; observed at the next batch boundary."""
        self.token.cancel()

    def step(self) -> SessionStatus:
        """Process one batch of samples and report the session status."""
        if self.done:
            return self.status

        if self.token.cancelled:
            self._finish_cancelled()
            return self.status

        if self.state == SessionState.IDLE:
            self.state = SessionState.RUNNING
            self._work = self._iter_batches()
            logger.info(
                "Session %d started: %d angles x %d speeds, G=%.2f",
                self.session_id, len(self.angles_deg), len(self.speeds), self.gravity_constant,
            )

        try:
            next(self._work)
        except StopIteration:
            if self.token.cancelled:
                self._finish_cancelled()
            else:
                self._publish()
        return self.status

    def run(self) -> Optional[OutcomeGrid]:
        """Drive the session to completion; returns None if it was cancelled."""
        while not self.done:
            self.step()
        return self.grid

    def __iter__(self) -> Iterator[SessionStatus]:
        while not self.done:
            yield self.step()

    @property
    def status(self) -> SessionStatus:
        if self.state == SessionState.RUNNING:
            return SessionStatus(StatusKind.GENERATING, progress=self.progress)
        if self.state == SessionState.COMPLETED:
            return SessionStatus(
                StatusKind.PUBLISHED,
                progress=100.0,
                min_finite=self.grid.min_finite,
                max_finite=self.grid.max_finite,
            )
        if self.state == SessionState.CANCELLED:
            return SessionStatus(StatusKind.CANCELLED, progress=self.progress)
        return SessionStatus(StatusKind.IDLE)

    # ---------- Work ----------
    def _iter_batches(self) -> Iterator[None]:
        values = np.full((len(self.speeds), len(self.angles_deg)), math.inf)
        batch_size = self.config.batch_size

        for j, speed in enumerate(self.speeds):
            for i, angle in enumerate(self.angles_deg):
                velocity = velocity_from_polar(angle, speed)
                values[j, i] = simulate_trial(velocity, self.snapshot, self.config, self.gravity_constant)
                self.processed += 1
                if self.processed % batch_size == 0:
                    yield

        self._values = values

    def _publish(self) -> None:
        self.grid = OutcomeGrid.build(self._values, self.angles_deg, self.speeds)
        self._values = None
        self.state = SessionState.COMPLETED
        logger.info(
            "Session %d published: min finite=%s, max finite=%s",
            self.session_id, self.grid.min_finite, self.grid.max_finite,
        )

    def _finish_cancelled(self) -> None:
        if self._work is not None:
            self._work.close()
        self._work = None
        self._values = None
        self.state = SessionState.CANCELLED
        logger.info("Session %d cancelled at %d/%d samples", self.session_id, self.processed, self.total)


def generate_outcome_grid(
    snapshot: AttractorSnapshot,
    config: SimConfig,
    gravity_constant: float = None,
) -> OutcomeGrid:
    """Run a full sampling pass synchronously and return the published grid."""
    return SamplerSession(snapshot, config, gravity_constant).run()
