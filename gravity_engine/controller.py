"""
Gravity Engine — Regeneration Controller

Supervises the outcome-space sampler. Layout edits and gravity changes
invalidate the published map at once: the grid and the launch marker are
cleared and any running session is cancelled. Only the restart is debounced,
so a burst of edits (continuous drag, wheel, slider) starts one new session
from the most recent layout once the quiet window has passed.

States:
    IDLE -> GENERATING -> PUBLISHED
    GENERATING -> CANCELLING -> GENERATING   (invalidated mid-pass)
    GENERATING -> CANCELLING -> CANCELLED    (explicit cancel)
    GENERATING -> CANCELLING -> IDLE         (edit, restart still debounced)
    PUBLISHED  -> IDLE                       (edit, restart still debounced)

Scheduling is step-driven: the owner calls `pump()` once per frame (or in a
loop); each pump fires a due debounced event and advances the running session
by one batch.
"""

import logging
import time
from enum import Enum
from typing import Callable, List, Optional, Tuple

from gravity_engine.colormap import marker_position
from gravity_engine.config import SimConfig
from gravity_engine.errors import ConfigurationError
from gravity_engine.registry import AttractorRegistry
from gravity_engine.sampler import (
    OutcomeGrid,
    SamplerSession,
    SessionState,
    SessionStatus,
    StatusKind,
)

logger = logging.getLogger(__name__)

StatusListener = Callable[[SessionStatus], None]


class ControllerState(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    CANCELLING = "cancelling"
    PUBLISHED = "published"
    CANCELLED = "cancelled"


class Debouncer:
    """Latest-wins coalescing timer.

    Every `submit` replaces the pending payload and restarts the quiet window;
    `pop_due` hands the payload back once the window has elapsed.
    """

    def __init__(self, wait: float, clock: Callable[[], float] = time.monotonic):
        self.wait = wait
        self.clock = clock
        self._payload = None
        self._deadline: Optional[float] = None

    @property
    def pending(self) -> bool:
        return self._deadline is not None

    def submit(self, payload) -> None:
        self._payload = payload
        self._deadline = self.clock() + self.wait

    def pop_due(self):
        if self._deadline is None or self.clock() < self._deadline:
            return None
        return self.flush()

    def flush(self):
        """Return the pending payload now, regardless of the window."""
        payload = self._payload
        self.cancel()
        return payload

    def cancel(self) -> None:
        self._payload = None
        self._deadline = None


class RegenerationController:
    """Owns the sampler session lifecycle and the published outcome grid."""

    def __init__(
        self,
        registry: AttractorRegistry,
        config: SimConfig,
        clock: Callable[[], float] = time.monotonic,
        listeners: List[StatusListener] = None,
    ):
        self.registry = registry
        self.config = config
        self.state = ControllerState.IDLE
        self.grid: Optional[OutcomeGrid] = None
        self.session: Optional[SamplerSession] = None
        self.status = SessionStatus(StatusKind.IDLE, message="Waiting for game start...")
        self.last_kick: Optional[Tuple[float, float]] = None

        self._debouncer = Debouncer(config.debounce_seconds, clock)
        self._restart_reason: Optional[str] = None
        self._listeners: List[StatusListener] = list(listeners or [])

    def add_listener(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    # ---------- Invalidating events ----------
    def attractor_moved(self, id: str, x: float, y: float) -> None:
        self.registry.move(id, x, y)
        self._mark_stale("Planet moved...")

    def attractor_resized(self, id: str, radius: float) -> None:
        self.registry.resize(id, radius)
        self._mark_stale("Planet resized...")

    def gravity_changed(self, value: float) -> None:
        self.config = self.config.with_overrides(gravity_constant=float(value))
        self._mark_stale("Gravity changed...")

    def regenerate(self, reason: str = "Recalculating map...") -> None:
        """Invalidate immediately, bypassing the quiet window."""
        self._debouncer.cancel()
        self._invalidate(reason)

    def interaction_ended(self, reason: str = "Planet move finished...") -> None:
        """End of a drag/resize gesture: regenerate without waiting."""
        self.regenerate(reason)

    def cancel(self) -> None:
        """Stop the running session without starting a new one."""
        self._debouncer.cancel()
        self._restart_reason = None
        if self.session is not None and not self.session.done:
            self.session.cancel()
            self.state = ControllerState.CANCELLING

    def record_kick(self, angle_deg: float, speed: float) -> None:
        """Remember the last live launch for the marker overlay."""
        self.last_kick = (angle_deg, speed)

    def marker(self) -> Optional[Tuple[float, float]]:
        """Normalized marker position, only while a grid is published."""
        if self.last_kick is None or self.grid is None:
            return None
        angle, speed = self.last_kick
        return marker_position(angle, speed, self.config.min_speed, self.config.max_speed)

    # ---------- Scheduling ----------
    @property
    def busy(self) -> bool:
        return self.session is not None or self._debouncer.pending

    def pump(self) -> SessionStatus:
        """Fire a due debounced event, then advance the session by one batch."""
        reason = self._debouncer.pop_due()
        if reason is not None:
            self._invalidate(reason)

        if self.session is not None:
            status = self.session.step()
            if self.session.done:
                self._on_session_done()
            else:
                self._emit(status)
        return self.status

    def run_until_idle(self, max_pumps: int = None) -> Optional[OutcomeGrid]:
        """Pump until no session runs; a pending debounced event fires at once."""
        pumps = 0
        while self.busy:
            if self.session is None and self._debouncer.pending:
                self._invalidate(self._debouncer.flush())
            self.pump()
            pumps += 1
            if max_pumps is not None and pumps >= max_pumps:
                break
        return self.grid

    # ---------- Internals ----------
    def _mark_stale(self, reason: str) -> None:
        """Drop everything built from the old layout now; debounce the restart."""
        self.last_kick = None
        self.grid = None
        self._restart_reason = None
        if self.session is not None and not self.session.done:
            logger.info("Map generation cancelled (%s). Waiting for edits to settle...", reason)
            self.session.cancel()
            self.state = ControllerState.CANCELLING
        elif self.state == ControllerState.PUBLISHED:
            self.state = ControllerState.IDLE
            self._emit(SessionStatus(StatusKind.IDLE, message=reason))
        self._debouncer.submit(reason)

    def _invalidate(self, reason: str) -> None:
        self.last_kick = None
        if self.session is not None and not self.session.done:
            logger.info("Map generation cancelled (%s). Regenerating...", reason)
            self.session.cancel()
            self.state = ControllerState.CANCELLING
            self._restart_reason = reason
            return
        self._start(reason)

    def _start(self, reason: str) -> None:
        self.grid = None
        try:
            session = SamplerSession(self.registry.snapshot(), self.config)
        except ConfigurationError as exc:
            logger.error("Cannot generate performance map: %s", exc)
            self.session = None
            self.state = ControllerState.IDLE
            self._emit(SessionStatus(StatusKind.ERROR, message=str(exc)))
            raise

        self.session = session
        self.state = ControllerState.GENERATING
        self._emit(SessionStatus(StatusKind.GENERATING, progress=0.0, message=reason))

    def _on_session_done(self) -> None:
        session, self.session = self.session, None
        if session.state == SessionState.COMPLETED:
            self.grid = session.grid
            self.state = ControllerState.PUBLISHED
            self._emit(session.status)
            return

        self._emit(session.status)
        if self._restart_reason is not None:
            reason, self._restart_reason = self._restart_reason, None
            self._start(reason)
        elif self._debouncer.pending:
            self.state = ControllerState.IDLE
        else:
            self.state = ControllerState.CANCELLED

    def _emit(self, status: SessionStatus) -> None:
        self.status = status
        for listener in self._listeners:
            listener(status)
