"""
Gravity Engine — Live Launch

Real-time counterpart of the trial classifier. A LiveLaunch is the explicit
per-trial game context: the game loop calls `tick()` once per frame, which
advances the projectile with the same integrator and checks the same terminal
conditions as `simulate_trial`, but emits a discrete event the moment the trial
ends instead of reducing it to a scalar.

The Striker is the pointer-driven paddle: it trails the pointer with linear
smoothing, and its per-frame displacement becomes the kick velocity.
"""

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from gravity_engine.bodies import AttractorSnapshot, ProjectileState
from gravity_engine.classifier import first_collision, is_off_arena
from gravity_engine.config import SimConfig
from gravity_engine.geometry import distance, interpolate, polar_from_velocity
from gravity_engine.integrator import step

logger = logging.getLogger(__name__)


class LaunchEvent(str, Enum):
    TARGET_HIT = "target_hit"
    TARGET_GRAZED = "target_grazed"
    OBSTACLE_HIT = "obstacle_hit"
    ESCAPED = "escaped"

    @property
    def success(self) -> bool:
        return self in (LaunchEvent.TARGET_HIT, LaunchEvent.TARGET_GRAZED)

    @property
    def message(self) -> str:
        return _EVENT_MESSAGES[self]


_EVENT_MESSAGES = {
    LaunchEvent.TARGET_HIT: "Target reached!",
    LaunchEvent.TARGET_GRAZED: "Target grazed successfully!",
    LaunchEvent.OBSTACLE_HIT: "Hit the wrong planet!",
    LaunchEvent.ESCAPED: "Asteroid lost in space!",
}


@dataclass
class Striker:
    """Pointer-following paddle that kicks the projectile."""
    x: float
    y: float
    radius: float = 10.0
    smooth_factor: float = 0.15
    vx: float = 0.0
    vy: float = 0.0

    def follow(self, pointer_x: float, pointer_y: float) -> None:
        """Move one frame toward the pointer; velocity is the frame displacement."""
        prev_x, prev_y = self.x, self.y
        self.x = interpolate(self.x, pointer_x, self.smooth_factor)
        self.y = interpolate(self.y, pointer_y, self.smooth_factor)
        self.vx = self.x - prev_x
        self.vy = self.y - prev_y

    def touches(self, state: ProjectileState) -> bool:
        return distance(self.x, self.y, state.x, state.y) < self.radius + state.radius


class LiveLaunch:
    """One live trial: projectile at rest at the launch origin until kicked.

    Raises:
        ConfigurationError: when the snapshot has no target attractor.
    """

    def __init__(self, snapshot: AttractorSnapshot, config: SimConfig, gravity_constant: float = None):
        self.target = snapshot.require_target()
        self.snapshot = snapshot
        self.config = config
        self.gravity_constant = config.gravity_constant if gravity_constant is None else gravity_constant

        x0, y0 = config.launch_origin
        self.state = ProjectileState.at(x0, y0, radius=config.projectile_radius)
        self.is_moving = False
        self.event: Optional[LaunchEvent] = None
        self.frames = 0
        self.kick: Optional[Tuple[float, float]] = None     # (angle deg, speed)
        self.trajectory: List[Tuple[float, float]] = [(x0, y0)]
        self.trail = deque(maxlen=config.trail_length)

    @property
    def finished(self) -> bool:
        return self.event is not None

    def launch(self, velocity: Sequence[float]) -> bool:
        """Set the projectile moving. Returns False if it was already launched."""
        if self.is_moving or self.finished:
            return False
        vx, vy = float(velocity[0]), float(velocity[1])
        self.state = ProjectileState.at(self.state.x, self.state.y, vx, vy, radius=self.state.radius)
        self.is_moving = True
        self.kick = polar_from_velocity(vx, vy)
        logger.debug("Launch: angle=%.1f deg, speed=%.2f", *self.kick)
        return True

    def try_kick(self, striker: Striker) -> bool:
        """Kick with the striker's velocity if it touches the resting projectile."""
        if self.is_moving or self.finished or not striker.touches(self.state):
            return False
        strength = self.config.kick_strength
        return self.launch((striker.vx * strength, striker.vy * strength))

    def tick(self) -> Optional[LaunchEvent]:
        """Advance one frame. Returns the terminal event on the frame it happens."""
        if not self.is_moving or self.finished:
            return None

        self.state = step(self.state, self.snapshot, self.gravity_constant, self.config.time_step)
        self.frames += 1
        point = (self.state.x, self.state.y)
        self.trajectory.append(point)
        self.trail.append(point)

        hit = first_collision(self.state, self.snapshot)
        if hit is not None:
            event = LaunchEvent.TARGET_HIT if hit == self.snapshot.target_index else LaunchEvent.OBSTACLE_HIT
            return self._finish(event)

        if self._grazing():
            return self._finish(LaunchEvent.TARGET_GRAZED)

        if is_off_arena(self.state.position, self.config):
            return self._finish(LaunchEvent.ESCAPED)
        return None

    def run(self, max_frames: int = None) -> Optional[LaunchEvent]:
        """Tick until the launch ends or max_frames (default: sim_steps) pass."""
        limit = self.config.sim_steps if max_frames is None else max_frames
        for _ in range(limit):
            event = self.tick()
            if event is not None:
                return event
        return self.event

    def _grazing(self) -> bool:
        """Within the success threshold of the target surface and moving away."""
        t = self.target
        surface = distance(self.state.x, self.state.y, t.x, t.y) - (self.state.radius + t.radius)
        if surface > self.config.success_threshold:
            return False
        radial = (self.state.x - t.x) * self.state.velocity[0] + (self.state.y - t.y) * self.state.velocity[1]
        return radial >= 0

    def _finish(self, event: LaunchEvent) -> LaunchEvent:
        self.event = event
        self.is_moving = False
        logger.info("Launch ended after %d frames: %s", self.frames, event.message)
        return event
