"""
Arena — Live Launch Gymnasium Environment

Frame-by-frame wrapper around gravity_engine.LiveLaunch.
The first action of an episode is the kick; every step advances one frame, and
the episode ends on the first terminal event (target hit/grazed, obstacle hit,
escape) or is truncated after `sim_steps` frames.

Observation space (8 floats):
    projectile position (2) + projectile velocity (2) +
    target position (2) + target radius (1) + surface distance to target (1)

Action space (2 floats):
    kick_angle [-1,1] -> [0°, 360°), kick_speed [-1,1] -> [min_speed, max_speed]
"""

import gymnasium as gym
import numpy as np
from gymnasium import spaces

from gravity_engine.config import DEFAULT_ATTRACTORS, make_config
from gravity_engine.geometry import distance, velocity_from_polar
from gravity_engine.live import LaunchEvent, LiveLaunch
from gravity_engine.registry import AttractorRegistry


class LaunchEnv(gym.Env):
    """One live launch per episode, stepped one frame at a time."""

    metadata = {"render_modes": []}

    def __init__(
        self,
        arena_config: dict = None,
        attractors: list = None,
        render_mode: str = None,
    ):
        super().__init__()

        self.config = make_config(arena_config)
        self.registry = AttractorRegistry.from_config(
            self.config, attractors if attractors is not None else DEFAULT_ATTRACTORS
        )
        self.render_mode = render_mode

        self.observation_space = spaces.Box(
            low=-np.inf, high=np.inf, shape=(8,), dtype=np.float32
        )
        self.action_space = spaces.Box(
            low=-1.0, high=1.0, shape=(2,), dtype=np.float32
        )

        self.launch: LiveLaunch = None

        # Stats tracking
        self.episode_count: int = 0
        self.hit_count: int = 0
        self.last_event: LaunchEvent = None

    def action_to_velocity(self, action: np.ndarray) -> tuple:
        """Map a normalized action to a kick velocity."""
        action = np.clip(action, -1.0, 1.0)
        angle = (action[0] + 1.0) * 180.0 % 360.0
        speed = self.config.min_speed + (action[1] + 1.0) * 0.5 * (
            self.config.max_speed - self.config.min_speed
        )
        return velocity_from_polar(float(angle), float(speed))

    def _get_observation(self) -> np.ndarray:
        state = self.launch.state
        target = self.launch.target
        surface = distance(state.x, state.y, target.x, target.y) - (state.radius + target.radius)

        obs = np.concatenate([
            state.position,                   # 2
            state.velocity,                   # 2
            [target.x, target.y],             # 2
            [target.radius],                  # 1
            [surface],                        # 1
        ]).astype(np.float32)                 # Total: 8

        return np.nan_to_num(obs, nan=0.0, posinf=1e6, neginf=-1e6)

    def reset(self, seed=None, options=None):
        """Place a resting projectile at the launch origin."""
        super().reset(seed=seed)

        # Refuses to start without a target (ConfigurationError)
        self.launch = LiveLaunch(self.registry.snapshot(), self.config)
        self.last_event = None

        info = {
            "attractors": self.registry.count,
            "gravity_constant": self.config.gravity_constant,
        }
        return self._get_observation(), info

    def step(self, action: np.ndarray):
        """Kick on the first frame, then advance the projectile one frame."""
        if not self.launch.is_moving and not self.launch.finished:
            self.launch.launch(self.action_to_velocity(action))

        event = self.launch.tick()

        terminated = event is not None
        truncated = not terminated and self.launch.frames >= self.config.sim_steps

        if terminated:
            reward = 1.0 if event.success else -1.0
        else:
            reward = 0.0

        if terminated or truncated:
            self.episode_count += 1
            self.last_event = event
            if event is not None and event.success:
                self.hit_count += 1

        info = {
            "event": event.value if event is not None else None,
            "message": event.message if event is not None else "",
            "frames": self.launch.frames,
            "kick_angle": self.launch.kick[0],
            "kick_speed": self.launch.kick[1],
        }

        return self._get_observation(), reward, terminated, truncated, info

    @property
    def success_rate(self) -> float:
        """Rolling success rate."""
        if self.episode_count == 0:
            return 0.0
        return self.hit_count / self.episode_count
