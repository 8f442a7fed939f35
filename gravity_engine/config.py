"""
Gravity Engine — Simulation Configuration

Flat, immutable parameter set shared by the integrator, the classifier, the
outcome-space sampler and the live game. Values are merged over defaults and
validated fail-fast; YAML arena files carry overrides plus the attractor layout.
"""

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import List, Optional, Tuple

import yaml

from gravity_engine.errors import ConfigurationError


DEFAULT_ATTRACTORS = [
    {"id": "planet_0", "x": 540.0, "y": 392.6, "radius": 20.0, "is_target": False},
    {"id": "planet_1", "x": 897.0, "y": 391.6, "radius": 35.0, "is_target": False},
    {"id": "planet_2", "x": 703.0, "y": 420.6, "radius": 25.0, "is_target": False},
    {"id": "planet_3", "x": 600.0, "y": 419.6, "radius": 25.0, "is_target": False},
    {"id": "planet_4", "x": 799.0, "y": 399.6, "radius": 25.0, "is_target": False},
    {"id": "target",   "x": 696.0, "y": 170.6, "radius": 65.0, "is_target": True},
]


@dataclass(frozen=True)
class SimConfig:
    """Every scalar parameter of the simulation.

    Distances are in pixels, speeds in pixels/step, time in steps.
    """
    # Arena
    arena_width: float = 1400.0
    arena_height: float = 900.0
    off_screen_buffer: float = 50.0   # how far past the edge before a trial escapes

    # Physics
    gravity_constant: float = 5.0
    mass_factor: float = 0.5          # mass = pi * r^2 * mass_factor
    time_step: float = 1.0

    # Projectile
    projectile_radius: float = 15.0
    launch_x: Optional[float] = None  # None -> arena_width / 2
    launch_y: Optional[float] = None  # None -> arena_height - 150
    kick_strength: float = 1.0
    trail_length: int = 70

    # Classification
    success_threshold: float = 0.0

    # Outcome map
    angle_steps: int = 72
    speed_steps: int = 20
    min_speed: float = 1.0
    max_speed: float = 15.0
    sim_steps: int = 800
    max_dist_color: float = 400.0
    distance_cap_factor: float = 1.5
    batch_size: int = 100

    # Regeneration
    debounce_seconds: float = 1.0

    # Attractor interaction
    resize_step: float = 2.0
    min_radius: float = 10.0
    max_radius: float = 150.0

    def __post_init__(self):
        _validate(self)

    @property
    def launch_origin(self) -> Tuple[float, float]:
        x = self.arena_width / 2 if self.launch_x is None else self.launch_x
        y = self.arena_height - 150.0 if self.launch_y is None else self.launch_y
        return float(x), float(y)

    @property
    def distance_cap(self) -> float:
        """Largest finite miss distance a trial reports."""
        return self.max_dist_color * self.distance_cap_factor

    def grid_shape(self) -> Tuple[int, int]:
        """(speed_steps, angle_steps) after degenerate values are normalized."""
        angle_steps = max(int(self.angle_steps), 1)
        speed_steps = max(int(self.speed_steps), 1)
        if self.max_speed <= self.min_speed:
            speed_steps = 1
        return speed_steps, angle_steps

    def with_overrides(self, **overrides) -> "SimConfig":
        _check_keys(overrides)
        return replace(self, **overrides)


def _check_keys(overrides: dict) -> None:
    known = {f.name for f in fields(SimConfig)}
    unknown = set(overrides) - known
    if unknown:
        raise ConfigurationError(f"Unknown simulation settings: {sorted(unknown)}")


def _validate(cfg: SimConfig) -> None:
    checks = [
        (cfg.arena_width > 0 and cfg.arena_height > 0, "arena dimensions must be > 0"),
        (cfg.off_screen_buffer >= 0, "off_screen_buffer must be >= 0"),
        (cfg.mass_factor > 0, "mass_factor must be > 0"),
        (cfg.time_step > 0, "time_step must be > 0"),
        (cfg.projectile_radius > 0, "projectile_radius must be > 0"),
        (cfg.success_threshold >= 0, "success_threshold must be >= 0"),
        (cfg.sim_steps >= 0, "sim_steps must be >= 0"),
        (cfg.max_dist_color > 0, "max_dist_color must be > 0"),
        (cfg.distance_cap_factor > 0, "distance_cap_factor must be > 0"),
        (cfg.batch_size > 0, "batch_size must be > 0"),
        (cfg.debounce_seconds >= 0, "debounce_seconds must be >= 0"),
        (cfg.trail_length > 0, "trail_length must be > 0"),
        (0 < cfg.min_radius <= cfg.max_radius, "radius clamp must satisfy 0 < min <= max"),
    ]
    for ok, message in checks:
        if not ok:
            raise ConfigurationError(message)


def make_config(overrides: Optional[dict] = None) -> SimConfig:
    """Merge overrides over the defaults and validate."""
    overrides = dict(overrides or {})
    _check_keys(overrides)
    return SimConfig(**overrides)


def load_arena(path) -> Tuple[SimConfig, List[dict]]:
    """Load a YAML arena file.

    Expected layout::

        simulation:
          gravity_constant: 5
        attractors:
          - {id: target, x: 696, y: 170.6, radius: 65, is_target: true}

    Both sections are optional; missing attractors fall back to the default layout.
    """
    path = Path(path)
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: top level must be a mapping")

    simulation = data.get("simulation") or {}
    if not isinstance(simulation, dict):
        raise ConfigurationError(f"{path}: 'simulation' must be a mapping")
    cfg = make_config(simulation)

    attractors = data.get("attractors")
    if attractors is None:
        attractors = [dict(a) for a in DEFAULT_ATTRACTORS]
    if not isinstance(attractors, list):
        raise ConfigurationError(f"{path}: 'attractors' must be a list")
    required = {"x", "y", "radius"}
    for i, entry in enumerate(attractors):
        if not isinstance(entry, dict):
            raise ConfigurationError(f"{path}: attractor #{i} must be a mapping")
        missing = required - set(entry)
        if missing:
            raise ConfigurationError(f"{path}: attractor #{i} missing {sorted(missing)}")
        entry.setdefault("id", f"planet_{i}")
        entry.setdefault("is_target", False)
    return cfg, attractors
