"""
Gravity Engine — Bodies

Plain data records for the simulation:
  - Attractor: an immovable disc that pulls the projectile; one may be the target.
  - AttractorSnapshot: an immutable copy of the attractor layout for one trial or
    one sampling pass, with the per-body quantities packed into numpy arrays.
  - ProjectileState: the kinematic state of the point mass being flown.
"""

import math
from dataclasses import dataclass, field
from typing import Iterable, Optional, Tuple

import numpy as np

from gravity_engine.errors import ConfigurationError


# ---------- Data Classes ----------
@dataclass
class Attractor:
    """A disc of uniform density exerting inverse-square gravity."""
    id: str
    x: float
    y: float
    radius: float
    is_target: bool = False
    mass_factor: float = 0.5

    @property
    def mass(self) -> float:
        """Derived mass: pi * r^2 * mass_factor."""
        return math.pi * self.radius * self.radius * self.mass_factor

    def contains(self, x: float, y: float) -> bool:
        """True when (x, y) lies on or inside the disc."""
        return math.hypot(x - self.x, y - self.y) <= self.radius

    def to_dict(self) -> dict:
        """JSON-serializable representation."""
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "radius": self.radius,
            "mass": self.mass,
            "is_target": self.is_target,
        }


@dataclass(frozen=True, eq=False)
class ProjectileState:
    """Position, velocity and radius of the projectile at one instant."""
    position: np.ndarray           # [x, y]
    velocity: np.ndarray           # [vx, vy]
    radius: float = 15.0

    @classmethod
    def at(cls, x: float, y: float, vx: float = 0.0, vy: float = 0.0, radius: float = 15.0):
        return cls(
            position=np.array([x, y], dtype=np.float64),
            velocity=np.array([vx, vy], dtype=np.float64),
            radius=float(radius),
        )

    @property
    def x(self) -> float:
        return float(self.position[0])

    @property
    def y(self) -> float:
        return float(self.position[1])


@dataclass(frozen=True, eq=False)
class AttractorSnapshot:
    """Immutable attractor layout consumed by a single trial or sampling pass.

    Built with `from_attractors`, which copies every attractor so later edits
    to the live layout never reach a pass that is already running.
    """
    attractors: Tuple[Attractor, ...]
    positions: np.ndarray = field(repr=False)   # (n, 2)
    radii: np.ndarray = field(repr=False)       # (n,)
    masses: np.ndarray = field(repr=False)      # (n,)
    target_index: Optional[int] = None

    @classmethod
    def from_attractors(cls, attractors: Iterable[Attractor]) -> "AttractorSnapshot":
        copies = tuple(
            Attractor(
                id=a.id, x=float(a.x), y=float(a.y), radius=float(a.radius),
                is_target=bool(a.is_target), mass_factor=float(a.mass_factor),
            )
            for a in attractors
        )

        target_indices = [i for i, a in enumerate(copies) if a.is_target]
        if len(target_indices) > 1:
            ids = [copies[i].id for i in target_indices]
            raise ConfigurationError(f"Exactly one target attractor allowed, found {len(ids)}: {ids}")

        positions = np.array([[a.x, a.y] for a in copies], dtype=np.float64).reshape(-1, 2)
        radii = np.array([a.radius for a in copies], dtype=np.float64)
        masses = np.array([a.mass for a in copies], dtype=np.float64)
        for arr in (positions, radii, masses):
            arr.setflags(write=False)

        return cls(
            attractors=copies,
            positions=positions,
            radii=radii,
            masses=masses,
            target_index=target_indices[0] if target_indices else None,
        )

    def __len__(self) -> int:
        return len(self.attractors)

    @property
    def target(self) -> Optional[Attractor]:
        if self.target_index is None:
            return None
        return self.attractors[self.target_index]

    def require_target(self) -> Attractor:
        """Return the target or raise ConfigurationError when there is none."""
        target = self.target
        if target is None:
            raise ConfigurationError("No target attractor in the current configuration")
        return target
