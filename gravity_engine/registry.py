"""
Gravity Engine — Attractor Registry

Live, mutable attractor layout edited by the game (drag to move, wheel to
resize). Everything that simulates takes an immutable `snapshot()` first, so
edits made while a sampling pass runs never reach that pass.
"""

import json
from typing import Dict, List, Optional

from gravity_engine.bodies import Attractor, AttractorSnapshot
from gravity_engine.errors import ConfigurationError


class AttractorRegistry:
    """Ordered collection of attractors keyed by id."""

    def __init__(
        self,
        mass_factor: float = 0.5,
        min_radius: float = 10.0,
        max_radius: float = 150.0,
        resize_step: float = 2.0,
    ):
        self._attractors: Dict[str, Attractor] = {}
        self.mass_factor = mass_factor
        self.min_radius = min_radius
        self.max_radius = max_radius
        self.resize_step = resize_step

    @classmethod
    def from_config(cls, config, attractors: List[dict]) -> "AttractorRegistry":
        """Build a registry from a SimConfig and a list of attractor dicts."""
        registry = cls(
            mass_factor=config.mass_factor,
            min_radius=config.min_radius,
            max_radius=config.max_radius,
            resize_step=config.resize_step,
        )
        for entry in attractors:
            registry.add_attractor(
                id=str(entry["id"]),
                x=entry["x"],
                y=entry["y"],
                radius=entry["radius"],
                is_target=bool(entry.get("is_target", False)),
            )
        return registry

    def add_attractor(self, id: str, x: float, y: float, radius: float, is_target: bool = False) -> Attractor:
        """Add an attractor (replacing any attractor with the same id)."""
        if radius <= 0:
            raise ConfigurationError(f"Attractor {id!r} radius must be > 0, got {radius}")
        attractor = Attractor(
            id=id, x=float(x), y=float(y), radius=float(radius),
            is_target=is_target, mass_factor=self.mass_factor,
        )
        self._attractors[id] = attractor
        return attractor

    def remove_attractor(self, id: str) -> bool:
        """Remove an attractor by ID. Returns True if found and removed."""
        if id in self._attractors:
            del self._attractors[id]
            return True
        return False

    def get(self, id: str) -> Attractor:
        try:
            return self._attractors[id]
        except KeyError:
            raise ConfigurationError(f"Unknown attractor id: {id!r}") from None

    def move(self, id: str, x: float, y: float) -> Attractor:
        attractor = self.get(id)
        attractor.x = float(x)
        attractor.y = float(y)
        return attractor

    def resize(self, id: str, radius: float) -> Attractor:
        """Set a new radius, clamped to [min_radius, max_radius]. Mass follows."""
        attractor = self.get(id)
        attractor.radius = float(max(self.min_radius, min(self.max_radius, radius)))
        return attractor

    def resize_by_wheel(self, id: str, wheel_delta: float) -> bool:
        """Grow on wheel-up (negative delta), shrink on wheel-down.

        Returns True when the radius actually changed.
        """
        attractor = self.get(id)
        direction = (wheel_delta > 0) - (wheel_delta < 0)
        before = attractor.radius
        self.resize(id, before - direction * self.resize_step)
        return attractor.radius != before

    def pick(self, x: float, y: float) -> Optional[Attractor]:
        """First attractor whose disc contains (x, y), for hover and drag."""
        for attractor in self._attractors.values():
            if attractor.contains(x, y):
                return attractor
        return None

    @property
    def target(self) -> Optional[Attractor]:
        return self.snapshot().target

    @property
    def count(self) -> int:
        return len(self._attractors)

    def __iter__(self):
        return iter(self._attractors.values())

    def snapshot(self) -> AttractorSnapshot:
        """Immutable copy of the current layout."""
        return AttractorSnapshot.from_attractors(self._attractors.values())

    def to_dict(self) -> dict:
        """JSON-serializable layout."""
        return {
            "attractors": [a.to_dict() for a in self._attractors.values()],
            "count": self.count,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    def describe(self, gravity_constant: float = None) -> str:
        """Printable layout summary."""
        if not self._attractors:
            return "No planets currently defined."
        lines = []
        for index, a in enumerate(self._attractors.values()):
            suffix = " (TARGET)" if a.is_target else ""
            lines.append(f"Planet {index}: Pos=({a.x:.1f}, {a.y:.1f}), Radius={a.radius:.1f}{suffix}")
        if gravity_constant is not None:
            lines.append(f"Gravity Constant: {gravity_constant:.1f}")
        return "\n".join(lines)

    def clear(self) -> None:
        """Remove all attractors."""
        self._attractors.clear()
