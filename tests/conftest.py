"""
Gravity Engine Test Suite — Shared Fixtures

Provides reusable pytest fixtures for all test stages.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from gravity_engine.bodies import Attractor, AttractorSnapshot
from gravity_engine.config import DEFAULT_ATTRACTORS, make_config
from gravity_engine.registry import AttractorRegistry


class FakeClock:
    """Manually advanced clock for debounce tests."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------- Config Fixtures ----------
@pytest.fixture
def scenario_config():
    """1400x900 arena, G=5, projectile (r=15) launched from (700, 800)."""
    return make_config({"launch_x": 700.0, "launch_y": 800.0})


@pytest.fixture
def small_grid_config():
    """Coarse 4-angle x 3-speed map with a short step budget."""
    return make_config({
        "launch_x": 700.0,
        "launch_y": 800.0,
        "angle_steps": 4,
        "speed_steps": 3,
        "min_speed": 1.0,
        "max_speed": 15.0,
        "sim_steps": 400,
        "batch_size": 5,
    })


# ---------- Attractor Fixtures ----------
@pytest.fixture
def target_attractor():
    """Target planet at (700, 100), radius 50."""
    return Attractor(id="target", x=700.0, y=100.0, radius=50.0, is_target=True)


@pytest.fixture
def target_only_snapshot(target_attractor):
    return AttractorSnapshot.from_attractors([target_attractor])


@pytest.fixture
def blocked_snapshot(target_attractor):
    """Target plus a large obstacle directly between it and the launch point."""
    obstacle = Attractor(id="rock", x=700.0, y=450.0, radius=60.0)
    return AttractorSnapshot.from_attractors([target_attractor, obstacle])


@pytest.fixture
def scenario_registry(scenario_config):
    registry = AttractorRegistry.from_config(scenario_config, [
        {"id": "target", "x": 700.0, "y": 100.0, "radius": 50.0, "is_target": True},
        {"id": "rock", "x": 300.0, "y": 450.0, "radius": 30.0},
    ])
    return registry


@pytest.fixture
def default_registry():
    """The bundled six-planet layout."""
    return AttractorRegistry.from_config(make_config(), DEFAULT_ATTRACTORS)


@pytest.fixture
def fake_clock():
    return FakeClock()
