"""
Gravity Engine
Projectile flight under multi-body gravity, trial classification and
outcome-space sampling for the performance map.
"""

from gravity_engine.bodies import (
    Attractor,
    AttractorSnapshot,
    ProjectileState,
)
from gravity_engine.classifier import (
    FAILURE,
    SUCCESS,
    OutcomeKind,
    classify_outcome,
    simulate_trial,
)
from gravity_engine.colormap import (
    grid_to_rgb,
    hit_boundary_segments,
    marker_position,
    outcome_to_css,
    outcome_to_hsl,
    outcome_to_rgb,
)
from gravity_engine.config import SimConfig, load_arena, make_config
from gravity_engine.controller import ControllerState, Debouncer, RegenerationController
from gravity_engine.errors import ConfigurationError, GravityEngineError
from gravity_engine.integrator import compute_acceleration, step
from gravity_engine.live import LaunchEvent, LiveLaunch, Striker
from gravity_engine.registry import AttractorRegistry
from gravity_engine.sampler import (
    CancelToken,
    OutcomeGrid,
    SamplerSession,
    SessionState,
    SessionStatus,
    StatusKind,
    generate_outcome_grid,
    sample_axes,
)

__all__ = [
    "Attractor",
    "AttractorSnapshot",
    "ProjectileState",
    "FAILURE",
    "SUCCESS",
    "OutcomeKind",
    "classify_outcome",
    "simulate_trial",
    "grid_to_rgb",
    "hit_boundary_segments",
    "marker_position",
    "outcome_to_css",
    "outcome_to_hsl",
    "outcome_to_rgb",
    "SimConfig",
    "load_arena",
    "make_config",
    "ControllerState",
    "Debouncer",
    "RegenerationController",
    "ConfigurationError",
    "GravityEngineError",
    "compute_acceleration",
    "step",
    "LaunchEvent",
    "LiveLaunch",
    "Striker",
    "AttractorRegistry",
    "CancelToken",
    "OutcomeGrid",
    "SamplerSession",
    "SessionState",
    "SessionStatus",
    "StatusKind",
    "generate_outcome_grid",
    "sample_axes",
]
