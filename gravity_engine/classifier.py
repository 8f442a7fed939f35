"""
Gravity Engine — Trial Classifier

Flies one trial from the launch origin with a given initial velocity and reduces
it to a single outcome value:

    0.0        success: the target was struck, or approached within the
               success threshold
    0 < d      miss: closest approach of the projectile surface to the target
               surface, capped at the configured distance cap
    math.inf   failure: a non-target attractor was struck, or the projectile
               left the arena without ever getting close enough
"""

import math
from enum import Enum
from typing import Sequence

import numpy as np

from gravity_engine.bodies import AttractorSnapshot, ProjectileState
from gravity_engine.config import SimConfig
from gravity_engine.integrator import center_distances, step


SUCCESS = 0.0
FAILURE = math.inf


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    MISS = "miss"
    FAILURE = "failure"


def classify_outcome(outcome: float, success_threshold: float = 0.0) -> OutcomeKind:
    """Map an outcome value onto its three-way kind."""
    if math.isinf(outcome):
        return OutcomeKind.FAILURE
    if outcome <= success_threshold:
        return OutcomeKind.SUCCESS
    return OutcomeKind.MISS


def is_off_arena(position: np.ndarray, config: SimConfig, margin: float = None) -> bool:
    """True once `position` is outside the arena grown by `margin` on every side."""
    if margin is None:
        margin = config.off_screen_buffer
    x, y = position[0], position[1]
    return bool(
        x < -margin or x > config.arena_width + margin
        or y < -margin or y > config.arena_height + margin
    )


def first_collision(state: ProjectileState, snapshot: AttractorSnapshot):
    """Index of the first attractor (in layout order) the projectile overlaps, or None.

    Overlap means centre distance <= combined radii.
    """
    if len(snapshot) == 0:
        return None
    hits = center_distances(state.position, snapshot) <= state.radius + snapshot.radii
    if not hits.any():
        return None
    return int(np.argmax(hits))


def simulate_trial(
    initial_velocity: Sequence[float],
    snapshot: AttractorSnapshot,
    config: SimConfig,
    gravity_constant: float = None,
) -> float:
    """Run one trial to a terminal condition and return its outcome value.

    Args:
        initial_velocity: Launch velocity [vx, vy] in pixels/step.
        snapshot: Attractor layout, treated as immutable for the whole trial.
        config: Arena, step budget, thresholds and launch origin.
        gravity_constant: Overrides config.gravity_constant when given.

    Returns:
        0.0, a positive capped surface distance, or math.inf.
    """
    g = config.gravity_constant if gravity_constant is None else gravity_constant
    target_index = snapshot.target_index
    if target_index is None:
        return FAILURE

    x0, y0 = config.launch_origin
    state = ProjectileState.at(
        x0, y0, float(initial_velocity[0]), float(initial_velocity[1]),
        radius=config.projectile_radius,
    )
    combined = state.radius + snapshot.radii

    # Start-position checks: obstacles first, then the target
    dists = center_distances(state.position, snapshot)
    overlapping = dists <= combined
    overlapping_target = bool(overlapping[target_index])
    overlapping[target_index] = False
    if overlapping.any():
        return FAILURE
    if overlapping_target:
        return SUCCESS

    min_surface = float(dists[target_index] - combined[target_index])

    for _ in range(config.sim_steps):
        state = step(state, snapshot, g, config.time_step)

        dists = center_distances(state.position, snapshot)
        hits = dists <= combined
        if hits.any():
            return SUCCESS if int(np.argmax(hits)) == target_index else FAILURE

        surface = max(float(dists[target_index] - combined[target_index]), 0.0)
        min_surface = min(min_surface, surface)

        if is_off_arena(state.position, config):
            return SUCCESS if min_surface <= config.success_threshold else FAILURE

    if min_surface <= config.success_threshold:
        return SUCCESS
    return min(min_surface, config.distance_cap)
