"""
Gravity Engine — Trajectory Integrator

Advances the projectile one fixed time step under the summed inverse-square pull
of every attractor. Semi-implicit Euler: the velocity is updated first and the
new velocity moves the position within the same step. The live game and the
outcome-space sampler both call `step`, so their trajectories are identical.
"""

import numpy as np

from gravity_engine.bodies import AttractorSnapshot, ProjectileState


def center_distances(position: np.ndarray, snapshot: AttractorSnapshot) -> np.ndarray:
    """Centre-to-centre distance from `position` to every attractor."""
    delta = snapshot.positions - position
    return np.hypot(delta[:, 0], delta[:, 1])


def compute_acceleration(
    position: np.ndarray,
    snapshot: AttractorSnapshot,
    gravity_constant: float,
) -> np.ndarray:
    """Total gravitational acceleration at `position`.

    Each attractor contributes G * m / d^2 toward its centre, but only while the
    point is outside its disc (d > radius). A zero distance contributes nothing.
    """
    if len(snapshot) == 0:
        return np.zeros(2)

    delta = snapshot.positions - position
    dist = np.hypot(delta[:, 0], delta[:, 1])
    active = (dist > snapshot.radii) & (dist > 0.0)
    if not active.any():
        return np.zeros(2)

    d = dist[active]
    magnitude = gravity_constant * snapshot.masses[active] / (d * d)
    acc = (magnitude / d)[:, None] * delta[active]
    return acc.sum(axis=0)


def step(
    state: ProjectileState,
    snapshot: AttractorSnapshot,
    gravity_constant: float,
    dt: float = 1.0,
) -> ProjectileState:
    """Return the projectile state one time step later."""
    acc = compute_acceleration(state.position, snapshot, gravity_constant)
    velocity = state.velocity + acc * dt
    position = state.position + velocity * dt
    return ProjectileState(position=position, velocity=velocity, radius=state.radius)
