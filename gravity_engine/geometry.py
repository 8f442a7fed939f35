"""
Gravity Engine — Geometry Helpers

Small vector helpers shared by the integrator, the classifier and the live game.
Coordinate system: x=right, y=down (screen convention), units are pixels.
"""

import math


def distance(x1: float, y1: float, x2: float, y2: float) -> float:
    """Euclidean distance between two points."""
    return math.hypot(x2 - x1, y2 - y1)


def interpolate(current: float, target: float, factor: float) -> float:
    """Linear interpolation from current toward target by factor in [0, 1]."""
    return current + (target - current) * factor


def velocity_from_polar(angle_deg: float, speed: float) -> tuple:
    """Velocity for a launch angle (counter-clockwise, degrees) and speed.

    The y component is inverted so that 90° points up on a y-down surface.
    """
    rad = math.radians(angle_deg)
    return speed * math.cos(rad), -speed * math.sin(rad)


def polar_from_velocity(vx: float, vy: float) -> tuple:
    """Inverse of velocity_from_polar: (angle in [0, 360), speed)."""
    speed = math.hypot(vx, vy)
    angle = (math.degrees(math.atan2(-vy, vx)) + 360.0) % 360.0
    return angle, speed
