"""
Gravity Engine — Outcome Color Mapping

Pure functions turning outcome values into colors and overlay geometry for the
performance map renderer:

  - failure (inf)      -> red   hsl(0, 90%, 50%)
  - success (0)        -> green hsl(120, 90%, 50%)
  - miss at distance d -> hue 120 * (1 - min(d, threshold) / threshold)

Closer misses are never redder than farther ones.
"""

import colorsys
import math
from typing import List, Tuple

import numpy as np

SUCCESS_HUE = 120.0
FAILURE_HUE = 0.0
SATURATION = 90.0
LIGHTNESS = 50.0

Segment = Tuple[Tuple[float, float], Tuple[float, float]]


def outcome_to_hsl(
    outcome: float,
    max_dist_color: float = 400.0,
    success_threshold: float = 0.0,
) -> Tuple[float, float, float]:
    """(hue in degrees, saturation %, lightness %) for one outcome value."""
    if not math.isfinite(outcome):
        return FAILURE_HUE, SATURATION, LIGHTNESS
    if outcome <= success_threshold:
        return SUCCESS_HUE, SATURATION, LIGHTNESS
    normalized = min(outcome, max_dist_color) / max_dist_color
    hue = FAILURE_HUE + (SUCCESS_HUE - FAILURE_HUE) * (1.0 - normalized)
    return hue, SATURATION, LIGHTNESS


def outcome_to_css(outcome: float, max_dist_color: float = 400.0, success_threshold: float = 0.0) -> str:
    hue, sat, light = outcome_to_hsl(outcome, max_dist_color, success_threshold)
    return f"hsl({hue:.0f}, {sat:.0f}%, {light:.0f}%)"


def outcome_to_rgb(
    outcome: float,
    max_dist_color: float = 400.0,
    success_threshold: float = 0.0,
) -> Tuple[float, float, float]:
    """RGB floats in [0, 1]."""
    hue, sat, light = outcome_to_hsl(outcome, max_dist_color, success_threshold)
    return colorsys.hls_to_rgb(hue / 360.0, light / 100.0, sat / 100.0)


def grid_to_rgb(values: np.ndarray, max_dist_color: float = 400.0, success_threshold: float = 0.0) -> np.ndarray:
    """(rows, cols, 3) RGB image for an outcome grid, row 0 = lowest speed."""
    rows, cols = values.shape
    image = np.zeros((rows, cols, 3), dtype=np.float64)
    for j in range(rows):
        for i in range(cols):
            image[j, i] = outcome_to_rgb(float(values[j, i]), max_dist_color, success_threshold)
    return image


def hit_boundary_segments(values: np.ndarray) -> List[Segment]:
    """Cell edges that separate success cells from everything else.

    Cells are unit squares: column i spans x in [i, i+1], row j spans y in
    [j, j+1] with row 0 the lowest speed. The angle axis wraps around; the
    speed axis does not, so the outer speed edges of success cells always count.
    """
    rows, cols = values.shape
    success = values == 0.0
    segments: List[Segment] = []

    for j in range(rows):
        for i in range(cols):
            if not success[j, i]:
                continue
            if not success[j, (i + 1) % cols]:
                segments.append(((i + 1, j), (i + 1, j + 1)))
            if not success[j, (i - 1) % cols]:
                segments.append(((i, j), (i, j + 1)))
            if j == 0 or not success[j - 1, i]:
                segments.append(((i, j), (i + 1, j)))
            if j == rows - 1 or not success[j + 1, i]:
                segments.append(((i, j + 1), (i + 1, j + 1)))
    return segments


def marker_position(angle_deg: float, speed: float, min_speed: float, max_speed: float) -> Tuple[float, float]:
    """Normalized (u, v) of a launch on the map: u along angle, v along speed.

    The speed is clamped to the sampled range; an empty range puts the marker
    at mid-height.
    """
    u = (angle_deg % 360.0) / 360.0
    span = max_speed - min_speed
    if span <= 0:
        return u, 0.5
    clamped = max(min_speed, min(speed, max_speed))
    return u, (clamped - min_speed) / span
