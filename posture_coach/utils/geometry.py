"""
Scalar geometry helpers shared by the rule-based classifier and evaluator.

Points may be ``Landmark`` records, any object exposing ``x`` / ``y``
attributes, or array-likes whose first two entries are (x, y).
"""

import math
from typing import Any, Tuple


def _xy(point: Any) -> Tuple[float, float]:
    if hasattr(point, "x") and hasattr(point, "y"):
        return float(point.x), float(point.y)
    return float(point[0]), float(point[1])


def calculate_angle(a: Any, b: Any, c: Any) -> float:
    """Angle ABC in degrees (0-180), measured in the image (x, y) plane.

    Args:
        a: First point.
        b: Vertex.
        c: End point.

    Returns:
        Angle at *b* in degrees, or 0.0 when any point is missing.
    """
    if a is None or b is None or c is None:
        return 0.0

    ax, ay = _xy(a)
    bx, by = _xy(b)
    cx, cy = _xy(c)

    radians = math.atan2(cy - by, cx - bx) - math.atan2(ay - by, ax - bx)
    angle = abs(math.degrees(radians))
    if angle > 180.0:
        angle = 360.0 - angle
    return angle


def calculate_distance(a: Any, b: Any) -> float:
    """Euclidean distance between two points in the image plane."""
    if a is None or b is None:
        return 0.0
    ax, ay = _xy(a)
    bx, by = _xy(b)
    return math.hypot(ax - bx, ay - by)
