"""
Shared utilities for the analysis pipeline.

- Session feedback text (templated from score band and weakest indicator)
- Timestamp formatting and small statistics helpers
"""

import logging
import math
from typing import Optional, Sequence

from .config import ADVANCED_THRESHOLD, INTERMEDIATE_THRESHOLD

logger = logging.getLogger(__name__)


def format_time(seconds: float) -> str:
    """Format seconds as ``M:SS`` (e.g. 75.4 -> "1:15")."""
    seconds = max(0.0, float(seconds))
    mins = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{mins}:{secs:02d}"


def variance(values: Sequence[float]) -> float:
    """Population variance; 0.0 for an empty sequence."""
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return sum((v - mean) ** 2 for v in values) / len(values)


def std_dev(values: Sequence[float]) -> float:
    return math.sqrt(variance(values))


def level_label(score: float) -> str:
    """Session level band (strict thresholds on the rounded session mean)."""
    if score > ADVANCED_THRESHOLD:
        return "Advanced"
    if score > INTERMEDIATE_THRESHOLD:
        return "Intermediate"
    return "Beginner"


# ---------------------------------------------------------------------------
# Session feedback
# ---------------------------------------------------------------------------

def generate_session_feedback(
    global_score: float,
    weakest_indicator: Optional[str],
    weakest_score: float,
) -> str:
    """Produce the natural-language session summary line.

    Args:
        global_score: Mean of the averaged indicator scores (0-100).
        weakest_indicator: Name of the lowest averaged indicator.
        weakest_score: Its averaged score.

    Returns:
        One summary string, e.g. "Level: Intermediate (78/100). Good effort. ..."
    """
    text = f"Level: {level_label(global_score)} ({round(global_score)}/100). "
    if weakest_score > 80:
        text += "Excellent session! Your form is very consistent."
    elif weakest_score > 60:
        text += f"Good effort. Focus on improving your {weakest_indicator} to reach the next level."
    else:
        text += f"Keep practicing. Your {weakest_indicator} needs significant attention."
    return text
