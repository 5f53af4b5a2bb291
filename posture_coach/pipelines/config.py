"""
Configuration constants for the posture analysis pipeline.

Centralizes data-file paths, landmark normalization constants, and the
tunable thresholds of the classifier, evaluator and video sequence analyzer.
Thresholds can be overridden from ``config/analysis.yaml`` (or the file named
by ``POSTURE_COACH_ANALYSIS_CONFIG``).
"""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from ..utils.io_utils import load_optional_config
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Project paths
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_PATH = PROJECT_ROOT / ".env"
load_dotenv(_ENV_PATH)

CONFIG_DIR = PROJECT_ROOT / "config"
DATA_DIR = PROJECT_ROOT / "data"

REFERENCE_LIBRARY_PATH = Path(
    os.environ.get("POSTURE_COACH_REFERENCE_LIBRARY", DATA_DIR / "reference_poses.json")
)
ANALYSIS_CONFIG_PATH = Path(
    os.environ.get("POSTURE_COACH_ANALYSIS_CONFIG", CONFIG_DIR / "analysis.yaml")
)
RECOMMENDATIONS_PATH = Path(
    os.environ.get("POSTURE_COACH_RECOMMENDATIONS", CONFIG_DIR / "recommendations.yaml")
)
LOG_LEVEL: str = os.environ.get("POSTURE_COACH_LOG_LEVEL", "INFO")

# ---------------------------------------------------------------------------
# Landmark layout & normalization
# ---------------------------------------------------------------------------
NUM_LANDMARKS: int = 33
COORDS_PER_LANDMARK: int = 3
VECTOR_DIM: int = NUM_LANDMARKS * COORDS_PER_LANDMARK   # 99
ANCHOR_VISIBILITY_FLOOR: float = 0.3   # shoulders + hips must reach this
DEPTH_WEIGHT: float = 1.5              # z-axis perspective compensation

UNKNOWN_POSE: str = "Unknown"
VARIATION_SEPARATOR: str = " - "       # "Parent - Variation" labels

# ---------------------------------------------------------------------------
# Real-time classifier
# ---------------------------------------------------------------------------
BUFFER_SIZE: int = 30
EMA_ALPHA: float = 0.6
MATCH_THRESHOLD: float = 0.75
RESCUE_THRESHOLD: float = 0.5
CONFIRM_FRAMES: int = 3
CORE_VELOCITY_THRESHOLD: float = 0.12

# ---------------------------------------------------------------------------
# Quality evaluator
# ---------------------------------------------------------------------------
DISTANCE_SCALE: float = 150.0
FEEDBACK_THRESHOLD: float = 80.0
ADVANCED_THRESHOLD: float = 85.0
INTERMEDIATE_THRESHOLD: float = 70.0
MISSING_REFERENCE_SCORE: float = 50.0

# ---------------------------------------------------------------------------
# Video sequence analyzer
# ---------------------------------------------------------------------------
SAMPLE_INTERVAL: float = 0.5          # seconds between sampled frames
MIN_SEGMENT_DURATION: float = 2.0
MERGE_GAP: float = 1.5
TRANSITION_BUFFER_RATIO: float = 0.15
MAX_TRANSITION_BUFFER: float = 1.0
BEST_FRAME_RATIO: float = 0.70
STABLE_FRAME_VISIBILITY: float = 0.4
FALLBACK_FRAME_VISIBILITY: float = 0.3
MAX_SEGMENT_FEEDBACK: int = 4
FRAME_TIMEOUT: float = 3.0
THUMBNAIL_SIZE: tuple[int, int] = (320, 240)


# ============================================================================
# Typed settings (overridable from YAML)
# ============================================================================

class ClassifierSettings(BaseModel):
    buffer_size: int = Field(default=BUFFER_SIZE, ge=2)
    ema_alpha: float = Field(default=EMA_ALPHA, gt=0.0, le=1.0)
    match_threshold: float = Field(default=MATCH_THRESHOLD, ge=-1.0, le=1.0)
    rescue_threshold: float = Field(default=RESCUE_THRESHOLD, ge=-1.0, le=1.0)
    confirm_frames: int = Field(default=CONFIRM_FRAMES, ge=1)
    core_velocity_threshold: float = Field(default=CORE_VELOCITY_THRESHOLD, ge=0.0)


class EvaluatorSettings(BaseModel):
    distance_scale: float = Field(default=DISTANCE_SCALE, gt=0.0)
    feedback_threshold: float = Field(default=FEEDBACK_THRESHOLD, ge=0.0, le=100.0)
    advanced_threshold: float = Field(default=ADVANCED_THRESHOLD, ge=0.0, le=100.0)
    intermediate_threshold: float = Field(default=INTERMEDIATE_THRESHOLD, ge=0.0, le=100.0)


class SequenceSettings(BaseModel):
    sample_interval: float = Field(default=SAMPLE_INTERVAL, gt=0.0)
    min_segment_duration: float = Field(default=MIN_SEGMENT_DURATION, ge=0.0)
    merge_gap: float = Field(default=MERGE_GAP, ge=0.0)
    transition_ratio: float = Field(default=TRANSITION_BUFFER_RATIO, ge=0.0, lt=0.5)
    max_transition: float = Field(default=MAX_TRANSITION_BUFFER, ge=0.0)
    best_frame_ratio: float = Field(default=BEST_FRAME_RATIO, gt=0.0, le=1.0)
    stable_visibility: float = Field(default=STABLE_FRAME_VISIBILITY, ge=0.0, le=1.0)
    fallback_visibility: float = Field(default=FALLBACK_FRAME_VISIBILITY, ge=0.0, le=1.0)
    max_feedback: int = Field(default=MAX_SEGMENT_FEEDBACK, ge=1)
    frame_timeout: Optional[float] = Field(default=FRAME_TIMEOUT, gt=0.0)
    # Dynamic-metric gains: score = 100 - gain * measurement
    stability_gain: float = 20000.0
    fluidity_gain: float = 5000.0
    endurance_window: float = Field(default=0.3, gt=0.0, le=0.5)
    endurance_gain: float = 2.0
    consistency_gain: float = 5.0


class AnalysisSettings(BaseModel):
    classifier: ClassifierSettings = Field(default_factory=ClassifierSettings)
    evaluator: EvaluatorSettings = Field(default_factory=EvaluatorSettings)
    sequence: SequenceSettings = Field(default_factory=SequenceSettings)


def load_analysis_settings(config_path: Optional[Path] = None) -> AnalysisSettings:
    """Load threshold overrides from YAML into an ``AnalysisSettings``.

    Args:
        config_path: YAML file; defaults to ``ANALYSIS_CONFIG_PATH``.

    Returns:
        Validated settings. A missing file yields the module defaults.

    Raises:
        ConfigurationError: If the file does not validate.
    """
    raw = load_optional_config(config_path or ANALYSIS_CONFIG_PATH)
    try:
        return AnalysisSettings.model_validate(raw)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid analysis config: {exc}") from exc


_ANALYSIS_SETTINGS: Optional[AnalysisSettings] = None


def get_analysis_settings() -> AnalysisSettings:
    """Lazy-load and cache the YAML-backed settings."""
    global _ANALYSIS_SETTINGS
    if _ANALYSIS_SETTINGS is None:
        _ANALYSIS_SETTINGS = load_analysis_settings()
        logger.debug("Analysis settings loaded from %s", ANALYSIS_CONFIG_PATH)
    return _ANALYSIS_SETTINGS
