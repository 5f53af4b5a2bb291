"""
Pydantic models for everything the pipeline hands to its callers.

Per-frame results (``ClassificationResult``, ``Evaluation``) are consumed
immediately by the UI or the sequence analyzer; batch results
(``SequenceAnalysis``) serialize to the JSON shape the report UI expects.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Level(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class ClassifierMode(str, Enum):
    IDLE = "Idle"
    STABLE = "Stable"


# ============================================================================
# Per-frame models
# ============================================================================

class ClassificationResult(BaseModel):
    """Output of one ``PoseClassifier.classify`` call."""
    name: str = Field(description="Reported pose label ('Unknown' below the rescue floor)")
    raw_name: Optional[str] = Field(
        default=None, description="Best-matching anchor before thresholds were applied"
    )
    score: float = Field(default=0.0, description="Best cosine similarity")
    is_steady: bool = Field(default=False, description="Confirmed pose and still core")
    velocity: float = Field(default=0.0, description="Core-joint motion since last frame")


class RadarPoint(BaseModel):
    subject: str
    score: float = Field(ge=0.0, le=100.0)


class Evaluation(BaseModel):
    """Quality assessment of a single frame against one pose."""
    model_config = ConfigDict(frozen=True)

    pose: str
    indicators: dict[str, float] = Field(description="Indicator name -> score (0-100)")
    feedback: list[str] = Field(default_factory=list)
    global_score: float = Field(ge=0.0, le=100.0)
    level: Level = Level.BEGINNER
    detected_variant: Optional[str] = None
    radar: list[RadarPoint] = Field(default_factory=list)

    @property
    def weakest_indicator(self) -> Optional[str]:
        if not self.indicators:
            return None
        return min(self.indicators, key=self.indicators.get)


# ============================================================================
# Recommendation models
# ============================================================================

class Exercise(BaseModel):
    """A remedial exercise from the recommendation catalog."""
    id: str
    title: str
    target_indicator: str
    level: str = "All"
    tags: list[str] = Field(default_factory=list)
    description: str = ""
    media: Optional[str] = None
    reason: Optional[str] = None


# ============================================================================
# Batch (video) models
# ============================================================================

class DynamicMetrics(BaseModel):
    stability: int = Field(default=0, ge=0, le=100)
    endurance: int = Field(default=0, ge=0, le=100)
    fluidity: int = Field(default=0, ge=0, le=100)


class SegmentResult(BaseModel):
    """Scored repetition of one pose inside a video."""
    pose: str
    start_time: str = Field(description="Formatted M:SS")
    end_time: str = Field(description="Formatted M:SS")
    duration_sec: float
    confidence: float = 0.0
    key_frame: Optional[str] = Field(default=None, description="Representative thumbnail")
    global_score: int = Field(default=0, ge=0, le=100)
    level: str = "N/A"
    detected_variant: Optional[str] = None
    score: dict[str, int] = Field(default_factory=dict, description="Mean indicator scores")
    feedback: list[str] = Field(default_factory=list)
    apex_timestamp: Optional[float] = None
    dynamic_metrics: DynamicMetrics = Field(default_factory=DynamicMetrics)


class PoseRanking(BaseModel):
    name: str
    score: float


class AdvancedMetrics(BaseModel):
    consistency: int = 0
    stability: int = 0
    endurance: int = 0
    fluidity: int = 0


class SessionSummary(BaseModel):
    """Aggregate over every scored segment of one video."""
    scores: dict[str, int] = Field(default_factory=dict)
    weakest_indicator: Optional[str] = None
    best_poses: list[PoseRanking] = Field(default_factory=list)
    worst_poses: list[PoseRanking] = Field(default_factory=list)
    feedback: str = ""
    recommendation: Optional[Exercise] = None
    total_poses: int = 0
    global_score: int = 0
    level: Level = Level.BEGINNER
    advanced_metrics: AdvancedMetrics = Field(default_factory=AdvancedMetrics)


class SequenceAnalysis(BaseModel):
    """Full batch result: ``{video_name, posture_sequence, session_summary}``."""
    video_name: Optional[str] = None
    posture_sequence: list[SegmentResult] = Field(default_factory=list)
    session_summary: SessionSummary = Field(default_factory=SessionSummary)
