"""
Pose analysis pipeline for Pilates mat sessions.

Processes 33-point body landmarks through five stages:
    Stage 1: Landmark Normalization (hip-centered, torso-scaled 99-vector)
    Stage 2: Pose Classification (smoothed cosine match + confirm/decay)
    Stage 3: Per-Frame Quality Evaluation (body-group distances, variants)
    Stage 4: Remedial Exercise Recommendation
    Stage 5: Full-Video Sequence Analysis (segments, apex, session summary)
"""

from .classifier import PoseClassifier, classify_pose_rules
from .errors import AnalysisCancelled, AnalysisError, ConfigurationError, InvalidInputError
from .evaluation import PoseEvaluator
from .normalization import cosine_similarity, normalize_landmarks
from .recommendation import RecommendationEngine, get_recommendation, get_session_recommendation
from .references import ReferenceAnchor, ReferenceLibrary, load_reference_library
from .sequence import VideoSequenceAnalyzer, analyze_video_sequence
from .smoothing import MovingAverageBuffer

__all__ = [
    "PoseClassifier",
    "classify_pose_rules",
    "AnalysisCancelled",
    "AnalysisError",
    "ConfigurationError",
    "InvalidInputError",
    "PoseEvaluator",
    "cosine_similarity",
    "normalize_landmarks",
    "RecommendationEngine",
    "get_recommendation",
    "get_session_recommendation",
    "ReferenceAnchor",
    "ReferenceLibrary",
    "load_reference_library",
    "VideoSequenceAnalyzer",
    "analyze_video_sequence",
    "MovingAverageBuffer",
]
