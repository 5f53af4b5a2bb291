"""
Stage 2 — Pose classification.

``PoseClassifier`` is the real-time, vector-based classifier: each frame is
normalized, smoothed, and compared by cosine similarity with every reference
anchor and variation. A confirm/decay state machine keeps single noisy frames
from flipping the confirmed pose.

``classify_pose_rules`` is the older angle-heuristic classifier, kept for
callers without a reference library.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..utils.geometry import calculate_angle
from .config import UNKNOWN_POSE, ClassifierSettings, get_analysis_settings
from .errors import InvalidInputError
from .landmarks import CORE_JOINTS, LM, Landmark, to_landmark_array, to_landmarks
from .normalization import cosine_similarity, normalize_landmarks
from .references import ReferenceLibrary, get_reference_library
from .smoothing import MovingAverageBuffer
from .state import ClassificationResult, ClassifierMode

logger = logging.getLogger(__name__)


@dataclass
class ClassifierState:
    mode: ClassifierMode = ClassifierMode.IDLE
    confirmed_pose: Optional[str] = None
    pending_pose: Optional[str] = None
    frames_stable: int = 0


class PoseClassifier:
    """Stateful classifier over one smoothing window.

    One instance per live session or batch run; call ``reset`` before reusing
    it on a different stream.
    """

    def __init__(
        self,
        library: Optional[ReferenceLibrary] = None,
        settings: Optional[ClassifierSettings] = None,
    ):
        self.library = library if library is not None else get_reference_library()
        self.settings = settings or get_analysis_settings().classifier
        self.buffer = MovingAverageBuffer(self.settings.buffer_size, self.settings.ema_alpha)
        self.state = ClassifierState()

    def reset(self) -> None:
        self.buffer = MovingAverageBuffer(self.settings.buffer_size, self.settings.ema_alpha)
        self.state = ClassifierState()

    @property
    def confirmed_pose(self) -> Optional[str]:
        return self.state.confirmed_pose

    def best_match(self, vector) -> tuple[Optional[str], float]:
        """Highest similarity over all anchors and variations.

        Variation matches are reported under their parent anchor's name.
        """
        best_name: Optional[str] = None
        best_score = -1.0
        for anchor in self.library:
            for _, target in anchor.candidates():
                score = cosine_similarity(vector, target)
                if score > best_score:
                    best_name, best_score = anchor.name, score
        return best_name, best_score

    def classify(self, landmarks: Any) -> ClassificationResult:
        """Classify one frame. Never raises; unusable frames yield ``Unknown``."""
        try:
            vector = normalize_landmarks(landmarks)
        except InvalidInputError as exc:
            logger.debug("Rejected frame: %s", exc)
            vector = None
        if vector is None:
            return ClassificationResult(name=UNKNOWN_POSE, score=0.0)

        self.buffer.add(vector)
        smoothed = self.buffer.average()
        velocity = self.buffer.velocity(CORE_JOINTS)
        is_core_stable = velocity < self.settings.core_velocity_threshold

        best_name, best_score = self.best_match(smoothed)
        if best_name is None:
            return ClassificationResult(name=UNKNOWN_POSE, score=0.0, velocity=velocity)

        name = self._update_state(best_name, best_score)
        return ClassificationResult(
            name=name,
            raw_name=best_name,
            score=best_score,
            is_steady=self.state.mode == ClassifierMode.STABLE and is_core_stable,
            velocity=velocity,
        )

    def _update_state(self, candidate: str, score: float) -> str:
        state = self.state
        cfg = self.settings

        if score >= cfg.match_threshold:
            if candidate == state.pending_pose:
                state.frames_stable += 1
            else:
                state.pending_pose = candidate
                state.frames_stable = 1
                if candidate != state.confirmed_pose:
                    state.mode = ClassifierMode.IDLE

            if state.frames_stable >= cfg.confirm_frames and state.mode != ClassifierMode.STABLE:
                state.confirmed_pose = candidate
                state.mode = ClassifierMode.STABLE
                logger.debug("Confirmed pose '%s' (score=%.3f)", candidate, score)
            return candidate

        # Decay: below the match threshold the streak is lost.
        state.mode = ClassifierMode.IDLE
        state.pending_pose = None
        state.frames_stable = 0
        if score >= cfg.rescue_threshold:
            return candidate
        return UNKNOWN_POSE


# ============================================================================
# Legacy rule-based classifier (angle heuristics)
# ============================================================================

RULE_CONFIDENCE = 0.85


def classify_pose_rules(landmarks: Any) -> Optional[dict]:
    """Classify a frame with fixed joint-angle heuristics.

    Returns:
        ``{"name": str, "confidence": float}``, or ``None`` when no landmarks
        were supplied.
    """
    if landmarks is None:
        return None
    try:
        lm = to_landmarks(to_landmark_array(landmarks))
    except InvalidInputError:
        return None

    for name, rule in _RULES:
        if rule(lm):
            return {"name": name, "confidence": RULE_CONFIDENCE}
    return {"name": UNKNOWN_POSE, "confidence": 0.0}


def _is_pelvic_curl(lm: list[Landmark]) -> bool:
    shoulder, hip = lm[LM.LEFT_SHOULDER], lm[LM.LEFT_HIP]
    knee, ankle = lm[LM.LEFT_KNEE], lm[LM.LEFT_ANKLE]
    body_angle = calculate_angle(shoulder, hip, knee)
    knee_angle = calculate_angle(hip, knee, ankle)
    # y grows downward: hips above ankles means a smaller y
    return body_angle > 150 and 60 < knee_angle < 120 and hip.y < ankle.y


def _is_chest_lift(lm: list[Landmark]) -> bool:
    shoulder, hip = lm[LM.LEFT_SHOULDER], lm[LM.LEFT_HIP]
    knee_angle = calculate_angle(hip, lm[LM.LEFT_KNEE], lm[LM.LEFT_ANKLE])
    return knee_angle < 120 and shoulder.y < hip.y


def _is_the_hundred(lm: list[Landmark]) -> bool:
    hip, knee, ankle = lm[LM.LEFT_HIP], lm[LM.LEFT_KNEE], lm[LM.LEFT_ANKLE]
    feet_high = ankle.y < hip.y
    leg_angle = calculate_angle(hip, knee, ankle)
    return feet_high or (leg_angle > 150 and knee.y < hip.y + 0.1)


def _is_one_leg_circle(lm: list[Landmark]) -> bool:
    l_hip, r_hip = lm[LM.LEFT_HIP], lm[LM.RIGHT_HIP]
    l_ankle, r_ankle = lm[LM.LEFT_ANKLE], lm[LM.RIGHT_ANKLE]
    left_leg = calculate_angle(l_hip, lm[LM.LEFT_KNEE], l_ankle)
    right_leg = calculate_angle(r_hip, lm[LM.RIGHT_KNEE], r_ankle)
    left_up = l_ankle.y < l_hip.y and abs(l_ankle.x - l_hip.x) < 0.2
    right_up = r_ankle.y < r_hip.y and abs(r_ankle.x - r_hip.x) < 0.2
    return (left_up or right_up) and left_leg > 150 and right_leg > 150


def _is_roll_up(lm: list[Landmark]) -> bool:
    shoulder, hip = lm[LM.LEFT_SHOULDER], lm[LM.LEFT_HIP]
    wrist, ankle = lm[LM.LEFT_WRIST], lm[LM.LEFT_ANKLE]
    seated = hip.y > shoulder.y
    reach = abs(wrist.x - ankle.x) < 0.3 and abs(wrist.y - ankle.y) < 0.3
    return seated and reach


def _is_spine_stretch(lm: list[Landmark]) -> bool:
    shoulder, hip = lm[LM.LEFT_SHOULDER], lm[LM.LEFT_HIP]
    legs_straight = calculate_angle(hip, lm[LM.LEFT_KNEE], lm[LM.LEFT_ANKLE]) > 160
    torso_vertical = abs(shoulder.x - hip.x) < 0.2
    return legs_straight and torso_vertical


# Evaluated in order; the first matching rule wins.
_RULES = (
    ("Pelvic Curl", _is_pelvic_curl),
    ("Chest Lift", _is_chest_lift),
    ("The Hundred", _is_the_hundred),
    ("One-Leg Circle", _is_one_leg_circle),
    ("Roll-Up", _is_roll_up),
    ("Spine Stretch", _is_spine_stretch),
)
