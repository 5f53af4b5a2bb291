"""
Stage 3 — Per-frame pose quality evaluation.

Scores one frame against a pose label and produces body-region indicator
scores (0-100), feedback, a composite score and a level.

Dispatch:
    1. Label resolves in the reference library -> vector-based scoring
       (per-region weighted distance, automatic variation rescue).
    2. Label has a rule-based evaluator        -> joint-angle heuristics.
    3. Label is a supported posture            -> placeholder score (50) and
                                                  a prompt to capture it.
    4. Anything else                           -> ``None``.
"""

import logging
from typing import Any, Callable, Optional

import numpy as np

from ..utils.geometry import calculate_angle
from .catalog import is_supported_posture
from .config import (
    MISSING_REFERENCE_SCORE,
    VARIATION_SEPARATOR,
    EvaluatorSettings,
    get_analysis_settings,
)
from .landmarks import CORE_HIPS, LM, LOWER_BODY, UPPER_BODY, Landmark, to_landmark_array, to_landmarks
from .normalization import normalize_landmarks, weighted_distance
from .references import ReferenceAnchor, ReferenceLibrary, get_reference_library
from .state import Evaluation, Level, RadarPoint

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Body regions and their remedial hints
# ---------------------------------------------------------------------------
MATCH_INDICATOR = "Match"
ACCURACY_INDICATOR = "Accuracy"

BODY_GROUPS: dict[str, tuple[int, ...]] = {
    "Upper Body": UPPER_BODY,
    "Core/Hips": CORE_HIPS,
    "Lower Body": LOWER_BODY,
}

GROUP_FEEDBACK: dict[str, str] = {
    "Upper Body": "Align your arms and shoulders with the reference position.",
    "Core/Hips": "Stabilize your pelvis and keep your hips in line with the reference.",
    "Lower Body": "Adjust your legs: check the placement of your knees and ankles.",
}

POSE_TIPS: dict[str, str] = {
    "The Hundred": "Pump arms vigorously with breath: inhale for five, exhale for five.",
    "Roll-Up": "Peel spine off mat one vertebra at a time.",
    "Spine Stretch": "Imagine peeling off a wall as you reach forward.",
    "Pelvic Curl": "Keep lifting through the hips while the ribs stay soft.",
    "Chest Lift": "Keep the chin lightly tucked and the neck long.",
    "One-Leg Circle": "Keep the circles small enough that the pelvis stays still.",
}
DEFAULT_TIP = "Great form! Hold the position and keep breathing steadily."


def clamp_score(value: float) -> float:
    """Clamp to [0, 100]; NaN counts as 0."""
    if not np.isfinite(value):
        return 0.0
    return float(min(100.0, max(0.0, value)))


def distance_to_score(distance: float, scale: float) -> float:
    return clamp_score(100.0 - distance * scale)


def assign_level(score: float, settings: Optional[EvaluatorSettings] = None) -> Level:
    cfg = settings or EvaluatorSettings()
    if score >= cfg.advanced_threshold:
        return Level.ADVANCED
    if score >= cfg.intermediate_threshold:
        return Level.INTERMEDIATE
    return Level.BEGINNER


def _radar(indicators: dict[str, float]) -> list[RadarPoint]:
    return [RadarPoint(subject=k, score=clamp_score(v)) for k, v in indicators.items()]


# ---------------------------------------------------------------------------
# Level overrides: reaching a harder variant is itself evidence of skill
# ---------------------------------------------------------------------------

def _legs_fully_extended(lm: list[Landmark]) -> bool:
    left = calculate_angle(lm[LM.LEFT_HIP], lm[LM.LEFT_KNEE], lm[LM.LEFT_ANKLE])
    right = calculate_angle(lm[LM.RIGHT_HIP], lm[LM.RIGHT_KNEE], lm[LM.RIGHT_ANKLE])
    return max(left, right) > 150


# (pose, variant) -> (geometric check, minimum level)
LEVEL_OVERRIDES: dict[tuple[str, str], tuple[Callable[[list[Landmark]], bool], Level]] = {
    ("The Hundred", "High Diagonal"): (_legs_fully_extended, Level.ADVANCED),
}

_LEVEL_ORDER = [Level.BEGINNER, Level.INTERMEDIATE, Level.ADVANCED]


class PoseEvaluator:
    """Per-frame quality scoring against the reference library."""

    def __init__(
        self,
        library: Optional[ReferenceLibrary] = None,
        settings: Optional[EvaluatorSettings] = None,
    ):
        self.library = library if library is not None else get_reference_library()
        self.settings = settings or get_analysis_settings().evaluator

    def evaluate(self, landmarks: Any, pose_label: str) -> Optional[Evaluation]:
        """Evaluate one frame against *pose_label*.

        Args:
            landmarks: 33 landmarks (any shape accepted by ``to_landmark_array``).
            pose_label: ``"Pose"`` or ``"Pose - Variation"``.

        Returns:
            An ``Evaluation``, or ``None`` when the label is unknown or the
            frame's anchor joints are not visible.

        Raises:
            InvalidInputError: If the frame does not hold 33 landmarks.
        """
        if not pose_label:
            return None

        resolved = self.library.resolve(pose_label)
        if resolved is not None:
            anchor, variation = resolved
            return self._evaluate_vector(landmarks, anchor, variation)

        base_label = pose_label.split(VARIATION_SEPARATOR)[0].strip()
        rule = RULE_EVALUATORS.get(base_label)
        if rule is not None:
            return evaluate_pose_rules(landmarks, base_label, self.settings)

        if is_supported_posture(base_label):
            return missing_reference_evaluation(pose_label)

        logger.debug("No evaluator or reference for pose '%s'", pose_label)
        return None

    # ------------------------------------------------------------------
    # Vector-based scoring
    # ------------------------------------------------------------------

    def _group_distances(self, user: np.ndarray, target: np.ndarray) -> dict[str, float]:
        return {
            group: weighted_distance(user, target, indices)
            for group, indices in BODY_GROUPS.items()
        }

    def select_target(
        self,
        user: np.ndarray,
        anchor: ReferenceAnchor,
        variation: Optional[str] = None,
    ) -> tuple[Optional[str], dict[str, float]]:
        """Pick the effective target vector for *user*.

        An explicit variation is honoured as-is. Otherwise the anchor and all
        of its variations compete and the lowest total group distance wins.

        Returns:
            ``(variation_name_or_None, group_distances)``.
        """
        if variation is not None:
            target = anchor.variation(variation).array
            return variation, self._group_distances(user, target)

        best_name: Optional[str] = None
        best_distances: Optional[dict[str, float]] = None
        best_total = float("inf")
        for name, target in anchor.candidates():
            distances = self._group_distances(user, target)
            total = sum(distances.values())
            if total < best_total:
                best_name, best_distances, best_total = name, distances, total
        return best_name, best_distances

    def _evaluate_vector(
        self,
        landmarks: Any,
        anchor: ReferenceAnchor,
        variation: Optional[str],
    ) -> Optional[Evaluation]:
        arr = to_landmark_array(landmarks)
        user = normalize_landmarks(arr)
        if user is None:
            return None

        cfg = self.settings
        variant, distances = self.select_target(user, anchor, variation)

        indicators = {
            group: round(distance_to_score(d, cfg.distance_scale), 1)
            for group, d in distances.items()
        }
        mean_distance = float(np.mean(list(distances.values())))
        match = round(distance_to_score(mean_distance, cfg.distance_scale), 1)
        indicators[MATCH_INDICATOR] = match

        feedback = [
            GROUP_FEEDBACK[group]
            for group in BODY_GROUPS
            if indicators[group] < cfg.feedback_threshold
        ]
        if not feedback:
            feedback.append(POSE_TIPS.get(anchor.name, DEFAULT_TIP))

        level = assign_level(match, cfg)
        if variant is not None:
            override = LEVEL_OVERRIDES.get((anchor.name, variant))
            if override is not None:
                check, floor = override
                if check(to_landmarks(arr)) and _LEVEL_ORDER.index(level) < _LEVEL_ORDER.index(floor):
                    logger.debug("Level floored at %s for '%s - %s'", floor.value, anchor.name, variant)
                    level = floor

        return Evaluation(
            pose=anchor.name,
            indicators=indicators,
            feedback=feedback,
            global_score=match,
            level=level,
            detected_variant=variant,
            radar=_radar(indicators),
        )


def missing_reference_evaluation(pose_label: str) -> Evaluation:
    """Placeholder for a known pose that has no captured reference yet."""
    logger.warning("No reference captured for '%s'; returning placeholder score.", pose_label)
    indicators = {ACCURACY_INDICATOR: MISSING_REFERENCE_SCORE}
    return Evaluation(
        pose=pose_label,
        indicators=indicators,
        feedback=[
            f"No reference captured for '{pose_label}' yet. "
            "Record a reference pose to enable detailed scoring."
        ],
        global_score=MISSING_REFERENCE_SCORE,
        level=Level.BEGINNER,
        radar=_radar(indicators),
    )


# ============================================================================
# Rule-based evaluators (joint-angle heuristics)
# ============================================================================
# Each returns (indicators, feedback, radar values). Fixed radar entries are
# nominal values for qualities a single frame cannot measure.

RuleResult = tuple[dict[str, float], list[str], dict[str, float]]


def _pelvic_curl(lm: list[Landmark]) -> RuleResult:
    body_angle = calculate_angle(lm[LM.LEFT_SHOULDER], lm[LM.LEFT_HIP], lm[LM.LEFT_KNEE])
    alignment = clamp_score(100 - abs(180 - body_angle))
    feedback = []
    if body_angle < 160:
        feedback.append("Lift hips higher to create a straight line.")
    radar = {
        "Core Control": 85, "Glute Strength": 80, "Alignment": alignment,
        "Stability": 85, "Breath": 70,
    }
    return {"Alignment": alignment, "Stability": 85.0}, feedback, radar


def _chest_lift(lm: list[Landmark]) -> RuleResult:
    lift = 90.0 if (lm[LM.LEFT_HIP].y - lm[LM.LEFT_SHOULDER].y) > 0.1 else 60.0
    feedback = []
    if lift < 80:
        feedback.append("Curl up higher using your abdominals.")
    radar = {
        "Core Strength": 85, "Neck Comfort": 90, "Lift Height": lift,
        "Pelvic Neutral": 80, "Breath": 75,
    }
    return {"Lift Height": lift}, feedback, radar


def _the_hundred(lm: list[Landmark]) -> RuleResult:
    leg_angle = calculate_angle(lm[LM.LEFT_HIP], lm[LM.LEFT_KNEE], lm[LM.LEFT_ANKLE])
    extension = clamp_score(leg_angle / 180 * 100)
    feedback = []
    if leg_angle < 160:
        feedback.append("Try to straighten your legs further.")
    feedback.append("Pump arms vigorously with breath.")
    radar = {
        "Stamina": 90, "Core Stability": 85, "Leg Extension": extension,
        "Arm Vigor": 80, "Breath": 85,
    }
    return {"Leg Extension": extension}, feedback, radar


def _one_leg_circle(lm: list[Landmark]) -> RuleResult:
    leg_angle = calculate_angle(lm[LM.LEFT_HIP], lm[LM.LEFT_KNEE], lm[LM.LEFT_ANKLE])
    straightness = clamp_score(leg_angle / 180 * 100)
    feedback = []
    if leg_angle < 160:
        feedback.append("Extend reaching leg fully.")
    radar = {
        "Pelvic Stability": 80, "Hip Mobility": 85, "Leg Straightness": straightness,
        "Core Control": 85, "Flow": 75,
    }
    return {"Leg Straightness": straightness}, feedback, radar


def _roll_up(lm: list[Landmark]) -> RuleResult:
    # assumes the user faces left in the frame
    articulation = 95.0 if lm[LM.LEFT_SHOULDER].x < lm[LM.LEFT_HIP].x else 50.0
    radar = {
        "Articulation": articulation, "Abdominal Strength": 90,
        "Hamstring Flexibility": 80, "Shoulder Relax": 85, "Flow": 80,
    }
    return {"Articulation": articulation}, ["Peel spine off mat one vertebra at a time."], radar


def _spine_stretch(lm: list[Landmark]) -> RuleResult:
    radar = {
        "Posture": 90, "Articulation": 85, "Abdominal Scoop": 80,
        "Shoulder Stability": 90, "Breath": 85,
    }
    return {"Posture": 90.0}, ["Imagine peeling off a wall."], radar


RULE_EVALUATORS: dict[str, Callable[[list[Landmark]], RuleResult]] = {
    "Pelvic Curl": _pelvic_curl,
    "Chest Lift": _chest_lift,
    "The Hundred": _the_hundred,
    "One-Leg Circle": _one_leg_circle,
    "Roll-Up": _roll_up,
    "Spine Stretch": _spine_stretch,
}


def evaluate_pose_rules(
    landmarks: Any,
    pose_name: str,
    settings: Optional[EvaluatorSettings] = None,
) -> Optional[Evaluation]:
    """Score a frame with the joint-angle heuristics for *pose_name*.

    Returns:
        An ``Evaluation`` whose global score is the mean of the radar axes,
        or ``None`` if no rule evaluator exists for the pose.
    """
    rule = RULE_EVALUATORS.get(pose_name)
    if rule is None:
        return None

    lm = to_landmarks(to_landmark_array(landmarks))
    indicators, feedback, radar_values = rule(lm)
    indicators = {k: round(clamp_score(v), 1) for k, v in indicators.items()}
    radar = {k: clamp_score(float(v)) for k, v in radar_values.items()}
    global_score = round(clamp_score(float(np.mean(list(radar.values())))), 1)

    return Evaluation(
        pose=pose_name,
        indicators=indicators,
        feedback=feedback or [POSE_TIPS.get(pose_name, DEFAULT_TIP)],
        global_score=global_score,
        level=assign_level(global_score, settings),
        radar=_radar(radar),
    )
