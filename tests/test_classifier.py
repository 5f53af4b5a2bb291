"""
Tests for the vector classifier (smoothing + confirm/decay) and the legacy
rule-based classifier.
"""

import numpy as np
import pytest

from posture_coach.pipelines.classifier import PoseClassifier, classify_pose_rules
from posture_coach.pipelines.config import UNKNOWN_POSE, ClassifierSettings
from posture_coach.pipelines.landmarks import LM
from posture_coach.pipelines.normalization import cosine_similarity, normalize_landmarks
from posture_coach.pipelines.references import ReferenceLibrary
from posture_coach.pipelines.state import ClassifierMode


@pytest.fixture
def classifier(library, settings):
    return PoseClassifier(library, settings.classifier)


def _similarity(library, anchor_name, landmarks):
    return cosine_similarity(normalize_landmarks(landmarks), library.get(anchor_name).array)


# ============================================================================
# Test: Confirmation hysteresis
# ============================================================================

class TestConfirmation:

    def test_identical_frame_scores_one(self, classifier, make_pose):
        result = classifier.classify(make_pose("Pelvic Curl"))
        assert result.name == "Pelvic Curl"
        assert result.raw_name == "Pelvic Curl"
        assert result.score == pytest.approx(1.0, abs=1e-6)

    def test_two_frames_do_not_confirm(self, classifier, make_pose):
        for _ in range(2):
            result = classifier.classify(make_pose("Pelvic Curl"))
        assert classifier.confirmed_pose is None
        assert classifier.state.mode == ClassifierMode.IDLE
        assert result.is_steady is False

    def test_three_frames_confirm(self, classifier, make_pose):
        for _ in range(3):
            result = classifier.classify(make_pose("Pelvic Curl"))
        assert classifier.confirmed_pose == "Pelvic Curl"
        assert classifier.state.mode == ClassifierMode.STABLE
        assert result.is_steady is True
        assert result.velocity == pytest.approx(0.0, abs=1e-6)

    def test_moving_core_is_not_steady(self, classifier, make_pose):
        for _ in range(3):
            classifier.classify(make_pose("Pelvic Curl"))
        result = classifier.classify(make_pose("Pelvic Curl", shoulder=(0.28, 0.70)))
        assert classifier.confirmed_pose == "Pelvic Curl"
        assert result.velocity > 0.12
        assert result.is_steady is False

    def test_hidden_frame_does_not_break_streak(self, classifier, make_pose):
        hidden = make_pose("Pelvic Curl")
        hidden[LM.LEFT_HIP, 3] = 0.1

        classifier.classify(make_pose("Pelvic Curl"))
        classifier.classify(make_pose("Pelvic Curl"))
        result = classifier.classify(hidden)
        assert result.name == UNKNOWN_POSE
        assert result.score == 0.0
        assert classifier.state.frames_stable == 2

        classifier.classify(make_pose("Pelvic Curl"))
        assert classifier.confirmed_pose == "Pelvic Curl"

    def test_reset(self, classifier, make_pose):
        for _ in range(3):
            classifier.classify(make_pose("Pelvic Curl"))
        classifier.reset()
        assert classifier.confirmed_pose is None
        assert classifier.state.mode == ClassifierMode.IDLE
        assert classifier.buffer.average() is None

    def test_variation_reported_under_parent(self, classifier, make_pose):
        result = classifier.classify(make_pose("The Hundred", "High Diagonal"))
        assert result.name == "The Hundred"
        assert result.score == pytest.approx(1.0, abs=1e-6)

    def test_malformed_frame_never_raises(self, classifier):
        result = classifier.classify(np.zeros((5, 3)))
        assert result.name == UNKNOWN_POSE
        assert result.score == 0.0

    def test_nan_frame_does_not_poison_later_frames(self, classifier, make_pose):
        for _ in range(3):
            classifier.classify(make_pose("Roll-Up"))
        stable_before = classifier.state.frames_stable

        bad = make_pose("Roll-Up")
        bad[LM.LEFT_FOOT_INDEX, 0] = np.nan
        result = classifier.classify(bad)
        assert result.name == UNKNOWN_POSE
        assert result.score == 0.0
        assert classifier.state.frames_stable == stable_before
        assert np.all(np.isfinite(classifier.buffer.average()))

        for _ in range(5):
            result = classifier.classify(make_pose("Roll-Up"))
            assert result.name == "Roll-Up"
        assert classifier.confirmed_pose == "Roll-Up"


# ============================================================================
# Test: State machine transitions
# ============================================================================

class TestConfirmDecay:

    def test_decay_resets_streak(self, classifier):
        classifier._update_state("Roll-Up", 0.9)
        classifier._update_state("Roll-Up", 0.9)
        assert classifier._update_state("Roll-Up", 0.6) == "Roll-Up"
        assert classifier.state.frames_stable == 0
        assert classifier.state.pending_pose is None

        classifier._update_state("Roll-Up", 0.9)
        classifier._update_state("Roll-Up", 0.9)
        assert classifier.confirmed_pose is None
        classifier._update_state("Roll-Up", 0.9)
        assert classifier.confirmed_pose == "Roll-Up"

    def test_below_rescue_floor_is_unknown(self, classifier):
        assert classifier._update_state("Roll-Up", 0.4) == UNKNOWN_POSE
        assert classifier.state.mode == ClassifierMode.IDLE

    def test_new_candidate_demotes_confirmed_pose(self, classifier):
        for _ in range(3):
            classifier._update_state("Roll-Up", 0.9)
        assert classifier.state.mode == ClassifierMode.STABLE

        classifier._update_state("Spine Stretch", 0.9)
        assert classifier.state.mode == ClassifierMode.IDLE
        assert classifier.confirmed_pose == "Roll-Up"

        classifier._update_state("Spine Stretch", 0.9)
        classifier._update_state("Spine Stretch", 0.9)
        assert classifier.confirmed_pose == "Spine Stretch"
        assert classifier.state.mode == ClassifierMode.STABLE


# ============================================================================
# Test: Rescue band
# ============================================================================

class TestRescueBand:

    @pytest.fixture
    def spine_only(self, library):
        return ReferenceLibrary([library.get("Spine Stretch")])

    def test_partial_match_is_reported_but_never_confirmed(self, spine_only, make_pose):
        frame = make_pose("Roll-Up")
        s = _similarity(spine_only, "Spine Stretch", frame)
        settings = ClassifierSettings(
            match_threshold=(s + 1.0) / 2.0,
            rescue_threshold=max(-1.0, s - 0.05),
        )
        clf = PoseClassifier(spine_only, settings)
        for _ in range(5):
            result = clf.classify(frame)
        assert result.name == "Spine Stretch"
        assert result.is_steady is False
        assert clf.confirmed_pose is None
        assert clf.state.mode == ClassifierMode.IDLE

    def test_below_floor_is_unknown(self, spine_only, make_pose):
        frame = make_pose("Roll-Up")
        s = _similarity(spine_only, "Spine Stretch", frame)
        floor = (s + 1.0) / 2.0
        clf = PoseClassifier(spine_only, ClassifierSettings(match_threshold=floor, rescue_threshold=floor))
        result = clf.classify(frame)
        assert result.name == UNKNOWN_POSE
        assert result.raw_name == "Spine Stretch"
        assert result.score == pytest.approx(s, abs=1e-6)


# ============================================================================
# Test: Legacy rule-based classifier
# ============================================================================

class TestRuleClassifier:

    def test_pelvic_curl(self, make_pose):
        assert classify_pose_rules(make_pose("Pelvic Curl")) == {"name": "Pelvic Curl", "confidence": 0.85}

    def test_the_hundred(self, make_pose):
        assert classify_pose_rules(make_pose("The Hundred"))["name"] == "The Hundred"

    def test_no_match(self):
        assert classify_pose_rules(np.zeros((33, 4))) == {"name": UNKNOWN_POSE, "confidence": 0.0}

    def test_no_landmarks(self):
        assert classify_pose_rules(None) is None
