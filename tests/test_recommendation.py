"""
Tests for the recommendation engine and its YAML table.
"""

import pytest
import yaml

from posture_coach.pipelines.errors import ConfigurationError
from posture_coach.pipelines.recommendation import (
    RecommendationEngine,
    get_recommendation,
    get_session_recommendation,
)


class TestRecommendationEngine:

    def test_pose_specific_mapping(self, engine):
        assert engine.recommend("Pelvic Curl", "Alignment").id == "EX_003"
        assert engine.recommend("Roll-Up", "Articulation").title == "Cat Stretch"

    def test_indicator_fallback(self, engine):
        assert engine.recommend("Teaser", "Upper Body").id == "EX_002"

    def test_target_indicator_fallback(self, engine):
        assert engine.recommend("Teaser", "Flexibility").id == "EX_005"

    def test_default_always_exists(self, engine):
        assert engine.recommend(None, None).id == "EX_001"
        assert engine.recommend("Teaser", "Something Else").id == "EX_001"

    def test_same_inputs_same_output(self, engine):
        assert engine.recommend("The Hundred", "Lower Body") == engine.recommend("The Hundred", "Lower Body")


class TestRecommendationHelpers:

    def test_weakest_indicator_with_reason(self, engine):
        ex = get_recommendation("The Hundred", {"Upper Body": 92.0, "Lower Body": 61.4}, engine=engine)
        assert ex.id == "EX_005"
        assert "Lower Body score was 61/100" in ex.reason

    def test_reason_does_not_leak_into_catalog(self, engine):
        get_recommendation("The Hundred", {"Lower Body": 40.0}, engine=engine)
        assert engine.exercise("EX_005").reason is None

    def test_empty_inputs(self, engine):
        assert get_recommendation("", {"Match": 50}, engine=engine) is None
        assert get_recommendation("Roll-Up", {}, engine=engine) is None

    def test_session_recommendation(self, engine):
        assert get_session_recommendation("Core/Hips", engine=engine).id == "EX_001"
        with_reason = get_session_recommendation("Match", 55, engine=engine)
        assert with_reason.id == "EX_004"
        assert "55/100" in with_reason.reason


class TestRecommendationTable:

    def _write(self, tmp_path, table):
        path = tmp_path / "recs.yaml"
        path.write_text(yaml.safe_dump(table), encoding="utf-8")
        return path

    def test_unknown_reference_rejected(self, tmp_path):
        path = self._write(tmp_path, {
            "default_exercise": "EX_001",
            "exercises": [{"id": "EX_001", "title": "A", "target_indicator": "Stability"}],
            "indicator_map": {"Match": "EX_999"},
        })
        with pytest.raises(ConfigurationError):
            RecommendationEngine.from_file(path)

    def test_duplicate_ids_rejected(self, tmp_path):
        ex = {"id": "EX_001", "title": "A", "target_indicator": "Stability"}
        path = self._write(tmp_path, {"default_exercise": "EX_001", "exercises": [ex, ex]})
        with pytest.raises(ConfigurationError):
            RecommendationEngine.from_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            RecommendationEngine.from_file(tmp_path / "nope.yaml")
