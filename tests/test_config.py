"""
Tests for threshold settings and the session helpers.
"""

import pytest

from posture_coach.pipelines.config import AnalysisSettings, load_analysis_settings
from posture_coach.pipelines.errors import ConfigurationError
from posture_coach.pipelines.utils import format_time, generate_session_feedback, level_label


class TestAnalysisSettings:

    def test_bundled_file_matches_defaults(self):
        assert load_analysis_settings() == AnalysisSettings()

    def test_missing_file_uses_defaults(self, tmp_path):
        assert load_analysis_settings(tmp_path / "absent.yaml") == AnalysisSettings()

    def test_partial_override(self, tmp_path):
        path = tmp_path / "analysis.yaml"
        path.write_text("classifier:\n  confirm_frames: 5\n", encoding="utf-8")
        settings = load_analysis_settings(path)
        assert settings.classifier.confirm_frames == 5
        assert settings.classifier.match_threshold == 0.75
        assert settings.sequence.merge_gap == 1.5

    def test_invalid_value_rejected(self, tmp_path):
        path = tmp_path / "analysis.yaml"
        path.write_text("sequence:\n  sample_interval: -1\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_analysis_settings(path)


class TestSessionHelpers:

    @pytest.mark.parametrize("seconds, expected", [(0, "0:00"), (7.5, "0:07"), (75.4, "1:15"), (600, "10:00")])
    def test_format_time(self, seconds, expected):
        assert format_time(seconds) == expected

    def test_level_label_is_strict(self):
        assert level_label(85) == "Intermediate"
        assert level_label(85.5) == "Advanced"
        assert level_label(70) == "Beginner"

    def test_feedback_bands(self):
        assert generate_session_feedback(90, "Match", 88).endswith("Excellent session! Your form is very consistent.")
        assert "Keep practicing. Your Match needs significant attention." in generate_session_feedback(50, "Match", 40)
