"""
Stage 4 — Remedial exercise recommendation.

Pure lookup over a data-driven table (``config/recommendations.yaml``):
(pose, weakest indicator) -> exercise, falling back to an indicator-only
lookup and finally to a default exercise, so a recommendation always exists.
"""

import logging
from pathlib import Path
from typing import Mapping, Optional, Union

from pydantic import BaseModel, Field, ValidationError, model_validator

from ..utils.io_utils import load_config
from .config import RECOMMENDATIONS_PATH
from .errors import ConfigurationError
from .state import Exercise

logger = logging.getLogger(__name__)


class RecommendationTable(BaseModel):
    """Validated recommendation configuration."""
    exercises: list[Exercise] = Field(min_length=1)
    pose_map: dict[str, dict[str, str]] = Field(default_factory=dict)
    indicator_map: dict[str, str] = Field(default_factory=dict)
    default_exercise: str

    @model_validator(mode="after")
    def check_references(self):
        ids = {ex.id for ex in self.exercises}
        if len(ids) != len(self.exercises):
            raise ValueError("exercise ids must be unique")
        referenced = {self.default_exercise, *self.indicator_map.values()}
        for mapping in self.pose_map.values():
            referenced.update(mapping.values())
        unknown = sorted(referenced - ids)
        if unknown:
            raise ValueError(f"unknown exercise ids referenced: {unknown}")
        return self


class RecommendationEngine:
    """Maps a pose and its weakest indicator to a remedial exercise."""

    def __init__(self, table: RecommendationTable):
        self.table = table
        self._by_id = {ex.id: ex for ex in table.exercises}
        self._by_target = {}
        for ex in table.exercises:
            self._by_target.setdefault(ex.target_indicator, ex)

    @classmethod
    def from_file(cls, path: Optional[Union[str, Path]] = None) -> "RecommendationEngine":
        """Load the table from YAML.

        Raises:
            FileNotFoundError: If the file is missing.
            ConfigurationError: If the table does not validate.
        """
        path = Path(path or RECOMMENDATIONS_PATH)
        if not path.exists():
            raise FileNotFoundError(f"Recommendation table not found at {path}.")
        try:
            table = RecommendationTable.model_validate(load_config(path))
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid recommendation table: {exc}") from exc
        logger.info("Loaded %d remedial exercises from %s", len(table.exercises), path)
        return cls(table)

    @property
    def default(self) -> Exercise:
        return self._by_id[self.table.default_exercise]

    def exercise(self, exercise_id: str) -> Optional[Exercise]:
        return self._by_id.get(exercise_id)

    def for_indicator(self, indicator: Optional[str]) -> Exercise:
        """Indicator-only lookup, then the default exercise."""
        if indicator:
            exercise_id = self.table.indicator_map.get(indicator)
            if exercise_id is not None:
                return self._by_id[exercise_id]
            if indicator in self._by_target:
                return self._by_target[indicator]
        return self.default

    def recommend(self, pose: Optional[str], weakest_indicator: Optional[str]) -> Exercise:
        """Remedial exercise for *pose* given its weakest indicator."""
        exercise_id = self.table.pose_map.get(pose or "", {}).get(weakest_indicator or "")
        if exercise_id is not None:
            return self._by_id[exercise_id]
        return self.for_indicator(weakest_indicator)


_ENGINE: Optional[RecommendationEngine] = None


def get_recommendation_engine() -> RecommendationEngine:
    """Lazy-load and cache the bundled recommendation table."""
    global _ENGINE
    if _ENGINE is None:
        _ENGINE = RecommendationEngine.from_file()
    return _ENGINE


def _with_reason(exercise: Exercise, indicator: str, score: float) -> Exercise:
    return exercise.model_copy(update={
        "reason": (
            f"We noticed your {indicator} score was {round(score)}/100. "
            "This exercise will help you improve it."
        ),
    })


def recommend(pose: Optional[str], weakest_indicator: Optional[str]) -> Exercise:
    """Module-level shortcut for ``RecommendationEngine.recommend``."""
    return get_recommendation_engine().recommend(pose, weakest_indicator)


def get_recommendation(
    pose: str,
    indicators: Mapping[str, float],
    engine: Optional[RecommendationEngine] = None,
) -> Optional[Exercise]:
    """Recommend an exercise for the weakest of *indicators*.

    Returns:
        The exercise with a ``reason`` string, or ``None`` when there is no
        pose or no indicator to act on.
    """
    if not pose or not indicators:
        return None
    engine = engine or get_recommendation_engine()
    weakest = min(indicators, key=indicators.get)
    return _with_reason(engine.recommend(pose, weakest), weakest, indicators[weakest])


def get_session_recommendation(
    weakest_indicator: Optional[str],
    score: Optional[float] = None,
    engine: Optional[RecommendationEngine] = None,
) -> Exercise:
    """Indicator-only recommendation used by session summaries."""
    engine = engine or get_recommendation_engine()
    exercise = engine.for_indicator(weakest_indicator)
    if weakest_indicator and score is not None:
        return _with_reason(exercise, weakest_indicator, score)
    return exercise
