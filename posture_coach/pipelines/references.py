"""
Reference Pose Library.

A static, versionable catalog mapping pose names to canonical normalized
vectors and their named variations (e.g. "The Hundred - High Diagonal").
Loaded once, validated, and read-only afterwards, so real-time classifiers
and batch analyzers can share one instance.

File format (JSON)::

    [{"name": "The Hundred", "vector": [99 floats],
      "variations": [{"name": "Tabletop Legs", "vector": [99 floats]}]}]
"""

import logging
import math
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..utils.io_utils import load_json
from .config import REFERENCE_LIBRARY_PATH, VARIATION_SEPARATOR, VECTOR_DIM
from .errors import ConfigurationError
from .normalization import normalize_landmarks

logger = logging.getLogger(__name__)


def _validate_vector(v: tuple[float, ...]) -> tuple[float, ...]:
    if len(v) != VECTOR_DIM:
        raise ValueError(f"vector must have {VECTOR_DIM} components, got {len(v)}")
    if not all(math.isfinite(x) for x in v):
        raise ValueError("vector contains non-finite values")
    return v


class PoseVariation(BaseModel):
    """A named sub-form of an anchor pose."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    vector: tuple[float, ...]

    @field_validator("vector")
    @classmethod
    def check_vector(cls, v: tuple[float, ...]) -> tuple[float, ...]:
        return _validate_vector(v)

    @property
    def array(self) -> np.ndarray:
        return np.asarray(self.vector, dtype=np.float32)


class ReferenceAnchor(BaseModel):
    """One canonical exercise pose and its recognized variations."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    vector: tuple[float, ...]
    variations: tuple[PoseVariation, ...] = ()

    @field_validator("vector")
    @classmethod
    def check_vector(cls, v: tuple[float, ...]) -> tuple[float, ...]:
        return _validate_vector(v)

    @property
    def array(self) -> np.ndarray:
        return np.asarray(self.vector, dtype=np.float32)

    def variation(self, name: str) -> Optional[PoseVariation]:
        for var in self.variations:
            if var.name == name:
                return var
        return None

    def candidates(self) -> list[tuple[Optional[str], np.ndarray]]:
        """The anchor vector (named ``None``) followed by every variation."""
        out: list[tuple[Optional[str], np.ndarray]] = [(None, self.array)]
        out.extend((var.name, var.array) for var in self.variations)
        return out

    @classmethod
    def from_landmarks(
        cls,
        name: str,
        landmarks: Any,
        variations: Optional[Mapping[str, Any]] = None,
    ) -> "ReferenceAnchor":
        """Build an anchor from captured landmark frames.

        Raises:
            ConfigurationError: If any capture fails normalization.
        """
        vector = normalize_landmarks(landmarks)
        if vector is None:
            raise ConfigurationError(f"Reference capture for '{name}' has hidden anchor joints.")
        built = []
        for var_name, var_landmarks in (variations or {}).items():
            var_vector = normalize_landmarks(var_landmarks)
            if var_vector is None:
                raise ConfigurationError(
                    f"Reference capture for '{name}{VARIATION_SEPARATOR}{var_name}' "
                    "has hidden anchor joints."
                )
            built.append(PoseVariation(name=var_name, vector=tuple(float(x) for x in var_vector)))
        return cls(name=name, vector=tuple(float(x) for x in vector), variations=tuple(built))


class ReferenceLibrary:
    """Immutable name -> ``ReferenceAnchor`` catalog."""

    def __init__(self, anchors: Any = ()):
        by_name: dict[str, ReferenceAnchor] = {}
        for anchor in anchors:
            if anchor.name in by_name:
                raise ConfigurationError(f"Duplicate reference pose '{anchor.name}'.")
            by_name[anchor.name] = anchor
        self._anchors = MappingProxyType(by_name)

    @classmethod
    def from_records(cls, records: Any) -> "ReferenceLibrary":
        """Validate raw ``{name, vector, variations}`` records.

        Accepts a list of records or a mapping with a ``poses`` list.
        """
        if isinstance(records, Mapping):
            records = records.get("poses", [])
        try:
            anchors = [ReferenceAnchor.model_validate(rec) for rec in records]
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid reference pose library: {exc}") from exc
        return cls(anchors)

    def __contains__(self, name: object) -> bool:
        return name in self._anchors

    def __iter__(self) -> Iterator[ReferenceAnchor]:
        return iter(self._anchors.values())

    def __len__(self) -> int:
        return len(self._anchors)

    @property
    def names(self) -> list[str]:
        return list(self._anchors)

    def get(self, name: str) -> Optional[ReferenceAnchor]:
        return self._anchors.get(name)

    def resolve(self, label: str) -> Optional[tuple[ReferenceAnchor, Optional[str]]]:
        """Resolve ``"Parent"`` or ``"Parent - Variation"`` to its anchor.

        Returns:
            ``(anchor, variation_name)`` where ``variation_name`` is ``None``
            for the anchor itself, or ``None`` if the label is not known.
        """
        if label in self._anchors:
            return self._anchors[label], None
        if VARIATION_SEPARATOR in label:
            parent, _, var_name = label.partition(VARIATION_SEPARATOR)
            anchor = self._anchors.get(parent.strip())
            if anchor is not None and anchor.variation(var_name.strip()) is not None:
                return anchor, var_name.strip()
        return None


def load_reference_library(path: Optional[Union[str, Path]] = None) -> ReferenceLibrary:
    """Load and validate the reference library JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigurationError: If a record fails validation.
    """
    path = Path(path or REFERENCE_LIBRARY_PATH)
    if not path.exists():
        raise FileNotFoundError(f"Reference pose library not found at {path}.")
    library = ReferenceLibrary.from_records(load_json(path))
    logger.info("Loaded %d reference poses from %s", len(library), path)
    return library


_REFERENCE_LIBRARY: Optional[ReferenceLibrary] = None


def get_reference_library() -> ReferenceLibrary:
    """Lazy-load and cache the bundled library (shared, read-only)."""
    global _REFERENCE_LIBRARY
    if _REFERENCE_LIBRARY is None:
        _REFERENCE_LIBRARY = load_reference_library()
    return _REFERENCE_LIBRARY
