"""
Landmark records and the fixed 33-joint index layout.

The upstream pose detector (an external collaborator) yields, per frame,
33 ``{x, y, z, visibility}`` joints in normalized image coordinates. Inside
the pipeline a frame is carried as a float ``(33, 4)`` numpy array; this
module converts the accepted input shapes into that array.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Iterable, Mapping, Sequence

import numpy as np

from .config import NUM_LANDMARKS
from .errors import InvalidInputError


class LandmarkIndex(IntEnum):
    """MediaPipe Pose landmark indices."""
    NOSE = 0
    LEFT_EYE_INNER = 1
    LEFT_EYE = 2
    LEFT_EYE_OUTER = 3
    RIGHT_EYE_INNER = 4
    RIGHT_EYE = 5
    RIGHT_EYE_OUTER = 6
    LEFT_EAR = 7
    RIGHT_EAR = 8
    MOUTH_LEFT = 9
    MOUTH_RIGHT = 10
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_PINKY = 17
    RIGHT_PINKY = 18
    LEFT_INDEX = 19
    RIGHT_INDEX = 20
    LEFT_THUMB = 21
    RIGHT_THUMB = 22
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


LM = LandmarkIndex

# ---------------------------------------------------------------------------
# Joint groups
# ---------------------------------------------------------------------------
SHOULDERS: tuple[int, ...] = (LM.LEFT_SHOULDER, LM.RIGHT_SHOULDER)
HIPS: tuple[int, ...] = (LM.LEFT_HIP, LM.RIGHT_HIP)
ANCHOR_JOINTS: tuple[int, ...] = SHOULDERS + HIPS
CORE_JOINTS = ANCHOR_JOINTS

UPPER_BODY: tuple[int, ...] = (
    LM.LEFT_SHOULDER, LM.RIGHT_SHOULDER,
    LM.LEFT_ELBOW, LM.RIGHT_ELBOW,
    LM.LEFT_WRIST, LM.RIGHT_WRIST,
)
CORE_HIPS: tuple[int, ...] = HIPS
LOWER_BODY: tuple[int, ...] = (
    LM.LEFT_KNEE, LM.RIGHT_KNEE,
    LM.LEFT_ANKLE, LM.RIGHT_ANKLE,
)


@dataclass(frozen=True)
class Landmark:
    """One detected joint: image-relative position plus detection confidence."""
    x: float
    y: float
    z: float = 0.0
    visibility: float = 1.0

    @classmethod
    def from_row(cls, row: Sequence[float]) -> "Landmark":
        return cls(*(float(v) for v in row[:4]))


def _row_from_item(item: Any) -> list[float]:
    if isinstance(item, Landmark):
        return [item.x, item.y, item.z, item.visibility]
    if isinstance(item, Mapping):
        try:
            return [
                float(item["x"]),
                float(item["y"]),
                float(item.get("z", 0.0)),
                float(item.get("visibility", 1.0)),
            ]
        except KeyError as exc:
            raise InvalidInputError(f"Landmark is missing coordinate {exc}.") from exc
    if hasattr(item, "x") and hasattr(item, "y"):
        return [
            float(item.x),
            float(item.y),
            float(getattr(item, "z", 0.0)),
            float(getattr(item, "visibility", 1.0)),
        ]
    if isinstance(item, (Sequence, np.ndarray)) and 2 <= len(item) <= 4:
        values = [float(v) for v in item]
        if len(values) == 2:
            values.append(0.0)
        if len(values) == 3:
            values.append(1.0)
        return values
    raise InvalidInputError(f"Unsupported landmark entry: {item!r}")


def to_landmark_array(landmarks: Any) -> np.ndarray:
    """Coerce one frame of landmarks to a float ``(33, 4)`` array.

    Accepts a ``(33, 3)`` / ``(33, 4)`` array, or a sequence of 33
    ``Landmark`` records, mappings with ``x``/``y``/``z``/``visibility`` keys,
    attribute objects, or ``[x, y, z, visibility]`` rows. Missing depth is
    0.0 and missing visibility is 1.0.

    Raises:
        InvalidInputError: If the frame does not hold exactly 33 landmarks,
            or any coordinate or visibility is NaN or infinite.
    """
    if landmarks is None:
        raise InvalidInputError("No landmarks supplied.")

    if isinstance(landmarks, np.ndarray):
        arr = landmarks.astype(np.float64, copy=False)
        if arr.ndim != 2 or arr.shape[0] != NUM_LANDMARKS or arr.shape[1] not in (3, 4):
            raise InvalidInputError(
                f"Expected landmark array of shape ({NUM_LANDMARKS}, 3|4), got {arr.shape}."
            )
        if arr.shape[1] == 3:
            arr = np.hstack([arr, np.ones((NUM_LANDMARKS, 1))])
    else:
        items = list(landmarks)
        if len(items) != NUM_LANDMARKS:
            raise InvalidInputError(
                f"Expected {NUM_LANDMARKS} landmarks per frame, got {len(items)}."
            )
        arr = np.array([_row_from_item(item) for item in items], dtype=np.float64)

    if not np.all(np.isfinite(arr)):
        raise InvalidInputError("Landmark coordinates must be finite.")
    return arr


def to_landmarks(arr: Iterable[Sequence[float]]) -> list[Landmark]:
    """Inverse of ``to_landmark_array``: rows back to ``Landmark`` records."""
    return [Landmark.from_row(row) for row in arr]


def mean_visibility(arr: np.ndarray) -> float:
    """Average detection confidence over all joints of one frame."""
    return float(np.mean(arr[:, 3])) if arr.size else 0.0
