"""
Stage 1 — Landmark normalization and vector metrics.

Turns one frame of 33 raw landmarks into a position- and scale-invariant
99-d vector:

    1. Validate the frame (exactly 33 landmarks)
    2. Require visible anchors (both shoulders, both hips >= 0.3)
    3. Center on the hip midpoint
    4. Scale by torso length (hip midpoint -> shoulder midpoint)
    5. Weight the depth axis x1.5 (perspective compensation)
    6. Flatten (33, 3) -> (99,)

Also provides the similarity / distance metrics used to compare vectors.
"""

import logging
from typing import Any, Iterable, Optional

import numpy as np

from .config import (
    ANCHOR_VISIBILITY_FLOOR,
    COORDS_PER_LANDMARK,
    DEPTH_WEIGHT,
)
from .landmarks import ANCHOR_JOINTS, HIPS, SHOULDERS, to_landmark_array

logger = logging.getLogger(__name__)

_ANCHORS = [int(i) for i in ANCHOR_JOINTS]
_HIPS = [int(i) for i in HIPS]
_SHOULDERS = [int(i) for i in SHOULDERS]


def normalize_landmarks(
    landmarks: Any,
    visibility_floor: float = ANCHOR_VISIBILITY_FLOOR,
    depth_weight: float = DEPTH_WEIGHT,
) -> Optional[np.ndarray]:
    """Normalize one frame of landmarks into a flat 99-d vector.

    Args:
        landmarks: 33 landmarks in any shape accepted by ``to_landmark_array``.
        visibility_floor: Minimum visibility for shoulders and hips.
        depth_weight: Multiplier applied to the normalized z component.

    Returns:
        float32 array of shape (99,), or ``None`` when an anchor joint is
        below the visibility floor (the caller should skip the frame).

    Raises:
        InvalidInputError: If the frame does not contain 33 landmarks.
    """
    arr = to_landmark_array(landmarks)

    if np.any(arr[_ANCHORS, 3] < visibility_floor):
        return None

    xyz = arr[:, :COORDS_PER_LANDMARK]
    hip_center = xyz[_HIPS].mean(axis=0)
    shoulder_center = xyz[_SHOULDERS].mean(axis=0)

    torso_length = float(np.linalg.norm(shoulder_center - hip_center))
    if torso_length < 1e-9:
        torso_length = 1.0

    normed = (xyz - hip_center) / torso_length
    normed[:, 2] *= depth_weight
    return normed.reshape(-1).astype(np.float32)


def cosine_similarity(vec_a: np.ndarray, vec_b: np.ndarray) -> float:
    """Cosine similarity in [-1, 1]; 0.0 for mismatched lengths or zero vectors."""
    a = np.asarray(vec_a, dtype=np.float64).ravel()
    b = np.asarray(vec_b, dtype=np.float64).ravel()
    if a.shape != b.shape:
        return 0.0

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return float(np.clip(np.dot(a, b) / (norm_a * norm_b), -1.0, 1.0))


def weighted_distance(
    vec_a: np.ndarray,
    vec_b: np.ndarray,
    indices: Iterable[int],
) -> float:
    """Mean per-joint 3D Euclidean distance over the given landmark indices.

    Args:
        vec_a: User vector (99,).
        vec_b: Target vector (99,).
        indices: Landmark indices to compare (e.g. hips and knees).

    Returns:
        Average distance, or 0.0 for an empty index set.
    """
    idx = [int(i) for i in indices]
    if not idx:
        return 0.0
    a = np.asarray(vec_a, dtype=np.float64).reshape(-1, COORDS_PER_LANDMARK)[idx]
    b = np.asarray(vec_b, dtype=np.float64).reshape(-1, COORDS_PER_LANDMARK)[idx]
    return float(np.linalg.norm(a - b, axis=1).mean())
