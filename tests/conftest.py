"""
Shared synthetic fixtures: side-view skeletons for the reference poses.

Coordinates are image-relative (y grows downward). Left-side joints sit
closer to the camera (negative z) than right-side ones.
"""

import numpy as np
import pytest

from posture_coach.pipelines.config import AnalysisSettings
from posture_coach.pipelines.recommendation import RecommendationEngine
from posture_coach.pipelines.references import ReferenceAnchor, ReferenceLibrary


# ============================================================================
# Skeleton builder
# ============================================================================

POSE_JOINTS = {
    "The Hundred": dict(
        head=(0.28, 0.58), shoulder=(0.35, 0.62), elbow=(0.42, 0.64), wrist=(0.50, 0.65),
        hip=(0.50, 0.70), knee=(0.60, 0.60), ankle=(0.70, 0.50),
    ),
    "Roll-Up": dict(
        head=(0.70, 0.60), shoulder=(0.62, 0.60), elbow=(0.72, 0.63), wrist=(0.82, 0.67),
        hip=(0.50, 0.70), knee=(0.65, 0.71), ankle=(0.82, 0.71),
    ),
    "Spine Stretch": dict(
        head=(0.53, 0.37), shoulder=(0.52, 0.45), elbow=(0.62, 0.46), wrist=(0.72, 0.46),
        hip=(0.50, 0.70), knee=(0.65, 0.70), ankle=(0.80, 0.70),
    ),
    "Pelvic Curl": dict(
        head=(0.22, 0.73), shoulder=(0.30, 0.72), elbow=(0.40, 0.73), wrist=(0.50, 0.73),
        hip=(0.50, 0.58), knee=(0.65, 0.55), ankle=(0.68, 0.72),
    ),
    "Chest Lift": dict(
        head=(0.28, 0.62), shoulder=(0.35, 0.66), elbow=(0.30, 0.58), wrist=(0.26, 0.62),
        hip=(0.50, 0.72), knee=(0.62, 0.60), ankle=(0.70, 0.72),
    ),
}

HUNDRED_VARIATIONS = {
    "High Diagonal": dict(knee=(0.55, 0.58), ankle=(0.60, 0.45)),
    "Tabletop Legs": dict(knee=(0.50, 0.58), ankle=(0.62, 0.58)),
}


def side_view_skeleton(
    head, shoulder, elbow, wrist, hip, knee, ankle,
    visibility=1.0, offset=(0.0, 0.0), scale=1.0,
):
    """Build a (33, 4) landmark array from seven side-view key points."""
    lm = np.zeros((33, 4), dtype=np.float64)

    def put(idx, pt, z, dx=0.0, dy=0.0):
        lm[idx, :3] = (pt[0] + dx, pt[1] + dy, z)

    put(0, head, 0.0, dx=0.02)
    for i in range(1, 7):
        put(i, head, -0.02 if i <= 3 else 0.02, dx=0.01, dy=-0.01)
    put(7, head, -0.05, dx=-0.01)
    put(8, head, 0.05, dx=-0.01)
    put(9, head, -0.01, dx=0.015, dy=0.015)
    put(10, head, 0.01, dx=0.015, dy=0.015)

    for (left, right), pt, z in [
        ((11, 12), shoulder, 0.10),
        ((13, 14), elbow, 0.12),
        ((15, 16), wrist, 0.12),
        ((17, 18), wrist, 0.12),
        ((19, 20), wrist, 0.12),
        ((21, 22), wrist, 0.12),
        ((23, 24), hip, 0.07),
        ((25, 26), knee, 0.07),
        ((27, 28), ankle, 0.07),
        ((29, 30), ankle, 0.07),
        ((31, 32), ankle, 0.07),
    ]:
        put(left, pt, -z)
        put(right, pt, z)

    lm[[17, 18], 1] += 0.01
    lm[[19, 20], 0] += 0.015
    lm[[29, 30], 0] -= 0.01
    lm[[29, 30], 1] += 0.01
    lm[[31, 32], 0] += 0.03

    lm[:, :3] *= scale
    lm[:, 0] += offset[0]
    lm[:, 1] += offset[1]
    lm[:, 3] = visibility
    return lm


def pose_landmarks(name, variation=None, **kwargs):
    """Skeleton for a named pose (optionally a Hundred variation)."""
    joints = dict(POSE_JOINTS[name])
    if variation is not None:
        joints.update(HUNDRED_VARIATIONS[variation])
    for key in list(kwargs):
        if key in joints:
            joints[key] = kwargs.pop(key)
    return side_view_skeleton(**joints, **kwargs)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def make_pose():
    return pose_landmarks


@pytest.fixture
def library():
    anchors = []
    for name in POSE_JOINTS:
        variations = {}
        if name == "The Hundred":
            variations = {v: pose_landmarks(name, v) for v in HUNDRED_VARIATIONS}
        anchors.append(ReferenceAnchor.from_landmarks(name, pose_landmarks(name), variations))
    return ReferenceLibrary(anchors)


@pytest.fixture
def settings():
    return AnalysisSettings()


@pytest.fixture
def engine():
    return RecommendationEngine.from_file()
