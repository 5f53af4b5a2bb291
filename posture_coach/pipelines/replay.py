"""
Offline replay of recorded landmark streams.

A landmark dump is a JSON document produced by a capture client::

    {
        "duration": 12.0,
        "frames": [
            {"time": 0.0, "landmarks": [[x, y, z, visibility], ...]},
            {"time": 0.5, "landmarks": null},
            ...
        ]
    }

``LandmarkReplay`` serves such a dump both as the video source and as the
pose detector of ``VideoSequenceAnalyzer``: seeking returns the timestamp,
and detection looks up the nearest recorded frame.
"""

import bisect
import logging
import math
from pathlib import Path
from typing import Any, Optional, Union

from ..utils.io_utils import load_json
from .config import SAMPLE_INTERVAL
from .errors import InvalidInputError

logger = logging.getLogger(__name__)


class LandmarkReplay:
    """Seekable source + detector over pre-recorded landmarks.

    Args:
        duration: Length of the recording in seconds.
        frames: ``(time, landmarks-or-None)`` pairs in any order.
        tolerance: Max distance (seconds) between a requested timestamp and
            the recorded frame served for it.
    """

    def __init__(
        self,
        duration: float,
        frames: list[tuple[float, Optional[Any]]],
        tolerance: float = SAMPLE_INTERVAL / 2,
    ):
        self.duration = duration
        self.tolerance = tolerance
        ordered = sorted(frames, key=lambda item: item[0])
        self._times = [t for t, _ in ordered]
        self._landmarks = [lm for _, lm in ordered]

    def __len__(self) -> int:
        return len(self._times)

    @classmethod
    def from_dict(cls, data: Any, tolerance: float = SAMPLE_INTERVAL / 2) -> "LandmarkReplay":
        if not isinstance(data, dict):
            raise InvalidInputError("Landmark dump must be a JSON object.")
        frames_raw = data.get("frames")
        if not isinstance(frames_raw, list):
            raise InvalidInputError("Landmark dump needs a 'frames' list.")

        frames = []
        for i, entry in enumerate(frames_raw):
            if not isinstance(entry, dict) or "time" not in entry:
                raise InvalidInputError(f"Frame #{i} needs a 'time' field.")
            try:
                t = float(entry["time"])
            except (TypeError, ValueError):
                raise InvalidInputError(f"Frame #{i} has a non-numeric time.") from None
            frames.append((t, entry.get("landmarks")))

        duration = data.get("duration")
        if duration is None:
            duration = (max(t for t, _ in frames) + SAMPLE_INTERVAL) if frames else 0.0
        try:
            duration = float(duration)
        except (TypeError, ValueError):
            raise InvalidInputError("Landmark dump has a non-numeric duration.") from None
        return cls(duration, frames, tolerance=tolerance)

    @classmethod
    def from_file(cls, path: Union[str, Path], tolerance: float = SAMPLE_INTERVAL / 2) -> "LandmarkReplay":
        replay = cls.from_dict(load_json(path), tolerance=tolerance)
        logger.info("Loaded %d recorded frames (%.1fs) from %s", len(replay), replay.duration, path)
        return replay

    # -- VideoSource ------------------------------------------------------

    async def seek(self, timestamp: float) -> float:
        return timestamp

    # -- PoseDetector -----------------------------------------------------

    async def detect(self, frame: float) -> Optional[Any]:
        return self.landmarks_at(frame)

    def landmarks_at(self, timestamp: float) -> Optional[Any]:
        """Landmarks of the recorded frame nearest to *timestamp*, if close enough."""
        if not self._times:
            return None
        i = bisect.bisect_left(self._times, timestamp)
        best: Optional[int] = None
        best_gap = math.inf
        for j in (i - 1, i):
            if 0 <= j < len(self._times):
                gap = abs(self._times[j] - timestamp)
                if gap < best_gap:
                    best, best_gap = j, gap
        if best is None or best_gap > self.tolerance:
            return None
        return self._landmarks[best]
