"""
Temporal smoothing of normalized pose vectors.

Raw per-frame landmarks jitter. ``MovingAverageBuffer`` keeps an exponential
moving average for classification and a short raw history so that genuine
motion can still be measured (``velocity``) for stability gating.
"""

from collections import deque
from typing import Iterable, Optional

import numpy as np

from .config import BUFFER_SIZE, COORDS_PER_LANDMARK, EMA_ALPHA


class MovingAverageBuffer:
    """Bounded history + EMA over normalized vectors.

    ``ema[i] = alpha * v[i] + (1 - alpha) * ema[i - 1]``, seeded with the
    first vector added.
    """

    def __init__(self, size: int = BUFFER_SIZE, alpha: float = EMA_ALPHA):
        if size < 2:
            raise ValueError(f"Buffer size must be >= 2, got {size}.")
        if not 0.0 < alpha <= 1.0:
            raise ValueError(f"EMA alpha must be in (0, 1], got {alpha}.")
        self.size = size
        self.alpha = alpha
        self._history: deque[np.ndarray] = deque(maxlen=size)
        self._ema: Optional[np.ndarray] = None

    def __len__(self) -> int:
        return len(self._history)

    def add(self, vector: np.ndarray) -> None:
        vec = np.asarray(vector, dtype=np.float64).ravel()
        self._history.append(vec)
        if self._ema is None:
            self._ema = vec.copy()
        else:
            self._ema = self.alpha * vec + (1.0 - self.alpha) * self._ema

    def average(self) -> Optional[np.ndarray]:
        """Current EMA vector, or ``None`` before the first ``add``."""
        return None if self._ema is None else self._ema.copy()

    def velocity(self, joint_indices: Optional[Iterable[int]] = None) -> float:
        """L1 distance between the two most recent raw vectors.

        Args:
            joint_indices: Optional landmark indices; only their x/y/z
                components are compared. Indices beyond the vector are ignored.

        Returns:
            Motion magnitude, 0.0 with fewer than two samples.
        """
        if len(self._history) < 2:
            return 0.0
        current = self._history[-1]
        previous = self._history[-2]

        if joint_indices is None:
            return float(np.abs(current - previous).sum())

        dim = current.shape[0]
        total = 0.0
        for idx in joint_indices:
            base = int(idx) * COORDS_PER_LANDMARK
            if base + COORDS_PER_LANDMARK <= dim:
                total += float(np.abs(current[base:base + 3] - previous[base:base + 3]).sum())
        return total

    def clear(self) -> None:
        self._history.clear()
        self._ema = None
