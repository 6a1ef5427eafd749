"""Rolling per-frame detection statistics for adaptive-quality decisions."""

import time
from collections import deque
from typing import Callable, Optional

from humanseg.detection.base import DetectionResult


class DetectionStats:
    """Averages over the last *window* successful frames."""

    def __init__(self, window: int = 30, clock: Callable[[], float] = time.monotonic):
        if window < 1:
            raise ValueError(f"window must be >= 1, got {window}")
        self._clock = clock
        self._times = deque(maxlen=window)
        self._confidences = deque(maxlen=window)
        self.reset()

    def reset(self) -> None:
        self._times.clear()
        self._confidences.clear()
        self._last_frame_at: Optional[float] = None
        self.fps = 0.0
        self.frames = 0
        self.failures = 0

    def record(self, result: DetectionResult) -> None:
        self._times.append(result.processing_time_ms)
        now = self._clock()
        if self._last_frame_at is not None and now > self._last_frame_at:
            self.fps = 1.0 / (now - self._last_frame_at)
        self._last_frame_at = now
        self._confidences.append(result.confidence)
        self.frames += 1

    def record_failure(self) -> None:
        self.failures += 1

    @property
    def average_processing_time_ms(self) -> float:
        if not self._times:
            return 0.0
        return sum(self._times) / len(self._times)

    @property
    def average_confidence(self) -> float:
        if not self._confidences:
            return 0.0
        return sum(self._confidences) / len(self._confidences)

    def snapshot(self) -> dict:
        return {
            "frames": self.frames,
            "failures": self.failures,
            "fps": round(self.fps, 2),
            "average_processing_time_ms": round(self.average_processing_time_ms, 2),
            "average_confidence": round(self.average_confidence, 4),
        }
