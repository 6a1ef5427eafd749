"""Reusable staging buffer for frames handed to the model."""

from contextlib import contextmanager
from typing import Iterator, Optional

import numpy as np

CHANNELS = 4


class ScratchSurface:
    """An RGBA buffer owned by one detection service.

    The buffer is allocated on first use, reused while frames keep the same
    size, and only dropped by :meth:`release`.  :meth:`stage` is the only way
    to borrow it and always hands it back, even when the caller raises.
    """

    def __init__(self):
        self._buffer: Optional[np.ndarray] = None
        self._in_use = False

    @property
    def in_use(self) -> bool:
        return self._in_use

    @property
    def shape(self):
        return None if self._buffer is None else self._buffer.shape

    @contextmanager
    def stage(self, image: np.ndarray) -> Iterator[np.ndarray]:
        """Copy *image* into the buffer and yield it for the duration."""
        if self._in_use:
            raise RuntimeError("Scratch surface is already staged")
        height, width = image.shape[:2]
        if self._buffer is None or self._buffer.shape[:2] != (height, width):
            self._buffer = np.empty((height, width, CHANNELS), dtype=np.uint8)

        self._in_use = True
        try:
            np.copyto(self._buffer, image)
            yield self._buffer
        finally:
            self._in_use = False

    def release(self) -> None:
        if self._in_use:
            raise RuntimeError("Cannot release a staged scratch surface")
        self._buffer = None
