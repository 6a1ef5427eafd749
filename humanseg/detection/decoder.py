"""Turn a raw per-pixel classification buffer into a mask and a score."""

from typing import Tuple

import numpy as np

MASK_ON = 255


def decode_segmentation(
    buffer: np.ndarray, width: int, height: int
) -> Tuple[np.ndarray, float]:
    """Decode *buffer* into (mask, confidence).

    The mask is a single-channel HxW uint8 array, ``MASK_ON`` where the
    buffer holds 1 and 0 elsewhere.  Confidence is the fraction of pixels
    classified as human.

    A buffer whose length is not ``width * height`` is a bug in the model
    capability; ``reshape`` raises ``ValueError`` rather than producing a
    wrongly shaped mask.
    """
    classes = np.asarray(buffer).reshape(height, width)
    foreground = classes == 1

    mask = np.zeros((height, width), dtype=np.uint8)
    mask[foreground] = MASK_ON

    total = width * height
    confidence = int(np.count_nonzero(foreground)) / total if total else 0.0
    return mask, confidence
