"""Human detection service: model lifecycle plus the per-frame pipeline."""

import asyncio
import logging
import time
from typing import Any, Optional

import numpy as np

from humanseg.detection.backend import BackendSelector
from humanseg.detection.base import (
    BackendRuntime,
    DetectionResult,
    SegmentationCapability,
    SegmentationOptions,
)
from humanseg.detection.decoder import decode_segmentation
from humanseg.detection.lifecycle import ModelLifecycle
from humanseg.detection.scratch import CHANNELS, ScratchSurface
from humanseg.enums import LifecycleState
from humanseg.errors import DetectionFailedError, NotInitializedError

logger = logging.getLogger(__name__)

SEGMENTATION_OPTIONS = SegmentationOptions()


class DetectionPipeline:
    """Runs one frame through stage -> segment -> decode.

    Not safe for concurrent use; :class:`HumanDetectionService` serializes
    calls because the scratch surface and model handle are shared.
    """

    def __init__(self, capability: SegmentationCapability, scratch: ScratchSurface):
        self._capability = capability
        self._scratch = scratch

    async def run(self, model: Any, image: np.ndarray) -> DetectionResult:
        height, width = image.shape[:2]

        with self._scratch.stage(image) as surface:
            start = time.perf_counter()
            try:
                buffer = await self._capability.infer(model, surface, SEGMENTATION_OPTIONS)
            except Exception as exc:
                raise DetectionFailedError(cause=exc) from exc
            processing_time_ms = (time.perf_counter() - start) * 1000.0

        mask, confidence = decode_segmentation(buffer, width, height)
        mask.flags.writeable = False
        logger.debug(
            "Segmented %dx%d frame in %.1f ms (confidence %.3f)",
            width, height, processing_time_ms, confidence,
        )
        return DetectionResult(
            mask=mask,
            confidence=confidence,
            processing_time_ms=processing_time_ms,
        )


class HumanDetectionService:
    """Segments people out of RGBA frames.

    Example::

        service = HumanDetectionService(capability, runtime)
        await service.initialize()
        result = await service.detect_humans(frame_rgba)
        await service.dispose()
    """

    def __init__(
        self,
        capability: SegmentationCapability,
        runtime: BackendRuntime,
        selector: Optional[BackendSelector] = None,
    ):
        self._lifecycle = ModelLifecycle(capability, runtime, selector)
        self._scratch = ScratchSurface()
        self._pipeline = DetectionPipeline(capability, self._scratch)
        self._detect_lock = asyncio.Lock()

    @property
    def state(self) -> LifecycleState:
        return self._lifecycle.state

    @property
    def is_ready(self) -> bool:
        return self._lifecycle.is_ready

    @property
    def backend(self) -> Optional[str]:
        return self._lifecycle.backend

    async def initialize(self) -> None:
        await self._lifecycle.initialize()

    async def dispose(self) -> None:
        # Waits for an in-flight frame so its handle isn't pulled out from under it.
        async with self._detect_lock:
            self._lifecycle.dispose()
            self._scratch.release()

    async def detect_humans(self, image: np.ndarray) -> DetectionResult:
        if not self._lifecycle.is_ready:
            raise NotInitializedError()
        _check_frame(image)

        async with self._detect_lock:
            # A dispose() may have been queued ahead of us.
            if not self._lifecycle.is_ready:
                raise NotInitializedError()
            return await self._pipeline.run(self._lifecycle.model, image)


def _check_frame(image) -> None:
    if not isinstance(image, np.ndarray):
        raise ValueError(f"Expected an ndarray frame, got {type(image).__name__}")
    if image.ndim != 3 or image.shape[2] != CHANNELS or image.dtype != np.uint8:
        raise ValueError(
            f"Expected an HxWx{CHANNELS} uint8 frame, got shape {image.shape} "
            f"dtype {image.dtype}"
        )
    if image.shape[0] == 0 or image.shape[1] == 0:
        raise ValueError("Frame has no pixels")
