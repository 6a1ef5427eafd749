from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import numpy as np

from humanseg.enums import InternalResolution


@dataclass(frozen=True)
class ModelConfig:
    """Constants handed to the capability when the model is loaded."""
    architecture: str = "yolov8n-seg"
    input_size: int = 640
    half_precision: bool = False


@dataclass(frozen=True)
class SegmentationOptions:
    """Per-frame segmentation policy. Not configurable per call."""
    flip_horizontal: bool = False
    internal_resolution: InternalResolution = InternalResolution.MEDIUM
    segmentation_threshold: float = 0.7
    max_detections: int = 10
    score_threshold: float = 0.3
    nms_radius: int = 20


@dataclass(frozen=True)
class DetectionResult:
    """Output of one detection call.

    mask: HxW uint8 ndarray, 255 where a human was found, 0 for background.
    confidence: fraction of pixels classified as human, in [0, 1].
    processing_time_ms: wall-clock time spent inside the segmentation call.
    """
    mask: np.ndarray
    confidence: float
    processing_time_ms: float

    @property
    def width(self) -> int:
        return int(self.mask.shape[1])

    @property
    def height(self) -> int:
        return int(self.mask.shape[0])

    def to_rgba(self) -> np.ndarray:
        """Return the mask as HxWx4 with the mask in the alpha channel."""
        rgba = np.zeros((self.height, self.width, 4), dtype=np.uint8)
        rgba[:, :, 3] = self.mask
        return rgba


class BackendRuntime(ABC):
    """Compute backend the model runs on (e.g. CUDA vs. CPU)."""

    @abstractmethod
    async def ready(self) -> None:
        """Wait until the runtime is usable. Raises if it never will be."""

    @abstractmethod
    async def current_backend(self) -> str:
        """Name of the backend currently in effect."""

    @abstractmethod
    async def set_backend(self, name: str) -> None:
        """Switch to *name*. Raises if the backend is unavailable."""

    @abstractmethod
    def release_resources(self) -> None:
        """Free memory the runtime retains after models are released."""


class SegmentationCapability(ABC):
    """Loads a person-segmentation model and runs it on RGBA surfaces.

    Handles returned by ``load`` are opaque to callers; they are only ever
    passed back into ``infer`` and ``release``.
    """

    @abstractmethod
    async def load(self, config: ModelConfig) -> Any:
        """Load model weights and return a model handle."""

    @abstractmethod
    async def infer(
        self, handle: Any, surface: np.ndarray, options: SegmentationOptions
    ) -> np.ndarray:
        """Segment *surface* (HxWx4 uint8).

        Returns a flat uint8 buffer of length H*W, 1 for human pixels and 0
        for background, in row-major order.
        """

    @abstractmethod
    def release(self, handle: Any) -> None:
        """Dispose of a handle previously returned by ``load``."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier for this capability."""
