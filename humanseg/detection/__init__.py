from humanseg.detection.backend import BackendSelector
from humanseg.detection.base import (
    BackendRuntime,
    DetectionResult,
    ModelConfig,
    SegmentationCapability,
    SegmentationOptions,
)
from humanseg.detection.decoder import decode_segmentation
from humanseg.detection.lifecycle import MODEL_CONFIG, ModelLifecycle
from humanseg.detection.service import (
    SEGMENTATION_OPTIONS,
    DetectionPipeline,
    HumanDetectionService,
)

__all__ = [
    "BackendRuntime",
    "BackendSelector",
    "DetectionPipeline",
    "DetectionResult",
    "HumanDetectionService",
    "MODEL_CONFIG",
    "ModelConfig",
    "ModelLifecycle",
    "SEGMENTATION_OPTIONS",
    "SegmentationCapability",
    "SegmentationOptions",
    "decode_segmentation",
]
