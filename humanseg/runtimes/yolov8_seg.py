"""Person segmentation using YOLOv8-seg."""

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Any

import cv2
import numpy as np

from humanseg.detection.base import ModelConfig, SegmentationCapability, SegmentationOptions
from humanseg.enums import InternalResolution
from humanseg.runtimes.torch_backend import TorchBackendRuntime

logger = logging.getLogger(__name__)

# COCO class index for "person".
PERSON_CLASS = 0

# Fraction of the model's input size used for each resolution tier.
_RESOLUTION_SCALE = {
    InternalResolution.LOW: 0.25,
    InternalResolution.MEDIUM: 0.5,
    InternalResolution.HIGH: 0.75,
    InternalResolution.FULL: 1.0,
}

# YOLO input sizes must be multiples of the maximum stride.
_STRIDE = 32


@dataclass
class LoadedSegmenter:
    model: Any
    device: str
    config: ModelConfig


def inference_size(input_size: int, resolution: InternalResolution) -> int:
    scaled = input_size * _RESOLUTION_SCALE[resolution]
    return max(_STRIDE, int(round(scaled / _STRIDE)) * _STRIDE)


def person_buffer(result, height: int, width: int, threshold: float) -> np.ndarray:
    """Collapse a YOLO result's person masks into a flat 0/1 buffer."""
    buffer = np.zeros((height, width), dtype=np.uint8)
    if result.masks is None or result.boxes is None:
        return buffer.reshape(-1)

    masks_data = result.masks.data.cpu().numpy()   # (N, mh, mw)
    classes = result.boxes.cls.cpu().numpy().astype(int)
    for i, cls_id in enumerate(classes):
        if cls_id != PERSON_CLASS:
            continue
        seg = masks_data[i]
        if seg.shape != (height, width):
            seg = cv2.resize(seg, (width, height), interpolation=cv2.INTER_LINEAR)
        buffer[seg > threshold] = 1
    return buffer.reshape(-1)


class YOLOv8SegCapability(SegmentationCapability):
    """Instance segmentation with YOLOv8-seg (ultralytics), people only.

    Blocking torch work runs in the default executor.  ``nms_radius`` has no
    YOLO counterpart; suppression uses the model's IoU default.
    """

    def __init__(self, runtime: TorchBackendRuntime, weights_dir: str = "weights"):
        self._runtime = runtime
        self._weights_dir = weights_dir

    @property
    def name(self) -> str:
        return "yolov8_seg"

    async def load(self, config: ModelConfig) -> LoadedSegmenter:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._load_model, config)

    def _load_model(self, config: ModelConfig) -> LoadedSegmenter:
        from ultralytics import YOLO

        weights = self._resolve_weights(config.architecture)
        device = self._runtime.device
        logger.info("Loading YOLOv8-seg model: %s on %s ...", weights, device)
        model = YOLO(weights)
        model.to(device)
        return LoadedSegmenter(model=model, device=device, config=config)

    def _resolve_weights(self, architecture: str) -> str:
        filename = f"{architecture}.pt"
        local = os.path.join(self._weights_dir, filename)
        if os.path.isfile(local):
            return local
        # Let ultralytics fetch the released weights by name.
        return filename

    async def infer(
        self, handle: LoadedSegmenter, surface: np.ndarray, options: SegmentationOptions
    ) -> np.ndarray:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._segment, handle, surface, options)

    def _segment(
        self, handle: LoadedSegmenter, surface: np.ndarray, options: SegmentationOptions
    ) -> np.ndarray:
        if handle.model is None:
            raise RuntimeError("Segmentation model has been released")

        frame_bgr = cv2.cvtColor(surface, cv2.COLOR_RGBA2BGR)
        if options.flip_horizontal:
            frame_bgr = cv2.flip(frame_bgr, 1)
        h, w = frame_bgr.shape[:2]

        results = handle.model(
            frame_bgr,
            verbose=False,
            classes=[PERSON_CLASS],
            conf=options.score_threshold,
            max_det=options.max_detections,
            imgsz=inference_size(handle.config.input_size, options.internal_resolution),
            half=handle.config.half_precision,
            device=handle.device,
            retina_masks=True,
        )
        return person_buffer(results[0], h, w, options.segmentation_threshold)

    def release(self, handle: LoadedSegmenter) -> None:
        handle.model = None
