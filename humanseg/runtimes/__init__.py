from humanseg.detection import HumanDetectionService
from humanseg.runtimes.torch_backend import TorchBackendRuntime
from humanseg.runtimes.yolov8_seg import YOLOv8SegCapability

__all__ = [
    "TorchBackendRuntime",
    "YOLOv8SegCapability",
    "registry",
    "create_detection_service",
]


def _build_yolov8_seg(device: str = "cpu", weights_dir: str = "weights"):
    runtime = TorchBackendRuntime(device=device)
    return YOLOv8SegCapability(runtime, weights_dir=weights_dir), runtime


# Maps DETECTION_RUNTIME value -> callable(**kwargs) returning
# (capability, runtime).  Adding a runtime only requires:
#   1. Implementing SegmentationCapability and BackendRuntime
#   2. Adding a builder here and a _SETTINGS_MAP entry below
registry = {
    "yolov8_seg": _build_yolov8_seg,
}

# Maps DETECTION_RUNTIME value -> callable(settings) returning builder kwargs.
_SETTINGS_MAP = {
    "yolov8_seg": lambda s: dict(
        device=s.DEVICE,
        weights_dir=s.WEIGHTS_DIR,
    ),
}


def create_detection_service(kind, settings=None, **kwargs) -> HumanDetectionService:
    """Build a detection service backed by the runtime named *kind*.

    If *settings* is provided, builder kwargs are derived from it via
    ``_SETTINGS_MAP``.  Extra *kwargs* are merged in (and override
    settings-derived values).
    """
    builder = registry.get(kind)
    if builder is None:
        available = ", ".join(sorted(registry.keys()))
        raise ValueError(f"Unknown detection runtime: {kind!r} (available: {available})")
    base_kwargs = _SETTINGS_MAP[kind](settings) if settings is not None else {}
    base_kwargs.update(kwargs)
    capability, runtime = builder(**base_kwargs)
    return HumanDetectionService(capability, runtime)
