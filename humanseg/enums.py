from enum import Enum


class LifecycleState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    DISPOSED = "disposed"


class BackendChoice(str, Enum):
    ACCELERATED = "cuda"
    FALLBACK = "cpu"


class DetectionErrorCode(str, Enum):
    NOT_INITIALIZED = "NOT_INITIALIZED"
    MODEL_LOAD_FAILED = "MODEL_LOAD_FAILED"
    DETECTION_FAILED = "DETECTION_FAILED"


class InternalResolution(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    FULL = "full"
