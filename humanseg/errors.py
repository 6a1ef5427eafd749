"""Typed errors raised by the detection service.

Callers are expected to treat the codes as follows:

- ``MODEL_LOAD_FAILED``: feature unavailable, retry later or disable it.
- ``DETECTION_FAILED``: skip this frame and keep going.
- ``NOT_INITIALIZED``: a sequencing bug in the caller, not worth retrying.
"""

from typing import Optional

from humanseg.enums import DetectionErrorCode


class DetectionError(Exception):
    """Base error carrying a stable code and the original failure."""

    def __init__(
        self,
        message: str,
        code: DetectionErrorCode,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.cause = cause

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code.value!r}, message={self.message!r})"


class NotInitializedError(DetectionError):
    def __init__(self, message: str = "Human detection service not initialized"):
        super().__init__(message, DetectionErrorCode.NOT_INITIALIZED)


class ModelLoadFailedError(DetectionError):
    def __init__(
        self,
        message: str = "Failed to initialize human detection model",
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, DetectionErrorCode.MODEL_LOAD_FAILED, cause)


class DetectionFailedError(DetectionError):
    def __init__(
        self,
        message: str = "Failed to detect humans in image",
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, DetectionErrorCode.DETECTION_FAILED, cause)
