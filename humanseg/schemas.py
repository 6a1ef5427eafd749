"""Pydantic models for HTTP and WebSocket message schemas."""

from typing import Optional

from pydantic import BaseModel, Field


# --- Detection ---

class DetectionResponse(BaseModel):
    mask: str
    width: int
    height: int
    confidence: float = Field(ge=0.0, le=1.0)
    processing_time_ms: float = Field(ge=0.0)


# --- Blur toggle / status ---

class BlurToggleRequest(BaseModel):
    enabled: bool


class DetectionStatsResponse(BaseModel):
    frames: int
    failures: int
    fps: float
    average_processing_time_ms: float
    average_confidence: float


class StatusResponse(BaseModel):
    state: str
    enabled: bool
    backend: Optional[str] = None
    stats: DetectionStatsResponse


# --- Remote control ---

class ControlCommand(BaseModel):
    command: Optional[str] = None


class ControlAck(BaseModel):
    status: str = "ok"


# --- Shared ---

class ErrorResponse(BaseModel):
    error: str
    code: Optional[str] = None
