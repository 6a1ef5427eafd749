import asyncio
import base64
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Callable, Optional

import cv2
import numpy as np
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from humanseg.config import settings
from humanseg.control import CommandMailbox
from humanseg.detection import HumanDetectionService
from humanseg.errors import DetectionFailedError, ModelLoadFailedError, NotInitializedError
from humanseg.runtimes import create_detection_service
from humanseg.schemas import (
    BlurToggleRequest,
    ControlAck,
    ControlCommand,
    DetectionResponse,
    ErrorResponse,
    StatusResponse,
)
from humanseg.stats import DetectionStats

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    service: Optional[HumanDetectionService] = None
    enabled: bool = False
    stats: DetectionStats = field(default_factory=lambda: DetectionStats(settings.STATS_WINDOW))
    mailbox: CommandMailbox = field(default_factory=CommandMailbox)
    prewarm_task: Optional[asyncio.Task] = None


def _default_service() -> HumanDetectionService:
    return create_detection_service(settings.DETECTION_RUNTIME, settings)


def _encode_mask_png(mask: np.ndarray) -> str:
    _, buf = cv2.imencode(".png", mask)
    return base64.b64encode(buf.tobytes()).decode("ascii")


def _error(exc: Exception, status_code: int) -> JSONResponse:
    code = getattr(exc, "code", None)
    body = ErrorResponse(error=str(exc), code=code.value if code is not None else None)
    return JSONResponse(body.model_dump(), status_code=status_code)


def create_app(
    service_factory: Callable[[], HumanDetectionService] = _default_service,
    state: Optional[AppState] = None,
) -> FastAPI:
    state = state or AppState()

    async def _enable_blur():
        await state.service.initialize()
        state.enabled = True
        state.stats.reset()

    async def _prewarm():
        try:
            await _enable_blur()
        except ModelLoadFailedError:
            logger.exception("Failed to pre-warm detection model")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        state.service = service_factory()
        if settings.BLUR_ON_STARTUP:
            logger.info("Pre-warming detection model in background...")
            state.prewarm_task = asyncio.ensure_future(_prewarm())

        yield  # App is running

        # Shutdown
        if state.prewarm_task is not None:
            state.prewarm_task.cancel()
            try:
                await state.prewarm_task
            except asyncio.CancelledError:
                pass
        state.enabled = False
        await state.service.dispose()

    app = FastAPI(lifespan=lifespan)
    app.state.humanseg = state

    @app.post("/api/blur")
    async def api_blur(req: BlurToggleRequest):
        if req.enabled:
            try:
                await _enable_blur()
            except ModelLoadFailedError as exc:
                logger.warning("Blur unavailable: %s (cause: %r)", exc, exc.cause)
                return _error(exc, 503)
        else:
            state.enabled = False
            await state.service.dispose()
            state.stats.reset()
        return await api_status()

    @app.get("/api/status")
    async def api_status():
        service = state.service
        body = StatusResponse(
            state=service.state.value,
            enabled=state.enabled,
            backend=service.backend,
            stats=state.stats.snapshot(),
        )
        return JSONResponse(body.model_dump())

    @app.websocket("/ws/detect")
    async def ws_detect(ws: WebSocket):
        await ws.accept()
        try:
            while True:
                # Receive encoded frame bytes from browser.
                data = await ws.receive_bytes()
                arr = np.frombuffer(data, dtype=np.uint8)
                frame_bgr = cv2.imdecode(arr, cv2.IMREAD_COLOR)
                if frame_bgr is None:
                    await _send_model(ws, ErrorResponse(error="Could not decode frame"))
                    continue
                frame_rgba = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGBA)

                try:
                    result = await state.service.detect_humans(frame_rgba)
                except DetectionFailedError as exc:
                    # Skip this frame; the session stays usable.
                    state.stats.record_failure()
                    logger.warning("Detection failed for frame: %r", exc.cause)
                    await _send_model(ws, ErrorResponse(error=str(exc), code=exc.code.value))
                    continue
                except NotInitializedError as exc:
                    await _send_model(ws, ErrorResponse(error=str(exc), code=exc.code.value))
                    continue

                state.stats.record(result)
                await _send_model(ws, DetectionResponse(
                    mask=_encode_mask_png(result.mask),
                    width=result.width,
                    height=result.height,
                    confidence=result.confidence,
                    processing_time_ms=result.processing_time_ms,
                ))
        except WebSocketDisconnect:
            pass

    @app.post("/api/control")
    async def api_control_post(req: ControlCommand):
        state.mailbox.post(req.command)
        return JSONResponse(ControlAck().model_dump())

    @app.get("/api/control")
    async def api_control_get():
        return JSONResponse(ControlCommand(command=state.mailbox.take()).model_dump())

    return app


async def _send_model(ws: WebSocket, model: BaseModel):
    await ws.send_text(model.model_dump_json())


app = create_app()
