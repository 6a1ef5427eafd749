"""Model lifecycle: load once, share the load between concurrent callers,
tear down on dispose and allow a fresh load afterwards."""

import asyncio
import logging
from typing import Any, Optional

from humanseg.detection.backend import BackendSelector
from humanseg.detection.base import BackendRuntime, ModelConfig, SegmentationCapability
from humanseg.enums import LifecycleState
from humanseg.errors import ModelLoadFailedError

logger = logging.getLogger(__name__)

MODEL_CONFIG = ModelConfig()


class ModelLifecycle:
    """Owns the model handle and the state machine around it.

    ``initialize()`` is single-flight: while a load is running, every other
    caller awaits the same task and sees the same outcome.  The handle is set
    if and only if the state is ``READY``.
    """

    def __init__(
        self,
        capability: SegmentationCapability,
        runtime: BackendRuntime,
        selector: Optional[BackendSelector] = None,
    ):
        self._capability = capability
        self._runtime = runtime
        self._selector = selector or BackendSelector(runtime)
        self._state = LifecycleState.UNINITIALIZED
        self._model: Any = None
        self._backend: Optional[str] = None
        self._load_task: Optional[asyncio.Task] = None
        # Bumped on every new load and on dispose; a load that finishes under
        # a stale generation was abandoned.
        self._generation = 0
        self._disposals = 0

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is LifecycleState.READY

    @property
    def model(self) -> Any:
        return self._model

    @property
    def backend(self) -> Optional[str]:
        return self._backend

    async def initialize(self) -> None:
        while True:
            if self._state is LifecycleState.READY:
                return
            if self._state is LifecycleState.INITIALIZING:
                await asyncio.shield(self._load_task)
                return
            abandoned = self._load_task
            if abandoned is None or abandoned.done():
                break
            # dispose() ran mid-load; let that load drain before starting anew.
            disposals = self._disposals
            await asyncio.wait({abandoned})
            if disposals != self._disposals:
                raise ModelLoadFailedError("Service disposed during initialization")

        self._generation += 1
        self._state = LifecycleState.INITIALIZING
        logger.info("Initializing %s model ...", self._capability.name)
        self._load_task = asyncio.ensure_future(self._load(self._generation))
        await asyncio.shield(self._load_task)

    async def _load(self, generation: int) -> None:
        try:
            try:
                await self._runtime.ready()
                backend = await self._selector.select()
                handle = await self._capability.load(MODEL_CONFIG)
            except Exception as exc:
                if generation == self._generation:
                    self._state = LifecycleState.UNINITIALIZED
                logger.error("Failed to load %s model: %s", self._capability.name, exc)
                raise ModelLoadFailedError(cause=exc) from exc

            if generation != self._generation:
                logger.info("Service disposed while loading; releasing late model")
                try:
                    self._capability.release(handle)
                finally:
                    self._runtime.release_resources()
                raise ModelLoadFailedError("Service disposed during initialization")

            self._model = handle
            self._backend = backend
            self._state = LifecycleState.READY
            logger.info("%s model ready (backend=%s).", self._capability.name, backend)
        finally:
            if self._load_task is asyncio.current_task() and generation == self._generation:
                self._load_task = None

    def dispose(self) -> None:
        """Release the model and backend resources. Safe in any state."""
        model = self._model
        self._model = None
        self._backend = None
        self._disposals += 1
        if self._state is LifecycleState.INITIALIZING:
            self._generation += 1
        self._state = LifecycleState.DISPOSED

        if model is None:
            return
        logger.info("Disposing %s model", self._capability.name)
        try:
            self._capability.release(model)
        finally:
            self._runtime.release_resources()
