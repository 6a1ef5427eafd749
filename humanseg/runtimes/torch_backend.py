"""PyTorch compute backend: CUDA when the machine has it, CPU otherwise."""

import asyncio
import gc
import logging

import torch

from humanseg.detection.base import BackendRuntime
from humanseg.enums import BackendChoice

logger = logging.getLogger(__name__)

_KNOWN_BACKENDS = {choice.value for choice in BackendChoice}


def _is_cuda(device: str) -> bool:
    return device.startswith(BackendChoice.ACCELERATED.value)


class TorchBackendRuntime(BackendRuntime):
    """Tracks which torch device models should be placed on.

    A device is only ever adopted after a small tensor op has run on it, so a
    configured ``cuda`` on a machine without a usable GPU degrades to ``cpu``
    instead of failing the model load.
    """

    def __init__(self, device: str = "cpu"):
        self._device = device

    @property
    def device(self) -> str:
        return self._device

    async def ready(self) -> None:
        if _is_cuda(self._device) and not torch.cuda.is_available():
            logger.warning("Configured device %s is not available, using cpu", self._device)
            self._device = BackendChoice.FALLBACK.value
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._warmup, self._device)

    def _warmup(self, device: str) -> None:
        tensor = torch.zeros((1,), device=device, dtype=torch.float32)
        tensor += 1.0
        if _is_cuda(device):
            torch.cuda.synchronize()

    async def current_backend(self) -> str:
        return self._device.split(":", 1)[0]

    async def set_backend(self, name: str) -> None:
        if name not in _KNOWN_BACKENDS:
            raise ValueError(f"Unknown backend: {name!r}")
        if _is_cuda(name) and not torch.cuda.is_available():
            raise RuntimeError("CUDA is not available on this machine")
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._warmup, name)
        self._device = name
        logger.debug("Torch device set to %s", name)

    def release_resources(self) -> None:
        gc.collect()
        if torch.cuda.is_available():
            torch.cuda.empty_cache()
