"""Best-effort compute backend selection, run before every model load."""

import logging
from typing import Optional

from humanseg.detection.base import BackendRuntime
from humanseg.enums import BackendChoice

logger = logging.getLogger(__name__)


class BackendSelector:
    """Prefers the accelerated backend, drops to the fallback if it won't switch.

    The call sequence against the runtime is fixed: query, switch to the
    preferred backend if needed, and only if that fails, switch to the
    fallback.  Nothing here raises; the model load that follows decides
    whether initialization succeeds.
    """

    def __init__(
        self,
        runtime: BackendRuntime,
        preferred: BackendChoice = BackendChoice.ACCELERATED,
        fallback: BackendChoice = BackendChoice.FALLBACK,
    ):
        self._runtime = runtime
        self._preferred = preferred
        self._fallback = fallback

    async def select(self) -> Optional[str]:
        """Apply the backend policy and return the backend left in effect."""
        try:
            current = await self._runtime.current_backend()
        except Exception:
            logger.warning("Could not query current backend", exc_info=True)
            current = None

        if current == self._preferred.value:
            logger.info("Backend already set to %s", current)
            return current

        try:
            await self._runtime.set_backend(self._preferred.value)
            logger.info("Switched backend to %s", self._preferred.value)
            return self._preferred.value
        except Exception as exc:
            logger.warning(
                "%s backend not available, falling back to %s: %s",
                self._preferred.value, self._fallback.value, exc,
            )

        try:
            await self._runtime.set_backend(self._fallback.value)
            return self._fallback.value
        except Exception:
            logger.warning(
                "Could not switch to %s backend either; leaving runtime as is",
                self._fallback.value, exc_info=True,
            )
            return current
