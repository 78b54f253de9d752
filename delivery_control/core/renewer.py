"""
Background token renewal.

Each platform client owns one TokenRenewer. Once started it authenticates
immediately, then again every `interval_seconds`, for the lifetime of the
process:

  AUTHENTICATING --(success or failure)--> IDLE --(interval elapsed)--> AUTHENTICATING

A failed attempt is logged and leaves the previously cached token (or the
empty state) untouched; the loop simply waits for the next cycle.
"""
import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from delivery_control.core.token_cache import TokenCache

logger = logging.getLogger(__name__)


class RenewerState(str, Enum):
    AUTHENTICATING = "authenticating"
    IDLE = "idle"


class TokenRenewer:
    """Perpetual re-authentication task feeding a TokenCache."""

    def __init__(
        self,
        name: str,
        authenticate: Callable[[], Awaitable[str]],
        cache: TokenCache,
        interval_seconds: float,
    ):
        self.name = name
        self._authenticate = authenticate
        self._cache = cache
        self.interval_seconds = interval_seconds
        self.state = RenewerState.IDLE
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Schedule the renewal loop on the running event loop."""
        if self.running:
            return self._task
        logger.info(f"[{self.name}] Starting token renewal (every {self.interval_seconds}s)")
        self._task = asyncio.get_running_loop().create_task(
            self.run(), name=f"token-renewer-{self.name}"
        )
        return self._task

    async def run(self) -> None:
        while True:
            await self.renew_once()
            await asyncio.sleep(self.interval_seconds)

    async def renew_once(self) -> bool:
        """One authentication attempt. Returns True if the cache was updated."""
        self.state = RenewerState.AUTHENTICATING
        try:
            token = await self._authenticate()
        except Exception as e:
            logger.error(f"[{self.name}] Token renewal failed: {e}")
            return False
        else:
            self._cache.set(token)
            logger.info(f"[{self.name}] Access token renewed")
            return True
        finally:
            self.state = RenewerState.IDLE

    async def stop(self) -> None:
        """Shutdown hook: cancel the loop and wait for it to unwind."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info(f"[{self.name}] Token renewal stopped")
