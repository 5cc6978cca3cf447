"""Process-wide minimum spacing between outbound NSE calls."""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class RequestThrottle:
    """
    Gate every outbound call through `wait()`.

    The lock is held across the sleep, so waiters are released one at a time
    and consecutive call starts are always `min_interval` apart. No FIFO
    guarantee beyond what asyncio.Lock gives.
    """

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self.last_request: Optional[float] = None

    async def wait(self) -> None:
        async with self._lock:
            if self.last_request is not None:
                elapsed = self._clock() - self.last_request
                if elapsed < self.min_interval:
                    remaining = self.min_interval - elapsed
                    logger.debug(f"Throttling outbound call for {remaining:.3f}s")
                    await self._sleep(remaining)
            self.last_request = self._clock()
