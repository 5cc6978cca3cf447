"""Retry policy with exponential backoff (no jitter)."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS: int = 3
DEFAULT_BASE_BACKOFF_S: float = 1.0


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_backoff: float = DEFAULT_BASE_BACKOFF_S

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.base_backoff < 0:
            raise ValueError(f"base_backoff must be >= 0, got {self.base_backoff}")

    def delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt `attempt` (0-based)."""
        return self.base_backoff * (2 ** attempt)

    def delays(self) -> List[float]:
        """Every wait the policy can produce, i.e. one per retry."""
        return [self.delay(i) for i in range(self.max_attempts - 1)]


class RetriesExhausted(Exception):
    """Raised by retry_async once every attempt has failed."""

    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(f"gave up after {attempts} attempt(s): {last_error}")
        self.attempts = attempts
        self.last_error = last_error


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    label: str = "operation",
) -> T:
    """
    Await `fn()` until it succeeds or the policy runs out of attempts.

    Waits `policy.delay(i)` between attempt i and i+1; there is no wait after
    the final attempt. Exceptions outside `retry_on` propagate immediately.
    """
    for attempt in range(policy.max_attempts):
        try:
            return await fn()
        except retry_on as e:
            logger.warning(f"{label}: attempt {attempt + 1}/{policy.max_attempts} failed: {e}")
            if attempt == policy.max_attempts - 1:
                raise RetriesExhausted(policy.max_attempts, e) from e
            await sleep(policy.delay(attempt))
    raise AssertionError("unreachable")
