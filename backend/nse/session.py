#!/usr/bin/env python3
"""
NSE session cookie management.

NSE only answers its JSON endpoints when the request carries the cookies set
by its home page. CookieManager performs that handshake lazily, caches the
result and forgets it when a data fetch comes back 403.

Refresh is single-flight: concurrent callers that find the token empty queue
on one asyncio.Lock and only the first performs the handshake.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict

import httpx

from core.error_map import GenericFetchError, RefreshFailure, UpstreamError
from core.retry import RetriesExhausted, RetryPolicy, retry_async
from nse.throttle import RequestThrottle

logger = logging.getLogger(__name__)

HANDSHAKE_PATH = "/"
# 2xx plus the first redirect codes, as accepted by the upstream handshake
ACCEPTED_STATUS = range(200, 303)


def extract_cookie_header(response: httpx.Response) -> str:
    """
    Join every Set-Cookie of `response` (redirect hops included) into one
    `Cookie:` header value. Attributes (Path, Expires, ...) are dropped and a
    later cookie with the same name replaces an earlier one.
    """
    pairs: Dict[str, str] = {}
    for hop in [*response.history, response]:
        for raw in hop.headers.get_list("set-cookie"):
            pair = raw.split(";", 1)[0].strip()
            if not pair:
                continue
            name = pair.split("=", 1)[0].strip()
            pairs[name] = pair
    return "; ".join(pairs.values())


class CookieManager:
    """Owns the session token shared by every outbound NSE call."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        throttle: RequestThrottle,
        policy: RetryPolicy,
        handshake_timeout: float = 5.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._http = http
        self._throttle = throttle
        self.policy = policy
        self.handshake_timeout = handshake_timeout
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self.token: str = ""

    @property
    def has_session(self) -> bool:
        return bool(self.token)

    def invalidate(self) -> None:
        if self.token:
            logger.info("Session cookie invalidated; next request will re-handshake")
        self.token = ""

    async def ensure_session(self) -> None:
        """Make sure a token is cached. Raises RefreshFailure when every attempt fails."""
        if self.token:
            return
        async with self._lock:
            if self.token:
                return
            try:
                token = await retry_async(
                    self._handshake,
                    self.policy,
                    retry_on=(UpstreamError,),
                    sleep=self._sleep,
                    label="NSE cookie handshake",
                )
            except RetriesExhausted as e:
                self.token = ""
                raise RefreshFailure(
                    f"cookie handshake failed after {e.attempts} attempt(s): {e.last_error}",
                    status_code=getattr(e.last_error, "status_code", None),
                ) from e.last_error
            self.token = token
            logger.info(f"Session cookie refreshed ({len(token.split('; '))} cookie(s))")

    async def _handshake(self) -> str:
        await self._throttle.wait()
        # the token is the only cookie source; drop whatever the jar collected
        self._http.cookies.clear()
        try:
            response = await self._http.get(
                HANDSHAKE_PATH,
                timeout=self.handshake_timeout,
                follow_redirects=True,
            )
        except httpx.HTTPError as e:
            raise GenericFetchError(f"handshake request failed: {e!r}") from e
        finally:
            self._http.cookies.clear()

        if response.status_code not in ACCEPTED_STATUS:
            raise GenericFetchError(
                f"handshake returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        token = extract_cookie_header(response)
        if not token:
            raise GenericFetchError("No cookies received", status_code=response.status_code)
        return token
