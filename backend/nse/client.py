#!/usr/bin/env python3
"""
Async NSE India client: throttled, cookie-authenticated JSON fetches.

Handles:
  - Browser-like headers on every call
  - Shared minimum spacing between outbound calls (handshake included)
  - Lazy session cookie refresh, cleared on 403
  - NIFTY 50 snapshot and equity quote + trade-info lookups

Upstream bodies are passed through untouched.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import quote

import httpx

from core.config import NSE_HEADERS, Settings
from core.error_map import ForbiddenFetch, GenericFetchError
from core.retry import RetryPolicy
from nse.session import CookieManager
from nse.throttle import RequestThrottle

logger = logging.getLogger(__name__)

INDEX_PATH = "/api/equity-stockIndices"
QUOTE_PATH = "/api/quote-equity"
MAX_REDIRECTS = 5


def index_path(index: str) -> str:
    return f"{INDEX_PATH}?index={quote(index, safe='')}"


def quote_path(symbol: str, section: Optional[str] = None) -> str:
    path = f"{QUOTE_PATH}?symbol={quote(symbol, safe='')}"
    if section:
        path += f"&section={quote(section, safe='')}"
    return path


class NSEClient:
    """One instance per process; owns the HTTP pool, throttle and session token."""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings
        headers = dict(NSE_HEADERS)
        headers["Referer"] = settings.base_url
        self._http = httpx.AsyncClient(
            base_url=settings.base_url,
            headers=headers,
            timeout=httpx.Timeout(settings.request_timeout),
            max_redirects=MAX_REDIRECTS,
            proxy=settings.proxy_url,
            transport=transport,
        )
        self.throttle = RequestThrottle(settings.min_request_interval, clock=clock, sleep=sleep)
        self.session = CookieManager(
            self._http,
            self.throttle,
            RetryPolicy(settings.cookie_retries, settings.cookie_backoff),
            handshake_timeout=settings.handshake_timeout,
            sleep=sleep,
        )

    async def close(self):
        if not self._http.is_closed:
            await self._http.aclose()

    async def ensure_session(self) -> None:
        await self.session.ensure_session()

    async def fetch(self, path: str) -> Any:
        """Throttled GET of `path` with the session cookie; returns the parsed JSON body."""
        await self.throttle.wait()

        headers: Dict[str, str] = {}
        if self.session.token:
            headers["Cookie"] = self.session.token

        # never let Set-Cookie from data responses reach a later request
        self._http.cookies.clear()
        try:
            resp = await self._http.get(path, headers=headers)
        except httpx.HTTPError as e:
            raise GenericFetchError(f"GET {path} failed: {e!r}") from e
        finally:
            self._http.cookies.clear()

        if resp.status_code == 403:
            self.session.invalidate()
            raise ForbiddenFetch(f"GET {path} returned HTTP 403", status_code=403)
        if not resp.is_success:
            raise GenericFetchError(
                f"GET {path} returned HTTP {resp.status_code}", status_code=resp.status_code
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise GenericFetchError(
                f"GET {path} returned a non-JSON body", status_code=resp.status_code
            ) from e

        logger.debug(f"NSE {path} -> {len(resp.content)} bytes")
        return data

    async def fetch_index(self, index: str = "NIFTY 50") -> Any:
        return await self.fetch(index_path(index))

    async def fetch_equity(self, symbol: str) -> Dict[str, Any]:
        """Quote and trade-info for `symbol`, fetched concurrently (still serialized by the throttle)."""
        tasks = [
            asyncio.ensure_future(self.fetch(quote_path(symbol))),
            asyncio.ensure_future(self.fetch(quote_path(symbol, section="trade_info"))),
        ]
        try:
            quote_body, trade_info = await asyncio.gather(*tasks)
        except BaseException:
            # one failure fails the lookup; don't leave the sibling queued on the throttle
            for task in tasks:
                task.cancel()
            raise
        return {"quote": quote_body, "tradeInfo": trade_info}
