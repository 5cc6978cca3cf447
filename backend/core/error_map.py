#!/usr/bin/env python3
"""
error_map.py - Graceful Failure Layer

Upstream failures (NSE handshake, data fetches) are raised as UpstreamError
subclasses. Callers always get the same 503 envelope; the failure kind is
only visible in the logs.

Usage:
    from core.error_map import UpstreamError, error_response_body, log_error, ERROR_MAP
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

SERVICE_UNAVAILABLE = 503

PUBLIC_ERROR = "Service temporarily unavailable"
PUBLIC_MESSAGE = "Failed to connect to NSE. Please try again in a few moments."

# ═══════════════════════════════════════════════════════════
#  EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class UpstreamError(Exception):
    """Base class for every failure talking to the upstream site."""

    kind = "upstream"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RefreshFailure(UpstreamError):
    """Cookie handshake exhausted all attempts."""

    kind = "refresh_failure"


class ForbiddenFetch(UpstreamError):
    """Upstream answered 403; the cached session token was cleared."""

    kind = "forbidden"


class GenericFetchError(UpstreamError):
    """Network error, timeout, bad body or any non-success status other than 403."""

    kind = "fetch_error"


# ═══════════════════════════════════════════════════════════
#  ERROR REGISTRY (log-side detail only)
# ═══════════════════════════════════════════════════════════


@dataclass
class UpstreamErrorInfo:
    kind: str
    constant: str
    severity: str  # 'warning' | 'error'
    dev_message: str
    recovery: str


ERROR_MAP: Dict[str, UpstreamErrorInfo] = {
    RefreshFailure.kind: UpstreamErrorInfo(
        kind=RefreshFailure.kind,
        constant="ERefreshFailed",
        severity="error",
        dev_message="Handshake against the NSE root returned no cookie on every attempt.",
        recovery="Token stays empty; the next request retries the handshake. Check NSE_PROXY_URL / outbound network.",
    ),
    ForbiddenFetch.kind: UpstreamErrorInfo(
        kind=ForbiddenFetch.kind,
        constant="EForbidden",
        severity="warning",
        dev_message="NSE rejected the session cookie (403). Token cleared.",
        recovery="Nothing to do: the next request performs a fresh handshake.",
    ),
    GenericFetchError.kind: UpstreamErrorInfo(
        kind=GenericFetchError.kind,
        constant="EFetchFailed",
        severity="error",
        dev_message="Data fetch failed (network error, timeout or non-success status). Token kept.",
        recovery="Retry later; raise REQUEST_TIMEOUT_MS if timeouts persist.",
    ),
}


# ═══════════════════════════════════════════════════════════
#  HELPERS FOR THE API LAYER
# ═══════════════════════════════════════════════════════════


def error_response_body(message: str = PUBLIC_MESSAGE) -> dict:
    """Caller-facing envelope. Identical for every failure kind."""
    return {"error": PUBLIC_ERROR, "message": message}


def log_error(context: str, error: Any) -> None:
    """Console-friendly log line."""
    info = ERROR_MAP.get(getattr(error, "kind", ""))
    if info:
        status = getattr(error, "status_code", None)
        suffix = f" [HTTP {status}]" if status else ""
        line = f"[{context}] {info.constant}{suffix}: {info.dev_message} ({error})"
        if info.severity == "warning":
            logger.warning(line)
        else:
            logger.error(line)
    else:
        logger.error(f"[{context}] Unexpected error: {str(error)[:200]}")
