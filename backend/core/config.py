#!/usr/bin/env python3
"""
config.py - Runtime settings for the NSE proxy.

All values come from the environment (a local .env is loaded first when
present). Durations are given in milliseconds and exposed in seconds.

Usage:
    from core.config import load_settings
    settings = load_settings()
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

# ═══════════════════════════════════════════════════════════
#  UPSTREAM DEFAULTS
# ═══════════════════════════════════════════════════════════

NSE_BASE_URL = "https://www.nseindia.com"

# NSE rejects requests that don't look like a browser
NSE_HEADERS: Dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
    "Referer": NSE_BASE_URL,
    "Connection": "keep-alive",
}

DEFAULT_ORIGINS = "http://localhost:3000,https://st-backend-8j0f.onrender.com"
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def _getenv_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _getenv_ms(name: str, default_ms: int) -> float:
    value = _getenv_int(name, default_ms)
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
    return value / 1000.0


@dataclass(frozen=True)
class Settings:
    # server
    host: str = "0.0.0.0"
    port: int = 5000
    allowed_origins: List[str] = field(default_factory=lambda: DEFAULT_ORIGINS.split(","))
    log_level: str = "INFO"

    # upstream
    base_url: str = NSE_BASE_URL
    proxy_url: Optional[str] = None

    # throttle / handshake / timeouts (seconds)
    min_request_interval: float = 1.0
    cookie_retries: int = 3
    cookie_backoff: float = 1.0
    handshake_timeout: float = 5.0
    request_timeout: float = 10.0


def load_settings(env_file: Optional[Path] = None) -> Settings:
    env_path = env_file or Path(__file__).resolve().parent.parent / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path)
    else:
        load_dotenv()

    origins = [
        origin.strip()
        for origin in os.getenv("ALLOWED_ORIGINS", DEFAULT_ORIGINS).split(",")
        if origin.strip()
    ]

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    if log_level not in LOG_LEVELS:
        raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {log_level!r}")

    cookie_retries = _getenv_int("COOKIE_RETRIES", 3)
    if cookie_retries < 1:
        raise ValueError(f"COOKIE_RETRIES must be >= 1, got {cookie_retries}")

    return Settings(
        host=os.getenv("HOST", "0.0.0.0").strip(),
        port=_getenv_int("PORT", 5000),
        allowed_origins=origins,
        log_level=log_level,
        base_url=os.getenv("NSE_BASE_URL", NSE_BASE_URL).strip().rstrip("/"),
        proxy_url=os.getenv("NSE_PROXY_URL", "").strip() or None,
        min_request_interval=_getenv_ms("MIN_REQUEST_INTERVAL_MS", 1000),
        cookie_retries=cookie_retries,
        cookie_backoff=_getenv_ms("COOKIE_BACKOFF_MS", 1000),
        handshake_timeout=_getenv_ms("HANDSHAKE_TIMEOUT_MS", 5000),
        request_timeout=_getenv_ms("REQUEST_TIMEOUT_MS", 10000),
    )
