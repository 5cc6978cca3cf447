#!/usr/bin/env python3
"""
FastAPI proxy for NSE India market data.

Endpoints:
    GET /api/nifty50         - NIFTY 50 index snapshot (upstream JSON, verbatim)
    GET /api/stock/{symbol}  - {"quote": ..., "tradeInfo": ...} for one equity
    GET /health              - health check (no upstream call)
    GET /                    - hello / deployment smoke check

Every upstream failure becomes a 503 {"error", "message"} envelope.

Start:
    uvicorn api:app --reload --port 5000
    python api.py
"""

import logging
import time
from typing import Any, Optional

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from core.config import Settings, load_settings
from core.error_map import SERVICE_UNAVAILABLE, UpstreamError, error_response_body, log_error
from nse.client import NSEClient

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("api")

SERVICE_NAME = "NSE Quote Proxy"


# ── Models ───────────────────────────────────────────


class ErrorEnvelope(BaseModel):
    error: str
    message: str


class EquityResponse(BaseModel):
    quote: Any
    tradeInfo: Any


class HealthResponse(BaseModel):
    status: str
    service: str
    session: bool
    timestamp: float


UNAVAILABLE = {SERVICE_UNAVAILABLE: {"model": ErrorEnvelope, "description": "NSE unreachable"}}


# ── Dependencies ─────────────────────────────────────


def get_nse(request: Request) -> NSEClient:
    return request.app.state.nse


async def require_session(nse: NSEClient = Depends(get_nse)) -> NSEClient:
    """Refresh the NSE cookie when none is cached. RefreshFailure -> 503."""
    await nse.ensure_session()
    return nse


# ── App ──────────────────────────────────────────────


def create_app(settings: Optional[Settings] = None, nse: Optional[NSEClient] = None) -> FastAPI:
    settings = settings or load_settings()
    # .env is only read by load_settings, after basicConfig ran
    logging.getLogger().setLevel(settings.log_level)

    app = FastAPI(
        title=SERVICE_NAME,
        description="Cookie-managed, rate-limited proxy for NSE India index and equity quotes",
        version="1.0.0",
    )
    app.state.settings = settings
    app.state.nse = nse or NSEClient(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.exception_handler(UpstreamError)
    async def upstream_error_handler(request: Request, exc: UpstreamError):
        log_error(request.url.path, exc)
        return JSONResponse(status_code=SERVICE_UNAVAILABLE, content=error_response_body())

    @app.get("/")
    async def root():
        return {"message": "Hello from NSE proxy"}

    @app.get("/health", response_model=HealthResponse)
    async def health(nse: NSEClient = Depends(get_nse)):
        return HealthResponse(
            status="ok",
            service=SERVICE_NAME,
            session=nse.session.has_session,
            timestamp=time.time(),
        )

    @app.get("/api/nifty50", responses=UNAVAILABLE)
    async def nifty50(nse: NSEClient = Depends(require_session)):
        """NIFTY 50 constituents and index values, passed through unchanged."""
        data = await nse.fetch_index("NIFTY 50")
        logger.info("NIFTY 50 snapshot served")
        return data

    @app.get("/api/stock/{symbol}", response_model=EquityResponse, responses=UNAVAILABLE)
    async def stock(symbol: str, nse: NSEClient = Depends(require_session)):
        """Quote plus trade info (volume, delivery) for one NSE equity symbol."""
        data = await nse.fetch_equity(symbol)
        logger.info(f"Stock details served for {symbol}")
        return data

    @app.on_event("startup")
    async def startup():
        logger.info(f" {SERVICE_NAME} starting...")
        logger.info(f"   upstream {settings.base_url} (min interval {settings.min_request_interval:.3f}s)")
        logger.info("   GET  /api/nifty50        - NIFTY 50 snapshot")
        logger.info("   GET  /api/stock/{symbol} - quote + trade info")
        logger.info("   GET  /health             - health check")

    @app.on_event("shutdown")
    async def shutdown():
        await app.state.nse.close()

    return app


app = create_app()


def main():
    settings = app.state.settings
    logger.info(f"Proxy server running on port {settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
