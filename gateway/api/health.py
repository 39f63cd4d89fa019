"""Liveness endpoints."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

router = APIRouter()


@router.get("/", response_class=PlainTextResponse)
async def root():
    return "Welcome to the API server"


@router.get("/health")
async def health_check(request: Request):
    """Return service status, current timestamp and store sizes.

    Always ``"healthy"``: stores degrade to empty instead of failing, so the
    sizes are the useful signal for probes.
    """
    state = request.app.state
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "api_keys": len(state.key_store),
        "monitored_endpoints": len(state.monitor_registry),
        "loaded_handlers": len(state.handlers),
    }
