from __future__ import annotations

from fastapi import APIRouter, Depends

from gateway.dependencies import Caller, get_client_ip, get_key_store, get_metrics, require_api_key
from gateway.models.api_key import NewApiKeyResponse
from gateway.models.metrics import MetricsResponse
from gateway.services.api_key import KeyStore
from gateway.services.metrics import MetricsCollector

router = APIRouter(prefix="/api")


@router.get("/get-new-api-key", response_model=NewApiKeyResponse)
async def get_new_api_key(
    client_ip: str = Depends(get_client_ip),
    store: KeyStore = Depends(get_key_store),
):
    """Issue a key for the caller's IP, or return the one already issued."""
    record, created = store.lookup_or_create(client_ip)
    if created:
        message = "Your new API Key has been generated."
    else:
        message = "Your existing API Key has been retrieved."
    return NewApiKeyResponse(api_key=record.api_key, message=message)


@router.get("/server-metrics", response_model=MetricsResponse)
async def server_metrics(
    caller: Caller = Depends(require_api_key),
    metrics: MetricsCollector = Depends(get_metrics),
):
    return MetricsResponse(metrics=metrics.snapshot())
