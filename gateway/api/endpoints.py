from __future__ import annotations

from fastapi import APIRouter, Depends

from gateway.dependencies import get_endpoint_registry, require_master_key
from gateway.models.common import MessageResponse
from gateway.models.endpoint import (
    AddEndpointRequest,
    ConfigResponse,
    EndpointListResponse,
    SaveJsonRequest,
    SaveScriptRequest,
    ScriptResponse,
    ToggleVisibilityResponse,
)
from gateway.services.endpoints import EndpointRegistry

RESTART_NOTICE = "Please restart the server to activate the change."

router = APIRouter(prefix="/api")
admin_router = APIRouter(prefix="/api/admin", dependencies=[Depends(require_master_key)])


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------


@router.get("/list-endpoints", response_model=EndpointListResponse, response_model_exclude_none=True)
async def list_endpoints(registry: EndpointRegistry = Depends(get_endpoint_registry)):
    """List registered endpoints with their hidden flag."""
    return EndpointListResponse(endpoints=registry.list())


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@admin_router.post("/toggle-visibility/{name}", response_model=ToggleVisibilityResponse)
async def toggle_visibility(name: str, registry: EndpointRegistry = Depends(get_endpoint_registry)):
    new_state = registry.toggle_visibility(name)
    return ToggleVisibilityResponse(
        message=f"Visibility for '{name}' updated.",
        new_state=new_state,
    )


@admin_router.post("/add-endpoint", response_model=MessageResponse, status_code=201)
async def add_endpoint(
    body: AddEndpointRequest,
    registry: EndpointRegistry = Depends(get_endpoint_registry),
):
    """Write a definition and a stub handler. Active after a restart."""
    slug = registry.create(
        name=body.name,
        title=body.title,
        method=body.method,
        path=body.path,
        description=body.description,
        parameters=body.parameters,
        curl=body.curl,
        response=body.response,
    )
    return MessageResponse(message=f"Endpoint '{slug}' created successfully. {RESTART_NOTICE}")


@admin_router.delete("/delete-endpoint/{name}", response_model=MessageResponse)
async def delete_endpoint(name: str, registry: EndpointRegistry = Depends(get_endpoint_registry)):
    slug = registry.delete(name)
    return MessageResponse(message=f"Endpoint '{slug}' deleted successfully. {RESTART_NOTICE}")


@admin_router.get("/get-script/{name}", response_model=ScriptResponse)
async def get_script(name: str, registry: EndpointRegistry = Depends(get_endpoint_registry)):
    return ScriptResponse(script=registry.get_script(name))


@admin_router.post("/save-script/{name}", response_model=MessageResponse)
async def save_script(
    name: str,
    body: SaveScriptRequest,
    registry: EndpointRegistry = Depends(get_endpoint_registry),
):
    slug = registry.save_script(name, body.script_content)
    return MessageResponse(message=f"Script for '{slug}' saved. {RESTART_NOTICE}")


@admin_router.get("/get-json/{name}", response_model=ConfigResponse)
async def get_json(name: str, registry: EndpointRegistry = Depends(get_endpoint_registry)):
    return ConfigResponse(config=registry.get_config(name))


@admin_router.post("/save-json/{name}", response_model=MessageResponse)
async def save_json(
    name: str,
    body: SaveJsonRequest,
    registry: EndpointRegistry = Depends(get_endpoint_registry),
):
    slug = registry.save_config(name, body.json_content)
    return MessageResponse(message=f"Config for '{slug}' saved successfully. {RESTART_NOTICE}")
