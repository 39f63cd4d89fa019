from __future__ import annotations

from fastapi import APIRouter, Depends

from gateway.dependencies import get_monitor_registry, require_master_key
from gateway.models.common import MessageResponse
from gateway.models.endpoint import ToggleVisibilityResponse
from gateway.models.monitor import (
    AddMonitorRequest,
    EditMonitorRequest,
    MonitorListResponse,
    MonitorResponse,
)
from gateway.services.monitoring import MonitorRegistry

router = APIRouter(prefix="/api/status-monitoring")
admin_router = APIRouter(
    prefix="/api/admin/status-monitoring",
    dependencies=[Depends(require_master_key)],
)


@router.get("/list", response_model=MonitorListResponse)
async def list_monitors(registry: MonitorRegistry = Depends(get_monitor_registry)):
    """Public status-page feed; hidden monitors are left out."""
    return MonitorListResponse(endpoints=registry.list())


@admin_router.get("/list-all", response_model=MonitorListResponse)
async def list_all_monitors(registry: MonitorRegistry = Depends(get_monitor_registry)):
    return MonitorListResponse(endpoints=registry.list_all())


@admin_router.post("/add", response_model=MonitorResponse, status_code=201)
async def add_monitor(
    body: AddMonitorRequest,
    registry: MonitorRegistry = Depends(get_monitor_registry),
):
    monitor = registry.add(
        name=body.name,
        test_url=body.test_url,
        type=body.type,
        request_body=body.request_body,
    )
    return MonitorResponse(
        message=f"Status endpoint '{monitor.name}' added successfully.",
        endpoint=monitor,
    )


@admin_router.post("/edit/{name}", response_model=MonitorResponse)
async def edit_monitor(
    name: str,
    body: EditMonitorRequest,
    registry: MonitorRegistry = Depends(get_monitor_registry),
):
    monitor = registry.edit(
        name,
        test_url=body.test_url,
        type=body.type,
        request_body=body.request_body,
    )
    return MonitorResponse(message=f"Status endpoint '{name}' updated successfully.", endpoint=monitor)


@admin_router.post("/toggle-visibility/{name}", response_model=ToggleVisibilityResponse)
async def toggle_monitor_visibility(
    name: str,
    registry: MonitorRegistry = Depends(get_monitor_registry),
):
    new_state = registry.toggle_visibility(name)
    return ToggleVisibilityResponse(
        message=f"Status endpoint '{name}' visibility toggled.",
        new_state=new_state,
    )


@admin_router.delete("/delete/{name}", response_model=MessageResponse)
async def delete_monitor(name: str, registry: MonitorRegistry = Depends(get_monitor_registry)):
    registry.delete(name)
    return MessageResponse(message=f"Status endpoint '{name}' deleted successfully.")
