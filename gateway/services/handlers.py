"""Startup loading of endpoint handler modules.

Every ``<slug>.py`` in the routes directory must define ``handle(request)``,
sync or async, returning a Starlette ``Response`` or anything JSON
serializable. The HTTP method comes from the sibling ``<slug>.json``
definition (``GET`` when it is missing or unreadable).

Loading happens once. A module that fails to import or has no ``handle`` is
logged and skipped; the other handlers still register.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Any, Callable

from fastapi import APIRouter, Request
from fastapi.encoders import jsonable_encoder
from fastapi.params import Depends
from starlette.concurrency import run_in_threadpool
from starlette.responses import JSONResponse, Response

from gateway.db import files
from gateway.services.endpoints import DEFINITION_SUFFIX, HANDLER_SUFFIX

logger = logging.getLogger(__name__)


@dataclass
class LoadedHandler:
    slug: str
    method: str
    handle: Callable[[Request], Any]


def _load_module(slug: str, path: Path) -> ModuleType:
    module_name = f"gateway_handlers.{slug.replace('-', '_')}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot build an import spec for {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _definition_method(definition_path: Path) -> str:
    try:
        definition = files.read_json(definition_path)
        return str(definition.get("method") or "GET").upper()
    except (OSError, ValueError, AttributeError):
        return "GET"


def load_handlers(routes_dir: Path) -> list[LoadedHandler]:
    """Import every handler module in *routes_dir*."""
    routes_dir = Path(routes_dir)
    if not routes_dir.is_dir():
        logger.warning("Routes directory %s does not exist; no handlers loaded", routes_dir)
        return []

    loaded = []
    for path in sorted(routes_dir.glob(f"*{HANDLER_SUFFIX}")):
        slug = path.stem
        try:
            module = _load_module(slug, path)
        except Exception:
            logger.exception("Failed to load handler %s", slug)
            continue

        handle = getattr(module, "handle", None)
        if not callable(handle):
            logger.error("Handler %s does not define handle(request); skipped", slug)
            continue

        method = _definition_method(routes_dir / f"{slug}{DEFINITION_SUFFIX}")
        loaded.append(LoadedHandler(slug=slug, method=method, handle=handle))
        logger.info("Loaded route: %s /api/%s", method, slug)
    return loaded


def _make_endpoint(handler: LoadedHandler):
    async def endpoint(request: Request) -> Response:
        if inspect.iscoroutinefunction(handler.handle):
            result = await handler.handle(request)
        else:
            result = await run_in_threadpool(handler.handle, request)

        if isinstance(result, Response):
            response = result
        else:
            response = JSONResponse(jsonable_encoder(result))

        decision = getattr(request.state, "rate_limit", None)
        if decision is not None:
            response.headers.update(decision.headers)
        return response

    endpoint.__name__ = f"handle_{handler.slug.replace('-', '_')}"
    return endpoint


def build_handler_router(handlers: list[LoadedHandler], dependencies: list[Depends]) -> APIRouter:
    """Mount each handler at ``/api/<slug>`` behind *dependencies*."""
    router = APIRouter(tags=["endpoints"])
    for handler in handlers:
        router.add_api_route(
            f"/api/{handler.slug}",
            _make_endpoint(handler),
            methods=[handler.method],
            dependencies=dependencies,
        )
    return router
