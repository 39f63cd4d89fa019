"""FastAPI application entry point.

Creates the app, loads the file-backed stores, configures middleware, mounts
static files, and wires up the built-in routers plus one route per handler
module found in the routes directory.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from gateway.api import endpoints, health, keys, monitoring
from gateway.config import DEFAULT_MASTER_API_KEY, Settings, settings as default_settings
from gateway.dependencies import enforce_rate_limit, require_api_key
from gateway.errors import GatewayError
from gateway.middleware.metrics import MetricsMiddleware
from gateway.services.api_key import KeyStore
from gateway.services.endpoints import EndpointRegistry
from gateway.services.handlers import build_handler_router, load_handlers
from gateway.services.metrics import MetricsCollector, endpoint_name
from gateway.services.monitoring import MonitorRegistry
from gateway.services.rate_limit import RateLimiter

logger = logging.getLogger(__name__)


def _validate_master_key(settings: Settings) -> None:
    """Validate the master API key at startup.

    Raises RuntimeError in production (DEBUG=False) if the key is still the
    default value, empty, or shorter than 16 characters.
    """
    key = settings.MASTER_API_KEY
    is_default = key == DEFAULT_MASTER_API_KEY

    if is_default and settings.DEBUG:
        logger.warning(
            "MASTER_API_KEY is set to the default value; acceptable for development only"
        )
        return

    if is_default:
        raise RuntimeError(
            "MASTER_API_KEY is still the default value. "
            "Set a strong, unique key before running in production."
        )

    if not key or len(key) < 16:
        raise RuntimeError("MASTER_API_KEY must be at least 16 characters long.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown lifecycle."""
    settings = app.state.settings
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    _validate_master_key(settings)
    logger.info(
        "Serving %d handler route(s), %d API key(s), %d monitored endpoint(s)",
        len(app.state.handlers),
        len(app.state.key_store),
        len(app.state.monitor_registry),
    )
    yield


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
        headers=exc.headers or None,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted({".".join(str(p) for p in err["loc"][1:]) or "body" for err in exc.errors()})
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": f"Invalid or missing fields: {', '.join(fields)}."},
    )


def builtin_slugs(routers) -> set[str]:
    """Names under ``/api/`` already taken by the given routers' own routes."""
    slugs = set()
    for router in routers:
        for route in router.routes:
            name = endpoint_name(route.path)
            if name:
                slugs.add(name)
    return slugs


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.settings = settings

    # -----------------------------------------------------------------------
    # Stores (loaded once; handler code is not reloaded until restart)
    # -----------------------------------------------------------------------
    key_store = KeyStore(
        settings.api_keys_path,
        privileged_keys=settings.privileged_keys,
        prefix=settings.API_KEY_PREFIX,
    )
    key_store.load()
    monitor_registry = MonitorRegistry(settings.monitored_endpoints_path)
    monitor_registry.load()

    app.state.key_store = key_store
    app.state.monitor_registry = monitor_registry
    app.state.rate_limiter = RateLimiter(
        max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    )
    app.state.metrics = MetricsCollector(
        settings.THROUGHPUT_WINDOW_SECONDS,
        max_endpoints=settings.METRICS_MAX_ENDPOINTS,
    )

    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # -----------------------------------------------------------------------
    # Middleware (order matters: outermost middleware runs first)
    # -----------------------------------------------------------------------
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------------------------------------------------------
    # Static files
    # -----------------------------------------------------------------------
    if os.path.isdir(settings.STATIC_DIR):
        app.mount("/static", StaticFiles(directory=settings.STATIC_DIR), name="static")

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------
    builtin_routers = [
        (health.router, "health"),
        (keys.router, "api-keys"),
        (endpoints.router, "endpoints"),
        (endpoints.admin_router, "admin"),
        (monitoring.router, "status-monitoring"),
        (monitoring.admin_router, "admin"),
    ]
    for router, tag in builtin_routers:
        app.include_router(router, tags=[tag])

    reserved = builtin_slugs(router for router, _ in builtin_routers)
    app.state.endpoint_registry = EndpointRegistry(settings.routes_dir, reserved_names=reserved)

    handlers = []
    for handler in load_handlers(settings.routes_dir):
        if handler.slug in reserved:
            logger.warning("Handler %s collides with a built-in route; skipped", handler.slug)
            continue
        handlers.append(handler)
    app.state.handlers = handlers
    app.include_router(
        build_handler_router(
            handlers,
            dependencies=[Depends(require_api_key), Depends(enforce_rate_limit)],
        )
    )

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve ``app`` with uvicorn on HOST:PORT."""
    import uvicorn

    uvicorn.run(app, host=default_settings.HOST, port=default_settings.PORT)
