from __future__ import annotations

import ipaddress
import logging
from dataclasses import dataclass

from fastapi import Depends, Header, Request

from gateway.errors import AuthenticationError, AuthorizationError, RateLimitError
from gateway.services.api_key import KeyStore
from gateway.services.endpoints import EndpointRegistry
from gateway.services.metrics import MetricsCollector
from gateway.services.monitoring import MonitorRegistry
from gateway.services.rate_limit import RateLimiter

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Component accessors (instances live on app.state, see gateway.main)
# ---------------------------------------------------------------------------


def get_key_store(request: Request) -> KeyStore:
    return request.app.state.key_store


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_metrics(request: Request) -> MetricsCollector:
    return request.app.state.metrics


def get_endpoint_registry(request: Request) -> EndpointRegistry:
    return request.app.state.endpoint_registry


def get_monitor_registry(request: Request) -> MonitorRegistry:
    return request.app.state.monitor_registry


# ---------------------------------------------------------------------------
# Client identity
# ---------------------------------------------------------------------------


def _is_trusted_proxy(addr: str, trusted: list[str]) -> bool:
    """Check if *addr* matches any entry in the trusted proxy list.

    Each entry can be an individual IP or a CIDR network (e.g. "10.0.0.0/8").
    """
    try:
        ip = ipaddress.ip_address(addr)
    except ValueError:
        return False

    for entry in trusted:
        try:
            if "/" in entry:
                if ip in ipaddress.ip_network(entry, strict=False):
                    return True
            else:
                if ip == ipaddress.ip_address(entry):
                    return True
        except ValueError:
            logger.warning("Invalid trusted proxy entry: %s", entry)
    return False


def resolve_client_ip(request: Request) -> str:
    """Determine the real client IP, respecting trusted proxy configuration.

    * No trusted proxies configured → always use ``request.client.host``.
    * Request from a trusted proxy → use the first IP in X-Forwarded-For.
    * Request from an untrusted source → use ``request.client.host``.
    """
    direct_ip = request.client.host if request.client else "unknown"
    trusted = request.app.state.settings.trusted_proxies_list

    if not trusted:
        return direct_ip

    if not _is_trusted_proxy(direct_ip, trusted):
        return direct_ip

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    return direct_ip


def get_client_ip(request: Request) -> str:
    """FastAPI dependency: return the resolved client IP."""
    return resolve_client_ip(request)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


def _credential(authorization: str | None) -> str | None:
    """Return the token after the scheme in an ``Authorization`` header."""
    if not authorization:
        return None
    parts = authorization.split()
    return parts[1] if len(parts) > 1 else None


@dataclass(frozen=True)
class Caller:
    api_key: str
    privileged: bool


async def require_api_key(
    authorization: str | None = Header(None),
    store: KeyStore = Depends(get_key_store),
) -> Caller:
    """Admit issued keys and privileged keys, recording usage of issued ones.

    Raises:
        AuthenticationError: No credential supplied.
        AuthorizationError: Credential is neither issued nor privileged.
    """
    api_key = _credential(authorization)
    if not api_key:
        raise AuthenticationError("Authentication failed: API Key is missing.")

    privileged = store.is_privileged(api_key)
    if store.record_usage(api_key) is None and not privileged:
        raise AuthorizationError("Authentication failed: Invalid API Key.")

    return Caller(api_key=api_key, privileged=privileged)


async def require_master_key(
    request: Request,
    authorization: str | None = Header(None),
) -> str:
    """Gate for the admin surface: only the master key is accepted."""
    api_key = _credential(authorization)
    if not api_key:
        raise AuthenticationError("Authentication failed: API Key is missing.")
    if api_key != request.app.state.settings.MASTER_API_KEY:
        raise AuthorizationError("Forbidden: Invalid master API key.")
    return api_key


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------


async def enforce_rate_limit(
    request: Request,
    caller: Caller = Depends(require_api_key),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> None:
    """Count the request against the caller's IP unless the key is privileged.

    The decision is left on ``request.state.rate_limit`` so the handler route
    can attach the ``RateLimit-*`` headers.
    """
    if caller.privileged:
        return

    decision = limiter.hit(resolve_client_ip(request))
    if not decision.allowed:
        raise RateLimitError(limiter.message, retry_after=decision.reset_after, headers=decision.headers)
    request.state.rate_limit = decision
