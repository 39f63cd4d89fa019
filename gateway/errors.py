"""Typed exception hierarchy for gateway errors.

Services raise these; a single exception handler in ``gateway.main`` renders
them as ``{"success": false, "message": ...}`` with the matching status code.
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base exception for all gateway errors."""

    status_code = 500

    def __init__(self, message: str, headers: dict | None = None):
        self.message = message
        self.headers = headers or {}
        super().__init__(message)


class ValidationError(GatewayError):
    """Missing field, malformed JSON payload, or a name that normalizes to nothing."""

    status_code = 400


class AuthenticationError(GatewayError):
    """Missing credential."""

    status_code = 401


class AuthorizationError(GatewayError):
    """Credential present but not accepted."""

    status_code = 403


class NotFoundError(GatewayError):
    """Unknown slug, monitor name, or handler script."""

    status_code = 404


class ConflictError(GatewayError):
    """Duplicate slug or monitor name."""

    status_code = 409


class RateLimitError(GatewayError):
    """Per-identity quota exhausted for the current window."""

    status_code = 429

    def __init__(self, message: str, retry_after: int, headers: dict | None = None):
        self.retry_after = retry_after
        merged = {"Retry-After": str(retry_after)}
        merged.update(headers or {})
        super().__init__(message, headers=merged)


class PersistenceError(GatewayError):
    """Read, write, or parse failure on a store file."""

    status_code = 500
