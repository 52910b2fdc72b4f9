"""Typed errors and the uniform {success, data|error} envelope.

Each error carries the HTTP status a route layer maps it to:
- ValidationError: 400, missing or malformed input
- NotFoundError: 404, unknown id/slug/provider/setting
- DuplicateProviderError: 409, provider name already registered
- NoActiveProviderError: 400, dispatch with no active provider
- AuthenticationError: 401, bad or missing admin token
- UpstreamServiceError: 502, AI/image/email API failure
"""

from __future__ import annotations

from typing import Any


class EngineError(Exception):
    """Base class for errors surfaced to callers."""
    status_code = 500

    def to_envelope(self) -> dict:
        return error_envelope(self)


class ValidationError(EngineError):
    status_code = 400


class NotFoundError(EngineError):
    status_code = 404


class DuplicateProviderError(EngineError):
    status_code = 409


class NoActiveProviderError(EngineError):
    status_code = 400

    def __init__(self, message: str = "No active email provider configured"):
        super().__init__(message)


class AuthenticationError(EngineError):
    status_code = 401


class UpstreamServiceError(EngineError):
    status_code = 502


def success_envelope(data: Any = None) -> dict:
    """Wrap a successful result."""
    return {"success": True, "data": data}


def error_envelope(error: Exception | str) -> dict:
    """Wrap a failure. Accepts an exception or a plain message."""
    return {"success": False, "error": str(error)}
