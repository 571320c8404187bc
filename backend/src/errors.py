"""
Error taxonomy shared by the registry, the store and the wizard agent.

Every error carries the HTTP status it maps to so routers can turn it into the
standard `{error, message, code, details}` body without a lookup table.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error payload returned by the HTTP layer."""

    error: str = Field(..., description="Machine-readable error type")
    message: str = Field(..., description="Human-readable error message")
    code: int = Field(..., description="HTTP status code for this error")
    details: dict[str, Any] | None = Field(default=None, description="Optional structured error details")


class LeiaRunnerError(Exception):
    """Base class for errors raised by this service."""

    status_code = 500
    error = "internal_error"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(error=self.error, message=self.message, code=self.status_code, details=self.details)


class ValidationError(LeiaRunnerError):
    """Malformed caller input."""

    status_code = 400
    error = "bad_request"


class AuthenticationError(LeiaRunnerError):
    """Missing or wrong runner bearer token."""

    status_code = 401
    error = "unauthorized"


class NotFoundError(LeiaRunnerError):
    """Unknown session, provider or component."""

    status_code = 404
    error = "not_found"


class ConflictError(LeiaRunnerError):
    status_code = 409
    error = "conflict"


class ProviderError(LeiaRunnerError):
    """The model backend failed or returned a non-success status."""

    status_code = 502
    error = "provider_error"


class ToolExecutionError(LeiaRunnerError):
    """A tool handler could not build or parse its own I/O."""

    error = "tool_error"


class IterationExhaustedError(LeiaRunnerError):
    status_code = 422
    error = "iteration_exhausted"


class PersistenceError(LeiaRunnerError):
    """The key/value store is unavailable."""

    status_code = 500
    error = "persistence_error"


__all__ = [
    "ErrorResponse",
    "LeiaRunnerError",
    "ValidationError",
    "AuthenticationError",
    "NotFoundError",
    "ConflictError",
    "ProviderError",
    "ToolExecutionError",
    "IterationExhaustedError",
    "PersistenceError",
]
