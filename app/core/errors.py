"""Application-level exception types.

Request handlers raise these; the global handlers in
``app.core.exception_handlers`` turn them into the JSON error envelope.
The admission-control core itself never raises: throttling and abuse
blocks are ordinary outcomes, not errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context returned to clients and logged."""

    errors: list[str]
    hint: str
    content_type: str
    timeout_seconds: float
    upstream_status: int
    action: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when request input fails validation."""


class AuthenticationAppError(AppError):
    """Raised when the admin bearer token is missing or wrong."""


class SpamDetectedAppError(AppError):
    """Raised when a submission trips the honeypot."""


class ConfigurationAppError(AppError):
    """Raised when a required setting is missing at request time."""


class RelayAppError(AppError):
    """Raised when forwarding a submission to the spreadsheet endpoint fails."""


class RelayTimeoutAppError(RelayAppError):
    """Raised when the spreadsheet endpoint does not answer in time."""
