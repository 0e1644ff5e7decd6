"""Bearer-token authentication for the administrative surface.

The security-status endpoints expose client identifiers and can lift or
impose blocks, so they require ``Authorization: Bearer <token>`` matching
``APP_SECURITY_STATUS_TOKEN``. When no token is configured, every request
is refused: the admin surface fails closed.
"""

from __future__ import annotations

import logging
import secrets
from typing import Annotated

from fastapi import Header

from app.core.config import settings
from app.core.errors import AuthenticationAppError

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def parse_bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an Authorization header value.

    Examples:
        >>> parse_bearer_token("Bearer abc123")
        'abc123'
        >>> parse_bearer_token("Basic abc123") is None
        True
        >>> parse_bearer_token(None) is None
        True
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    return authorization[len(BEARER_PREFIX):].strip() or None


def validate_admin_token(provided_token: str) -> None:
    """Compare a presented token against the configured admin token.

    Raises:
        AuthenticationAppError: If no token is configured or the token differs.
    """
    expected = settings.app.security_status_token
    if not expected:
        logger.error(
            "admin_auth_failed",
            extra={"reason": "token_not_configured"},
        )
        raise AuthenticationAppError(
            code="invalid_token",
            message="Invalid token",
            details={"hint": "Set APP_SECURITY_STATUS_TOKEN to enable the admin endpoint"},
        )

    if not secrets.compare_digest(provided_token.encode(), expected.encode()):
        logger.warning(
            "admin_auth_failed",
            extra={"reason": "invalid_token", "token_length": len(provided_token)},
        )
        raise AuthenticationAppError(code="invalid_token", message="Invalid token")


async def verify_admin_token(
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    """FastAPI dependency guarding the administrative endpoints.

    Usage:
        @router.get("/security-status", dependencies=[Depends(verify_admin_token)])

    Raises:
        AuthenticationAppError: 401 when the header is missing, malformed or wrong.
    """
    token = parse_bearer_token(authorization)
    if token is None:
        logger.warning("admin_auth_failed", extra={"reason": "missing_bearer"})
        raise AuthenticationAppError(code="unauthorized", message="Unauthorized")

    validate_admin_token(token)
    logger.info("admin_auth.success")
