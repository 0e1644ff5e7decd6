from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from app.core.admission import AdmissionControl, get_admission_control, get_app_settings
from app.core.auth import verify_admin_token
from app.core.config import Settings
from app.core.errors import ValidationAppError
from app.schemas.security import (
    SecurityActionRequest,
    SecurityActionResponse,
    SecurityStatusResponse,
)

router = APIRouter(
    prefix="/api",
    tags=["Security"],
    dependencies=[Depends(verify_admin_token)],
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@router.get("/security-status", response_model=SecurityStatusResponse)
def get_security_status(
    admission: AdmissionControl = Depends(get_admission_control),
) -> SecurityStatusResponse:
    """Return a read-only snapshot of rate limiter and abuse tracker state."""

    snapshot = admission.stats()
    return SecurityStatusResponse(
        timestamp=_now(),
        rate_limiter=snapshot["rate_limiter"],
        abuse_tracker=snapshot["abuse_tracker"],
        status="operational",
    )


@router.post("/security-status", response_model=SecurityActionResponse)
def apply_security_action(
    body: SecurityActionRequest,
    admission: AdmissionControl = Depends(get_admission_control),
    app_settings: Settings = Depends(get_app_settings),
) -> SecurityActionResponse:
    """Apply an administrative action.

    Actions:
        unblock: lift rate-limit and abuse blocks and clear abuse counters.
        block: block the client on every traffic class.
        cleanup: drop stale rate-limit entries.

    Raises:
        ValidationAppError: 400 for unknown actions or a missing ``ip``.
    """
    if body.action == "unblock" and body.ip:
        admission.unblock(body.ip)
        return SecurityActionResponse(
            success=True,
            message=f"IP {body.ip} has been unblocked",
            timestamp=_now(),
        )

    if body.action == "block" and body.ip:
        duration = body.duration_seconds or app_settings.admission.manual_block_seconds
        admission.rate_limiter.manually_block(body.ip, duration)
        return SecurityActionResponse(
            success=True,
            message=f"IP {body.ip} has been blocked",
            timestamp=_now(),
        )

    if body.action == "cleanup":
        removed = admission.rate_limiter.cleanup()
        return SecurityActionResponse(
            success=True,
            message="Cleanup completed",
            timestamp=_now(),
            removed_entries=removed,
        )

    raise ValidationAppError(
        code="invalid_action",
        message="Invalid action",
        details={"action": body.action},
    )
