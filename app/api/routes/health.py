from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe for load balancers and uptime monitors.

    Exempt from admission control, so probes never consume a client quota.

    Returns:
        dict: ``{"status": "ok"}``.
    """

    return {"status": "ok"}
