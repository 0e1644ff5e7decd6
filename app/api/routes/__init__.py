from __future__ import annotations

from app.api.routes.health import router as health_router
from app.api.routes.security_status import router as security_status_router
from app.api.routes.submit import router as submit_router

__all__ = ["health_router", "security_status_router", "submit_router"]
