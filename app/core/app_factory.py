"""Application factory for the FastAPI app.

Builds the app together with the state it owns (admission control, submission
service), so every app instance, including each one created in tests,
starts from a clean slate.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.adapters.relay.base import AbstractSubmissionRelay
from app.adapters.relay.factory import create_submission_relay
from app.api.routes import health_router, security_status_router, submit_router
from app.core.admission import (
    AdmissionControl,
    admission_middleware,
    create_admission_control,
    run_cleanup_sweep,
)
from app.core.config import Settings, settings as default_settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware, security_headers_middleware
from app.core.openapi import apply_openapi_customizations
from app.services.submission_service import SubmissionService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    interval = app.state.settings.admission.cleanup_interval_seconds
    sweep: asyncio.Task | None = None
    if interval > 0:
        sweep = asyncio.create_task(run_cleanup_sweep(app.state.admission, interval))
        logger.info("admission.cleanup_sweep_started", extra={"interval_s": interval})
    try:
        yield
    finally:
        if sweep is not None:
            sweep.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweep


def create_app(
    *,
    app_settings: Settings | None = None,
    admission: AdmissionControl | None = None,
    relay: AbstractSubmissionRelay | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to use; defaults to the environment-loaded ones.
        admission: Pre-built admission state (tests inject fake clocks here).
        relay: Submission relay; defaults to one built from ``APP_RELAY_URL``.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    cfg = app_settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    app = FastAPI(
        title="Application Intake API",
        description=(
            "Accepts membership applications and relays them to a spreadsheet. "
            "Every request passes admission control: a per-client fixed-window "
            "rate limiter with temporary blocks, and an abuse tracker that "
            "blocks clients with repeated suspicious activity."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=_lifespan,
    )

    app.state.settings = cfg
    app.state.admission = admission or create_admission_control(cfg.admission)
    app.state.submission_service = SubmissionService(
        relay=relay or create_submission_relay(cfg.app),
        abuse_tracker=app.state.admission.abuse_tracker,
    )

    # Middleware: the last one registered runs first
    app.middleware("http")(admission_middleware)
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(submit_router)
    app.include_router(security_status_router)
    app.include_router(health_router)

    # OpenAPI customizations (security scheme, tags)
    apply_openapi_customizations(app)

    return app
