"""Factory for the submission relay."""

from app.adapters.relay.base import AbstractSubmissionRelay
from app.adapters.relay.http_form_relay import HttpFormRelay
from app.core.config import AppSettings, settings


def create_submission_relay(app_settings: AppSettings | None = None) -> AbstractSubmissionRelay | None:
    """Build the relay from settings.

    Returns None when no relay URL is configured; the submission service then
    answers with a configuration error instead of failing at startup, so the
    rest of the API (health, admin) stays usable.
    """
    cfg = app_settings or settings.app
    if not cfg.relay_url:
        return None

    return HttpFormRelay(
        cfg.relay_url,
        timeout_seconds=cfg.relay_timeout_seconds,
        user_agent=cfg.relay_user_agent,
    )
