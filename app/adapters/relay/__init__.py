"""Submission relay adapters - forward accepted submissions to external stores."""

from app.adapters.relay.base import AbstractSubmissionRelay
from app.adapters.relay.factory import create_submission_relay
from app.adapters.relay.http_form_relay import HttpFormRelay

__all__ = [
    "AbstractSubmissionRelay",
    "HttpFormRelay",
    "create_submission_relay",
]
