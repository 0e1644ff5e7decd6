"""Abuse tracker interface and value types."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum


class AbuseCategory(str, Enum):
    """Labels for flagged events emitted by middleware and handlers."""

    SUSPICIOUS_REQUEST = "suspicious_request"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    INVALID_FORM_DATA = "invalid_form_data"
    HONEYPOT_TRIGGERED = "honeypot_triggered"
    SUSPICIOUS_USER_AGENT = "suspicious_user_agent"
    SUBMISSION_ERROR = "submission_error"


@dataclass(frozen=True)
class AbuseTrackerStats:
    """Read-only snapshot of tracker state.

    Attributes:
        tracked_entries: Number of (client, category) counters.
        blocked_clients: Number of clients currently denied.
        blocked_client_ids: The denied clients, sorted.
    """

    tracked_entries: int
    blocked_clients: int
    blocked_client_ids: list[str] = field(default_factory=list)


class AbstractAbuseTracker(ABC):
    """Interface for abuse trackers."""

    @abstractmethod
    def record_event(self, client_id: str, category: AbuseCategory | str) -> None:
        """Count one flagged event and block the client once over threshold."""
        raise NotImplementedError

    @abstractmethod
    def is_blocked(self, client_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def unblock(self, client_id: str) -> None:
        """Lift the block and forget every counter recorded for the client."""
        raise NotImplementedError

    @abstractmethod
    def stats(self) -> AbuseTrackerStats:
        raise NotImplementedError
