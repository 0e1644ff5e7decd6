"""Rate limiter interfaces and value types.

The admission layer depends on this abstraction (not the concrete
implementation) so the storage backend can be swapped later (e.g., Redis)
with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum


class TrafficClass(str, Enum):
    """Quota profile selector for a request."""

    SENSITIVE = "sensitive"
    GENERAL = "general"


@dataclass(frozen=True)
class RateLimitProfile:
    """Static quota configuration for one traffic class.

    Attributes:
        window_seconds: Length of a client's counting window.
        max_requests: Requests admitted per window.
        block_seconds: Block applied once the quota is exceeded.
        message: Human-readable denial message.
    """

    window_seconds: float
    max_requests: int
    block_seconds: float
    message: str

    def __post_init__(self) -> None:
        if self.window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if self.block_seconds <= 0:
            raise ValueError("block_seconds must be > 0")


@dataclass
class RateWindowEntry:
    """Counting state for one (client, traffic class) pair.

    ``block_expiry`` is set iff ``blocked`` is true.
    """

    count: int
    window_end: float
    blocked: bool = False
    block_expiry: float | None = None


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window for the profile used.
        remaining: Requests left in the current window (0 when denied).
        message: Denial message, None when allowed.
        retry_after_seconds: Seconds until the block lifts, None when allowed.
    """

    allowed: bool
    limit: int
    remaining: int
    message: str | None = None
    retry_after_seconds: int | None = None


@dataclass(frozen=True)
class RateLimiterStats:
    """Read-only snapshot of limiter state."""

    tracked_entries: int
    blocked_clients: int
    blocked_client_ids: list[str] = field(default_factory=list)


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def check(self, client_id: str, traffic_class: TrafficClass) -> RateLimitDecision:
        """Count one request for ``client_id`` and decide whether to admit it.

        Args:
            client_id: Resolved client identifier (any string, including "unknown").
            traffic_class: Profile selector for the request.

        Returns:
            RateLimitDecision describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def manually_block(self, client_id: str, duration_seconds: float) -> None:
        """Block every traffic class of a client for ``duration_seconds``.

        A non-positive duration blocks nothing.
        """
        raise NotImplementedError

    @abstractmethod
    def unblock(self, client_id: str) -> None:
        """Lift any block on a client without touching its counting windows."""
        raise NotImplementedError

    @abstractmethod
    def cleanup(self) -> int:
        """Drop stale, unblocked entries and return how many were removed."""
        raise NotImplementedError

    @abstractmethod
    def stats(self) -> RateLimiterStats:
        """Return a snapshot of tracked entries and blocked clients."""
        raise NotImplementedError
