"""In-memory abuse tracker.

Counters are monotonic: they only go away through ``unblock``. A client is
blocked on the first event that pushes any single category count strictly
above the threshold, so ``threshold`` events are tolerated and the next one
blocks.

Blocks are permanent until an administrator lifts them, unless
``block_seconds`` is configured, in which case they lapse lazily on the next
``is_blocked`` call. Counters survive a lapsed block, so a client still over
threshold is blocked again by its next flagged event.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from app.adapters.abuse.base import AbstractAbuseTracker, AbuseCategory, AbuseTrackerStats
from app.core.logging import hash_client_id

logger = logging.getLogger(__name__)


class InMemoryAbuseTracker(AbstractAbuseTracker):
    """Thread-safe per-(client, category) event counter with a block set."""

    def __init__(
        self,
        *,
        threshold: int = 5,
        block_seconds: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the tracker.

        Args:
            threshold: Events per category tolerated before blocking.
            block_seconds: Block lifetime; None keeps blocks until ``unblock``.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If threshold or block_seconds are invalid.
        """
        if threshold < 0:
            raise ValueError("threshold must be >= 0")
        if block_seconds is not None and block_seconds <= 0:
            raise ValueError("block_seconds must be > 0 when set")

        self._threshold = threshold
        self._block_seconds = block_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._counts: dict[tuple[str, str], int] = {}
        # client_id -> expiry (None means until unblocked)
        self._blocked: dict[str, float | None] = {}

    @property
    def threshold(self) -> int:
        return self._threshold

    def _is_block_active(self, client_id: str, now: float) -> bool:
        if client_id not in self._blocked:
            return False
        expiry = self._blocked[client_id]
        return expiry is None or now < expiry

    def record_event(self, client_id: str, category: AbuseCategory | str) -> None:
        label = category.value if isinstance(category, AbuseCategory) else str(category)
        key = (client_id, label)

        with self._lock:
            count = self._counts.get(key, 0) + 1
            self._counts[key] = count

            if count <= self._threshold:
                return

            now = self._clock()
            newly_blocked = not self._is_block_active(client_id, now)
            expiry = None if self._block_seconds is None else now + self._block_seconds
            self._blocked[client_id] = expiry

        if newly_blocked:
            logger.warning(
                "abuse.blocked",
                extra={
                    "client_hash": hash_client_id(client_id),
                    "category": label,
                    "count": count,
                    "threshold": self._threshold,
                    "block_s": self._block_seconds,
                },
            )

    def is_blocked(self, client_id: str) -> bool:
        with self._lock:
            if client_id not in self._blocked:
                return False
            if self._is_block_active(client_id, self._clock()):
                return True
            del self._blocked[client_id]
            return False

    def unblock(self, client_id: str) -> None:
        with self._lock:
            was_blocked = client_id in self._blocked
            self._blocked.pop(client_id, None)
            stale = [key for key in self._counts if key[0] == client_id]
            for key in stale:
                del self._counts[key]

        logger.info(
            "abuse.unblocked",
            extra={
                "client_hash": hash_client_id(client_id),
                "cleared_counters": len(stale),
                "was_blocked": was_blocked,
            },
        )

    def stats(self) -> AbuseTrackerStats:
        with self._lock:
            now = self._clock()
            blocked = sorted(c for c in self._blocked if self._is_block_active(c, now))
            return AbuseTrackerStats(
                tracked_entries=len(self._counts),
                blocked_clients=len(blocked),
                blocked_client_ids=blocked,
            )
