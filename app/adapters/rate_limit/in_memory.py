"""In-memory fixed-window rate limiter with temporary blocks.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: one lock guards the whole check-then-increment sequence.
- Windows are per client, starting at the client's first request, not
  aligned to the wall clock.
- Expired blocks are cleared lazily on the next check; ``cleanup`` only
  reclaims memory.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Callable, Mapping

from app.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitDecision,
    RateLimiterStats,
    RateLimitProfile,
    RateWindowEntry,
    TrafficClass,
)
from app.core.logging import hash_client_id

logger = logging.getLogger(__name__)

BLOCKED_MESSAGE = "IP temporarily blocked due to excessive requests"


class InMemoryRateLimiter(AbstractRateLimiter):
    """Fixed-window counter per (client, traffic class) with block escalation.

    A client that sends more than ``max_requests`` within one window is
    blocked for the profile's ``block_seconds``. Worst case, a burst straddling
    a window boundary admits up to twice the quota.
    """

    def __init__(
        self,
        *,
        profiles: Mapping[TrafficClass, RateLimitProfile],
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            profiles: Quota profile for every TrafficClass.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If a traffic class has no profile.
        """
        missing = [tc.value for tc in TrafficClass if tc not in profiles]
        if missing:
            raise ValueError(f"missing rate limit profile(s): {', '.join(missing)}")

        self._profiles = dict(profiles)
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[tuple[str, TrafficClass], RateWindowEntry] = {}

    @property
    def profiles(self) -> dict[TrafficClass, RateLimitProfile]:
        return dict(self._profiles)

    @staticmethod
    def _is_actively_blocked(entry: RateWindowEntry, now: float) -> bool:
        return entry.blocked and entry.block_expiry is not None and now < entry.block_expiry

    def _denied(self, profile: RateLimitProfile, message: str, retry_after: float) -> RateLimitDecision:
        return RateLimitDecision(
            allowed=False,
            limit=profile.max_requests,
            remaining=0,
            message=message,
            retry_after_seconds=max(1, int(math.ceil(retry_after))),
        )

    def check(self, client_id: str, traffic_class: TrafficClass) -> RateLimitDecision:
        """Count one request and return the admission decision.

        Never raises for odd identifiers; an empty string is just another key.
        """
        profile = self._profiles[traffic_class]
        key = (client_id, traffic_class)

        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)

            if entry is not None and entry.blocked:
                if self._is_actively_blocked(entry, now):
                    return self._denied(profile, BLOCKED_MESSAGE, entry.block_expiry - now)  # type: ignore[operator]
                # Block has lapsed: clean slate for the counter
                entry.blocked = False
                entry.block_expiry = None
                entry.count = 0

            if entry is None or now > entry.window_end:
                self._entries[key] = RateWindowEntry(
                    count=1,
                    window_end=now + profile.window_seconds,
                )
                return RateLimitDecision(
                    allowed=True,
                    limit=profile.max_requests,
                    remaining=profile.max_requests - 1,
                )

            entry.count += 1
            if entry.count > profile.max_requests:
                entry.blocked = True
                entry.block_expiry = now + profile.block_seconds
                logger.warning(
                    "rate_limit.blocked",
                    extra={
                        "client_hash": hash_client_id(client_id),
                        "traffic_class": traffic_class.value,
                        "count": entry.count,
                        "limit": profile.max_requests,
                        "block_s": profile.block_seconds,
                    },
                )
                return self._denied(profile, profile.message, profile.block_seconds)

            return RateLimitDecision(
                allowed=True,
                limit=profile.max_requests,
                remaining=max(0, profile.max_requests - entry.count),
            )

    def manually_block(self, client_id: str, duration_seconds: float) -> None:
        if duration_seconds <= 0:
            logger.warning(
                "rate_limit.manual_block_ignored",
                extra={"client_hash": hash_client_id(client_id), "duration_s": duration_seconds},
            )
            return

        with self._lock:
            now = self._clock()
            for traffic_class in TrafficClass:
                key = (client_id, traffic_class)
                entry = self._entries.get(key)
                if entry is None:
                    entry = RateWindowEntry(count=0, window_end=now)
                    self._entries[key] = entry
                entry.blocked = True
                entry.block_expiry = now + duration_seconds

        logger.info(
            "rate_limit.manual_block",
            extra={"client_hash": hash_client_id(client_id), "duration_s": duration_seconds},
        )

    def unblock(self, client_id: str) -> None:
        with self._lock:
            for traffic_class in TrafficClass:
                entry = self._entries.get((client_id, traffic_class))
                if entry is not None:
                    entry.blocked = False
                    entry.block_expiry = None

    def cleanup(self) -> int:
        with self._lock:
            now = self._clock()
            stale = [
                key
                for key, entry in self._entries.items()
                if now > entry.window_end and not self._is_actively_blocked(entry, now)
            ]
            for key in stale:
                del self._entries[key]

        if stale:
            logger.info("rate_limit.cleanup", extra={"removed": len(stale)})
        return len(stale)

    def stats(self) -> RateLimiterStats:
        with self._lock:
            now = self._clock()
            blocked = sorted(
                {
                    client_id
                    for (client_id, _), entry in self._entries.items()
                    if self._is_actively_blocked(entry, now)
                }
            )
            return RateLimiterStats(
                tracked_entries=len(self._entries),
                blocked_clients=len(blocked),
                blocked_client_ids=blocked,
            )
