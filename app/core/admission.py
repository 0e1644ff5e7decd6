"""Request admission control for the HTTP layer.

This module composes the rate limiter and the abuse tracker into a single
per-request decision and wires it into FastAPI as middleware.

Order of evaluation for every non-exempt request:
1. Abuse block set (fast reject, 403). The limiter is not consulted, so a
   standing abuse block cannot be outrun by a fresh rate window.
2. Suspicious-request heuristic: records an abuse event, never blocks the
   current request by itself.
3. Traffic classification (POST to a sensitive path vs everything else).
4. Rate limiter check with the matching profile (429 on denial).

State objects are built once per application by ``create_admission_control``
and stored on ``app.state.admission``; nothing here is a module-level
singleton.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Iterable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse

from app.adapters.abuse.base import AbstractAbuseTracker, AbuseCategory
from app.adapters.abuse.in_memory import InMemoryAbuseTracker
from app.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitDecision,
    RateLimitProfile,
    TrafficClass,
)
from app.adapters.rate_limit.in_memory import InMemoryRateLimiter
from app.core.client_identity import resolve_client_id
from app.core.config import AdmissionSettings, Settings, parse_csv
from app.core.exception_handlers import build_error_content
from app.core.logging import hash_client_id
from app.services.screening import is_suspicious_request

logger = logging.getLogger(__name__)

ACCESS_DENIED_MESSAGE = "Access denied"


class AdmissionVerdict(str, Enum):
    ADMITTED = "admitted"
    DENIED = "denied"
    THROTTLED = "throttled"


@dataclass(frozen=True)
class AdmissionResult:
    """Outcome of evaluating one request.

    Attributes:
        verdict: Admit, deny (abuse block) or throttle (rate limit).
        client_id: Identifier the request was bucketed under.
        traffic_class: Profile used, None when the limiter was bypassed.
        decision: Limiter decision, None when the limiter was bypassed.
        suspicious: Whether the request tripped the suspicious heuristic.
    """

    verdict: AdmissionVerdict
    client_id: str
    traffic_class: TrafficClass | None = None
    decision: RateLimitDecision | None = None
    suspicious: bool = False

    @property
    def admitted(self) -> bool:
        return self.verdict is AdmissionVerdict.ADMITTED


def _normalize_path(path: str) -> str:
    return path.rstrip("/") or "/"


def build_rate_limit_profiles(cfg: AdmissionSettings) -> dict[TrafficClass, RateLimitProfile]:
    """Map every traffic class to its configured quota profile."""

    return {
        TrafficClass.SENSITIVE: RateLimitProfile(
            window_seconds=cfg.sensitive_window_seconds,
            max_requests=cfg.sensitive_max_requests,
            block_seconds=cfg.sensitive_block_seconds,
            message=cfg.sensitive_message,
        ),
        TrafficClass.GENERAL: RateLimitProfile(
            window_seconds=cfg.general_window_seconds,
            max_requests=cfg.general_max_requests,
            block_seconds=cfg.general_block_seconds,
            message=cfg.general_message,
        ),
    }


def classify_request(method: str, path: str, sensitive_paths: Iterable[str]) -> TrafficClass:
    """Return SENSITIVE for POSTs to a state-changing path, GENERAL otherwise.

    Examples:
        >>> classify_request("POST", "/api/submit", ["/api/submit"])
        <TrafficClass.SENSITIVE: 'sensitive'>
        >>> classify_request("GET", "/api/submit", ["/api/submit"])
        <TrafficClass.GENERAL: 'general'>
    """
    normalized = {_normalize_path(p) for p in sensitive_paths}
    if method.upper() == "POST" and _normalize_path(path) in normalized:
        return TrafficClass.SENSITIVE
    return TrafficClass.GENERAL


class AdmissionControl:
    """Explicitly owned admission state for one application instance."""

    def __init__(
        self,
        *,
        rate_limiter: AbstractRateLimiter,
        abuse_tracker: AbstractAbuseTracker,
        sensitive_paths: Iterable[str] = ("/api/submit",),
        exempt_paths: Iterable[str] = ("/health",),
        enabled: bool = True,
        include_headers: bool = True,
    ) -> None:
        self.rate_limiter = rate_limiter
        self.abuse_tracker = abuse_tracker
        self.sensitive_paths = [_normalize_path(p) for p in sensitive_paths]
        self.exempt_paths = {_normalize_path(p) for p in exempt_paths}
        self.enabled = enabled
        self.include_headers = include_headers

    def is_exempt(self, path: str) -> bool:
        return not self.enabled or _normalize_path(path) in self.exempt_paths

    def evaluate(
        self,
        client_id: str,
        *,
        method: str,
        path: str,
        user_agent: str | None,
    ) -> AdmissionResult:
        """Decide whether a request may proceed.

        Total: returns a result for any input and never raises.
        """
        if self.abuse_tracker.is_blocked(client_id):
            return AdmissionResult(verdict=AdmissionVerdict.DENIED, client_id=client_id)

        suspicious = is_suspicious_request(user_agent, path)
        if suspicious:
            self.abuse_tracker.record_event(client_id, AbuseCategory.SUSPICIOUS_REQUEST)
            logger.warning(
                "admission.suspicious_request",
                extra={
                    "client_hash": hash_client_id(client_id),
                    "request_path": path,
                    "request_method": method,
                },
            )

        traffic_class = classify_request(method, path, self.sensitive_paths)
        decision = self.rate_limiter.check(client_id, traffic_class)

        if decision.allowed:
            return AdmissionResult(
                verdict=AdmissionVerdict.ADMITTED,
                client_id=client_id,
                traffic_class=traffic_class,
                decision=decision,
                suspicious=suspicious,
            )

        if traffic_class is TrafficClass.SENSITIVE:
            self.abuse_tracker.record_event(client_id, AbuseCategory.RATE_LIMIT_EXCEEDED)

        return AdmissionResult(
            verdict=AdmissionVerdict.THROTTLED,
            client_id=client_id,
            traffic_class=traffic_class,
            decision=decision,
            suspicious=suspicious,
        )

    def unblock(self, client_id: str) -> None:
        """Lift both the rate-limit block and the abuse block of a client."""
        self.rate_limiter.unblock(client_id)
        self.abuse_tracker.unblock(client_id)

    def stats(self) -> dict[str, dict]:
        return {
            "rate_limiter": asdict(self.rate_limiter.stats()),
            "abuse_tracker": asdict(self.abuse_tracker.stats()),
        }


def create_admission_control(cfg: AdmissionSettings) -> AdmissionControl:
    """Build in-memory admission state from settings."""

    return AdmissionControl(
        rate_limiter=InMemoryRateLimiter(profiles=build_rate_limit_profiles(cfg)),
        abuse_tracker=InMemoryAbuseTracker(
            threshold=cfg.abuse_threshold,
            block_seconds=cfg.abuse_block_seconds,
        ),
        sensitive_paths=parse_csv(cfg.sensitive_paths),
        exempt_paths=parse_csv(cfg.exempt_paths),
        enabled=cfg.enabled,
        include_headers=cfg.include_headers,
    )


def build_throttled_response(decision: RateLimitDecision, *, include_headers: bool = True) -> JSONResponse:
    """Turn a limiter denial into a 429 response carrying Retry-After."""

    retry_after = decision.retry_after_seconds
    content = build_error_content("rate_limited", decision.message or "Too many requests.")
    content["error"]["retry_after"] = retry_after

    headers = {
        "Retry-After": str(retry_after),
        "X-RateLimit-Blocked": "true",
    }
    if include_headers:
        headers["X-RateLimit-Limit"] = str(decision.limit)
        headers["X-RateLimit-Remaining"] = str(decision.remaining)

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=content,
        headers=headers,
    )


def build_access_denied_response() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content=build_error_content("access_denied", ACCESS_DENIED_MESSAGE),
    )


def get_admission_control(request: Request) -> AdmissionControl:
    """FastAPI dependency returning the application's admission state."""

    return request.app.state.admission


def get_app_settings(request: Request) -> Settings:
    """FastAPI dependency returning the settings the application was built with."""

    return request.app.state.settings


async def admission_middleware(request: Request, call_next) -> Response:
    """HTTP middleware enforcing admission control on every request.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        403 for abuse-blocked clients, 429 for throttled ones, otherwise the
        downstream response.
    """
    admission: AdmissionControl = request.app.state.admission
    path = request.url.path

    if admission.is_exempt(path):
        return await call_next(request)

    client_id = resolve_client_id(request.headers)
    result = admission.evaluate(
        client_id,
        method=request.method,
        path=path,
        user_agent=request.headers.get("user-agent"),
    )
    client_hash = hash_client_id(client_id)

    if result.verdict is AdmissionVerdict.DENIED:
        logger.warning(
            "admission.denied",
            extra={"client_hash": client_hash, "request_path": path},
        )
        return build_access_denied_response()

    decision = result.decision
    if result.verdict is AdmissionVerdict.THROTTLED and decision is not None:
        logger.warning(
            "admission.throttled",
            extra={
                "client_hash": client_hash,
                "traffic_class": result.traffic_class.value if result.traffic_class else None,
                "limit": decision.limit,
                "retry_after_s": decision.retry_after_seconds,
                "request_path": path,
            },
        )
        return build_throttled_response(
            decision,
            include_headers=admission.include_headers,
        )

    logger.debug(
        "admission.admitted",
        extra={
            "client_hash": client_hash,
            "traffic_class": result.traffic_class.value if result.traffic_class else None,
            "remaining": result.decision.remaining if result.decision else None,
        },
    )
    return await call_next(request)


async def run_cleanup_sweep(admission: AdmissionControl, interval_seconds: float) -> None:
    """Periodically reclaim stale rate-limit entries until cancelled.

    Correctness never depends on this loop; expired blocks are also cleared
    lazily on the next check.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            admission.rate_limiter.cleanup()
        except Exception:  # keep the sweep alive; the next tick retries
            logger.exception("admission.cleanup_failed")
