"""HTTP middleware for request correlation and response hardening.

- ``request_id_middleware`` accepts or generates a correlation id, binds it
  to the logging context and echoes it back with the request duration.
- ``security_headers_middleware`` attaches browser hardening headers to every
  response, plus no-store caching rules on API paths.

Usage:
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from app.core.config import settings
from app.core.logging import clear_request_id, set_request_id

SECURITY_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
    "Content-Security-Policy": (
        "default-src 'self'; "
        "script-src 'self' https://script.google.com https://www.google.com https://www.gstatic.com; "
        "style-src 'self' 'unsafe-inline' https://fonts.googleapis.com; "
        "font-src 'self' https://fonts.gstatic.com; "
        "img-src 'self' data: https:; "
        "connect-src 'self' https://script.google.com https://script.googleusercontent.com; "
        "frame-src https://www.google.com; "
        "object-src 'none'; "
        "base-uri 'self';"
    ),
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
}

API_HEADERS: dict[str, str] = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "X-Robots-Tag": "noindex, nofollow",
}


async def request_id_middleware(request: Request, call_next) -> Response:
    """Propagate a request correlation id and report request duration.

    If the client sends the configured header (``X-Request-ID`` by default)
    its value is reused, otherwise a UUID4 is generated. The id is available
    to every log record emitted while the request is processed.

    Example:
        >>> # Request arrives with {"X-Request-ID": "req-abc-123"}
        >>> # Response carries {"X-Request-ID": "req-abc-123",
        >>> #                   "X-Request-Duration-ms": "1.23"}
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response


async def security_headers_middleware(request: Request, call_next) -> Response:
    """Attach hardening headers without overriding ones a handler already set."""

    response: Response = await call_next(request)
    if not settings.app.security_headers_enabled:
        return response

    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    if request.url.path.startswith("/api/"):
        for name, value in API_HEADERS.items():
            response.headers.setdefault(name, value)
    return response
