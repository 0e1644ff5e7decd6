"""Client identifier resolution from proxy headers.

The identifier is only a bucketing key for admission state. It is not
validated as an address, and every client without proxy headers shares the
``UNKNOWN_CLIENT`` bucket.
"""

from __future__ import annotations

from typing import Mapping

UNKNOWN_CLIENT = "unknown"

FORWARDED_FOR_HEADER = "x-forwarded-for"
REAL_IP_HEADER = "x-real-ip"
CDN_IP_HEADER = "cf-connecting-ip"


def resolve_client_id(headers: Mapping[str, str]) -> str:
    """Resolve the client identifier for a request.

    Precedence: first entry of X-Forwarded-For, then X-Real-IP, then
    CF-Connecting-IP, then ``"unknown"``. Blank values fall through.

    Args:
        headers: Request headers. Starlette headers are case-insensitive;
            plain dicts must use lower-case names.

    Returns:
        Non-empty identifier string.

    Examples:
        >>> resolve_client_id({"x-forwarded-for": "203.0.113.7, 10.0.0.1"})
        '203.0.113.7'
        >>> resolve_client_id({})
        'unknown'
    """
    forwarded = (headers.get(FORWARDED_FOR_HEADER) or "").split(",")[0].strip()
    if forwarded:
        return forwarded

    for header in (REAL_IP_HEADER, CDN_IP_HEADER):
        value = (headers.get(header) or "").strip()
        if value:
            return value

    return UNKNOWN_CLIENT
