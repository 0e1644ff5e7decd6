"""Heuristic screening of requests and submitted text.

Pattern matching only: these checks flag obviously hostile input and feed
the abuse tracker. They are not a substitute for output encoding, which the
form sanitizer applies separately.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

InputType = Literal["text", "email", "number"]

MAX_INPUT_CHARS = 10000

_SUSPICIOUS_USER_AGENT_PATTERNS = [
    re.compile(r"bot|crawler|spider|scraper", re.IGNORECASE),
    re.compile(r"curl|wget|python|php", re.IGNORECASE),
    re.compile(r"sql|script|alert|eval", re.IGNORECASE),
]

# Probes for common CMS/admin paths; API paths other than the public ones
_SUSPICIOUS_PATH_PATTERNS = [
    re.compile(r"/wp-", re.IGNORECASE),
    re.compile(r"/admin", re.IGNORECASE),
    re.compile(r"\.php$", re.IGNORECASE),
    re.compile(r"\.asp$", re.IGNORECASE),
    re.compile(r"\.jsp$", re.IGNORECASE),
    re.compile(r"/config", re.IGNORECASE),
    re.compile(r"/api/(?!submit|security-status)", re.IGNORECASE),
]

_SQL_INJECTION_PATTERNS = [
    re.compile(
        r"\b(select|insert|update|delete|drop|create|alter|exec|execute|union|script)\b",
        re.IGNORECASE,
    ),
    re.compile(r"--|/\*|\*/|;|'|\"|`"),
    re.compile(r"(\bor\b|\band\b).*(\b=\b|\blike\b)", re.IGNORECASE),
    re.compile(r"1\s*=\s*1"),
    re.compile(r"'\s*or\s*'.*'=", re.IGNORECASE),
]

_XSS_PATTERNS = [
    re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"<iframe[^>]*>", re.IGNORECASE),
    re.compile(r"data:text/html", re.IGNORECASE),
    re.compile(r"eval\s*\(", re.IGNORECASE),
    re.compile(r"document\.(write|writeln|cookie)", re.IGNORECASE),
    re.compile(r"window\.(location|open)", re.IGNORECASE),
]

_DANGEROUS_CONTENT_PATTERNS = [
    re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
    re.compile(r"onload=", re.IGNORECASE),
    re.compile(r"onerror=", re.IGNORECASE),
    re.compile(r"onclick=", re.IGNORECASE),
    re.compile(r"onmouseover=", re.IGNORECASE),
    re.compile(r"<iframe[^>]*>", re.IGNORECASE),
    re.compile(r"<object[^>]*>", re.IGNORECASE),
    re.compile(r"<embed[^>]*>", re.IGNORECASE),
    re.compile(r"<form[^>]*>", re.IGNORECASE),
    re.compile(r"data:text/html", re.IGNORECASE),
    re.compile(r"eval\(", re.IGNORECASE),
    re.compile(r"expression\(", re.IGNORECASE),
]

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_NUMBER_RE = re.compile(r"^[0-9]+$")
_ENTITY_RE = re.compile(r"&[^;]+;")

_HTML_ESCAPES = {
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "/": "&#x2F;",
}


@dataclass(frozen=True)
class InputCheck:
    """Outcome of validating a single text input."""

    valid: bool
    sanitized: str
    error: str | None = None


def is_suspicious_request(user_agent: str | None, path: str) -> bool:
    """Flag requests with a missing/tool-like user agent or a probing path.

    Examples:
        >>> is_suspicious_request("", "/")
        True
        >>> is_suspicious_request("Mozilla/5.0 (X11; Linux x86_64)", "/wp-login.php")
        True
    """
    if not user_agent:
        return True
    if any(p.search(user_agent) for p in _SUSPICIOUS_USER_AGENT_PATTERNS):
        return True
    return any(p.search(path) for p in _SUSPICIOUS_PATH_PATTERNS)


def detect_sql_injection(value: str) -> bool:
    return any(p.search(value) for p in _SQL_INJECTION_PATTERNS)


def detect_xss(value: str) -> bool:
    return any(p.search(value) for p in _XSS_PATTERNS)


def escape_html(value: str) -> str:
    return "".join(_HTML_ESCAPES.get(ch, ch) for ch in value)


def validate_input(value: object, input_type: InputType = "text") -> InputCheck:
    """Validate and HTML-escape one user-supplied value.

    Args:
        value: Raw value; anything other than a non-empty string is rejected.
        input_type: Additional format check to apply after escaping.

    Returns:
        InputCheck with the escaped value when valid, or an error message.
    """
    if not value or not isinstance(value, str):
        return InputCheck(valid=False, sanitized="", error="Input is required")

    sanitized = value.strip()
    if not sanitized:
        return InputCheck(valid=False, sanitized="", error="Input cannot be empty")
    if len(sanitized) > MAX_INPUT_CHARS:
        return InputCheck(valid=False, sanitized="", error="Input too long")

    if any(p.search(sanitized) for p in _DANGEROUS_CONTENT_PATTERNS):
        return InputCheck(valid=False, sanitized="", error="Invalid characters detected")

    sanitized = escape_html(sanitized)

    if input_type == "email" and not _EMAIL_RE.match(_ENTITY_RE.sub("", sanitized)):
        return InputCheck(valid=False, sanitized="", error="Invalid email format")

    if input_type == "number" and not _NUMBER_RE.match(sanitized):
        return InputCheck(valid=False, sanitized="", error="Invalid number format")

    return InputCheck(valid=True, sanitized=sanitized)
