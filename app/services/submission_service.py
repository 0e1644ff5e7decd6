"""Application form intake: validation, bot screening and relay.

The service is the request handler that feeds the abuse tracker: every
rejection caused by bad or bot-like input is recorded against the client
before the error propagates to the HTTP layer.

Pipeline (first failure wins):
1. Field validation (lengths, injection heuristics, formats, allowed values)
2. Honeypot check
3. User-agent sanity check
4. Relay configuration check
5. Relay to the spreadsheet endpoint
"""

from __future__ import annotations

import logging
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from app.adapters.abuse.base import AbstractAbuseTracker, AbuseCategory
from app.adapters.relay.base import AbstractSubmissionRelay
from app.core.errors import (
    ConfigurationAppError,
    RelayAppError,
    SpamDetectedAppError,
    ValidationAppError,
)
from app.core.logging import hash_client_id
from app.schemas.submission import SubmissionResponse
from app.services.screening import InputType, detect_sql_injection, detect_xss, validate_input

logger = logging.getLogger(__name__)

MIN_USER_AGENT_CHARS = 10
HONEYPOT_FIELDS = ("_honeypot", "website")

VALID_YEARS = ("1st Year", "2nd Year", "3rd Year")
VALID_TIME_COMMITMENTS = ("Less than 2 hours", "2-4 hours", "5-7 hours", "7+ hours")
VALID_TEAM_WORK = ("Yes", "No")


@dataclass(frozen=True)
class FieldRule:
    key: str
    input_type: InputType
    max_length: int


REQUIRED_FIELDS: tuple[FieldRule, ...] = (
    FieldRule("fullName", "text", 100),
    FieldRule("rollNumber", "number", 15),
    FieldRule("classSection", "text", 50),
    FieldRule("branch", "text", 100),
    FieldRule("email", "email", 100),
    FieldRule("yearOfStudy", "text", 20),
    FieldRule("selectedRole", "text", 100),
    FieldRule("motivationAndGrowth", "text", 2000),
    FieldRule("expectationsFromCSI", "text", 2000),
    FieldRule("excitingActivityAndWhy", "text", 2000),
    FieldRule("priorExperience", "text", 2000),
    FieldRule("skills", "text", 2000),
    FieldRule("timeCommitment", "text", 50),
    FieldRule("teamWork", "text", 10),
)

OPTIONAL_FIELDS: tuple[FieldRule, ...] = (
    FieldRule("teamLevel", "text", 50),
    FieldRule("personalProject", "text", 2000),
    FieldRule("mentoringExperience", "text", 2000),
    FieldRule("contributionPlan", "text", 2000),
)


@dataclass
class FormValidation:
    """Result of validating a raw submission."""

    errors: list[str] = field(default_factory=list)
    sanitized: dict[str, str] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return not self.errors


def _coerce_required(rule: FieldRule, value: Any) -> str | None:
    # Numeric fields may arrive as JSON numbers
    if rule.input_type == "number" and isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str):
        return value
    return None


def validate_form_data(data: Mapping[str, Any]) -> FormValidation:
    """Validate and sanitize a raw submission, collecting every error.

    Args:
        data: Raw field mapping from the request body.

    Returns:
        FormValidation with HTML-escaped values for accepted fields and one
        message per problem found.
    """
    result = FormValidation()

    for rule in REQUIRED_FIELDS:
        value = data.get(rule.key)
        if not value:
            result.errors.append(f"{rule.key} is required")
            continue

        text = _coerce_required(rule, value)
        if text is None:
            kind = "number" if rule.input_type == "number" else "string"
            result.errors.append(f"{rule.key} must be a {kind}")
            continue

        if len(text) > rule.max_length:
            result.errors.append(f"{rule.key} exceeds maximum length of {rule.max_length}")
            continue
        if detect_sql_injection(text):
            result.errors.append(f"{rule.key} contains potentially malicious content")
            continue
        if detect_xss(text):
            result.errors.append(f"{rule.key} contains potentially harmful scripts")
            continue

        check = validate_input(text, rule.input_type)
        if not check.valid:
            result.errors.append(f"{rule.key}: {check.error}")
            continue
        result.sanitized[rule.key] = check.sanitized

    for rule in OPTIONAL_FIELDS:
        value = data.get(rule.key)
        if not value or not isinstance(value, str):
            continue
        if len(value) > rule.max_length:
            result.errors.append(f"{rule.key} exceeds maximum length of {rule.max_length}")
            continue
        if detect_sql_injection(value) or detect_xss(value):
            result.errors.append(f"{rule.key} contains potentially malicious content")
            continue

        check = validate_input(value, rule.input_type)
        if check.valid:
            result.sanitized[rule.key] = check.sanitized

    if result.sanitized.get("yearOfStudy") not in VALID_YEARS:
        result.errors.append("Invalid year of study")
    if result.sanitized.get("timeCommitment") not in VALID_TIME_COMMITMENTS:
        result.errors.append("Invalid time commitment")
    if result.sanitized.get("teamWork") not in VALID_TEAM_WORK:
        result.errors.append("Invalid team work preference")
    if result.sanitized.get("yearOfStudy") == "3rd Year" and not result.sanitized.get("teamLevel"):
        result.errors.append("Team level is required for 3rd year students")

    return result


def is_honeypot_filled(data: Mapping[str, Any]) -> bool:
    """Return True when a hidden bait field carries a non-blank string."""
    for name in HONEYPOT_FIELDS:
        value = data.get(name)
        if isinstance(value, str) and value.strip():
            return True
    return False


def to_base36(number: int) -> str:
    """Encode a non-negative integer in lower-case base 36."""
    alphabet = string.digits + string.ascii_lowercase
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(alphabet[remainder])
    return "".join(reversed(digits))


class SubmissionService:
    """Validates submissions, flags abusive clients and relays the rest."""

    def __init__(
        self,
        *,
        relay: AbstractSubmissionRelay | None,
        abuse_tracker: AbstractAbuseTracker,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._relay = relay
        self._abuse_tracker = abuse_tracker
        self._clock = clock

    def _flag(self, client_id: str, category: AbuseCategory, **extra: Any) -> None:
        self._abuse_tracker.record_event(client_id, category)
        logger.warning(
            "submission.rejected",
            extra={
                "client_hash": hash_client_id(client_id),
                "category": category.value,
                **extra,
            },
        )

    async def submit(
        self,
        data: Mapping[str, Any],
        *,
        client_id: str,
        user_agent: str | None,
    ) -> SubmissionResponse:
        """Run the intake pipeline for one submission.

        Raises:
            ValidationAppError: Invalid fields or implausible user agent.
            SpamDetectedAppError: Honeypot field filled.
            ConfigurationAppError: No relay configured.
            RelayAppError: Delivery failed (RelayTimeoutAppError on timeout).
        """
        validation = validate_form_data(data)
        if not validation.valid:
            self._flag(client_id, AbuseCategory.INVALID_FORM_DATA, error_count=len(validation.errors))
            raise ValidationAppError(
                code="validation_error",
                message="Validation failed",
                details={"errors": validation.errors},
            )

        if is_honeypot_filled(data):
            self._flag(client_id, AbuseCategory.HONEYPOT_TRIGGERED)
            raise SpamDetectedAppError(code="spam_detected", message="Spam detected")

        user_agent = user_agent or ""
        if len(user_agent) < MIN_USER_AGENT_CHARS:
            self._flag(client_id, AbuseCategory.SUSPICIOUS_USER_AGENT, user_agent_length=len(user_agent))
            raise ValidationAppError(code="invalid_request", message="Invalid request")

        if self._relay is None:
            logger.error("submission.relay_not_configured")
            raise ConfigurationAppError(
                code="config_error",
                message="Server configuration error",
                details={"hint": "Set APP_RELAY_URL"},
            )

        now = self._clock()
        fields = dict(validation.sanitized)
        fields["submissionIP"] = client_id
        fields["submissionTime"] = datetime.fromtimestamp(now, tz=timezone.utc).isoformat()
        fields["userAgent"] = user_agent

        try:
            await self._relay.relay(fields)
        except RelayAppError as exc:
            self._flag(client_id, AbuseCategory.SUBMISSION_ERROR, error_code=exc.code)
            raise

        submission_id = to_base36(int(now * 1000))
        logger.info(
            "submission.relayed",
            extra={
                "client_hash": hash_client_id(client_id),
                "submission_id": submission_id,
                "field_count": len(validation.sanitized),
            },
        )
        return SubmissionResponse(
            success=True,
            message="Application submitted successfully",
            submission_id=submission_id,
        )
