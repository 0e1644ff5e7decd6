"""Builders shared by the test modules."""

from typing import Callable

from app.adapters.abuse.in_memory import InMemoryAbuseTracker
from app.adapters.rate_limit.base import RateLimitProfile, TrafficClass
from app.adapters.rate_limit.in_memory import InMemoryRateLimiter
from app.core.admission import AdmissionControl

SENSITIVE_MESSAGE = "Too many form submissions. Please try again later."
GENERAL_MESSAGE = "Rate limit exceeded. Please slow down."

BROWSER_UA = "Mozilla/5.0 (X11; Linux x86_64) Firefox/128.0"

VALID_FORM: dict[str, str] = {
    "fullName": "Asha Verma",
    "rollNumber": "2023001",
    "classSection": "CSE A",
    "branch": "Computer Science",
    "email": "asha.verma@example.com",
    "yearOfStudy": "2nd Year",
    "selectedRole": "Technical Team",
    "motivationAndGrowth": "I want to grow as a developer with peers",
    "expectationsFromCSI": "Hands on workshops with mentors",
    "excitingActivityAndWhy": "Hackathons because teams build fast",
    "priorExperience": "Built a small web app in college",
    "skills": "Python, Git, Linux",
    "timeCommitment": "2-4 hours",
    "teamWork": "Yes",
}


def make_profiles(
    *,
    sensitive: tuple[float, int, float] = (900, 3, 3600),
    general: tuple[float, int, float] = (60, 30, 300),
) -> dict[TrafficClass, RateLimitProfile]:
    """Build a profile map from (window_s, max_requests, block_s) tuples."""
    return {
        TrafficClass.SENSITIVE: RateLimitProfile(*sensitive, message=SENSITIVE_MESSAGE),
        TrafficClass.GENERAL: RateLimitProfile(*general, message=GENERAL_MESSAGE),
    }


def make_admission(
    clock: Callable[[], float],
    *,
    threshold: int = 5,
    abuse_block_seconds: float | None = None,
    **profile_overrides,
) -> AdmissionControl:
    """Admission control over in-memory components sharing one clock."""
    return AdmissionControl(
        rate_limiter=InMemoryRateLimiter(profiles=make_profiles(**profile_overrides), clock=clock),
        abuse_tracker=InMemoryAbuseTracker(
            threshold=threshold,
            block_seconds=abuse_block_seconds,
            clock=clock,
        ),
    )
