"""Pydantic schemas for the security-status admin endpoint."""

from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


class BlockStats(BaseModel):
    """Counters shared by the rate limiter and abuse tracker snapshots."""

    tracked_entries: int = Field(
        ..., description="Tracked state rows ((client, traffic class) or (client, category))."
    )
    blocked_clients: int = Field(..., description="Clients currently denied.")
    blocked_client_ids: List[str] = Field(
        default_factory=list,
        description="Identifiers of the denied clients.",
    )


class SecurityStatusResponse(BaseModel):
    """Read-only snapshot of admission state."""

    timestamp: datetime
    rate_limiter: BlockStats
    abuse_tracker: BlockStats
    status: str = Field("operational", description="Service status indicator.")


class SecurityActionRequest(BaseModel):
    """Administrative action on admission state.

    ``action`` is validated by the route so unknown values produce the
    ``invalid_action`` error rather than a schema error.
    """

    action: str = Field(..., description="One of 'unblock', 'block' or 'cleanup'.")
    ip: str | None = Field(
        None,
        description="Client identifier to act on (required for block/unblock).",
    )
    duration_seconds: int | None = Field(
        None,
        ge=1,
        description="Block duration for 'block'; defaults to ADMISSION_MANUAL_BLOCK_SECONDS.",
    )


class SecurityActionResponse(BaseModel):
    success: bool
    message: str
    timestamp: datetime
    removed_entries: int | None = Field(
        None,
        description="Number of stale rate-limit entries removed by 'cleanup'.",
    )
