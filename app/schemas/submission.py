"""Pydantic schemas for application submissions."""

from __future__ import annotations

from pydantic import BaseModel, Field


class SubmissionResponse(BaseModel):
    """Acknowledgement returned once a submission has been relayed."""

    success: bool = Field(..., description="Always true for accepted submissions.")
    message: str = Field(..., description="Human-readable confirmation.")
    submission_id: str = Field(
        ...,
        description="Opaque reference derived from the acceptance time (base36 milliseconds).",
    )
