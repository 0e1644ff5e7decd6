from typing import Any

from fastapi import APIRouter, Depends, Request

from app.core.client_identity import resolve_client_id
from app.core.errors import ValidationAppError
from app.schemas.submission import SubmissionResponse
from app.services.submission_service import SubmissionService

router = APIRouter(prefix="/api", tags=["Submissions"])

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


def get_submission_service(request: Request) -> SubmissionService:
    """Return the submission service owned by the running application."""
    return request.app.state.submission_service


async def read_submission_payload(request: Request) -> dict[str, Any]:
    """Decode a JSON, multipart or urlencoded body into a field mapping.

    Raises:
        ValidationAppError: For unsupported content types or malformed JSON.
    """
    content_type = request.headers.get("content-type", "")

    if "application/json" in content_type:
        try:
            body = await request.json()
        except ValueError as exc:
            raise ValidationAppError(code="invalid_json", message="Malformed JSON body") from exc
        if not isinstance(body, dict):
            raise ValidationAppError(code="invalid_json", message="JSON body must be an object")
        return body

    if any(kind in content_type for kind in FORM_CONTENT_TYPES):
        form = await request.form()
        return {key: str(value) for key, value in form.items()}

    raise ValidationAppError(
        code="invalid_content_type",
        message="Unsupported content type",
        details={"content_type": content_type},
    )


@router.post("/submit", response_model=SubmissionResponse)
async def submit_application(
    request: Request,
    service: SubmissionService = Depends(get_submission_service),
) -> SubmissionResponse:
    """Accept a membership application.

    The body may be JSON, multipart or urlencoded. Admission control has
    already applied the sensitive-traffic quota before this handler runs.

    Returns:
        SubmissionResponse with the generated submission id.

    Raises:
        ValidationAppError: 400 for invalid fields, content type or user agent.
        SpamDetectedAppError: 429 when the honeypot is filled.
        RelayAppError: 408 on relay timeout, 500 on other relay failures.
        ConfigurationAppError: 500 when no relay URL is configured.
    """
    payload = await read_submission_payload(request)
    return await service.submit(
        payload,
        client_id=resolve_client_id(request.headers),
        user_agent=request.headers.get("user-agent"),
    )
