"""HTTP form-post relay (e.g. a spreadsheet Apps Script web app)."""

import httpx

from app.adapters.relay.base import AbstractSubmissionRelay
from app.core.errors import RelayAppError, RelayTimeoutAppError


class HttpFormRelay(AbstractSubmissionRelay):
    """Posts submissions as ``multipart/form-data`` to a fixed URL.

    Uses ``httpx.AsyncClient`` so the event loop is never blocked while the
    destination is slow.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_seconds: float = 15.0,
        user_agent: str = "Application-Intake/1.0",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the relay.

        Args:
            url: Destination URL.
            timeout_seconds: Overall timeout for one delivery.
            user_agent: User-Agent header sent downstream.
            transport: Optional transport override (tests use MockTransport).
        """
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent
        self._transport = transport

    async def relay(self, fields: dict[str, str]) -> None:
        # Each field goes as a (None, value) part, which httpx encodes as a
        # plain multipart field rather than a file upload.
        parts = {key: (None, value) for key, value in fields.items()}

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.post(
                    self.url,
                    files=parts,
                    headers={"User-Agent": self.user_agent},
                )
        except httpx.TimeoutException as exc:
            raise RelayTimeoutAppError(
                code="timeout",
                message="Request timeout",
                details={"timeout_seconds": self.timeout_seconds},
            ) from exc
        except httpx.HTTPError as exc:
            raise RelayAppError(
                code="submission_error",
                message="Submission failed. Please try again later.",
                details={"context": {"error_type": type(exc).__name__}},
            ) from exc

        if not response.is_success:
            raise RelayAppError(
                code="submission_error",
                message="Submission failed. Please try again later.",
                details={"upstream_status": response.status_code},
            )
