from abc import ABC, abstractmethod


class AbstractSubmissionRelay(ABC):
	"""Interface for clients that deliver accepted submissions downstream."""

	@abstractmethod
	async def relay(self, fields: dict[str, str]) -> None:
		"""Deliver one submission.

		Args:
			fields: Flat mapping of form field name to sanitized value.

		Raises:
			RelayTimeoutAppError: If the destination does not answer in time.
			RelayAppError: If delivery fails for any other reason.
		"""
		...
