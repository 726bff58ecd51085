"""Error taxonomy for ReplyQ stages.

Only ValidationError (bad inbound request) and StorageUnavailableError
(downstream persistence unreachable) ever reach a caller. ExternalServiceError
and ParseError are raised inside the classify/extract/draft adapters and
converted into fallback results at the adapter boundary.
"""

from __future__ import annotations


class ReplyQError(Exception):
    """Base class for all ReplyQ errors."""


class ValidationError(ReplyQError):
    """Malformed inbound request."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class ExternalServiceError(ReplyQError):
    """Network failure, timeout or non-success status from an external capability."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ParseError(ReplyQError):
    """External response did not contain the expected structure."""


class StorageUnavailableError(ReplyQError):
    """Downstream persistence collaborator is unreachable (retryable)."""

    def __init__(
        self,
        message: str,
        suggested_action: str = "Retry the request in a few seconds.",
        retry_after_seconds: int = 30,
    ) -> None:
        super().__init__(message)
        self.suggested_action = suggested_action
        self.retry_after_seconds = retry_after_seconds
