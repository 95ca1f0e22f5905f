from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


class ErrorCode(str, Enum):
    """Stable codes carried by poll errors so callers can branch on them."""

    NO_CORPORA = "ERR_NO_CORPORA"
    TIMEOUT = "ERR_TIMEOUT"


class SpeechServiceError(Exception):
    """Raised when the service returns an error response or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[dict] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class MissingParameterError(ValueError):
    """Raised before any request is made when required parameters are absent."""

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing: List[str] = list(missing)
        super().__init__(f"Missing required parameters: {', '.join(self.missing)}")


class PollError(Exception):
    """Base class for the terminal failures of a poll-until-ready operation."""

    code: Optional[ErrorCode] = None

    def __init__(self, message: str, *, handle: Optional[str] = None) -> None:
        super().__init__(message)
        self.handle = handle


class NoResourceError(PollError):
    code = ErrorCode.NO_CORPORA


class PollTimeoutError(PollError, TimeoutError):
    """Attempts ran out while the resource was still pending."""

    code = ErrorCode.TIMEOUT

    def __init__(
        self,
        message: str,
        *,
        handle: Optional[str] = None,
        last_snapshot: Any = None,
        attempts: int = 0,
    ) -> None:
        super().__init__(message, handle=handle)
        self.last_snapshot = last_snapshot
        self.attempts = attempts


class DomainFailureError(PollError):
    """The service reported a terminal failure state."""

    def __init__(self, message: str, *, handle: Optional[str] = None, snapshot: Any = None) -> None:
        super().__init__(message, handle=handle)
        self.snapshot = snapshot


class TrainingFailedError(DomainFailureError):
    pass


class UnexpectedStatusError(PollError):
    def __init__(self, message: str, *, handle: Optional[str] = None, snapshot: Any = None) -> None:
        super().__init__(message, handle=handle)
        self.snapshot = snapshot


def error_message_from_payload(payload: Dict[str, Any], default: str) -> str:
    """Pick the most specific message out of an error response body."""
    error = payload.get("error")
    if isinstance(error, dict):
        error = error.get("message")
    return error or payload.get("message") or payload.get("statusText") or default
