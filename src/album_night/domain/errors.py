"""Error taxonomy shared by services, adapters and the API."""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Stable tags that let callers tell failures apart."""

    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    NOT_ALLOWED = "not_allowed"
    UNAVAILABLE = "unavailable"
    PARTIAL_FAILURE = "partial_failure"


class AlbumNightError(Exception):
    """Base class for every failure surfaced to a device."""

    kind: ErrorKind = ErrorKind.INVALID_INPUT

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AlbumNightError):
    """Input was rejected before reaching the store."""

    kind = ErrorKind.INVALID_INPUT


class SessionNotFound(ValidationError):
    """No session exists for the given code."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, code: str) -> None:
        super().__init__(f"Session {code} not found")
        self.code = code


class GuardViolation(AlbumNightError):
    """The action is not allowed in the session's current state."""

    kind = ErrorKind.NOT_ALLOWED


class StoreUnavailable(AlbumNightError):
    """The score store could not be reached; the caller may retry."""

    kind = ErrorKind.UNAVAILABLE


class PartialSequenceFailure(AlbumNightError):
    """A multi-step store operation stopped partway through."""

    kind = ErrorKind.PARTIAL_FAILURE

    def __init__(
        self, operation: str, completed_steps: list[str], failed_step: str
    ) -> None:
        super().__init__(
            f"{operation} failed at '{failed_step}' after "
            f"{', '.join(completed_steps) or 'no steps'}; retrying is safe"
        )
        self.operation = operation
        self.completed_steps = completed_steps
        self.failed_step = failed_step
