"""Error codes and exceptions for the scheduling core."""

from __future__ import annotations

from enum import Enum


class ErrorCode(Enum):
    """Machine-readable error codes returned by the tool layer."""

    VALIDATION_FAILED = "VALIDATION_FAILED"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    NOT_PUBLISHED = "NOT_PUBLISHED"
    UNSUPPORTED_OPERATION = "UNSUPPORTED_OPERATION"
    COLLABORATOR_FAILED = "COLLABORATOR_FAILED"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"


class ScheduleError(Exception):
    """Base error with code and user-safe message."""

    code = ErrorCode.VALIDATION_FAILED

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message, "code": self.code.value}


class ValidationFailure(ScheduleError):
    """Missing required field, empty title or invalid time ordering."""

    code = ErrorCode.VALIDATION_FAILED


class SessionNotFound(ValidationFailure):
    """Raised when no session in the working set carries the given id."""

    code = ErrorCode.SESSION_NOT_FOUND

    def __init__(self, session_id: object) -> None:
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class NotPublished(ValidationFailure):
    """Raised when a share or export operation needs a publication code."""

    code = ErrorCode.NOT_PUBLISHED

    def __init__(self, message: str = "Event is not published yet. Publish it first.") -> None:
        super().__init__(message)


class UnsupportedOperation(ScheduleError):
    """The request is valid but outside what the current scope supports."""

    code = ErrorCode.UNSUPPORTED_OPERATION


class CollaboratorFailure(ScheduleError):
    """A persistence call did not succeed. The caller may retry."""

    code = ErrorCode.COLLABORATOR_FAILED


class EventNotFound(CollaboratorFailure):
    """Raised when no event exists for a publication code."""

    code = ErrorCode.EVENT_NOT_FOUND

    def __init__(self, share_code: str) -> None:
        super().__init__(f"Event not found: {share_code}")
        self.share_code = share_code
