"""Errors raised by debate room operations.

Every error carries a short message that is safe to show to users.
"""

from enum import Enum


class DebateRoomError(Exception):
    """Base class for all user-displayable debate room failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(DebateRoomError):
    """A room, participant or speech does not exist."""


class RoomNotFoundError(NotFoundError):
    def __init__(self, message: str = "Room not found"):
        super().__init__(message)


class InvalidStateError(DebateRoomError):
    """The operation is not valid in the room's current status or phase."""


class NoMotionError(InvalidStateError):
    def __init__(self, message: str = "A motion must be set before starting"):
        super().__init__(message)


class NotReadyError(InvalidStateError):
    def __init__(self, message: str = "All participants must be ready"):
        super().__init__(message)


class ConflictError(DebateRoomError):
    """A seat is taken, a speech is already open or the caller already joined."""


class RoleConflictError(ConflictError):
    pass


class ForbiddenError(DebateRoomError):
    """The caller lacks the role the operation requires."""


class NotCreatorError(ForbiddenError):
    def __init__(self, message: str = "Only the room creator can start the debate"):
        super().__init__(message)


class ValidationError(DebateRoomError):
    """Malformed input such as a bad room code or an out-of-range duration."""


class ExternalServiceError(DebateRoomError):
    """An AI collaborator failed."""


class MotionGenerationError(ExternalServiceError):
    pass


class FeedbackGenerationError(ExternalServiceError):
    pass


class TranscriptionErrorCode(Enum):
    """Failure categories reported by the transcription service."""

    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    INVALID_FORMAT = "INVALID_FORMAT"
    TRANSCRIPTION_FAILED = "TRANSCRIPTION_FAILED"
    SERVICE_ERROR = "SERVICE_ERROR"


class TranscriptionError(ExternalServiceError):
    """Transcription failed; `code` says why and `details` carries diagnostics."""

    def __init__(
        self, message: str, code: TranscriptionErrorCode, details: str | None = None
    ):
        super().__init__(message)
        self.code = code
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} ({self.code.value}): {self.details}"
        return f"{self.message} ({self.code.value})"
