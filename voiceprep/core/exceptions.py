"""
Exception hierarchy for VoicePrep.

Every error carries a message and a machine-readable code so the API
layer can map it to a response without inspecting message text.
"""

from enum import Enum
from typing import Any


class VoicePrepError(Exception):
    """Base class for all VoicePrep errors."""

    def __init__(self, message: str, error_code: str | None = None, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert the error into a response-friendly dictionary."""
        return {
            "error": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


# ============================================================================
# EXTERNAL CALLS
# ============================================================================

class ExternalServiceError(VoicePrepError):
    """A provider call failed (HTTP error, transport error, bad payload)."""

    def __init__(self, message: str, status_code: int | None = None, retryable: bool = True):
        super().__init__(message, "EXTERNAL_SERVICE_ERROR", {"status_code": status_code})
        self.status_code = status_code
        self.retryable = retryable


class ExternalTimeoutError(ExternalServiceError):
    """A provider call exceeded its wait ceiling."""

    def __init__(self, operation: str, timeout_seconds: float):
        super().__init__(
            f"{operation} timed out after {timeout_seconds:.0f}s",
            status_code=None,
            retryable=True,
        )
        self.error_code = "EXTERNAL_TIMEOUT"
        self.details["timeout_seconds"] = timeout_seconds


# ============================================================================
# VALIDATION
# ============================================================================

class InputValidationError(VoicePrepError):
    """A caller supplied a missing or malformed value."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, "INPUT_VALIDATION_ERROR", {"field": field})
        self.field = field


class AnswerValidationError(InputValidationError):
    """An answer was empty after trimming."""

    def __init__(self, message: str = "Answer must not be empty"):
        super().__init__(message, field="answer")
        self.error_code = "ANSWER_VALIDATION_ERROR"


# ============================================================================
# STATE MACHINE
# ============================================================================

class StateConflictError(VoicePrepError):
    """An operation was invoked from a state that does not allow it."""

    def __init__(self, message: str, current_state: str | None = None):
        super().__init__(message, "STATE_CONFLICT", {"current_state": current_state})
        self.current_state = current_state


class ConcurrentSubmissionError(StateConflictError):
    """A second answer arrived while the first one is still processing."""

    def __init__(self):
        super().__init__("An answer is already being processed", current_state="processing")
        self.error_code = "CONCURRENT_SUBMISSION"


class InterviewStartError(VoicePrepError):
    """Starting the interview failed; the orchestrator is in the error state."""

    def __init__(self, message: str):
        super().__init__(message, "INTERVIEW_START_ERROR")


class SessionPersistenceError(VoicePrepError):
    """The session store could not write or clear a session."""

    def __init__(self, message: str, scope: str | None = None):
        super().__init__(message, "SESSION_PERSISTENCE_ERROR", {"scope": scope})


class SummaryGenerationError(VoicePrepError):
    """The summary call failed or returned nothing usable."""

    def __init__(self, message: str):
        super().__init__(message, "SUMMARY_GENERATION_ERROR")


# ============================================================================
# TRANSCRIPTION
# ============================================================================

class TranscriptionErrorCode(str, Enum):
    """Reasons a transcription can fail."""

    EMPTY_AUDIO = "empty_audio"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    UNSUPPORTED_FORMAT = "unsupported_format"
    UNSUPPORTED_LANGUAGE = "unsupported_language"
    EMPTY_RESULT = "empty_result"
    TIMEOUT = "timeout"
    TRANSPORT = "transport"


class TranscriptionError(VoicePrepError):
    """Transcription failed; the user has to record the answer again."""

    def __init__(self, code: TranscriptionErrorCode, message: str):
        super().__init__(message, code.value.upper())
        self.code = code

    @property
    def is_input_error(self) -> bool:
        """True when the clip was rejected before any external call."""
        return self.code in (
            TranscriptionErrorCode.EMPTY_AUDIO,
            TranscriptionErrorCode.PAYLOAD_TOO_LARGE,
            TranscriptionErrorCode.UNSUPPORTED_FORMAT,
        )
