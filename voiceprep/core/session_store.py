"""
Session Store for VoicePrep

Passive persistence boundary for interview sessions. A store holds at
most one session per storage scope under a fixed key; creating a session
replaces whatever the scope held before.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import ValidationError

from voiceprep.core.exceptions import SessionPersistenceError
from voiceprep.models.interview import DEFAULT_QUESTION_BUDGET, InterviewSession

logger = logging.getLogger(__name__)


STORAGE_KEY = "interview_session"
DEFAULT_SCOPE = "default"


def parse_session(serialized: str | bytes | None) -> InterviewSession | None:
    """
    Deserialize and validate a stored session.

    Returns None for missing, corrupted or invalid data instead of raising.
    """
    if not serialized:
        return None
    try:
        session = InterviewSession.model_validate_json(serialized)
    except ValidationError as e:
        logger.error(f"Discarding invalid stored session: {e.error_count()} validation errors")
        return None

    if not session.id.strip() or not session.phone_number.strip():
        logger.error("Discarding stored session with blank id or phone number")
        return None
    return session


class SessionStore(ABC):
    """
    Load/save interview sessions by value for one storage scope.

    The orchestrator owns every mutation; the store only copies sessions
    in and out, so a loaded session is never the same object as the
    one that was saved.
    """

    def __init__(self, scope: str = DEFAULT_SCOPE):
        self.scope = scope

    def create(self, phone_number: str, question_budget: int = DEFAULT_QUESTION_BUDGET) -> InterviewSession:
        """Create a new session and persist it, superseding the scope's previous one."""
        session = InterviewSession(phone_number=phone_number, question_budget=question_budget)
        self.save(session)
        logger.info(f"Created session {session.id} in scope {self.scope!r}")
        return session

    def save(self, session: InterviewSession) -> None:
        """Persist the session, overwriting the stored record."""
        try:
            self._write(session.model_dump_json())
        except OSError as e:
            raise SessionPersistenceError(f"Failed to save session {session.id}: {e}", scope=self.scope) from e
        logger.debug(f"Saved session {session.id} ({session.status.value})")

    def load(self) -> InterviewSession | None:
        """Load the stored session, or None when absent or invalid."""
        try:
            serialized = self._read()
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read session in scope {self.scope!r}: {e}")
            return None
        return parse_session(serialized)

    def clear(self) -> None:
        """Remove the stored session."""
        try:
            self._delete()
        except OSError as e:
            raise SessionPersistenceError(f"Failed to clear session: {e}", scope=self.scope) from e
        logger.info(f"Cleared session in scope {self.scope!r}")

    @abstractmethod
    def _write(self, serialized: str) -> None: ...

    @abstractmethod
    def _read(self) -> str | None: ...

    @abstractmethod
    def _delete(self) -> None: ...


class InMemorySessionStore(SessionStore):
    """Store backed by a dict shared between scopes."""

    def __init__(self, scope: str = DEFAULT_SCOPE, backend: dict[str, str] | None = None):
        super().__init__(scope)
        self.backend = backend if backend is not None else {}

    @property
    def _key(self) -> str:
        return f"{self.scope}:{STORAGE_KEY}"

    def _write(self, serialized: str) -> None:
        self.backend[self._key] = serialized

    def _read(self) -> str | None:
        return self.backend.get(self._key)

    def _delete(self) -> None:
        self.backend.pop(self._key, None)


class FileSessionStore(SessionStore):
    """Store writing one JSON file per scope."""

    def __init__(self, directory: str | Path, scope: str = DEFAULT_SCOPE):
        super().__init__(scope)
        self.directory = Path(directory)

    @property
    def path(self) -> Path:
        return self.directory / f"{self.scope}.{STORAGE_KEY}.json"

    def _write(self, serialized: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        # Atomic replace
        tmp_path = self.path.with_suffix(".tmp")
        tmp_path.write_text(serialized, encoding="utf-8")
        tmp_path.replace(self.path)

    def _read(self) -> str | None:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")

    def _delete(self) -> None:
        self.path.unlink(missing_ok=True)
