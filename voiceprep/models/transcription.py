"""
Transcription models for VoicePrep
"""

from dataclasses import dataclass
from pathlib import PurePath
from typing import TYPE_CHECKING, Callable

from pydantic import BaseModel

if TYPE_CHECKING:
    from voiceprep.core.exceptions import TranscriptionError


SUPPORTED_AUDIO_FORMATS = ("mp3", "mp4", "mpeg", "mpga", "m4a", "wav", "webm")


class TranscriptionResult(BaseModel):
    """A partial or final transcript. Not persisted."""

    text: str
    is_final: bool = False
    delta: str = ""


@dataclass
class AudioClip:
    """A recorded answer as uploaded by the client."""

    filename: str
    data: bytes
    content_type: str | None = None

    @property
    def extension(self) -> str:
        return PurePath(self.filename).suffix.lstrip(".").lower()

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class TranscriptionCallbacks:
    """Receivers for transcription progress. All are optional."""

    on_partial: Callable[[str, str], None] | None = None  # (delta, full_text)
    on_final: Callable[[str], None] | None = None
    on_error: Callable[["TranscriptionError"], None] | None = None
