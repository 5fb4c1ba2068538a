"""
Data models and schemas for VoicePrep

Contains models for:
- Interview sessions and turns
- Transcription results and audio clips
"""

from voiceprep.models.interview import (
    InterviewSession,
    InterviewStatus,
    CompletionReason,
    Turn,
)
from voiceprep.models.transcription import (
    AudioClip,
    TranscriptionCallbacks,
    TranscriptionResult,
    SUPPORTED_AUDIO_FORMATS,
)

__all__ = [
    # Interview
    "InterviewSession",
    "InterviewStatus",
    "CompletionReason",
    "Turn",
    # Transcription
    "AudioClip",
    "TranscriptionCallbacks",
    "TranscriptionResult",
    "SUPPORTED_AUDIO_FORMATS",
]
