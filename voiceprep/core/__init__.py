"""
Core business logic modules for VoicePrep

Contains:
- Interview Orchestrator: State machine for interview lifecycle
- Question Generator: Next question with deterministic fallbacks
- Transcription Adapter: Speech-to-text with partial/final callbacks
- Session Store: Persistence of the single active session per scope
- Summary Generator: End-of-interview feedback
"""

from voiceprep.core.interview_orchestrator import InterviewOrchestrator, SubmitResult
from voiceprep.core.question_generator import QuestionGenerator
from voiceprep.core.session_store import FileSessionStore, InMemorySessionStore, SessionStore
from voiceprep.core.summary_generator import SummaryGenerator
from voiceprep.core.transcription import TranscriptionAdapter, TranscriptionHandle

__all__ = [
    "InterviewOrchestrator",
    "SubmitResult",
    "QuestionGenerator",
    "SessionStore",
    "InMemorySessionStore",
    "FileSessionStore",
    "SummaryGenerator",
    "TranscriptionAdapter",
    "TranscriptionHandle",
]
