"""
API layer for VoicePrep

Contains FastAPI routers for:
- Interview lifecycle
- Audio transcription and speech synthesis
"""

from voiceprep.api.router import api_router

__all__ = ["api_router"]
