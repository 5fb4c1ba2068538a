"""
API endpoint modules for VoicePrep
"""

from voiceprep.api.endpoints import audio, interview

__all__ = ["interview", "audio"]
