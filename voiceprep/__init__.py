"""
VoicePrep - Voice-driven mock interview practice

Runs a fixed-length spoken interview: generated questions, transcribed
answers, and narrative feedback at the end.
"""

__version__ = "0.1.0"
__author__ = "VoicePrep Team"
