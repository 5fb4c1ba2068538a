"""
AI prompt templates for VoicePrep

Contains structured prompts for:
- Question generation
- Final interview feedback
"""

from voiceprep.prompts.interviewer import InterviewerPrompts, QUESTION_CATEGORIES, category_for_turn
from voiceprep.prompts.summary import SummaryPrompts

__all__ = [
    "InterviewerPrompts",
    "SummaryPrompts",
    "QUESTION_CATEGORIES",
    "category_for_turn",
]
