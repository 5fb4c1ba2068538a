"""
Question Generator for VoicePrep

Turns the interview history into the next question. Generation failures
never reach the orchestrator: a deterministic fallback question is
returned instead, so the interview keeps moving during a provider outage.
"""

import logging
import re
from contextlib import nullcontext
from typing import Any

from voiceprep.core.retry import RetryPolicy
from voiceprep.models.interview import DEFAULT_QUESTION_BUDGET
from voiceprep.prompts.interviewer import InterviewerPrompts, category_for_turn

logger = logging.getLogger(__name__)


OPENING_FALLBACK_QUESTION = (
    "안녕하세요! 면접에 참여해주셔서 감사합니다. 먼저 간단히 자기소개를 해주시겠어요?"
)

# Indexed by turn number starting at turn 2; the last entry repeats
FALLBACK_QUESTIONS = [
    "이전 경험에서 가장 도전적이었던 프로젝트는 무엇이었나요?",
    "그 과정에서 마주친 어려운 문제를 어떻게 해결하셨는지 구체적으로 말씀해주세요.",
    "팀워크가 중요하다고 생각하시나요? 관련 경험을 말씀해주세요.",
    "향후 5년 후 어떤 모습이 되고 싶으신가요?",
]

# Phrases a model tends to use when it thinks the interview is over.
# Informational only: the question budget decides when the interview ends.
CLOSING_PATTERN = re.compile(
    r"종료|마지막|감사합니다|끝|완료|that concludes|final question|thank you for your time",
    re.IGNORECASE,
)

_LABEL_PATTERN = re.compile(r"^(?:q(?:uestion)?\s*\d*\s*[:.)-]|질문\s*\d*\s*[:.)-])\s*", re.IGNORECASE)


def fallback_question(turn_number: int) -> str:
    """Deterministic question used when generation fails."""
    if turn_number <= 1:
        return OPENING_FALLBACK_QUESTION
    index = min(turn_number - 2, len(FALLBACK_QUESTIONS) - 1)
    return FALLBACK_QUESTIONS[index]


def looks_like_closing(text: str) -> bool:
    """True when generated text reads like an interview closing remark."""
    return bool(CLOSING_PATTERN.search(text or ""))


def clean_question(raw: str | None) -> str | None:
    """
    Normalize model output into a single question.

    Returns None when the output is empty or structured data rather
    than a question.
    """
    if not raw:
        return None

    text = raw.strip().strip('"“”\'').strip()
    text = _LABEL_PATTERN.sub("", text).strip()

    if not text or text.startswith("{") or text.startswith("["):
        return None
    return text


class QuestionGenerator:
    """
    Generates interview questions with the configured language model.

    Turn 1 is an opening self-introduction question; later turns follow up
    on the most recent answer while rotating through question categories.
    """

    def __init__(
        self,
        client: Any,  # OpenAIClient or anything exposing generate_text()
        retry_policy: RetryPolicy | None = None,
        question_budget: int = DEFAULT_QUESTION_BUDGET,
        language: str = "Korean",
    ):
        self.client = client
        self.retry_policy = retry_policy or RetryPolicy()
        self.question_budget = question_budget
        self.prompts = InterviewerPrompts(language=language)

    def _trace(self, name: str, metadata: dict[str, Any]):
        trace = getattr(self.client, "trace", None)
        return trace(name, metadata) if trace else nullcontext()

    async def next_question(self, history: list[dict[str, str]], turn_number: int) -> str:
        """
        Produce the question for a 1-based turn number.

        Args:
            history: Prior question/answer pairs in order
            turn_number: Turn to generate, between 1 and the question budget

        Returns:
            A non-empty question
        """
        if not 1 <= turn_number <= self.question_budget:
            raise ValueError(f"turn_number must be within 1..{self.question_budget}, got {turn_number}")

        if turn_number == 1 or not history:
            messages = self.prompts.first_question_messages(self.question_budget)
        else:
            messages = self.prompts.next_question_messages(history, turn_number, self.question_budget)

        logger.info(f"Generating question {turn_number}/{self.question_budget} ({category_for_turn(turn_number)})")

        with self._trace("generate_question", {"turn_number": turn_number}):
            try:
                raw = await self.retry_policy.run(
                    lambda: self.client.generate_text(messages, max_tokens=200, temperature=0.7),
                    description="question generation",
                )
            except Exception as e:
                logger.warning(f"Question generation failed for turn {turn_number}, using fallback: {e}")
                return fallback_question(turn_number)

        question = clean_question(raw)
        if question is None:
            logger.warning(f"Unusable model output for turn {turn_number}, using fallback")
            return fallback_question(turn_number)

        if looks_like_closing(question) and turn_number > 1:
            logger.info(f"Question {turn_number} reads like a closing remark; the question budget still decides")

        return question
