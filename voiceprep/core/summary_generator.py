"""
Summary Generator for VoicePrep

Writes the end-of-interview feedback from the full transcript. Failures
are raised as SummaryGenerationError; the orchestrator decides on the
fallback text.
"""

import logging
from contextlib import nullcontext
from typing import Any

from voiceprep.core.exceptions import ExternalServiceError, SummaryGenerationError
from voiceprep.core.retry import RetryPolicy
from voiceprep.prompts.summary import SummaryPrompts

logger = logging.getLogger(__name__)


FALLBACK_SUMMARY = """면접에 참여해주셔서 감사합니다.

지원자님의 답변을 통해 기본적인 소통 능력과 의지를 확인할 수 있었습니다.

앞으로 더 구체적인 경험과 예시를 포함하여 답변하시면 더욱 인상적인 면접이 될 것입니다.

지원자님의 성공을 응원합니다!"""


class SummaryGenerator:
    """Generates narrative interview feedback with the language model."""

    def __init__(
        self,
        client: Any,  # OpenAIClient or anything exposing generate_text()
        retry_policy: RetryPolicy | None = None,
        language: str = "Korean",
    ):
        self.client = client
        self.retry_policy = retry_policy or RetryPolicy()
        self.prompts = SummaryPrompts(language=language)

    async def generate(self, turns: list[dict[str, str]]) -> str:
        """
        Generate feedback covering every turn in order.

        Args:
            turns: Question/answer pairs in interview order

        Returns:
            Multi-paragraph feedback text

        Raises:
            SummaryGenerationError: If the call fails or returns nothing
        """
        messages = self.prompts.feedback_messages(turns)
        trace = getattr(self.client, "trace", None)

        logger.info(f"Generating interview feedback for {len(turns)} turns")

        with trace("generate_summary", {"turns": len(turns)}) if trace else nullcontext():
            try:
                summary = await self.retry_policy.run(
                    lambda: self.client.generate_text(messages, max_tokens=800, temperature=0.7),
                    description="summary generation",
                )
            except ExternalServiceError as e:
                raise SummaryGenerationError(f"Summary generation failed: {e}") from e

        summary = (summary or "").strip()
        if not summary:
            raise SummaryGenerationError("Summary generation returned no text")

        logger.info("Interview feedback generated")
        return summary
