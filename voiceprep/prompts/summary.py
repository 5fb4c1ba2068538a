"""
Interview Feedback Prompts

Builds the prompt that turns the full question/answer transcript into
written feedback for the candidate.
"""


class SummaryPrompts:
    """Prompt templates for end-of-interview feedback."""

    SYSTEM_CONTEXT = """You are an experienced interviewer and career coach giving feedback after a mock interview.

Your role:
- Provide constructive, specific feedback
- Be encouraging but honest
- Base every point on what the candidate actually said
"""

    def __init__(self, language: str = "Korean"):
        self.language = language

    def format_transcript(self, turns: list[dict[str, str]]) -> str:
        """Render turns as numbered Q/A pairs in interview order."""
        return "\n\n".join(
            f"Q{i}: {turn['question']}\nA{i}: {turn['answer'] or '(no answer)'}"
            for i, turn in enumerate(turns, 1)
        )

    def feedback_messages(self, turns: list[dict[str, str]]) -> list[dict[str, str]]:
        """Build messages for the final feedback."""
        prompt = f"""Write overall feedback for the following interview.

=== INTERVIEW TRANSCRIPT ===
{self.format_transcript(turns)}

=== FEEDBACK REQUIREMENTS ===
1. Write in {self.language}
2. Balance the candidate's strengths and areas for improvement
3. Include concrete, actionable advice
4. Finish with a message of encouragement
5. Use 3-4 paragraphs

Feedback:"""

        return [
            {"role": "system", "content": self.SYSTEM_CONTEXT},
            {"role": "user", "content": prompt},
        ]
