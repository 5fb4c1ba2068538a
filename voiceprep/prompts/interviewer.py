"""
AI Interviewer Prompt Templates

Contains structured prompts for:
- The opening (self-introduction) question
- Follow-up questions conditioned on the latest answer

Designed to make the AI behave like a real human interviewer,
not a chatbot.
"""


# Category rotation over a five-question interview, by 1-based turn number
QUESTION_CATEGORIES = [
    "background",
    "experience",
    "problem-solving",
    "teamwork",
    "motivation",
]


def category_for_turn(turn_number: int) -> str:
    """Pick the question category for a turn, cycling past the list end."""
    return QUESTION_CATEGORIES[(turn_number - 1) % len(QUESTION_CATEGORIES)]


class InterviewerPrompts:
    """
    Prompt templates for the AI interviewer.

    Key principles:
    - Friendly but professional tone
    - One short question at a time
    - Builds on what the candidate just said
    """

    SYSTEM_CONTEXT = """You are a professional AI interviewer running a short spoken mock interview.

Your role:
- Ask exactly one clear question at a time
- Keep each question to 1-2 sentences so it sounds natural when read aloud
- Keep a friendly, professional tone
- Never answer on the candidate's behalf or evaluate them mid-interview

Output only the question itself, with no preamble, numbering or explanation.
"""

    def __init__(self, language: str = "Korean"):
        self.language = language

    def _system_message(self) -> dict[str, str]:
        return {
            "role": "system",
            "content": f"{self.SYSTEM_CONTEXT}\nAlways ask in {self.language}.",
        }

    def first_question_messages(self, question_budget: int) -> list[dict[str, str]]:
        """Build messages for the opening question."""
        prompt = f"""Generate the first question of a {question_budget}-question interview.

Requirements:
1. Greet the candidate briefly
2. Ask them to introduce themselves (name, background, studies or career so far)
3. Keep it simple and welcoming

Generate only the first question now:"""

        return [self._system_message(), {"role": "user", "content": prompt}]

    def next_question_messages(
        self,
        history: list[dict[str, str]],
        turn_number: int,
        question_budget: int,
    ) -> list[dict[str, str]]:
        """Build messages for a follow-up question after the latest answer."""
        latest = history[-1]
        category = category_for_turn(turn_number)

        previous_questions = "\n".join(
            f"{i}. {entry['question']}" for i, entry in enumerate(history, 1)
        )

        prompt = f"""=== INTERVIEW PROGRESS ===
Question number: {turn_number}/{question_budget}

=== QUESTIONS ALREADY ASKED (DO NOT REPEAT) ===
{previous_questions}

=== LATEST EXCHANGE ===
Interviewer: {latest['question']}
Candidate: {latest['answer']}

=== YOUR TASK ===
Ask the next question.

Requirements:
1. Build on the candidate's latest answer with a related, deeper question
2. Steer the question toward the candidate's {category}
3. Cover a different area than the questions already asked
4. Keep it to 1-2 sentences

Generate only the next question now:"""

        return [self._system_message(), {"role": "user", "content": prompt}]
