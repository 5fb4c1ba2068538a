"""
Interview session and state models for VoicePrep
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator


DEFAULT_QUESTION_BUDGET = 5


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def new_session_id() -> str:
    """Generate an opaque interview session id."""
    return f"interview_{uuid4().hex}"


class InterviewStatus(str, Enum):
    """Interview state machine states."""

    STARTING = "starting"  # Session created, first question pending
    ASKING = "asking"  # Question delivered, waiting for the candidate
    ANSWERING = "answering"  # Candidate is recording an answer
    PROCESSING = "processing"  # Answer accepted, next step running
    SUMMARIZING = "summarizing"  # Budget exhausted, feedback being written

    # Terminal states
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (InterviewStatus.COMPLETED, InterviewStatus.ERROR)


class CompletionReason(str, Enum):
    """Why a completed interview ended."""

    BUDGET_REACHED = "budget_reached"
    INTERRUPTED = "interrupted"


class Turn(BaseModel):
    """A committed question/answer pair."""

    question: str
    answer: str
    answered_at: datetime = Field(default_factory=utc_now)


class InterviewSession(BaseModel):
    """Complete interview session state."""

    # Identification
    id: str = Field(default_factory=new_session_id, min_length=1)
    phone_number: str = Field(..., min_length=1)

    # Timing
    started_at: datetime = Field(default_factory=utc_now)
    ended_at: datetime | None = None

    # State
    status: InterviewStatus = InterviewStatus.STARTING
    question_index: int = Field(default=0, ge=0)
    question_budget: int = Field(default=DEFAULT_QUESTION_BUDGET, gt=0)

    # Questions & answers
    turns: list[Turn] = Field(default_factory=list)
    current_question: str | None = None

    # Outcome
    summary: str | None = None
    completion_reason: CompletionReason | None = None
    error_message: str | None = None

    @model_validator(mode="after")
    def _check_turn_counter(self) -> "InterviewSession":
        if self.question_index > self.question_budget:
            raise ValueError(
                f"question_index {self.question_index} exceeds budget {self.question_budget}"
            )
        if len(self.turns) != self.question_index:
            raise ValueError(
                f"{len(self.turns)} turns recorded but question_index is {self.question_index}"
            )
        return self

    # =========================================================================
    # TURN HELPERS
    # =========================================================================

    @property
    def turn_number(self) -> int:
        """1-based number of the question currently being asked."""
        return self.question_index + 1

    @property
    def budget_exhausted(self) -> bool:
        return self.question_index >= self.question_budget

    def history(self) -> list[dict[str, str]]:
        """Ordered question/answer pairs for prompt building."""
        return [{"question": t.question, "answer": t.answer} for t in self.turns]

    def get_duration_seconds(self) -> int:
        """Get interview duration in whole seconds."""
        end = self.ended_at or utc_now()
        return int((end - self.started_at).total_seconds())

    def get_progress_percent(self) -> int:
        """Share of the question budget answered so far (0-100)."""
        progress = self.question_index / self.question_budget * 100
        return min(100, round(progress))

    # =========================================================================
    # EXPORT
    # =========================================================================

    def to_webhook_payload(self) -> dict[str, Any]:
        """Convert the session into the delivery webhook payload."""
        return {
            "sessionId": self.id,
            "phoneNumber": self.phone_number,
            "interviewDate": self.started_at.isoformat(),
            "duration": self.get_duration_seconds(),
            "questionCount": len(self.turns),
            "totalQuestions": self.question_budget,
            "questions": [
                {
                    "number": number,
                    "question": turn.question,
                    "answer": turn.answer,
                    "timestamp": turn.answered_at.isoformat(),
                }
                for number, turn in enumerate(self.turns, 1)
            ],
            "summary": self.summary or "",
            "status": self.status.value,
            "completionReason": self.completion_reason.value if self.completion_reason else None,
            "completedAt": (self.ended_at or utc_now()).isoformat(),
        }

    def format_as_text(self) -> str:
        """Render the session as a human-readable interview record."""
        minutes, seconds = divmod(self.get_duration_seconds(), 60)

        lines = [
            "=== Interview Record ===",
            "",
            f"Interview ID: {self.id}",
            f"Phone number: {self.phone_number}",
            f"Started at: {self.started_at.isoformat()}",
            f"Duration: {minutes}m {seconds}s",
            f"Questions: {len(self.turns)} / {self.question_budget}",
            f"Status: {self.status.value}",
            "",
            "=== Questions and Answers ===",
            "",
        ]
        for number, turn in enumerate(self.turns, 1):
            lines += [
                f"[Question {number}]",
                turn.question,
                "",
                "[Answer]",
                turn.answer,
                "",
                "---",
                "",
            ]

        if self.summary:
            lines += ["=== Feedback ===", "", self.summary, ""]

        return "\n".join(lines)
