"""
Interview Orchestrator - State machine for managing interview lifecycle.

This is the central coordinator for one interview. It manages state
transitions, coordinates the question, transcription and summary
components, and is the only code that mutates the session.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from voiceprep.core.exceptions import (
    AnswerValidationError,
    ConcurrentSubmissionError,
    InputValidationError,
    InterviewStartError,
    StateConflictError,
    TranscriptionError,
)
from voiceprep.core.question_generator import looks_like_closing
from voiceprep.core.session_store import SessionStore
from voiceprep.core.summary_generator import FALLBACK_SUMMARY
from voiceprep.core.transcription import TranscriptionHandle
from voiceprep.models.interview import (
    DEFAULT_QUESTION_BUDGET,
    CompletionReason,
    InterviewSession,
    InterviewStatus,
    Turn,
    utc_now,
)
from voiceprep.models.transcription import AudioClip, TranscriptionCallbacks

logger = logging.getLogger(__name__)


@dataclass
class SubmitResult:
    """Outcome of an accepted answer."""

    session: InterviewSession
    is_complete: bool
    next_question: str | None = None
    summary: str | None = None

    @property
    def question_number(self) -> int:
        return min(self.session.turn_number, self.session.question_budget)

    @property
    def closing_hint(self) -> bool:
        """Next question reads like a goodbye. Informational only."""
        return bool(self.next_question) and looks_like_closing(self.next_question)


class InterviewOrchestrator:
    """
    Drives one interview using a state machine pattern.

    States:
        STARTING → ASKING → ANSWERING → PROCESSING → (ASKING | SUMMARIZING) → COMPLETED

    ERROR is reachable from every non-terminal state. COMPLETED and ERROR
    are terminal; after ERROR the caller has to start() again.

    The question budget is the only signal that ends an interview.
    """

    VALID_TRANSITIONS: dict[InterviewStatus, list[InterviewStatus]] = {
        InterviewStatus.STARTING: [InterviewStatus.ASKING, InterviewStatus.ERROR],
        InterviewStatus.ASKING: [
            InterviewStatus.ANSWERING,
            InterviewStatus.PROCESSING,
            InterviewStatus.COMPLETED,
            InterviewStatus.ERROR,
        ],
        InterviewStatus.ANSWERING: [
            InterviewStatus.PROCESSING,
            InterviewStatus.COMPLETED,
            InterviewStatus.ERROR,
        ],
        InterviewStatus.PROCESSING: [
            InterviewStatus.ASKING,
            InterviewStatus.SUMMARIZING,
            InterviewStatus.ERROR,
        ],
        InterviewStatus.SUMMARIZING: [InterviewStatus.COMPLETED, InterviewStatus.ERROR],
        InterviewStatus.COMPLETED: [],  # Terminal state
        InterviewStatus.ERROR: [],  # Terminal state
    }

    def __init__(
        self,
        store: SessionStore,
        question_generator: Any,  # QuestionGenerator
        summary_generator: Any,  # SummaryGenerator
        transcription_adapter: Any = None,  # TranscriptionAdapter
        question_budget: int = DEFAULT_QUESTION_BUDGET,
    ):
        """
        Initialize the orchestrator with component dependencies.

        Args:
            store: Persistence for this interview's storage scope
            question_generator: Produces the question for each turn
            summary_generator: Produces the final feedback
            transcription_adapter: Turns recorded answers into text
            question_budget: Number of question/answer turns
        """
        if question_budget <= 0:
            raise ValueError("question_budget must be positive")

        self.store = store
        self.question_generator = question_generator
        self.summary_generator = summary_generator
        self.transcription_adapter = transcription_adapter
        self.question_budget = question_budget

        self.session: InterviewSession | None = None
        self.error_message: str | None = None
        self.active_recording: TranscriptionHandle | None = None

        self._failed_before_session = False
        self._completion_callbacks: list[Callable[[InterviewSession], Awaitable[None]]] = []

    # =========================================================================
    # OBSERVABLE STATE
    # =========================================================================

    @property
    def status(self) -> InterviewStatus | None:
        """Current status, or None before start()."""
        if self.session is not None:
            return self.session.status
        return InterviewStatus.ERROR if self._failed_before_session else None

    @property
    def current_question(self) -> str | None:
        return self.session.current_question if self.session else None

    def _require_session(self) -> InterviewSession:
        if self.session is None:
            raise StateConflictError("Interview has not been started", current_state=None)
        return self.session

    # =========================================================================
    # STATE MACHINE
    # =========================================================================

    def _transition(self, new_status: InterviewStatus) -> InterviewSession:
        """
        Move the session to a new status and persist it.

        Raises:
            StateConflictError: If the transition is invalid
        """
        session = self._require_session()
        old_status = session.status

        valid_next = self.VALID_TRANSITIONS.get(old_status, [])
        if new_status not in valid_next:
            raise StateConflictError(
                f"Invalid transition from {old_status.value} to {new_status.value}",
                current_state=old_status.value,
            )

        session.status = new_status
        if new_status.is_terminal:
            session.ended_at = utc_now()

        self.store.save(session)
        logger.info(f"Session {session.id}: {old_status.value} → {new_status.value}")
        return session

    def _fail(self, reason: str) -> None:
        """Move to ERROR, capturing the reason. Never raises."""
        self.error_message = reason
        if self.session is None:
            self._failed_before_session = True
            logger.error(f"Interview failed before a session existed: {reason}")
            return

        if self.session.status.is_terminal:
            return

        logger.error(f"Session {self.session.id} failed: {reason}")
        self.session.error_message = reason
        self.session.status = InterviewStatus.ERROR
        self.session.ended_at = utc_now()
        try:
            self.store.save(self.session)
        except Exception as e:
            logger.error(f"Could not persist error state for {self.session.id}: {e}")

    # =========================================================================
    # INTERVIEW FLOW
    # =========================================================================

    async def start(self, phone_number: str) -> InterviewSession:
        """
        Create a session and ask the first question.

        Args:
            phone_number: Candidate's phone number

        Returns:
            The session in ASKING state with the first question set

        Raises:
            InputValidationError: If the phone number is blank
            StateConflictError: If an interview is already running
            InterviewStartError: If the session could not be created
        """
        if not phone_number or not phone_number.strip():
            raise InputValidationError("Phone number is required", field="phone_number")

        if self.session is not None and not self.session.status.is_terminal:
            raise StateConflictError(
                "An interview is already in progress",
                current_state=self.session.status.value,
            )

        self.session = None
        self.error_message = None
        self._failed_before_session = False

        try:
            self.session = self.store.create(phone_number.strip(), self.question_budget)
        except Exception as e:
            self._fail(f"Session creation failed: {e}")
            raise InterviewStartError(self.error_message) from e

        try:
            question = await self.question_generator.next_question([], 1)
            self.session.current_question = question
            self._transition(InterviewStatus.ASKING)
        except Exception as e:
            self._fail(f"Interview start failed: {e}")
            raise InterviewStartError(self.error_message) from e

        return self.session

    def begin_answer(self) -> InterviewSession:
        """Mark that the candidate started recording (ASKING → ANSWERING)."""
        session = self._require_session()
        if session.status == InterviewStatus.ANSWERING:
            return session
        if session.status != InterviewStatus.ASKING:
            raise StateConflictError(
                f"Cannot record an answer in state: {session.status.value}",
                current_state=session.status.value,
            )
        return self._transition(InterviewStatus.ANSWERING)

    async def record_answer(
        self,
        clip: AudioClip,
        callbacks: TranscriptionCallbacks | None = None,
        release: Callable[[], None] | None = None,
    ) -> SubmitResult | None:
        """
        Transcribe a recorded answer and submit the final text.

        Partial results are forwarded to the given callbacks. A failed
        transcription leaves the session in ANSWERING so the candidate
        can record again.

        Returns:
            The submit result, or None if the recording was cancelled

        Raises:
            TranscriptionError: If transcription failed
        """
        if self.transcription_adapter is None:
            raise StateConflictError("No transcription adapter configured")
        if self.active_recording is not None and not self.active_recording.done:
            raise StateConflictError("A recording is already being transcribed", current_state="answering")

        session = self.begin_answer()
        answering_index = session.question_index
        callbacks = callbacks or TranscriptionCallbacks()
        final_text: list[str] = []
        errors: list[TranscriptionError] = []

        def on_final(text: str) -> None:
            final_text.append(text)
            if callbacks.on_final:
                callbacks.on_final(text)

        def on_error(error: TranscriptionError) -> None:
            errors.append(error)
            if callbacks.on_error:
                callbacks.on_error(error)

        handle = self.transcription_adapter.transcribe(
            clip,
            TranscriptionCallbacks(on_partial=callbacks.on_partial, on_final=on_final, on_error=on_error),
            release=release,
        )
        self.active_recording = handle
        try:
            await handle.wait()
        finally:
            self.active_recording = None

        if handle.cancelled:
            logger.info("Recording cancelled; waiting for a new answer")
            return None
        if errors:
            raise errors[0]
        if session.question_index != answering_index or session.status != InterviewStatus.ANSWERING:
            raise StateConflictError(
                "The question changed while the answer was being transcribed",
                current_state=session.status.value,
            )
        return await self._commit_answer(final_text[0])

    def cancel_recording(self) -> None:
        """Cancel the transcription in progress, if any."""
        if self.active_recording is not None:
            self.active_recording.cancel()

    async def submit_answer(self, text: str) -> SubmitResult:
        """
        Commit an answer to the current question.

        Args:
            text: Answer transcript

        Returns:
            The next question, or completion with the summary

        Raises:
            AnswerValidationError: If the answer is blank (nothing changes)
            ConcurrentSubmissionError: If another answer is being processed
                or a recorded answer is still being transcribed
            StateConflictError: If the interview is not waiting for an answer
        """
        if self.active_recording is not None and not self.active_recording.done:
            raise ConcurrentSubmissionError()
        return await self._commit_answer(text)

    async def _commit_answer(self, text: str) -> SubmitResult:
        session = self._require_session()

        if session.status in (InterviewStatus.PROCESSING, InterviewStatus.SUMMARIZING):
            raise ConcurrentSubmissionError()
        if session.status not in (InterviewStatus.ASKING, InterviewStatus.ANSWERING):
            raise StateConflictError(
                f"Cannot submit an answer in state: {session.status.value}",
                current_state=session.status.value,
            )
        if text is None or not text.strip():
            raise AnswerValidationError()

        try:
            # Claim the session before the first suspension point
            self._transition(InterviewStatus.PROCESSING)

            session.turns.append(Turn(question=session.current_question or "", answer=text.strip()))
            session.question_index += 1
            session.current_question = None
            self.store.save(session)

            logger.info(f"Session {session.id}: answer {session.question_index}/{session.question_budget} recorded")

            if session.question_index == session.question_budget:
                self._transition(InterviewStatus.SUMMARIZING)
                summary = await self.summarize()
                return SubmitResult(session=session, is_complete=True, summary=summary)

            question = await self.question_generator.next_question(
                session.history(),
                session.question_index + 1,
            )
            session.current_question = question
            self._transition(InterviewStatus.ASKING)
        except Exception as e:
            self._fail(f"Answer processing failed: {e}")
            raise

        return SubmitResult(session=session, is_complete=False, next_question=question)

    async def summarize(self) -> str:
        """
        Generate the final feedback and complete the interview.

        Summary failures fall back to a fixed text; the interview still
        completes.
        """
        session = self._require_session()
        if session.status != InterviewStatus.SUMMARIZING:
            raise StateConflictError(
                f"Cannot summarize in state: {session.status.value}",
                current_state=session.status.value,
            )

        try:
            summary = await self.summary_generator.generate(session.history())
        except Exception as e:
            logger.warning(f"Summary failed for {session.id}, using fallback: {e}")
            summary = FALLBACK_SUMMARY

        session.summary = summary
        session.completion_reason = CompletionReason.BUDGET_REACHED
        self._transition(InterviewStatus.COMPLETED)

        await self._notify_complete(session)
        return summary

    async def interrupt(self) -> InterviewSession:
        """
        End the interview early, keeping every answered turn.

        No feedback is generated for an interrupted interview.
        """
        session = self._require_session()
        if session.status not in (InterviewStatus.ASKING, InterviewStatus.ANSWERING):
            raise StateConflictError(
                f"Cannot interrupt in state: {session.status.value}",
                current_state=session.status.value,
            )

        self.cancel_recording()
        session.completion_reason = CompletionReason.INTERRUPTED
        self._transition(InterviewStatus.COMPLETED)

        await self._notify_complete(session)
        return session

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    async def resume(self) -> InterviewSession | None:
        """
        Adopt the session stored for this scope, finishing any step that
        was cut off mid-way.

        Returns:
            The stored session, or None if nothing valid was stored
        """
        if self.session is not None and not self.session.status.is_terminal:
            raise StateConflictError("An interview is already in progress", current_state=self.session.status.value)

        stored = self.store.load()
        if stored is None:
            return None

        self.session = stored
        self._failed_before_session = False
        logger.info(f"Resumed session {stored.id} in state {stored.status.value}")

        try:
            if stored.status == InterviewStatus.STARTING:
                stored.current_question = await self.question_generator.next_question([], 1)
                self._transition(InterviewStatus.ASKING)
            elif stored.status == InterviewStatus.PROCESSING:
                if stored.budget_exhausted:
                    self._transition(InterviewStatus.SUMMARIZING)
                else:
                    stored.current_question = await self.question_generator.next_question(
                        stored.history(),
                        stored.question_index + 1,
                    )
                    self._transition(InterviewStatus.ASKING)

            if stored.status == InterviewStatus.SUMMARIZING:
                await self.summarize()
        except Exception as e:
            self._fail(f"Resume failed: {e}")
            raise

        return stored

    def reset(self) -> None:
        """Forget the current interview and clear the stored session."""
        self.cancel_recording()
        self.store.clear()
        self.session = None
        self.error_message = None
        self._failed_before_session = False

    # =========================================================================
    # EVENT CALLBACKS
    # =========================================================================

    def on_complete(self, callback: Callable[[InterviewSession], Awaitable[None]]) -> None:
        """Register a callback for interview completion."""
        self._completion_callbacks.append(callback)

    async def _notify_complete(self, session: InterviewSession) -> None:
        for callback in self._completion_callbacks:
            try:
                await callback(session)
            except Exception as e:
                logger.error(f"Completion callback error: {e}")
