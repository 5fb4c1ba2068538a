"""
Interview API endpoints

Handles interview session lifecycle:
- Starting and resuming interviews
- Submitting typed or recorded answers
- Interrupting and summarizing
- Reading and clearing sessions
"""

from typing import Any

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from voiceprep.api.dependencies import InterviewRegistry, get_registry
from voiceprep.config.settings import Settings, get_settings
from voiceprep.core.interview_orchestrator import InterviewOrchestrator, SubmitResult
from voiceprep.core.phone import format_phone_number, is_valid_phone_number
from voiceprep.models.interview import InterviewSession, InterviewStatus
from voiceprep.models.transcription import AudioClip

router = APIRouter()


# ============================================================================
# REQUEST MODELS
# ============================================================================

class PhoneRequest(BaseModel):
    """Request carrying the candidate's phone number."""
    model_config = ConfigDict(populate_by_name=True)

    phone_number: str = Field(..., alias="phoneNumber")


class AnswerRequest(BaseModel):
    """Request model for submitting a typed answer."""
    answer: str


# ============================================================================
# HELPERS
# ============================================================================

def session_view(session: InterviewSession) -> dict[str, Any]:
    """Session as returned to the client."""
    return {
        "id": session.id,
        "phoneNumber": session.phone_number,
        "status": session.status.value,
        "questionIndex": session.question_index,
        "totalQuestions": session.question_budget,
        "currentQuestion": session.current_question,
        "turns": [
            {
                "question": turn.question,
                "answer": turn.answer,
                "answeredAt": turn.answered_at.isoformat(),
            }
            for turn in session.turns
        ],
        "summary": session.summary,
        "completionReason": session.completion_reason.value if session.completion_reason else None,
        "progress": session.get_progress_percent(),
        "startedAt": session.started_at.isoformat(),
        "endedAt": session.ended_at.isoformat() if session.ended_at else None,
    }


def submit_view(result: SubmitResult) -> dict[str, Any]:
    return {
        "success": True,
        "nextQuestion": result.next_question,
        "isComplete": result.is_complete,
        "questionNumber": result.question_number,
        "totalQuestions": result.session.question_budget,
        "closingHint": result.closing_hint,
        "summary": result.summary,
    }


def candidate_phone(phone_number: str, settings: Settings) -> str:
    """Validate and canonicalize a phone number from a request."""
    if not phone_number or not phone_number.strip():
        raise HTTPException(status_code=400, detail="Phone number is required")

    if settings.require_mobile_phone_format:
        if not is_valid_phone_number(phone_number):
            raise HTTPException(status_code=400, detail="Invalid phone number. Expected 010-XXXX-XXXX")
        return format_phone_number(phone_number)

    return phone_number.strip()


def get_interview(
    session_id: str,
    registry: InterviewRegistry = Depends(get_registry),
) -> InterviewOrchestrator:
    orchestrator = registry.get(session_id)
    if orchestrator is None or orchestrator.session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return orchestrator


# ============================================================================
# REST ENDPOINTS
# ============================================================================

@router.post("/start")
async def start_interview(
    request: PhoneRequest,
    registry: InterviewRegistry = Depends(get_registry),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """
    Start a new interview.

    Creates the session, supersedes any previous one for the same
    candidate, and returns the first question.
    """
    phone_number = candidate_phone(request.phone_number, settings)
    orchestrator = await registry.start(phone_number)
    session = orchestrator.session

    return {
        "success": True,
        "sessionId": session.id,
        "firstQuestion": session.current_question,
        "session": session_view(session),
    }


@router.post("/resume")
async def resume_interview(
    request: PhoneRequest,
    registry: InterviewRegistry = Depends(get_registry),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """Return the candidate's stored interview, finishing any interrupted step."""
    phone_number = candidate_phone(request.phone_number, settings)
    orchestrator = await registry.resume(phone_number)
    if orchestrator is None:
        raise HTTPException(status_code=404, detail="No stored interview for this phone number")

    return {
        "success": True,
        "sessionId": orchestrator.session.id,
        "session": session_view(orchestrator.session),
    }


@router.post("/{session_id}/answer")
async def submit_answer(
    request: AnswerRequest,
    orchestrator: InterviewOrchestrator = Depends(get_interview),
) -> dict[str, Any]:
    """
    Submit a typed answer to the current question.

    Returns the next question, or the summary once the last question
    has been answered.
    """
    result = await orchestrator.submit_answer(request.answer)
    return submit_view(result)


@router.post("/{session_id}/record")
async def record_answer(
    audio: UploadFile = File(...),
    orchestrator: InterviewOrchestrator = Depends(get_interview),
) -> dict[str, Any]:
    """Transcribe a recorded answer and submit it."""
    clip = AudioClip(
        filename=audio.filename or "recording.webm",
        data=await audio.read(),
        content_type=audio.content_type,
    )
    result = await orchestrator.record_answer(clip, release=audio.file.close)
    if result is None:
        raise HTTPException(status_code=409, detail="Recording was cancelled")

    response = submit_view(result)
    response["transcript"] = result.session.turns[-1].answer
    return response


@router.post("/{session_id}/interrupt")
async def interrupt_interview(
    orchestrator: InterviewOrchestrator = Depends(get_interview),
) -> dict[str, Any]:
    """End the interview early. Answered questions are kept."""
    session = await orchestrator.interrupt()
    return {"success": True, "session": session_view(session)}


@router.post("/{session_id}/summary")
async def get_summary(
    orchestrator: InterviewOrchestrator = Depends(get_interview),
) -> dict[str, Any]:
    """Return the feedback, generating it if summarization is pending."""
    session = orchestrator.session

    if session.status == InterviewStatus.SUMMARIZING:
        summary = await orchestrator.summarize()
    elif session.summary:
        summary = session.summary
    else:
        raise HTTPException(
            status_code=409,
            detail=f"No summary available in state: {session.status.value}",
        )

    return {"success": True, "summary": summary}


@router.get("/{session_id}")
async def get_session(
    orchestrator: InterviewOrchestrator = Depends(get_interview),
) -> dict[str, Any]:
    """Get the current session state."""
    return {"success": True, "session": session_view(orchestrator.session)}


@router.get("/{session_id}/transcript", response_class=PlainTextResponse)
async def get_transcript(
    orchestrator: InterviewOrchestrator = Depends(get_interview),
) -> str:
    """Get the interview as a plain-text record."""
    return orchestrator.session.format_as_text()


@router.delete("/{session_id}")
async def delete_session(
    session_id: str,
    registry: InterviewRegistry = Depends(get_registry),
) -> dict[str, Any]:
    """Clear the stored session."""
    if not registry.remove(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"success": True}
