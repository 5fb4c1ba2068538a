"""
Audio API endpoints

Handles:
- Speech-to-text transcription (single response or NDJSON stream)
- Text-to-speech for the interviewer's voice
"""

import json
import time
from typing import Any, AsyncIterator

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import Response, StreamingResponse
from pydantic import BaseModel

from voiceprep.api.dependencies import get_openai_client, get_transcription_adapter
from voiceprep.core.exceptions import TranscriptionError
from voiceprep.core.openai_client import OpenAIClient
from voiceprep.core.transcription import TranscriptionAdapter
from voiceprep.models.transcription import AudioClip

router = APIRouter()


# ============================================================================
# REQUEST MODELS
# ============================================================================

class TTSRequest(BaseModel):
    """Request for text-to-speech."""
    text: str
    voice: str | None = None


# ============================================================================
# HELPERS
# ============================================================================

async def read_clip(audio: UploadFile) -> AudioClip:
    return AudioClip(
        filename=audio.filename or "recording.webm",
        data=await audio.read(),
        content_type=audio.content_type,
    )


def ndjson(event: dict[str, Any]) -> str:
    return json.dumps(event, ensure_ascii=False) + "\n"


# ============================================================================
# ENDPOINTS
# ============================================================================

@router.post("/stt")
async def speech_to_text(
    audio: UploadFile = File(...),
    adapter: TranscriptionAdapter = Depends(get_transcription_adapter),
) -> dict[str, Any]:
    """
    Transcribe audio to text.

    Accepts audio file upload.
    """
    clip = await read_clip(audio)
    started = time.monotonic()

    text = ""
    async for result in adapter.stream(clip, release=audio.file.close):
        if result.is_final:
            text = result.text

    return {
        "success": True,
        "text": text,
        "duration": round(time.monotonic() - started, 2),
    }


@router.post("/stt/stream")
async def speech_to_text_stream(
    audio: UploadFile = File(...),
    adapter: TranscriptionAdapter = Depends(get_transcription_adapter),
) -> StreamingResponse:
    """
    Transcribe audio and stream the transcript word by word.

    Emits newline-delimited JSON events:
    - {"type": "delta", "delta": ..., "text": ...}
    - {"type": "done", "text": ...}
    - {"type": "error", "code": ..., "error": ...}
    """
    clip = await read_clip(audio)
    # Rejected clips get a plain error response instead of a stream
    try:
        adapter.validate(clip)
    except TranscriptionError:
        audio.file.close()
        raise

    async def events() -> AsyncIterator[str]:
        try:
            async for result in adapter.stream(clip, release=audio.file.close):
                if result.is_final:
                    yield ndjson({"type": "done", "text": result.text})
                else:
                    yield ndjson({"type": "delta", "delta": result.delta, "text": result.text})
        except TranscriptionError as e:
            yield ndjson({"type": "error", "code": e.code.value, "error": e.message})

    return StreamingResponse(events(), media_type="application/x-ndjson")


@router.post("/tts")
async def text_to_speech(
    request: TTSRequest,
    client: OpenAIClient = Depends(get_openai_client),
) -> Response:
    """
    Convert text to speech.

    Returns MP3 audio.
    """
    if not request.text.strip():
        raise HTTPException(status_code=400, detail="Text is required")

    audio = await client.synthesize_speech(request.text, voice=request.voice)
    return Response(content=audio, media_type="audio/mpeg")
