import json

import pytest
from fastapi.testclient import TestClient

from conftest import FakeSpeechTransport, FakeTextClient, make_adapter, no_sleep
from main import app
from voiceprep.api.dependencies import (
    InterviewRegistry,
    get_openai_client,
    get_registry,
    get_transcription_adapter,
)
from voiceprep.config.settings import get_settings
from voiceprep.core.transcription import TranscriptionAdapter

PHONE = "01012345678"
QUESTION = "Could you tell me more about that?"


@pytest.fixture
def http(test_settings):
    settings = test_settings.model_copy(update={"question_budget": 2})
    client = FakeTextClient(default=QUESTION)
    adapter = make_adapter(FakeSpeechTransport(text="my recorded answer"), max_audio_bytes=1024)
    registry = InterviewRegistry(settings, client, transcription_adapter=adapter)

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_transcription_adapter] = lambda: adapter
    app.dependency_overrides[get_openai_client] = lambda: client
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def start(http, phone=PHONE):
    response = http.post("/api/interview/start", json={"phoneNumber": phone})
    assert response.status_code == 200
    return response.json()


def audio_upload(data=b"audio-bytes", filename="answer.webm"):
    return {"audio": (filename, data, "audio/webm")}


class ReleaseTrackingAdapter(TranscriptionAdapter):
    """Records the release hook each transcription is started with."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.releases = []

    def transcribe(self, clip, callbacks, release=None):
        self.releases.append(release)
        return super().transcribe(clip, callbacks, release=release)


def test_health(http):
    assert http.get("/health").json()["status"] == "healthy"


# =========================================================================
# INTERVIEW
# =========================================================================

def test_start_returns_first_question(http):
    body = start(http)

    assert body["success"] is True
    assert body["firstQuestion"] == QUESTION
    assert body["session"]["phoneNumber"] == "010-1234-5678"
    assert body["session"]["status"] == "asking"
    assert body["session"]["totalQuestions"] == 2


@pytest.mark.parametrize("phone", ["", "011-1234-5678", "12345"])
def test_start_rejects_invalid_phone(http, phone):
    response = http.post("/api/interview/start", json={"phoneNumber": phone})

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_malformed_request_uses_error_envelope(http):
    response = http.post("/api/interview/start", json={})

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["error"]


def test_answers_until_complete(http):
    session_id = start(http)["sessionId"]

    first = http.post(f"/api/interview/{session_id}/answer", json={"answer": "I build APIs."}).json()
    assert first["isComplete"] is False
    assert first["nextQuestion"] == QUESTION
    assert first["questionNumber"] == 2
    assert first["totalQuestions"] == 2

    last = http.post(f"/api/interview/{session_id}/answer", json={"answer": "I like teamwork."}).json()
    assert last["isComplete"] is True
    assert last["nextQuestion"] is None
    assert last["summary"]

    session = http.get(f"/api/interview/{session_id}").json()["session"]
    assert session["status"] == "completed"
    assert session["completionReason"] == "budget_reached"
    assert [t["answer"] for t in session["turns"]] == ["I build APIs.", "I like teamwork."]

    summary = http.post(f"/api/interview/{session_id}/summary").json()
    assert summary["summary"] == last["summary"]

    late = http.post(f"/api/interview/{session_id}/answer", json={"answer": "one more"})
    assert late.status_code == 409
    assert late.json()["success"] is False


def test_blank_answer_rejected(http):
    session_id = start(http)["sessionId"]

    response = http.post(f"/api/interview/{session_id}/answer", json={"answer": "   "})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Answer must not be empty"}
    assert http.get(f"/api/interview/{session_id}").json()["session"]["questionIndex"] == 0


def test_unknown_session_is_404(http):
    response = http.post("/api/interview/interview_missing/answer", json={"answer": "hello"})

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Session not found"}


def test_summary_not_available_mid_interview(http):
    session_id = start(http)["sessionId"]

    assert http.post(f"/api/interview/{session_id}/summary").status_code == 409


def test_record_answer(http):
    session_id = start(http)["sessionId"]

    body = http.post(f"/api/interview/{session_id}/record", files=audio_upload()).json()

    assert body["transcript"] == "my recorded answer"
    assert body["nextQuestion"] == QUESTION
    assert body["questionNumber"] == 2


def test_oversized_recording_can_be_answered_again(http):
    session_id = start(http)["sessionId"]

    response = http.post(f"/api/interview/{session_id}/record", files=audio_upload(data=b"\0" * 2048))
    assert response.status_code == 413
    assert response.json()["success"] is False

    retry = http.post(f"/api/interview/{session_id}/answer", json={"answer": "typed answer"})
    assert retry.status_code == 200


def test_interrupt_and_transcript(http):
    session_id = start(http)["sessionId"]
    http.post(f"/api/interview/{session_id}/answer", json={"answer": "I build APIs."})

    session = http.post(f"/api/interview/{session_id}/interrupt").json()["session"]
    assert session["status"] == "completed"
    assert session["completionReason"] == "interrupted"
    assert session["summary"] is None

    transcript = http.get(f"/api/interview/{session_id}/transcript")
    assert transcript.headers["content-type"].startswith("text/plain")
    assert "I build APIs." in transcript.text


def test_new_start_supersedes_previous_session(http):
    first = start(http)["sessionId"]
    second = start(http)["sessionId"]

    assert first != second
    assert http.get(f"/api/interview/{first}").status_code == 404
    assert http.get(f"/api/interview/{second}").status_code == 200


def test_resume_returns_live_session(http):
    session_id = start(http)["sessionId"]

    body = http.post("/api/interview/resume", json={"phoneNumber": "010-1234-5678"}).json()

    assert body["sessionId"] == session_id


def test_resume_without_stored_session(http):
    response = http.post("/api/interview/resume", json={"phoneNumber": "010-9999-8888"})

    assert response.status_code == 404


def test_delete_clears_session(http):
    session_id = start(http)["sessionId"]

    assert http.delete(f"/api/interview/{session_id}").json() == {"success": True}
    assert http.get(f"/api/interview/{session_id}").status_code == 404
    assert http.post("/api/interview/resume", json={"phoneNumber": PHONE}).status_code == 404


# =========================================================================
# AUDIO
# =========================================================================

def test_speech_to_text(http):
    body = http.post("/api/audio/stt", files=audio_upload()).json()

    assert body["success"] is True
    assert body["text"] == "my recorded answer"


def test_speech_to_text_stream_emits_ndjson(http):
    response = http.post("/api/audio/stt/stream", files=audio_upload())
    events = [json.loads(line) for line in response.text.splitlines() if line]

    assert response.headers["content-type"].startswith("application/x-ndjson")
    assert [e["type"] for e in events] == ["delta", "delta", "delta", "done"]
    assert events[-1]["text"] == "my recorded answer"
    assert events[1]["text"] == "my recorded"


def test_speech_to_text_rejects_unsupported_format(http):
    response = http.post("/api/audio/stt/stream", files=audio_upload(filename="notes.txt"))

    assert response.status_code == 415
    assert response.json()["success"] is False


def test_text_to_speech(http):
    response = http.post("/api/audio/tts", json={"text": "안녕하세요"})

    assert response.status_code == 200
    assert response.headers["content-type"] == "audio/mpeg"
    assert response.content == b"ID3fake-mp3"


def test_text_to_speech_requires_text(http):
    assert http.post("/api/audio/tts", json={"text": "  "}).status_code == 400


@pytest.mark.parametrize("path", ["/api/audio/stt", "/api/audio/stt/stream"])
def test_speech_to_text_releases_upload(http, path):
    adapter = ReleaseTrackingAdapter(
        FakeSpeechTransport(text="my recorded answer"),
        sleep=no_sleep,
        stream_interval_seconds=0,
    )
    app.dependency_overrides[get_transcription_adapter] = lambda: adapter

    response = http.post(path, files=audio_upload())

    assert response.status_code == 200
    assert len(adapter.releases) == 1
    assert adapter.releases[0] is not None
    assert adapter.releases[0].__name__ == "close"
