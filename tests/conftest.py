"""
Shared fakes and fixtures.
"""

import asyncio

import pytest

from voiceprep.config.settings import Settings
from voiceprep.core.exceptions import ExternalServiceError
from voiceprep.core.interview_orchestrator import InterviewOrchestrator
from voiceprep.core.session_store import InMemorySessionStore
from voiceprep.core.transcription import TranscriptionAdapter


async def no_sleep(seconds: float) -> None:
    await asyncio.sleep(0)


class FakeTextClient:
    """Stands in for OpenAIClient.generate_text; replays scripted replies."""

    def __init__(self, replies=None, default="Could you tell me more about that?"):
        self.replies = list(replies or [])
        self.default = default
        self.calls = []

    async def generate_text(self, messages, max_tokens=200, temperature=0.7):
        self.calls.append(messages)
        await asyncio.sleep(0)
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def synthesize_speech(self, text, voice=None):
        return b"ID3fake-mp3"


class FailingTextClient(FakeTextClient):
    def __init__(self, error=None):
        super().__init__()
        self.error = error or ExternalServiceError("provider down", status_code=503)

    async def generate_text(self, messages, max_tokens=200, temperature=0.7):
        self.calls.append(messages)
        raise self.error


class FakeQuestionGenerator:
    """Returns "Question N" and yields to the loop like a real call."""

    def __init__(self, fail_on_turn=None):
        self.fail_on_turn = fail_on_turn
        self.calls = []

    async def next_question(self, history, turn_number):
        self.calls.append((list(history), turn_number))
        await asyncio.sleep(0)
        if turn_number == self.fail_on_turn:
            raise RuntimeError("generator exploded")
        return f"Question {turn_number}"


class FakeSummaryGenerator:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    async def generate(self, turns):
        self.calls.append(list(turns))
        await asyncio.sleep(0)
        if self.error:
            raise self.error
        return "You did well.\n\nKeep practicing."


class FakeSpeechTransport:
    """Stands in for the OpenAI speech-to-text endpoints."""

    def __init__(self, text="", chunks=None, error=None, gate=None, delay=None):
        self.text = text
        self.chunks = chunks
        self.error = error
        self.gate = gate
        self.delay = delay
        self.calls = 0

    @property
    def supports_streaming(self):
        return self.chunks is not None

    async def transcribe(self, audio_data, filename, content_type=None, language=None):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.text

    async def stream_transcription(self, audio_data, filename, content_type=None, language=None):
        self.calls += 1
        for chunk in self.chunks:
            await asyncio.sleep(0)
            yield chunk


class RecordingCallbacks:
    """Collects transcription callbacks in arrival order."""

    def __init__(self):
        self.events = []
        self.released = 0

    def on_partial(self, delta, text):
        self.events.append(("partial", delta, text))

    def on_final(self, text):
        self.events.append(("final", text))

    def on_error(self, error):
        self.events.append(("error", error))

    def release(self):
        self.released += 1

    @property
    def partials(self):
        return [e for e in self.events if e[0] == "partial"]

    @property
    def errors(self):
        return [e[1] for e in self.events if e[0] == "error"]

    @property
    def finals(self):
        return [e[1] for e in self.events if e[0] == "final"]


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        openai_api_key="test-key",
        question_budget=5,
        langfuse_enabled=False,
        webhook_url="",
    )


@pytest.fixture
def store():
    return InMemorySessionStore(scope="01012345678")


@pytest.fixture
def question_generator():
    return FakeQuestionGenerator()


@pytest.fixture
def summary_generator():
    return FakeSummaryGenerator()


def make_adapter(transport, **kwargs):
    kwargs.setdefault("sleep", no_sleep)
    kwargs.setdefault("stream_interval_seconds", 0)
    return TranscriptionAdapter(transport, **kwargs)


@pytest.fixture
def orchestrator(store, question_generator, summary_generator):
    return InterviewOrchestrator(
        store=store,
        question_generator=question_generator,
        summary_generator=summary_generator,
        transcription_adapter=make_adapter(FakeSpeechTransport(text="I enjoy building data pipelines")),
        question_budget=5,
    )
