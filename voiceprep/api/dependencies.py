"""
API Dependencies

Provides dependency injection for API endpoints.
Manages singleton instances of core components.
"""

import logging
from collections import OrderedDict

from voiceprep.config.settings import Settings, get_settings
from voiceprep.core.interview_orchestrator import InterviewOrchestrator
from voiceprep.core.openai_client import OpenAIClient
from voiceprep.core.phone import normalize_phone_number
from voiceprep.core.question_generator import QuestionGenerator
from voiceprep.core.retry import RetryPolicy
from voiceprep.core.session_store import FileSessionStore, InMemorySessionStore, SessionStore
from voiceprep.core.summary_generator import SummaryGenerator
from voiceprep.core.transcription import TranscriptionAdapter
from voiceprep.core.webhook import DeliveryWebhook

logger = logging.getLogger(__name__)


def storage_scope(phone_number: str) -> str:
    """Storage scope for a candidate: the digits of their phone number."""
    return normalize_phone_number(phone_number) or phone_number.strip()


class InterviewRegistry:
    """
    Tracks the orchestrators of live interviews.

    Each candidate (storage scope) has at most one active interview;
    starting a new one supersedes the previous one. Finished interviews
    stay readable until more than finished_session_limit of them pile up,
    then the oldest are dropped.
    """

    def __init__(
        self,
        settings: Settings,
        client: object,  # OpenAIClient
        transcription_adapter: TranscriptionAdapter | None = None,
        webhook: DeliveryWebhook | None = None,
    ):
        self.settings = settings
        self.transcription_adapter = transcription_adapter
        self.webhook = webhook

        retry_policy = RetryPolicy(
            max_attempts=settings.retry_max_attempts,
            backoff_seconds=settings.retry_backoff_seconds,
            attempt_timeout=settings.external_call_timeout_seconds,
            deadline=settings.external_call_deadline_seconds,
        )
        self.question_generator = QuestionGenerator(
            client,
            retry_policy=retry_policy,
            question_budget=settings.question_budget,
            language=settings.interview_language,
        )
        self.summary_generator = SummaryGenerator(
            client,
            retry_policy=retry_policy,
            language=settings.interview_language,
        )

        self._memory_backend: dict[str, str] = {}
        self._by_session: dict[str, InterviewOrchestrator] = {}
        self._by_scope: dict[str, InterviewOrchestrator] = {}
        self._finished: OrderedDict[str, None] = OrderedDict()

    def _store_for(self, scope: str) -> SessionStore:
        if self.settings.session_store_backend == "file":
            return FileSessionStore(self.settings.session_store_dir, scope=scope)
        return InMemorySessionStore(scope=scope, backend=self._memory_backend)

    def _build(self, scope: str) -> InterviewOrchestrator:
        orchestrator = InterviewOrchestrator(
            store=self._store_for(scope),
            question_generator=self.question_generator,
            summary_generator=self.summary_generator,
            transcription_adapter=self.transcription_adapter,
            question_budget=self.settings.question_budget,
        )
        if self.webhook is not None and self.webhook.enabled:
            orchestrator.on_complete(self.webhook.on_complete)
        orchestrator.on_complete(self._on_finished)
        return orchestrator

    async def _on_finished(self, session) -> None:
        self._prune_finished()

    def _prune_finished(self) -> None:
        """Drop the oldest finished interviews beyond the configured limit."""
        for session_id, orchestrator in self._by_session.items():
            status = orchestrator.status
            if status is not None and status.is_terminal and session_id not in self._finished:
                self._finished[session_id] = None

        while len(self._finished) > self.settings.finished_session_limit:
            session_id, _ = self._finished.popitem(last=False)
            orchestrator = self._by_session.pop(session_id, None)
            if orchestrator is not None and self._by_scope.get(orchestrator.store.scope) is orchestrator:
                del self._by_scope[orchestrator.store.scope]
            logger.info(f"Session {session_id} released from memory")

    def _register(self, scope: str, orchestrator: InterviewOrchestrator) -> None:
        previous = self._by_scope.get(scope)
        if previous is not None and previous is not orchestrator:
            previous.cancel_recording()
            if previous.session is not None:
                self._by_session.pop(previous.session.id, None)
                self._finished.pop(previous.session.id, None)
                logger.info(f"Session {previous.session.id} superseded")

        self._by_scope[scope] = orchestrator
        self._by_session[orchestrator.session.id] = orchestrator
        self._prune_finished()

    async def start(self, phone_number: str) -> InterviewOrchestrator:
        """Start a new interview for a candidate."""
        scope = storage_scope(phone_number)
        orchestrator = self._build(scope)
        await orchestrator.start(phone_number)
        self._register(scope, orchestrator)
        return orchestrator

    async def resume(self, phone_number: str) -> InterviewOrchestrator | None:
        """Return the candidate's live interview, reloading it from the store if needed."""
        scope = storage_scope(phone_number)
        live = self._by_scope.get(scope)
        if live is not None and live.session is not None:
            return live

        orchestrator = self._build(scope)
        session = await orchestrator.resume()
        if session is None:
            return None

        self._register(scope, orchestrator)
        return orchestrator

    def get(self, session_id: str) -> InterviewOrchestrator | None:
        return self._by_session.get(session_id)

    def remove(self, session_id: str) -> bool:
        """Forget an interview and clear its stored session."""
        orchestrator = self._by_session.pop(session_id, None)
        if orchestrator is None:
            return False
        self._finished.pop(session_id, None)

        scope = orchestrator.store.scope
        if self._by_scope.get(scope) is orchestrator:
            del self._by_scope[scope]
        orchestrator.reset()
        return True


# ============================================================================
# SINGLETON INSTANCES
# ============================================================================

_client: OpenAIClient | None = None
_transcription_adapter: TranscriptionAdapter | None = None
_webhook: DeliveryWebhook | None = None
_registry: InterviewRegistry | None = None


def get_openai_client() -> OpenAIClient:
    """Get the provider client singleton."""
    global _client

    if _client is None:
        _client = OpenAIClient(get_settings())

    return _client


def get_transcription_adapter() -> TranscriptionAdapter:
    """Get the transcription adapter singleton."""
    global _transcription_adapter

    if _transcription_adapter is None:
        settings = get_settings()
        _transcription_adapter = TranscriptionAdapter(
            transport=get_openai_client(),
            max_audio_bytes=settings.max_audio_bytes,
            stream_interval_seconds=settings.simulated_stream_interval_ms / 1000,
            timeout_seconds=settings.external_call_timeout_seconds,
            language=settings.transcription_language,
        )

    return _transcription_adapter


def get_webhook() -> DeliveryWebhook:
    """Get the delivery webhook singleton."""
    global _webhook

    if _webhook is None:
        settings = get_settings()
        _webhook = DeliveryWebhook(settings.webhook_url, timeout_seconds=settings.webhook_timeout_seconds)

    return _webhook


def get_registry() -> InterviewRegistry:
    """
    Get the interview registry singleton.

    Lazily initializes all required components.
    """
    global _registry

    if _registry is None:
        _registry = InterviewRegistry(
            settings=get_settings(),
            client=get_openai_client(),
            transcription_adapter=get_transcription_adapter(),
            webhook=get_webhook(),
        )

    return _registry


async def cleanup():
    """Cleanup resources on shutdown."""
    global _client, _transcription_adapter, _webhook, _registry

    if _webhook:
        await _webhook.drain()
        _webhook = None

    if _client:
        await _client.close()
        _client = None

    _transcription_adapter = None
    _registry = None
