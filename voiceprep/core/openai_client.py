"""
OpenAI client for VoicePrep

Wraps the three provider capabilities the interview needs:
- Text generation (chat completions) for questions and feedback
- Speech-to-text (audio transcriptions), optionally streamed
- Text-to-speech (audio speech) for the interviewer's voice

Integrated with Langfuse for observability and tracing when enabled.
"""

import json
import logging
from contextlib import contextmanager
from typing import Any, AsyncIterator, Iterator

import httpx
from langfuse import Langfuse

from voiceprep.config.settings import Settings, get_settings
from voiceprep.core.exceptions import ExternalServiceError, ExternalTimeoutError

logger = logging.getLogger(__name__)


def _is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class OpenAIClient:
    """
    HTTP client for an OpenAI-compatible provider.

    All failures surface as ExternalServiceError so callers can apply
    their fallback rules without knowing about httpx.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the client.

        Args:
            settings: Application settings (defaults to cached settings)
            transport: Optional httpx transport, used by tests
        """
        self.settings = settings or get_settings()
        self.supports_streaming = self.settings.transcription_streaming

        self.client = httpx.AsyncClient(
            base_url=self.settings.openai_base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {self.settings.openai_api_key}"},
            timeout=self.settings.external_call_timeout_seconds,
            transport=transport,
        )

        # Initialize Langfuse for observability
        self.langfuse = None
        if self.settings.langfuse_enabled:
            if self.settings.langfuse_secret_key and self.settings.langfuse_public_key:
                try:
                    self.langfuse = Langfuse(
                        secret_key=self.settings.langfuse_secret_key,
                        public_key=self.settings.langfuse_public_key,
                        host=self.settings.langfuse_base_url,
                    )
                    logger.info("Langfuse initialized for LLM observability")
                except Exception as e:
                    logger.warning(f"Failed to initialize Langfuse: {e}")
            else:
                logger.info("Langfuse keys not configured, tracing disabled")

    async def close(self):
        """Close the HTTP client and flush Langfuse."""
        await self.client.aclose()
        if self.langfuse:
            try:
                self.langfuse.flush()
            except Exception as e:
                logger.warning(f"Failed to flush Langfuse: {e}")

    # =========================================================================
    # TRACING
    # =========================================================================

    @contextmanager
    def trace(self, name: str, metadata: dict[str, Any] | None = None) -> Iterator[Any]:
        """Wrap a block in a Langfuse span; yields None when tracing is off."""
        span = None
        if self.langfuse:
            try:
                span = self.langfuse.start_span(name=name, metadata=metadata or {})
            except Exception as lf_err:
                logger.warning(f"Langfuse span start failed: {lf_err}")
                span = None
        try:
            yield span
        finally:
            if span:
                try:
                    span.end()
                except Exception as lf_err:
                    logger.warning(f"Langfuse span end failed: {lf_err}")

    # =========================================================================
    # ERROR MAPPING
    # =========================================================================

    def _raise_for_status(self, response: httpx.Response, operation: str) -> None:
        if response.is_success:
            return
        try:
            message = response.json().get("error", {}).get("message", response.text)
        except (ValueError, AttributeError):
            message = response.text
        logger.error(f"{operation} failed ({response.status_code}): {message}")
        raise ExternalServiceError(
            f"Provider error ({response.status_code}): {message}",
            status_code=response.status_code,
            retryable=_is_retryable_status(response.status_code),
        )

    def _wrap_transport_error(self, error: httpx.HTTPError, operation: str) -> ExternalServiceError:
        if isinstance(error, httpx.TimeoutException):
            return ExternalTimeoutError(operation, self.settings.external_call_timeout_seconds)
        logger.error(f"{operation} transport error: {error}")
        return ExternalServiceError(f"{operation} transport error: {error}")

    # =========================================================================
    # TEXT GENERATION
    # =========================================================================

    def _extract_content(self, result: dict) -> str:
        """Extract text content from API response, handling list/dict formats."""
        choices = result.get("choices") or [{}]
        content = choices[0].get("message", {}).get("content", "")

        # Handle case where content is a list (multi-part response)
        if isinstance(content, list):
            text_parts = []
            for part in content:
                if isinstance(part, str):
                    text_parts.append(part)
                elif isinstance(part, dict) and "text" in part:
                    text_parts.append(part["text"])
            content = "".join(text_parts)

        return content if isinstance(content, str) else str(content or "")

    async def generate_text(
        self,
        messages: list[dict[str, str]],
        max_tokens: int = 200,
        temperature: float = 0.7,
    ) -> str:
        """
        Call the chat completions endpoint.

        Args:
            messages: Chat messages (role/content dicts)
            max_tokens: Maximum tokens in response
            temperature: Sampling temperature

        Returns:
            Model response text (may be empty)
        """
        payload = {
            "model": self.settings.chat_model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        try:
            response = await self.client.post("/chat/completions", json=payload)
        except httpx.HTTPError as e:
            raise self._wrap_transport_error(e, "Text generation") from e

        self._raise_for_status(response, "Text generation")
        try:
            return self._extract_content(response.json())
        except ValueError as e:
            raise ExternalServiceError(f"Unparseable generation response: {e}") from e

    # =========================================================================
    # SPEECH-TO-TEXT
    # =========================================================================

    def _transcription_request(
        self,
        audio_data: bytes,
        filename: str,
        content_type: str | None,
        language: str | None,
        stream: bool,
    ) -> tuple[dict, dict]:
        files = {
            "file": (filename, audio_data, content_type or "application/octet-stream"),
        }
        data = {
            "model": self.settings.transcription_model,
            "language": language or self.settings.transcription_language,
            "response_format": "json",
        }
        if stream:
            data["stream"] = "true"
        return files, data

    async def transcribe(
        self,
        audio_data: bytes,
        filename: str,
        content_type: str | None = None,
        language: str | None = None,
    ) -> str:
        """
        Transcribe a complete clip in one request.

        Returns:
            Transcribed text
        """
        files, data = self._transcription_request(audio_data, filename, content_type, language, stream=False)
        try:
            response = await self.client.post("/audio/transcriptions", files=files, data=data)
        except httpx.HTTPError as e:
            raise self._wrap_transport_error(e, "Transcription") from e

        self._raise_for_status(response, "Transcription")
        try:
            return response.json().get("text", "")
        except ValueError as e:
            raise ExternalServiceError(f"Unparseable transcription response: {e}") from e

    async def stream_transcription(
        self,
        audio_data: bytes,
        filename: str,
        content_type: str | None = None,
        language: str | None = None,
    ) -> AsyncIterator[str]:
        """
        Transcribe a clip and yield text deltas as the provider emits them.

        The provider answers with server-sent events; `transcript.text.delta`
        events carry new text and `transcript.text.done` closes the stream.
        """
        files, data = self._transcription_request(audio_data, filename, content_type, language, stream=True)
        try:
            async with self.client.stream("POST", "/audio/transcriptions", files=files, data=data) as response:
                if not response.is_success:
                    await response.aread()
                    self._raise_for_status(response, "Streaming transcription")

                async for line in response.aiter_lines():
                    if not line.startswith("data:"):
                        continue
                    body = line[len("data:"):].strip()
                    if not body or body == "[DONE]":
                        continue
                    try:
                        event = json.loads(body)
                    except json.JSONDecodeError:
                        logger.warning(f"Skipping malformed transcription event: {body[:80]}")
                        continue

                    if event.get("type") == "transcript.text.delta":
                        yield event.get("delta", "")
                    elif event.get("type") == "transcript.text.done":
                        break
        except httpx.HTTPError as e:
            raise self._wrap_transport_error(e, "Streaming transcription") from e

    # =========================================================================
    # TEXT-TO-SPEECH
    # =========================================================================

    async def synthesize_speech(self, text: str, voice: str | None = None) -> bytes:
        """
        Convert text to speech.

        Returns:
            MP3 audio bytes
        """
        payload = {
            "model": self.settings.tts_model,
            "voice": voice or self.settings.tts_voice,
            "input": text,
            "response_format": "mp3",
        }
        try:
            response = await self.client.post("/audio/speech", json=payload)
        except httpx.HTTPError as e:
            raise self._wrap_transport_error(e, "Speech synthesis") from e

        self._raise_for_status(response, "Speech synthesis")
        return response.content
