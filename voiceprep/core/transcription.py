"""
Transcription Adapter for VoicePrep

Converts a recorded answer into text and reports progress through
callbacks:
- on_partial(delta, full_text) zero or more times, word by word
- on_final(text) exactly once, after the last partial
- on_error(TranscriptionError) at most once, instead of on_final

When the speech-to-text transport cannot stream, the final transcript is
replayed word by word at a fixed pace, so consumers see the same event
sequence either way.
"""

import asyncio
import logging
from typing import Any, AsyncIterator, Callable

from voiceprep.core.exceptions import (
    ExternalServiceError,
    ExternalTimeoutError,
    TranscriptionError,
    TranscriptionErrorCode,
)
from voiceprep.models.transcription import (
    SUPPORTED_AUDIO_FORMATS,
    AudioClip,
    TranscriptionCallbacks,
    TranscriptionResult,
)

logger = logging.getLogger(__name__)


MAX_AUDIO_BYTES = 25 * 1024 * 1024


class TranscriptionHandle:
    """
    Cancellation handle for one transcription.

    Cancelling before the final callback stops every further callback,
    cancels the in-flight request and releases the audio resource.
    """

    def __init__(self, release: Callable[[], None] | None = None):
        self._release = release
        self._released = False
        self._cancelled = False
        self._finished = False
        self._task: asyncio.Task | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        return self._finished or self._cancelled

    def cancel(self) -> None:
        """Cancel the transcription; a no-op once it has finished."""
        if self.done:
            return
        self._cancelled = True
        logger.info("Transcription cancelled by caller")
        if self._task and not self._task.done():
            self._task.cancel()
        else:
            self._release_resources()

    async def wait(self) -> None:
        """Wait until the transcription finished, failed or was cancelled."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._cancelled:
                raise

    def _attach(self, task: asyncio.Task) -> None:
        self._task = task
        task.add_done_callback(lambda _: self._release_resources())

    def _finish(self) -> None:
        self._finished = True

    def _release_resources(self) -> None:
        if self._released:
            return
        self._released = True
        if self._release:
            try:
                self._release()
            except Exception as e:
                logger.error(f"Audio resource release failed: {e}")

    def deliver(self, callback: Callable[..., None] | None, *args: Any) -> None:
        """Invoke a consumer callback unless the handle is cancelled or finished."""
        if self.done or callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            logger.error(f"Transcription callback error: {e}")


class _WordEmitter:
    """Turns growing text into word-granular partial callbacks."""

    def __init__(self, handle: TranscriptionHandle, callbacks: TranscriptionCallbacks):
        self.handle = handle
        self.callbacks = callbacks
        self.words: list[str] = []

    @property
    def text(self) -> str:
        return " ".join(self.words)

    def emit(self, word: str) -> None:
        delta = word if not self.words else f" {word}"
        self.words.append(word)
        self.handle.deliver(self.callbacks.on_partial, delta, self.text)

    def emit_complete_words(self, buffer: str, final: bool = False) -> None:
        """Emit every word of buffer not yet emitted; the trailing word only when final."""
        words = buffer.split()
        if not final and buffer and not buffer[-1].isspace():
            words = words[:-1]
        for word in words[len(self.words):]:
            self.emit(word)


class TranscriptionAdapter:
    """
    Speech-to-text adapter with partial/final callbacks.

    The transport must expose:
    - supports_streaming: bool
    - transcribe(audio_data, filename, content_type, language) -> str
    - stream_transcription(...) -> async iterator of text deltas
      (only used when supports_streaming is true)
    """

    def __init__(
        self,
        transport: Any,  # OpenAIClient
        max_audio_bytes: int = MAX_AUDIO_BYTES,
        stream_interval_seconds: float = 0.1,
        timeout_seconds: float = 120.0,
        language: str | None = None,
        supported_formats: tuple[str, ...] = SUPPORTED_AUDIO_FORMATS,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        self.transport = transport
        self.max_audio_bytes = max_audio_bytes
        self.stream_interval_seconds = stream_interval_seconds
        self.timeout_seconds = timeout_seconds
        self.language = language
        self.supported_formats = supported_formats
        self._sleep = sleep

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def validate(self, clip: AudioClip) -> None:
        """
        Check a clip before any external call.

        Raises:
            TranscriptionError: EMPTY_AUDIO, PAYLOAD_TOO_LARGE or UNSUPPORTED_FORMAT
        """
        if clip.size == 0:
            raise TranscriptionError(TranscriptionErrorCode.EMPTY_AUDIO, "No audio was recorded")

        if clip.size > self.max_audio_bytes:
            raise TranscriptionError(
                TranscriptionErrorCode.PAYLOAD_TOO_LARGE,
                f"File size exceeds {self.max_audio_bytes // (1024 * 1024)}MB limit",
            )

        if clip.extension not in self.supported_formats:
            raise TranscriptionError(
                TranscriptionErrorCode.UNSUPPORTED_FORMAT,
                f"Unsupported file format. Supported formats: {', '.join(self.supported_formats)}",
            )

    # =========================================================================
    # CALLBACK API
    # =========================================================================

    def transcribe(
        self,
        clip: AudioClip,
        callbacks: TranscriptionCallbacks,
        release: Callable[[], None] | None = None,
    ) -> TranscriptionHandle:
        """
        Start transcribing a clip.

        Must be called from a running event loop. Invalid clips are reported
        through on_error immediately and never reach the transport.

        Args:
            clip: Recorded audio
            callbacks: Progress receivers
            release: Releases the audio resource; called exactly once

        Returns:
            Handle for cancellation and waiting
        """
        handle = TranscriptionHandle(release=release)

        try:
            self.validate(clip)
        except TranscriptionError as e:
            logger.warning(f"Rejected audio clip {clip.filename!r} ({clip.size} bytes): {e.message}")
            handle.deliver(callbacks.on_error, e)
            handle._finish()
            handle._release_resources()
            return handle

        logger.info(f"Transcribing {clip.filename!r} ({clip.size / 1024:.2f} KB)")
        handle._attach(asyncio.create_task(self._run(clip, callbacks, handle)))
        return handle

    async def _run(
        self,
        clip: AudioClip,
        callbacks: TranscriptionCallbacks,
        handle: TranscriptionHandle,
    ) -> None:
        emitter = _WordEmitter(handle, callbacks)
        try:
            if getattr(self.transport, "supports_streaming", False):
                await asyncio.wait_for(self._consume_stream(clip, emitter), timeout=self.timeout_seconds)
            else:
                text = await asyncio.wait_for(
                    self.transport.transcribe(
                        clip.data,
                        clip.filename,
                        content_type=clip.content_type,
                        language=self.language,
                    ),
                    timeout=self.timeout_seconds,
                )
                await self._replay(text or "", emitter)

            if not emitter.words:
                raise TranscriptionError(TranscriptionErrorCode.EMPTY_RESULT, "No speech was recognized")

        except asyncio.TimeoutError:
            self._fail(handle, callbacks, TranscriptionError(
                TranscriptionErrorCode.TIMEOUT,
                f"Transcription timed out after {self.timeout_seconds:.0f}s",
            ))
            return
        except TranscriptionError as e:
            self._fail(handle, callbacks, e)
            return
        except ExternalServiceError as e:
            self._fail(handle, callbacks, self._map_provider_error(e))
            return
        except Exception as e:
            logger.exception("Unexpected transcription failure")
            self._fail(handle, callbacks, TranscriptionError(TranscriptionErrorCode.TRANSPORT, str(e)))
            return

        logger.info(f"Transcription complete: {len(emitter.words)} words")
        handle.deliver(callbacks.on_final, emitter.text)
        handle._finish()

    async def _consume_stream(self, clip: AudioClip, emitter: _WordEmitter) -> None:
        buffer = ""
        async for delta in self.transport.stream_transcription(
            clip.data,
            clip.filename,
            content_type=clip.content_type,
            language=self.language,
        ):
            buffer += delta
            emitter.emit_complete_words(buffer)
        emitter.emit_complete_words(buffer, final=True)

    async def _replay(self, text: str, emitter: _WordEmitter) -> None:
        for word in text.split():
            emitter.emit(word)
            await self._sleep(self.stream_interval_seconds)

    def _fail(self, handle: TranscriptionHandle, callbacks: TranscriptionCallbacks, error: TranscriptionError) -> None:
        logger.error(f"Transcription failed ({error.code.value}): {error.message}")
        handle.deliver(callbacks.on_error, error)
        handle._finish()

    def _map_provider_error(self, error: ExternalServiceError) -> TranscriptionError:
        if isinstance(error, ExternalTimeoutError):
            return TranscriptionError(TranscriptionErrorCode.TIMEOUT, error.message)
        if error.status_code == 400 and "language" in error.message.lower():
            return TranscriptionError(TranscriptionErrorCode.UNSUPPORTED_LANGUAGE, error.message)
        return TranscriptionError(TranscriptionErrorCode.TRANSPORT, error.message)

    # =========================================================================
    # ASYNC ITERATOR API
    # =========================================================================

    async def stream(
        self,
        clip: AudioClip,
        release: Callable[[], None] | None = None,
    ) -> AsyncIterator[TranscriptionResult]:
        """
        Transcribe a clip as an async stream of results.

        Yields partial results followed by exactly one final result.
        Stopping iteration early cancels the transcription.

        Raises:
            TranscriptionError: If the transcription fails
        """
        queue: asyncio.Queue = asyncio.Queue()
        callbacks = TranscriptionCallbacks(
            on_partial=lambda delta, text: queue.put_nowait(TranscriptionResult(text=text, delta=delta)),
            on_final=lambda text: queue.put_nowait(TranscriptionResult(text=text, is_final=True)),
            on_error=queue.put_nowait,
        )
        handle = self.transcribe(clip, callbacks, release=release)
        try:
            while True:
                item = await queue.get()
                if isinstance(item, TranscriptionError):
                    raise item
                yield item
                if item.is_final:
                    break
        finally:
            handle.cancel()
