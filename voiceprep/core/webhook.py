"""
Delivery webhook for completed interviews.

Posts the session record to an external automation endpoint. Delivery is
fire-and-forget: failures are logged and never affect the interview.
"""

import asyncio
import logging

import httpx

from voiceprep.models.interview import InterviewSession

logger = logging.getLogger(__name__)


class DeliveryWebhook:
    """Sends completed sessions to the configured webhook URL."""

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._pending: set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    async def send(self, session: InterviewSession) -> bool:
        """
        Post the session payload.

        Returns:
            True when the endpoint accepted the payload
        """
        if not self.enabled:
            return False

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.post(self.url, json=session.to_webhook_payload())
        except httpx.HTTPError as e:
            logger.error(f"Webhook delivery failed for {session.id}: {e}")
            return False

        if not response.is_success:
            logger.error(f"Webhook rejected {session.id}: {response.status_code} {response.reason_phrase}")
            return False

        logger.info(f"Delivered session {session.id} to webhook")
        return True

    def schedule(self, session: InterviewSession) -> asyncio.Task | None:
        """Deliver in the background without waiting for the result."""
        if not self.enabled:
            return None
        task = asyncio.create_task(self.send(session))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def on_complete(self, session: InterviewSession) -> None:
        """Completion callback for the orchestrator."""
        self.schedule(session)

    async def drain(self) -> None:
        """Wait for deliveries still in flight."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
