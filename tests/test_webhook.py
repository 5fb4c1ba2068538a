import json

import httpx

from voiceprep.core.webhook import DeliveryWebhook
from voiceprep.models.interview import CompletionReason, InterviewSession, InterviewStatus, Turn

URL = "https://hooks.example.com/interview"


def completed_session():
    return InterviewSession(
        phone_number="010-1234-5678",
        status=InterviewStatus.COMPLETED,
        question_index=1,
        turns=[Turn(question="Introduce yourself.", answer="I am a developer.")],
        summary="Nice work.",
        completion_reason=CompletionReason.BUDGET_REACHED,
    )


async def test_send_posts_session_payload():
    received = []

    def handler(request):
        received.append(json.loads(request.content))
        return httpx.Response(200)

    webhook = DeliveryWebhook(URL, transport=httpx.MockTransport(handler))
    session = completed_session()

    assert await webhook.send(session) is True
    assert received[0]["sessionId"] == session.id
    assert received[0]["phoneNumber"] == "010-1234-5678"
    assert received[0]["summary"] == "Nice work."
    assert received[0]["completionReason"] == "budget_reached"


async def test_rejected_delivery_returns_false():
    webhook = DeliveryWebhook(URL, transport=httpx.MockTransport(lambda request: httpx.Response(500)))

    assert await webhook.send(completed_session()) is False


async def test_unreachable_endpoint_returns_false():
    def handler(request):
        raise httpx.ConnectError("no route", request=request)

    webhook = DeliveryWebhook(URL, transport=httpx.MockTransport(handler))

    assert await webhook.send(completed_session()) is False


async def test_scheduled_delivery_runs_in_background():
    received = []

    def handler(request):
        received.append(request.url)
        return httpx.Response(204)

    webhook = DeliveryWebhook(URL, transport=httpx.MockTransport(handler))

    await webhook.on_complete(completed_session())
    await webhook.drain()

    assert len(received) == 1


async def test_disabled_without_url():
    webhook = DeliveryWebhook("")

    assert not webhook.enabled
    assert webhook.schedule(completed_session()) is None
    assert await webhook.send(completed_session()) is False
