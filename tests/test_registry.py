from conftest import FakeTextClient
from voiceprep.api.dependencies import InterviewRegistry

PHONES = ["010-1111-0001", "010-1111-0002", "010-1111-0003", "010-1111-0004"]


def make_registry(test_settings, limit):
    settings = test_settings.model_copy(update={"question_budget": 1, "finished_session_limit": limit})
    return InterviewRegistry(settings, FakeTextClient())


async def test_oldest_finished_interviews_are_released(test_settings):
    registry = make_registry(test_settings, limit=1)
    finished = []
    for phone in PHONES[:3]:
        orchestrator = await registry.start(phone)
        await orchestrator.submit_answer("My answer")
        finished.append(orchestrator.session.id)

    live = await registry.start(PHONES[3])

    assert [registry.get(session_id) is not None for session_id in finished] == [False, False, True]
    assert registry.get(live.session.id) is live
    assert len(registry._by_scope) == 2


async def test_interrupted_interview_readable_within_limit(test_settings):
    registry = make_registry(test_settings, limit=2)
    orchestrator = await registry.start(PHONES[0])
    await orchestrator.interrupt()

    for phone in PHONES[1:3]:
        await registry.start(phone)

    assert registry.get(orchestrator.session.id) is orchestrator


async def test_live_interviews_are_never_released(test_settings):
    registry = make_registry(test_settings, limit=0)
    started = [await registry.start(phone) for phone in PHONES]

    assert all(registry.get(o.session.id) is o for o in started)


async def test_removed_interview_is_not_counted_as_finished(test_settings):
    registry = make_registry(test_settings, limit=5)
    first = await registry.start(PHONES[0])
    await first.interrupt()
    first_id = first.session.id
    assert registry.remove(first_id) is True

    second = await registry.start(PHONES[1])
    await second.interrupt()

    assert registry.get(second.session.id) is second
    assert list(registry._finished) == [second.session.id]
