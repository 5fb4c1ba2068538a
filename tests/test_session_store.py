import pytest
from pydantic import ValidationError

from voiceprep.core.exceptions import SessionPersistenceError
from voiceprep.core.session_store import FileSessionStore, InMemorySessionStore
from voiceprep.models.interview import InterviewSession, InterviewStatus, Turn


def answered_session(turns=2, budget=5):
    return InterviewSession(
        phone_number="010-1234-5678",
        status=InterviewStatus.ASKING,
        question_index=turns,
        question_budget=budget,
        turns=[Turn(question=f"Q{i}", answer=f"A{i}") for i in range(1, turns + 1)],
        current_question=f"Q{turns + 1}",
    )


@pytest.fixture(params=["memory", "file"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return InMemorySessionStore(scope="01012345678")
    return FileSessionStore(tmp_path, scope="01012345678")


def test_save_then_load_returns_equal_copy(any_store):
    session = answered_session()

    any_store.save(session)
    loaded = any_store.load()

    assert loaded == session
    assert loaded is not session


def test_load_empty_store_returns_none(any_store):
    assert any_store.load() is None


def test_create_supersedes_previous_session(any_store):
    first = any_store.create("010-1234-5678")
    second = any_store.create("010-1234-5678")

    assert first.id != second.id
    assert any_store.load().id == second.id


def test_clear_removes_session(any_store):
    any_store.create("010-1234-5678")
    any_store.clear()
    assert any_store.load() is None


def test_scopes_are_isolated():
    backend = {}
    mine = InMemorySessionStore(scope="01011112222", backend=backend)
    theirs = InMemorySessionStore(scope="01033334444", backend=backend)

    mine.create("010-1111-2222")

    assert theirs.load() is None
    assert mine.load() is not None


@pytest.mark.parametrize(
    "stored",
    [
        "{not json",
        '{"phone_number": "010", "question_index": 2, "turns": []}',
        '{"id": "   ", "phone_number": "010"}',
        '{"id": "interview_1"}',
    ],
)
def test_corrupted_or_invalid_data_loads_as_none(stored):
    store = InMemorySessionStore(scope="s")
    store.backend["s:interview_session"] = stored

    assert store.load() is None


def test_unreadable_file_loads_as_none(tmp_path):
    store = FileSessionStore(tmp_path, scope="s")
    store.path.write_bytes(b"\xff\xfe\x00garbage")

    assert store.load() is None


def test_write_failure_raises_persistence_error(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    store = FileSessionStore(blocker, scope="s")

    with pytest.raises(SessionPersistenceError):
        store.save(answered_session())


def test_turn_counter_invariant_enforced():
    with pytest.raises(ValidationError):
        InterviewSession(phone_number="010", question_index=1)

    with pytest.raises(ValidationError):
        InterviewSession(
            phone_number="010",
            question_index=6,
            question_budget=5,
            turns=[Turn(question="q", answer="a")] * 6,
        )


def test_webhook_payload_shape():
    session = answered_session(turns=2)
    payload = session.to_webhook_payload()

    assert payload["sessionId"] == session.id
    assert payload["questionCount"] == 2
    assert payload["totalQuestions"] == 5
    assert [q["number"] for q in payload["questions"]] == [1, 2]
    assert payload["questions"][1]["answer"] == "A2"
    assert payload["completionReason"] is None


def test_format_as_text_lists_turns_in_order():
    text = answered_session(turns=2).format_as_text()

    assert text.startswith("=== Interview Record ===")
    assert text.index("[Question 1]") < text.index("[Question 2]")
    assert "A2" in text
