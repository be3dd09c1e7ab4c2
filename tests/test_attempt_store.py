from __future__ import annotations

from datetime import datetime, timedelta, timezone
import json

import pytest

from classroom_quiz.constants.quiz_constants import ATTEMPTS_KEY
from classroom_quiz.core.errors import StorageError
from classroom_quiz.core.models import QuizAttempt
from classroom_quiz.core.services.attempt_store import AttemptStore
from classroom_quiz.storage import InMemoryKeyValueStore

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def make_attempt(attempt_id: str, student_id: str = "s-1", quiz_id: str = "quiz_1", minutes: int = 0, score: int = 5) -> QuizAttempt:
    return QuizAttempt(
        id=attempt_id,
        quiz_id=quiz_id,
        student_id=student_id,
        student_name=student_id.upper(),
        answers={"Q1": 1, "Q2": [0, 2]},
        score=score,
        total_points=10,
        completed_at=T0 + timedelta(minutes=minutes),
    )


class BrokenStore(InMemoryKeyValueStore):
    def get(self, key: str) -> str | None:
        raise OSError("disk gone")


def test_save_appends_without_overwriting(attempt_store):
    attempt_store.save(make_attempt("a1"))
    attempt_store.save(make_attempt("a2"))

    assert {a.id for a in attempt_store.find_by_quiz("quiz_1")} == {"a1", "a2"}


def test_find_by_quiz_filters_other_quizzes(attempt_store):
    attempt_store.save(make_attempt("a1"))
    attempt_store.save(make_attempt("a2", quiz_id="quiz_2"))

    assert [a.id for a in attempt_store.find_by_quiz("quiz_2")] == ["a2"]


def test_saved_attempt_reads_back_equal(attempt_store):
    attempt = make_attempt("a1")
    attempt_store.save(attempt)

    loaded = attempt_store.find_by_quiz("quiz_1")[0]
    assert loaded.completed_at == attempt.completed_at
    assert dict(loaded.answers) == {"Q1": 1, "Q2": (0, 2)}
    assert loaded.score == 5


def test_find_latest_by_student_picks_greatest_timestamp(attempt_store):
    attempt_store.save(make_attempt("late", minutes=30))
    attempt_store.save(make_attempt("early", minutes=5))
    attempt_store.save(make_attempt("other", student_id="s-2", minutes=60))

    latest = attempt_store.find_latest_by_student("quiz_1", "s-1")

    assert latest.id == "late"


def test_find_latest_by_student_returns_none_without_attempts(attempt_store):
    assert attempt_store.find_latest_by_student("quiz_1", "s-1") is None


def test_find_by_student_and_count(attempt_store):
    attempt_store.save(make_attempt("a1"))
    attempt_store.save(make_attempt("a2", minutes=1))
    attempt_store.save(make_attempt("b1", student_id="s-2"))

    assert {a.id for a in attempt_store.find_by_student("s-1")} == {"a1", "a2"}
    assert attempt_store.count_for_student("quiz_1", "s-1") == 2
    assert attempt_store.count_for_student("quiz_1", "s-3") == 0


@pytest.mark.parametrize("raw", ["{not json", '{"a": 1}', "42"])
def test_corrupted_collection_is_treated_as_empty(raw, caplog):
    store = AttemptStore(InMemoryKeyValueStore({ATTEMPTS_KEY: raw}))

    with caplog.at_level("WARNING"):
        assert store.find_by_quiz("quiz_1") == []

    assert "treating it as empty" in caplog.text


def test_save_recovers_from_corrupted_collection():
    kv = InMemoryKeyValueStore({ATTEMPTS_KEY: "{not json"})
    store = AttemptStore(kv)

    store.save(make_attempt("a1"))

    assert [a.id for a in store.find_by_quiz("quiz_1")] == ["a1"]


def test_malformed_records_are_skipped():
    null_timestamp = {
        "id": "no_time",
        "quiz_id": "quiz_1",
        "student_id": "s-1",
        "answers": {"Q1": 1},
        "score": 5,
        "total_points": 10,
        "completed_at": None,
    }
    kv = InMemoryKeyValueStore(
        {ATTEMPTS_KEY: json.dumps([{"id": "broken"}, "junk", null_timestamp])}
    )
    store = AttemptStore(kv)
    store.save(make_attempt("a1"))

    assert [a.id for a in store.find_all()] == ["a1"]
    assert store.find_latest_by_student("quiz_1", "s-1").id == "a1"
    assert store.count_for_student("quiz_1", "s-1") == 1


def test_read_failure_raises_storage_error():
    store = AttemptStore(BrokenStore())

    with pytest.raises(StorageError):
        store.find_by_quiz("quiz_1")
