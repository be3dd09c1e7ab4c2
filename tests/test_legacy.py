from __future__ import annotations

import json

from classroom_quiz.constants.quiz_constants import (
    ATTEMPTS_KEY,
    LEGACY_ATTEMPTS_KEY,
    LEGACY_QUIZZES_KEY,
)
from classroom_quiz.core.legacy import migrate_legacy_data, quiz_from_legacy
from classroom_quiz.core.services.attempt_store import AttemptStore
from classroom_quiz.core.services.quiz_repository import QuizRepository
from classroom_quiz.storage import InMemoryKeyValueStore

LEGACY_QUIZ = {
    "id": "quiz_1700000000000",
    "classroom_id": "class_1",
    "title": "Capitals",
    "question": "Capital of France?",
    "options": ["Berlin", "Paris", "Rome", "Madrid"],
    "correct_answer": 1,
    "created_by": "t-1",
    "created_at": "2023-11-14T22:13:20.000Z",
}

LEGACY_ATTEMPT = {
    "id": "attempt_1700000000500",
    "quiz_id": "quiz_1700000000000",
    "student_id": "s-1",
    "student_name": "Alex",
    "selected_answer": 1,
    "is_correct": True,
    "completed_at": "2023-11-14T22:20:00.000Z",
}


def _legacy_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore(
        {
            LEGACY_QUIZZES_KEY: json.dumps([LEGACY_QUIZ, {"id": "broken"}]),
            LEGACY_ATTEMPTS_KEY: json.dumps([LEGACY_ATTEMPT]),
        }
    )


def test_legacy_quiz_becomes_single_question_quiz():
    quiz = quiz_from_legacy(LEGACY_QUIZ)

    assert len(quiz.questions) == 1
    assert quiz.total_points == 1
    assert quiz.questions[0].correct_answer == 1
    assert quiz.created_at.year == 2023


def test_migration_converts_and_is_idempotent():
    store = _legacy_store()

    assert migrate_legacy_data(store) == (1, 1)
    assert migrate_legacy_data(store) == (0, 0)

    quiz = QuizRepository(store).get_quiz("quiz_1700000000000")
    assert quiz.title == "Capitals"
    attempt = AttemptStore(store).find_latest_by_student(quiz.id, "s-1")
    assert attempt.score == 1
    assert attempt.total_points == 1
    assert dict(attempt.answers) == {"q_1": 1}


def test_migration_without_legacy_data_changes_nothing():
    store = InMemoryKeyValueStore()

    assert migrate_legacy_data(store) == (0, 0)
    assert store.get(ATTEMPTS_KEY) is None


def test_legacy_records_without_timestamps_are_skipped():
    store = InMemoryKeyValueStore(
        {
            LEGACY_QUIZZES_KEY: json.dumps([dict(LEGACY_QUIZ, created_at=None)]),
            LEGACY_ATTEMPTS_KEY: json.dumps([dict(LEGACY_ATTEMPT, completed_at=None)]),
        }
    )

    assert migrate_legacy_data(store) == (0, 0)
    assert AttemptStore(store).find_all() == []
