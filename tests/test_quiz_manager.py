from __future__ import annotations

from pathlib import Path

import pytest

from classroom_quiz.core.errors import (
    InvalidStateError,
    PermissionDeniedError,
    SessionNotFoundError,
    ValidationError,
)
from classroom_quiz.core.models import Question, QuestionKind, UserProfile
from classroom_quiz.core.quiz_manager import QuizManager

QUESTIONS = [
    Question(id="", prompt="1/2 + 1/2?", options=("0", "1", "2"), correct_answer=1, points=5),
    Question(
        id="",
        prompt="Equal to 1/2?",
        options=("2/4", "1/3", "3/6"),
        correct_answer=(0, 2),
        points=5,
        kind=QuestionKind.MULTI_SELECT,
    ),
]


@pytest.fixture
def manager(kv_store, clock) -> QuizManager:
    return QuizManager(kv_store, clock=clock)


def _take(manager: QuizManager, quiz_id: str, student: UserProfile, first, second):
    session_id = manager.start_session(quiz_id, student)
    manager.answer(session_id, "q_1", first, student)
    manager.advance(session_id, student)
    manager.answer(session_id, "q_2", second, student)
    return manager.submit(session_id, student)


def test_full_flow(manager, teacher, student):
    quiz = manager.create_quiz(teacher, "class_1", "Fractions", QUESTIONS)
    assert [q.id for q in manager.list_quizzes("class_1")] == [quiz.id]

    first = _take(manager, quiz.id, student, 0, [0])
    second = _take(manager, quiz.id, student, 1, [2, 0])

    assert (first.score, second.score) == (0, 10)
    assert manager.latest_attempt(quiz.id, student.id) == second
    assert manager.attempts_for_student(student.id) == [second, first]
    assert manager.open_session_count() == 0

    summary = manager.gradebook(quiz.id, teacher)
    assert summary.count == 2
    assert summary.mean_score == 5
    assert [row.attempt_id for row in summary.rows] == [second.id, first.id]


def test_gradebook_is_teacher_only(manager, teacher, student):
    quiz = manager.create_quiz(teacher, "class_1", "Fractions", QUESTIONS)

    with pytest.raises(PermissionDeniedError):
        manager.gradebook(quiz.id, student)


def test_submitted_session_is_dropped(manager, teacher, student):
    quiz = manager.create_quiz(teacher, "class_1", "Fractions", QUESTIONS)
    session_id = manager.start_session(quiz.id, student)
    controller = manager.get_session(session_id)
    manager.answer(session_id, "q_1", 1)
    manager.advance(session_id)
    manager.answer(session_id, "q_2", [0, 2])
    manager.submit(session_id)

    with pytest.raises(SessionNotFoundError):
        manager.submit(session_id)
    with pytest.raises(InvalidStateError):
        controller.submit()


def test_abandoned_session_persists_nothing(manager, teacher, student):
    quiz = manager.create_quiz(teacher, "class_1", "Fractions", QUESTIONS)
    session_id = manager.start_session(quiz.id, student)
    manager.answer(session_id, "q_1", 1)

    manager.abandon_session(session_id)

    assert manager.open_session_count() == 0
    assert manager.latest_attempt(quiz.id, student.id) is None


def test_sessions_belong_to_their_student(manager, teacher, student):
    quiz = manager.create_quiz(teacher, "class_1", "Fractions", QUESTIONS)
    session_id = manager.start_session(quiz.id, student)
    intruder = UserProfile(id="s-2", display_name="Sam")

    with pytest.raises(PermissionDeniedError):
        manager.answer(session_id, "q_1", 1, intruder)


def test_attempt_limit(manager, teacher, student):
    quiz = manager.create_quiz(teacher, "class_1", "Once", QUESTIONS, max_attempts=1)
    _take(manager, quiz.id, student, 1, [0, 2])

    with pytest.raises(ValidationError):
        manager.start_session(quiz.id, student)


def test_import_and_export(manager, teacher, tmp_path: Path):
    source = tmp_path / "quiz.txt"
    source.write_text("Q: 2 + 2?\nA: 3\nB: 4\nCORRECT: B\nPOINTS: 3\n", encoding="utf-8")

    quiz = manager.import_quiz_file(source, teacher, "class_1", "Imported")
    assert quiz.total_points == 3

    target = tmp_path / "out" / "quiz.txt"
    manager.export_quiz_file(quiz.id, target)
    assert "CORRECT: B" in target.read_text(encoding="utf-8")
