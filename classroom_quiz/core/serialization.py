"""Conversion between domain models and the JSON records kept in the store."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from classroom_quiz.constants.quiz_constants import DEFAULT_QUESTION_POINTS
from classroom_quiz.core.models import Question, QuestionKind, Quiz, QuizAttempt


class RecordFormatError(ValueError):
    """Raised when a stored record does not have the expected shape."""


def encode_datetime(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def decode_datetime(value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        # JavaScript writes a trailing "Z" which older fromisoformat rejects.
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError) as exc:
        raise RecordFormatError(f"Invalid timestamp: {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def decode_required_datetime(value: str | None, field_name: str) -> datetime:
    parsed = decode_datetime(value)
    if parsed is None:
        raise RecordFormatError(f"Missing timestamp '{field_name}'.")
    return parsed


def _encode_answer(value: Any) -> Any:
    if isinstance(value, (tuple, set, frozenset)):
        return list(value)
    return value


def question_to_record(question: Question) -> dict[str, Any]:
    return {
        "id": question.id,
        "type": question.kind.value,
        "question": question.prompt,
        "options": list(question.options),
        "correct_answer": _encode_answer(question.correct_answer),
        "points": question.points,
        "explanation": question.explanation,
    }


def question_from_record(record: dict[str, Any]) -> Question:
    try:
        kind = QuestionKind(record.get("type", QuestionKind.MCQ.value))
        correct = record["correct_answer"]
        if isinstance(correct, list):
            correct = tuple(correct)
        return Question(
            id=str(record["id"]),
            prompt=record["question"],
            options=tuple(record["options"]),
            correct_answer=correct,
            points=int(record.get("points", DEFAULT_QUESTION_POINTS)),
            kind=kind,
            explanation=record.get("explanation"),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise RecordFormatError(f"Malformed question record: {exc}") from exc


def quiz_to_record(quiz: Quiz) -> dict[str, Any]:
    return {
        "id": quiz.id,
        "classroom_id": quiz.classroom_id,
        "title": quiz.title,
        "description": quiz.description,
        "questions": [question_to_record(q) for q in quiz.questions],
        # Written for readers of the raw collection; recomputed on load.
        "total_points": quiz.total_points,
        "max_attempts": quiz.max_attempts,
        "created_by": quiz.created_by,
        "created_at": encode_datetime(quiz.created_at),
    }


def quiz_from_record(record: dict[str, Any]) -> Quiz:
    try:
        return Quiz(
            id=str(record["id"]),
            classroom_id=str(record["classroom_id"]),
            title=record["title"],
            description=record.get("description") or None,
            questions=tuple(question_from_record(q) for q in record["questions"]),
            max_attempts=record.get("max_attempts"),
            created_by=str(record["created_by"]),
            created_at=decode_required_datetime(record["created_at"], "created_at"),
        )
    except (KeyError, TypeError) as exc:
        raise RecordFormatError(f"Malformed quiz record: {exc}") from exc


def attempt_to_record(attempt: QuizAttempt) -> dict[str, Any]:
    return {
        "id": attempt.id,
        "quiz_id": attempt.quiz_id,
        "student_id": attempt.student_id,
        "student_name": attempt.student_name,
        "answers": {key: _encode_answer(value) for key, value in attempt.answers.items()},
        "score": attempt.score,
        "total_points": attempt.total_points,
        "started_at": encode_datetime(attempt.started_at),
        "completed_at": encode_datetime(attempt.completed_at),
        "attempt_number": attempt.attempt_number,
    }


def attempt_from_record(record: dict[str, Any]) -> QuizAttempt:
    try:
        return QuizAttempt(
            id=str(record["id"]),
            quiz_id=str(record["quiz_id"]),
            student_id=str(record["student_id"]),
            student_name=record.get("student_name") or str(record["student_id"]),
            answers=dict(record.get("answers") or {}),
            score=int(record["score"]),
            total_points=int(record["total_points"]),
            started_at=decode_datetime(record.get("started_at")),
            completed_at=decode_required_datetime(record["completed_at"], "completed_at"),
            attempt_number=int(record.get("attempt_number", 1)),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise RecordFormatError(f"Malformed attempt record: {exc}") from exc
