"""Service for authoring and looking up quizzes."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
import logging
from typing import Callable, Iterable
from uuid import uuid4

from classroom_quiz.constants.quiz_constants import (
    MIN_OPTION_COUNT,
    QUIZZES_KEY,
    TRUE_FALSE_OPTIONS,
)
from classroom_quiz.core.errors import (
    PermissionDeniedError,
    QuizNotFoundError,
    ValidationError,
)
from classroom_quiz.core.models import Question, QuestionKind, Quiz, UserProfile
from classroom_quiz.core.serialization import RecordFormatError, quiz_from_record, quiz_to_record
from classroom_quiz.storage import KeyValueStore, load_records, save_records

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuizRepository:
    """Validates, stores and lists published quizzes."""

    def __init__(
        self,
        store: KeyValueStore,
        key: str = QUIZZES_KEY,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._key = key
        self._clock = clock

    def create_quiz(
        self,
        author: UserProfile,
        classroom_id: str,
        title: str,
        questions: Iterable[Question],
        description: str | None = None,
        max_attempts: int | None = None,
    ) -> Quiz:
        """Publish a new quiz. Only teachers and admins may author quizzes."""
        if not author.can_author:
            raise PermissionDeniedError(f"User '{author.id}' is not allowed to create quizzes.")

        cleaned_title = title.strip()
        if not cleaned_title:
            raise ValidationError("Quiz title is required.")
        if max_attempts is not None and (not isinstance(max_attempts, int) or max_attempts <= 0):
            raise ValidationError("Maximum attempts must be a positive integer.")

        prepared = self._prepare_questions(list(questions))
        quiz = Quiz(
            id=f"quiz_{uuid4().hex}",
            classroom_id=classroom_id,
            title=cleaned_title,
            description=(description or "").strip() or None,
            questions=prepared,
            max_attempts=max_attempts,
            created_by=author.id,
            created_at=self._clock(),
        )
        self.add_quiz(quiz)
        logger.info(
            "Quiz %s created in classroom %s (%d questions, %d points)",
            quiz.id,
            classroom_id,
            len(quiz.questions),
            quiz.total_points,
        )
        return quiz

    def add_quiz(self, quiz: Quiz) -> None:
        """Append an already-validated quiz to the collection."""
        records = load_records(self._store, self._key)
        records.append(quiz_to_record(quiz))
        save_records(self._store, self._key, records)

    def list_quizzes(self, classroom_id: str | None = None) -> list[Quiz]:
        quizzes: list[Quiz] = []
        for record in load_records(self._store, self._key):
            try:
                quiz = quiz_from_record(record)
            except RecordFormatError as exc:
                logger.warning("Skipping unreadable quiz record: %s", exc)
                continue
            if classroom_id is None or quiz.classroom_id == classroom_id:
                quizzes.append(quiz)
        return quizzes

    def get_quiz(self, quiz_id: str) -> Quiz:
        quiz = next((q for q in self.list_quizzes() if q.id == quiz_id), None)
        if quiz is None:
            raise QuizNotFoundError(f"Quiz '{quiz_id}' does not exist.")
        return quiz

    def _prepare_questions(self, questions: list[Question]) -> tuple[Question, ...]:
        if not questions:
            raise ValidationError("Quiz must contain at least one question.")

        prepared: list[Question] = []
        seen_ids: set[str] = set()
        for position, question in enumerate(questions, start=1):
            question_id = question.id.strip() if question.id else ""
            if not question_id or question_id in seen_ids:
                question_id = f"q_{position}"
            while question_id in seen_ids:
                question_id = f"{question_id}_{position}"
            seen_ids.add(question_id)
            prepared.append(prepare_question(replace(question, id=question_id), position))
        return tuple(prepared)


def prepare_question(question: Question, position: int) -> Question:
    """Validate and normalize one question, naming its position on failure."""
    label = f"Question {position}"

    prompt = question.prompt.strip()
    if not prompt:
        raise ValidationError(f"{label}: question text must not be empty.", question_id=question.id)

    options = tuple(option.strip() for option in question.options)
    if question.kind is QuestionKind.TRUE_FALSE and not options:
        options = TRUE_FALSE_OPTIONS
    if len(options) < MIN_OPTION_COUNT:
        raise ValidationError(
            f"{label}: at least {MIN_OPTION_COUNT} options are required.",
            question_id=question.id,
        )
    for option_number, option in enumerate(options, start=1):
        if not option:
            raise ValidationError(
                f"{label}: option {option_number} must not be empty.",
                question_id=question.id,
            )

    correct = _validate_correct_answer(question, len(options), label)

    if isinstance(question.points, bool) or not isinstance(question.points, int) or question.points <= 0:
        raise ValidationError(f"{label}: points must be a positive integer.", question_id=question.id)

    return Question(
        id=question.id,
        prompt=prompt,
        options=options,
        correct_answer=correct,
        points=question.points,
        kind=question.kind,
        explanation=(question.explanation or "").strip() or None,
    )


def _validate_correct_answer(question: Question, option_count: int, label: str):
    def in_range(index: object) -> bool:
        return isinstance(index, int) and not isinstance(index, bool) and 0 <= index < option_count

    correct = question.correct_answer
    if question.kind.is_multi_select:
        if isinstance(correct, int):
            correct = (correct,)
        if not isinstance(correct, (tuple, list)) or not correct:
            raise ValidationError(
                f"{label}: select at least one correct option.", question_id=question.id
            )
        if not all(in_range(index) for index in correct):
            raise ValidationError(
                f"{label}: correct options must refer to existing options.",
                question_id=question.id,
            )
        return tuple(sorted(set(correct)))

    if correct is None:
        raise ValidationError(f"{label}: a correct option is required.", question_id=question.id)
    if not in_range(correct):
        raise ValidationError(
            f"{label}: correct option must be between 1 and {option_count}.",
            question_id=question.id,
        )
    return correct
