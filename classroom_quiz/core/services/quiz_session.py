"""Service driving one learner through one quiz."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
from typing import Any, Callable, Union
from uuid import uuid4

from classroom_quiz.core import scoring
from classroom_quiz.core.errors import InvalidStateError, ValidationError
from classroom_quiz.core.models import (
    Question,
    Quiz,
    QuizAttempt,
    ReviewItem,
    UserProfile,
    freeze_answer,
)
from classroom_quiz.core.services.attempt_store import AttemptStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class InProgress:
    current_index: int = 0
    answers: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class Submitted:
    attempt: QuizAttempt


SessionState = Union[InProgress, Submitted]


class QuizSessionController:
    """State machine over a single traversal: ``InProgress`` then ``Submitted``.

    A controller is single-use. Retakes are modelled by constructing a new
    controller, which produces a new, independent attempt record.
    """

    def __init__(
        self,
        quiz: Quiz,
        student: UserProfile,
        attempt_store: AttemptStore,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not quiz.questions:
            raise ValidationError("Quiz must contain at least one question.")
        self._quiz = quiz
        self._student = student
        self._attempt_store = attempt_store
        self._clock = clock
        self._started_at = clock()
        self._furthest_index = 0
        self._state: SessionState = InProgress()

    @property
    def quiz(self) -> Quiz:
        return self._quiz

    @property
    def student(self) -> UserProfile:
        return self._student

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_submitted(self) -> bool:
        return isinstance(self._state, Submitted)

    @property
    def attempt(self) -> QuizAttempt | None:
        if isinstance(self._state, Submitted):
            return self._state.attempt
        return None

    @property
    def started_at(self) -> datetime:
        return self._started_at

    @property
    def current_index(self) -> int:
        return self._require_in_progress().current_index

    @property
    def current_question(self) -> Question:
        return self._quiz.questions[self.current_index]

    @property
    def answers(self) -> dict[str, Any]:
        """Snapshot of the answers recorded so far."""
        if isinstance(self._state, Submitted):
            return dict(self._state.attempt.answers)
        return dict(self._state.answers)

    @property
    def progress(self) -> tuple[int, int]:
        """1-based position and question count, as shown in "Question 2 of 5"."""
        return self.current_index + 1, len(self._quiz.questions)

    @property
    def is_last_question(self) -> bool:
        return self.current_index == len(self._quiz.questions) - 1

    def missing_question_ids(self) -> list[str]:
        answers = self._state.answers if isinstance(self._state, InProgress) else self.answers
        return [question_id for question_id in self._quiz.question_ids if question_id not in answers]

    def answer(self, question_id: str, value: Any) -> None:
        """Record or overwrite the answer for the current or an earlier question."""
        state = self._require_in_progress()
        position = self._position_of(question_id)
        if position > self._furthest_index:
            raise ValidationError(
                f"Question '{question_id}' has not been reached yet.", question_id=question_id
            )
        if value is None:
            raise ValidationError(
                f"An answer is required for question '{question_id}'.", question_id=question_id
            )
        state.answers[question_id] = freeze_answer(value)

    def advance(self) -> None:
        state = self._require_in_progress()
        current_id = self._quiz.questions[state.current_index].id
        if current_id not in state.answers:
            raise ValidationError(
                f"Answer question '{current_id}' before moving on.", question_id=current_id
            )
        last_index = len(self._quiz.questions) - 1
        if state.current_index < last_index:
            state.current_index += 1
            self._furthest_index = max(self._furthest_index, state.current_index)

    def retreat(self) -> None:
        state = self._require_in_progress()
        state.current_index = max(0, state.current_index - 1)

    def go_to(self, question_id: str) -> None:
        """Jump back to an already-visited question, e.g. one reported missing."""
        state = self._require_in_progress()
        position = self._position_of(question_id)
        if position > self._furthest_index:
            raise ValidationError(
                f"Question '{question_id}' has not been reached yet.", question_id=question_id
            )
        state.current_index = position

    def submit(self) -> QuizAttempt:
        """Score the answers, persist the attempt and finish the session.

        Raises ``ValidationError`` when a question is unanswered and
        ``InvalidStateError`` on a second call. If the store fails the
        session stays in progress and nothing is recorded.
        """
        state = self._require_in_progress()
        missing = [qid for qid in self._quiz.question_ids if qid not in state.answers]
        if missing:
            raise ValidationError(
                "Incomplete submission: unanswered question(s) " + ", ".join(missing),
                question_id=missing[0],
                missing=missing,
            )

        result = scoring.score(self._quiz, state.answers)
        previous = self._attempt_store.count_for_student(self._quiz.id, self._student.id)
        attempt = QuizAttempt(
            id=f"attempt_{uuid4().hex}",
            quiz_id=self._quiz.id,
            student_id=self._student.id,
            student_name=self._student.display_name,
            answers=dict(state.answers),
            score=result.achieved_points,
            total_points=self._quiz.total_points,
            started_at=self._started_at,
            completed_at=self._clock(),
            attempt_number=previous + 1,
        )
        self._attempt_store.save(attempt)
        self._state = Submitted(attempt=attempt)
        logger.info(
            "Student %s submitted quiz %s: %d/%d",
            self._student.id,
            self._quiz.id,
            attempt.score,
            attempt.total_points,
        )
        return attempt

    def review(self) -> list[ReviewItem]:
        """Per-question breakdown; only available once submitted."""
        attempt = self.attempt
        if attempt is None:
            raise InvalidStateError("The quiz has not been submitted yet.")
        return scoring.review(self._quiz, attempt.answers)

    def _require_in_progress(self) -> InProgress:
        if not isinstance(self._state, InProgress):
            raise InvalidStateError("This quiz session has already been submitted.")
        return self._state

    def _position_of(self, question_id: str) -> int:
        for index, question in enumerate(self._quiz.questions):
            if question.id == question_id:
                return index
        raise ValidationError(
            f"Question '{question_id}' is not part of quiz '{self._quiz.id}'.",
            question_id=question_id,
        )
