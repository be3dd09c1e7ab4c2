"""Domain models for the quiz engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Union

from classroom_quiz.constants.quiz_constants import DEFAULT_QUESTION_POINTS

# A single index for mcq/true-false questions, several for multi-select.
CorrectAnswer = Union[int, tuple[int, ...]]
SubmittedValue = Any


def freeze_answer(value: SubmittedValue) -> SubmittedValue:
    """Copy an answer into an immutable form; selections become tuples."""
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(freeze_answer(item) for item in value)
    return value


class QuestionKind(str, Enum):
    """Answer cardinality of a question."""

    MCQ = "mcq"
    MULTI_SELECT = "multi-select"
    TRUE_FALSE = "true-false"

    @property
    def is_multi_select(self) -> bool:
        return self is QuestionKind.MULTI_SELECT


class Role(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


@dataclass(slots=True, frozen=True)
class UserProfile:
    """Identity supplied by the surrounding application."""

    id: str
    display_name: str
    role: Role = Role.STUDENT

    @property
    def can_author(self) -> bool:
        return self.role in (Role.TEACHER, Role.ADMIN)


@dataclass(slots=True, frozen=True)
class Question:
    """One gradable item. Immutable once its quiz is published."""

    id: str
    prompt: str
    options: tuple[str, ...]
    correct_answer: CorrectAnswer
    points: int = DEFAULT_QUESTION_POINTS
    kind: QuestionKind = QuestionKind.MCQ
    explanation: str | None = None

    def correct_indices(self) -> tuple[int, ...]:
        if isinstance(self.correct_answer, tuple):
            return self.correct_answer
        return (self.correct_answer,)


@dataclass(slots=True, frozen=True)
class Quiz:
    """Ordered sequence of questions plus metadata.

    ``total_points`` is derived from the questions and never stored on its own.
    """

    id: str
    classroom_id: str
    title: str
    questions: tuple[Question, ...]
    created_by: str
    created_at: datetime
    description: str | None = None
    max_attempts: int | None = None

    @property
    def total_points(self) -> int:
        return sum(question.points for question in self.questions)

    @property
    def question_ids(self) -> tuple[str, ...]:
        return tuple(question.id for question in self.questions)

    def get_question(self, question_id: str) -> Question | None:
        return next((q for q in self.questions if q.id == question_id), None)


@dataclass(slots=True, frozen=True)
class QuizAttempt:
    """A learner's finalized submission. Never mutated after creation."""

    id: str
    quiz_id: str
    student_id: str
    student_name: str
    answers: Mapping[str, SubmittedValue]
    score: int
    total_points: int
    completed_at: datetime
    started_at: datetime | None = None
    attempt_number: int = 1

    def __post_init__(self) -> None:
        # Read-only view over a private copy.
        frozen = {key: freeze_answer(value) for key, value in self.answers.items()}
        object.__setattr__(self, "answers", MappingProxyType(frozen))


@dataclass(slots=True)
class ScoreResult:
    """Outcome of scoring one submission."""

    achieved_points: int
    total_points: int
    correctness: dict[str, bool] = field(default_factory=dict)

    @property
    def correct_count(self) -> int:
        return sum(1 for is_correct in self.correctness.values() if is_correct)


@dataclass(slots=True)
class ReviewItem:
    """Per-question line of the result screen."""

    question_id: str
    prompt: str
    submitted: SubmittedValue
    correct_answer: CorrectAnswer
    is_correct: bool
    points_awarded: int
    explanation: str | None = None
