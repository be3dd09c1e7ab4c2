"""Scoring rules for quiz submissions.

Everything here is a pure function of its arguments so the rules can be
exercised without a store or a session.
"""

from __future__ import annotations

from enum import Enum
import math
from typing import Any, Iterable, Mapping

from classroom_quiz.constants.quiz_constants import (
    HIGH_BAND_THRESHOLD,
    MEDIUM_BAND_THRESHOLD,
)
from classroom_quiz.core.models import Question, Quiz, ReviewItem, ScoreResult


class ScoreBand(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def _strict_key(value: Any) -> tuple[type, Any]:
    # Pairing the value with its type keeps 1, 1.0, True and "1" distinct.
    return (type(value), value)


def _as_strict_set(values: Iterable[Any]) -> set[tuple[type, Any]] | None:
    try:
        return {_strict_key(value) for value in values}
    except TypeError:
        # Unhashable elements can never match an index.
        return None


def is_answer_correct(question: Question, submitted: Any) -> bool:
    """Judge a single answer. ``None`` means unanswered and is never correct."""
    if submitted is None:
        return False

    if question.kind.is_multi_select:
        if not isinstance(submitted, (list, tuple, set, frozenset)):
            return False
        submitted_set = _as_strict_set(submitted)
        if submitted_set is None:
            return False
        correct_set = _as_strict_set(question.correct_indices())
        return len(submitted_set) == len(correct_set) and submitted_set <= correct_set

    return _strict_key(submitted) == _strict_key(question.correct_answer)


def score(quiz: Quiz, answers: Mapping[str, Any]) -> ScoreResult:
    """Sum the points of every correctly answered question."""
    correctness: dict[str, bool] = {}
    achieved = 0
    for question in quiz.questions:
        is_correct = is_answer_correct(question, answers.get(question.id))
        correctness[question.id] = is_correct
        if is_correct:
            achieved += question.points
    return ScoreResult(
        achieved_points=achieved,
        total_points=quiz.total_points,
        correctness=correctness,
    )


def percentage(achieved_points: int, total_points: int) -> int:
    """Whole-number percentage, rounding halves up. Zero-point quizzes score 0."""
    if total_points <= 0:
        return 0
    return math.floor(achieved_points / total_points * 100 + 0.5)


def band(percent: int) -> ScoreBand:
    if percent >= HIGH_BAND_THRESHOLD:
        return ScoreBand.HIGH
    if percent >= MEDIUM_BAND_THRESHOLD:
        return ScoreBand.MEDIUM
    return ScoreBand.LOW


def review(quiz: Quiz, answers: Mapping[str, Any]) -> list[ReviewItem]:
    """Build the per-question breakdown shown after submission."""
    items: list[ReviewItem] = []
    for question in quiz.questions:
        submitted = answers.get(question.id)
        is_correct = is_answer_correct(question, submitted)
        items.append(
            ReviewItem(
                question_id=question.id,
                prompt=question.prompt,
                submitted=submitted,
                correct_answer=question.correct_answer,
                is_correct=is_correct,
                points_awarded=question.points if is_correct else 0,
                explanation=question.explanation,
            )
        )
    return items
