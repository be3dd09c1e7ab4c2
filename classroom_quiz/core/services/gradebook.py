"""Service for quiz gradebook statistics."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from classroom_quiz.core import scoring
from classroom_quiz.core.models import Quiz, QuizAttempt
from classroom_quiz.core.scoring import ScoreBand
from classroom_quiz.core.services.attempt_store import AttemptStore


@dataclass(slots=True, frozen=True)
class GradebookRow:
    """Immutable snapshot of one attempt as shown in the gradebook."""

    attempt_id: str
    student_id: str
    student_name: str
    score: int
    total_points: int
    percentage: int
    band: ScoreBand
    completed_at: datetime
    attempt_number: int = 1


@dataclass(slots=True)
class GradebookSummary:
    quiz_id: str
    total_points: int
    count: int = 0
    mean_score: float = 0.0
    rows: list[GradebookRow] = field(default_factory=list)

    @property
    def mean_percentage(self) -> int:
        if self.count == 0:
            return 0
        return scoring.percentage(self.mean_score, self.total_points)


class GradebookAggregator:
    """Summarizes attempts for a quiz. Reads straight from the attempt store."""

    def __init__(self, attempt_store: AttemptStore) -> None:
        self._attempt_store = attempt_store

    def summarize(self, quiz: Quiz, attempts: list[QuizAttempt] | None = None) -> GradebookSummary:
        """Every attempt becomes a row; retakes by the same student are all listed."""
        if attempts is None:
            attempts = self._attempt_store.find_by_quiz(quiz.id)

        count = len(attempts)
        mean_score = sum(a.score for a in attempts) / count if count else 0.0
        return GradebookSummary(
            quiz_id=quiz.id,
            total_points=quiz.total_points,
            count=count,
            mean_score=mean_score,
            rows=self._build_rows(attempts),
        )

    def latest_per_student(self, quiz: Quiz, attempts: list[QuizAttempt] | None = None) -> list[GradebookRow]:
        """One row per student: the attempt with the most recent completion time."""
        if attempts is None:
            attempts = self._attempt_store.find_by_quiz(quiz.id)

        latest: dict[str, QuizAttempt] = {}
        for attempt in attempts:
            current = latest.get(attempt.student_id)
            if current is None or attempt.completed_at > current.completed_at:
                latest[attempt.student_id] = attempt
        return self._build_rows(list(latest.values()))

    @staticmethod
    def band(percent: int) -> ScoreBand:
        return scoring.band(percent)

    @staticmethod
    def _build_rows(attempts: list[QuizAttempt]) -> list[GradebookRow]:
        ordered = sorted(attempts, key=lambda a: a.completed_at, reverse=True)
        rows: list[GradebookRow] = []
        for attempt in ordered:
            percent = scoring.percentage(attempt.score, attempt.total_points)
            rows.append(
                GradebookRow(
                    attempt_id=attempt.id,
                    student_id=attempt.student_id,
                    student_name=attempt.student_name,
                    score=attempt.score,
                    total_points=attempt.total_points,
                    percentage=percent,
                    band=scoring.band(percent),
                    completed_at=attempt.completed_at,
                    attempt_number=attempt.attempt_number,
                )
            )
        return rows
