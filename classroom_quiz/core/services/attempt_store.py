"""Append-only persistence of finalized quiz attempts."""

from __future__ import annotations

import logging

from classroom_quiz.constants.quiz_constants import ATTEMPTS_KEY
from classroom_quiz.core.models import QuizAttempt
from classroom_quiz.core.serialization import (
    RecordFormatError,
    attempt_from_record,
    attempt_to_record,
)
from classroom_quiz.storage import KeyValueStore, load_records, save_records

logger = logging.getLogger(__name__)


class AttemptStore:
    """Stores every submission; nothing is ever overwritten.

    Picking the "latest" attempt is a read-side concern, resolved by
    completion timestamp.
    """

    def __init__(self, store: KeyValueStore, key: str = ATTEMPTS_KEY) -> None:
        self._store = store
        self._key = key

    def save(self, attempt: QuizAttempt) -> None:
        records = load_records(self._store, self._key)
        records.append(attempt_to_record(attempt))
        save_records(self._store, self._key, records)
        logger.debug("Stored attempt %s for quiz %s", attempt.id, attempt.quiz_id)

    def find_all(self) -> list[QuizAttempt]:
        attempts: list[QuizAttempt] = []
        for record in load_records(self._store, self._key):
            try:
                attempts.append(attempt_from_record(record))
            except RecordFormatError as exc:
                logger.warning("Skipping unreadable attempt record: %s", exc)
        return attempts

    def find_by_quiz(self, quiz_id: str) -> list[QuizAttempt]:
        return [attempt for attempt in self.find_all() if attempt.quiz_id == quiz_id]

    def find_by_student(self, student_id: str) -> list[QuizAttempt]:
        return [attempt for attempt in self.find_all() if attempt.student_id == student_id]

    def find_latest_by_student(self, quiz_id: str, student_id: str) -> QuizAttempt | None:
        matching = [
            attempt for attempt in self.find_by_quiz(quiz_id) if attempt.student_id == student_id
        ]
        if not matching:
            return None
        return max(matching, key=lambda attempt: attempt.completed_at)

    def count_for_student(self, quiz_id: str, student_id: str) -> int:
        return sum(
            1 for attempt in self.find_by_quiz(quiz_id) if attempt.student_id == student_id
        )
