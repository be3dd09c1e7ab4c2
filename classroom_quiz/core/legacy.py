"""Conversion of single-question legacy quizzes into the unified model.

The first generation of the classroom app stored one question per quiz
record and graded attempts as a plain right/wrong flag. Such a quiz is a
``Quiz`` with one ``Question`` worth one point, and such an attempt scored
1 or 0 out of 1.
"""

from __future__ import annotations

import logging
from typing import Any

from classroom_quiz.constants.quiz_constants import (
    ATTEMPTS_KEY,
    LEGACY_ATTEMPTS_KEY,
    LEGACY_QUIZZES_KEY,
    QUIZZES_KEY,
)
from classroom_quiz.core.models import Question, QuestionKind, Quiz, QuizAttempt
from classroom_quiz.core.serialization import (
    RecordFormatError,
    attempt_to_record,
    decode_required_datetime,
    quiz_to_record,
)
from classroom_quiz.storage import KeyValueStore, load_records, save_records

logger = logging.getLogger(__name__)

LEGACY_QUESTION_ID = "q_1"


def quiz_from_legacy(record: dict[str, Any]) -> Quiz:
    try:
        question = Question(
            id=LEGACY_QUESTION_ID,
            prompt=record["question"],
            options=tuple(record["options"]),
            correct_answer=int(record["correct_answer"]),
            points=1,
            kind=QuestionKind.MCQ,
        )
        return Quiz(
            id=str(record["id"]),
            classroom_id=str(record["classroom_id"]),
            title=record.get("title") or record["question"],
            description=record.get("description") or None,
            questions=(question,),
            created_by=str(record["created_by"]),
            created_at=decode_required_datetime(record["created_at"], "created_at"),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise RecordFormatError(f"Malformed legacy quiz record: {exc}") from exc


def attempt_from_legacy(record: dict[str, Any]) -> QuizAttempt:
    try:
        completed_at = decode_required_datetime(record["completed_at"], "completed_at")
        selected = record.get("selected_answer")
        return QuizAttempt(
            id=str(record["id"]),
            quiz_id=str(record["quiz_id"]),
            student_id=str(record["student_id"]),
            student_name=record.get("student_name") or str(record["student_id"]),
            answers={} if selected is None else {LEGACY_QUESTION_ID: selected},
            score=1 if record["is_correct"] else 0,
            total_points=1,
            started_at=None,
            completed_at=completed_at,
        )
    except (KeyError, TypeError) as exc:
        raise RecordFormatError(f"Malformed legacy attempt record: {exc}") from exc


def migrate_legacy_data(store: KeyValueStore) -> tuple[int, int]:
    """Copy legacy quizzes and attempts into the current collections.

    Records whose id already exists are skipped, so running the migration
    again is harmless. Returns the number of quizzes and attempts added.
    """
    quizzes_added = _migrate(store, LEGACY_QUIZZES_KEY, QUIZZES_KEY, quiz_from_legacy, quiz_to_record)
    attempts_added = _migrate(
        store, LEGACY_ATTEMPTS_KEY, ATTEMPTS_KEY, attempt_from_legacy, attempt_to_record
    )
    if quizzes_added or attempts_added:
        logger.info(
            "Migrated %d legacy quizzes and %d legacy attempts", quizzes_added, attempts_added
        )
    return quizzes_added, attempts_added


def _migrate(store, source_key, target_key, convert, encode) -> int:
    legacy_records = load_records(store, source_key)
    if not legacy_records:
        return 0

    target_records = load_records(store, target_key)
    known_ids = {str(record.get("id")) for record in target_records}
    added = 0
    for record in legacy_records:
        try:
            converted = convert(record)
        except RecordFormatError as exc:
            logger.warning("Skipping legacy record from '%s': %s", source_key, exc)
            continue
        if converted.id in known_ids:
            continue
        target_records.append(encode(converted))
        known_ids.add(converted.id)
        added += 1

    if added:
        save_records(store, target_key, target_records)
    return added
