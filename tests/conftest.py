"""Shared fixtures for the quiz engine tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from classroom_quiz.core.models import Question, QuestionKind, Quiz, Role, UserProfile
from classroom_quiz.core.services.attempt_store import AttemptStore
from classroom_quiz.storage import InMemoryKeyValueStore


class SteppingClock:
    """Deterministic clock that moves one minute forward on every call."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + timedelta(minutes=1)
        return value


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def attempt_store(kv_store) -> AttemptStore:
    return AttemptStore(kv_store)


@pytest.fixture
def teacher() -> UserProfile:
    return UserProfile(id="t-1", display_name="Ms. Rivera", role=Role.TEACHER)


@pytest.fixture
def student() -> UserProfile:
    return UserProfile(id="s-1", display_name="Alex", role=Role.STUDENT)


@pytest.fixture
def two_question_quiz() -> Quiz:
    return Quiz(
        id="quiz_1",
        classroom_id="class_1",
        title="Fractions check",
        questions=(
            Question(
                id="Q1",
                prompt="What is 1/2 + 1/2?",
                options=("0", "1", "2", "1/4"),
                correct_answer=1,
                points=5,
            ),
            Question(
                id="Q2",
                prompt="Which are equal to 1/2?",
                options=("2/4", "1/3", "3/6", "5/8"),
                correct_answer=(0, 2),
                points=5,
                kind=QuestionKind.MULTI_SELECT,
            ),
        ),
        created_by="t-1",
        created_at=datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc),
    )
