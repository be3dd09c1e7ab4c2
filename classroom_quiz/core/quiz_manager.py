"""Business logic shared between the HTTP adapter and other callers."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Iterable
from uuid import uuid4

from classroom_quiz.core import legacy
from classroom_quiz.core.errors import (
    PermissionDeniedError,
    SessionNotFoundError,
    ValidationError,
)
from classroom_quiz.core.models import Question, Quiz, QuizAttempt, UserProfile
from classroom_quiz.core.quiz_exporter import save_quiz_to_file
from classroom_quiz.core.quiz_importer import load_quiz_from_file
from classroom_quiz.core.services.attempt_store import AttemptStore
from classroom_quiz.core.services.gradebook import GradebookAggregator, GradebookSummary
from classroom_quiz.core.services.quiz_repository import QuizRepository
from classroom_quiz.core.services.quiz_session import QuizSessionController
from classroom_quiz.storage import KeyValueStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuizManager:
    """Facade for quiz services: Repository, AttemptStore, sessions and Gradebook."""

    def __init__(self, store: KeyValueStore, clock: Callable[[], datetime] = _utcnow) -> None:
        self._lock = Lock()
        self._store = store
        self._clock = clock

        # Services
        self._repository = QuizRepository(store, clock=clock)
        self._attempts = AttemptStore(store)
        self._gradebook = GradebookAggregator(self._attempts)

        # Open sessions, keyed by session id. Abandoned sessions are simply dropped.
        self._sessions: dict[str, QuizSessionController] = {}

    # --- Quiz Repository Delegation ---

    def create_quiz(
        self,
        author: UserProfile,
        classroom_id: str,
        title: str,
        questions: Iterable[Question],
        description: str | None = None,
        max_attempts: int | None = None,
    ) -> Quiz:
        with self._lock:
            return self._repository.create_quiz(
                author,
                classroom_id,
                title,
                questions,
                description=description,
                max_attempts=max_attempts,
            )

    def list_quizzes(self, classroom_id: str | None = None) -> list[Quiz]:
        with self._lock:
            return self._repository.list_quizzes(classroom_id)

    def get_quiz(self, quiz_id: str) -> Quiz:
        with self._lock:
            return self._repository.get_quiz(quiz_id)

    def import_quiz_file(
        self,
        file_path: Path,
        author: UserProfile,
        classroom_id: str,
        title: str,
        description: str | None = None,
    ) -> Quiz:
        imported = load_quiz_from_file(file_path)
        return self.create_quiz(
            author, classroom_id, title, imported.questions, description=description
        )

    def export_quiz_file(self, quiz_id: str, file_path: Path) -> None:
        quiz = self.get_quiz(quiz_id)
        save_quiz_to_file(file_path, quiz.questions)

    def migrate_legacy_data(self) -> tuple[int, int]:
        with self._lock:
            return legacy.migrate_legacy_data(self._store)

    # --- Session Delegation ---

    def start_session(self, quiz_id: str, student: UserProfile) -> str:
        with self._lock:
            quiz = self._repository.get_quiz(quiz_id)
            if quiz.max_attempts is not None:
                used = self._attempts.count_for_student(quiz.id, student.id)
                if used >= quiz.max_attempts:
                    raise ValidationError(
                        f"Attempt limit reached: {used} of {quiz.max_attempts} attempts used."
                    )
            session_id = uuid4().hex
            self._sessions[session_id] = QuizSessionController(
                quiz, student, self._attempts, clock=self._clock
            )
            logger.info("Session %s opened for student %s on quiz %s", session_id, student.id, quiz.id)
            return session_id

    def get_session(self, session_id: str, student: UserProfile | None = None) -> QuizSessionController:
        with self._lock:
            return self._session_for(session_id, student)

    def abandon_session(self, session_id: str, student: UserProfile | None = None) -> None:
        with self._lock:
            self._session_for(session_id, student)
            del self._sessions[session_id]

    def answer(self, session_id: str, question_id: str, value: Any, student: UserProfile | None = None) -> None:
        with self._lock:
            self._session_for(session_id, student).answer(question_id, value)

    def advance(self, session_id: str, student: UserProfile | None = None) -> None:
        with self._lock:
            self._session_for(session_id, student).advance()

    def retreat(self, session_id: str, student: UserProfile | None = None) -> None:
        with self._lock:
            self._session_for(session_id, student).retreat()

    def submit(self, session_id: str, student: UserProfile | None = None) -> QuizAttempt:
        with self._lock:
            session = self._session_for(session_id, student)
            attempt = session.submit()
            # A submitted controller is terminal; a retake needs a new session.
            del self._sessions[session_id]
            return attempt

    def open_session_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    # --- Attempts & Gradebook Delegation ---

    def gradebook(self, quiz_id: str, viewer: UserProfile) -> GradebookSummary:
        if not viewer.can_author:
            raise PermissionDeniedError("Only teachers can view the gradebook.")
        with self._lock:
            quiz = self._repository.get_quiz(quiz_id)
            return self._gradebook.summarize(quiz)

    def latest_attempt(self, quiz_id: str, student_id: str) -> QuizAttempt | None:
        with self._lock:
            return self._attempts.find_latest_by_student(quiz_id, student_id)

    def attempts_for_student(self, student_id: str) -> list[QuizAttempt]:
        with self._lock:
            return sorted(
                self._attempts.find_by_student(student_id),
                key=lambda attempt: attempt.completed_at,
                reverse=True,
            )

    def _session_for(self, session_id: str, student: UserProfile | None) -> QuizSessionController:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session '{session_id}' does not exist.")
        if student is not None and session.student.id != student.id:
            raise PermissionDeniedError("This quiz session belongs to another student.")
        return session
