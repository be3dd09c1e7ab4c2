"""FastAPI server exposing quiz authoring, quiz sessions and the gradebook."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from threading import Thread
from typing import Iterator, Union

from fastapi import Depends, FastAPI, Header, HTTPException, Response
from pydantic import BaseModel, Field, StrictInt
import uvicorn

from classroom_quiz.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION
from classroom_quiz.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from classroom_quiz.core.errors import (
    InvalidStateError,
    PermissionDeniedError,
    QuizNotFoundError,
    SessionNotFoundError,
    StorageError,
    ValidationError,
)
from classroom_quiz.core.markdown_math_renderer import renderer
from classroom_quiz.core.models import Question, QuestionKind, Quiz, QuizAttempt, Role, UserProfile
from classroom_quiz.core.quiz_manager import QuizManager
from classroom_quiz.core.scoring import band, percentage, review
from classroom_quiz.core.services.gradebook import GradebookSummary
from classroom_quiz.core.services.quiz_session import QuizSessionController

AnswerValue = Union[StrictInt, list[StrictInt]]


class QuestionPayload(BaseModel):
    """Payload schema for one authored question."""

    id: str | None = None
    type: QuestionKind = QuestionKind.MCQ
    question: str
    options: list[str] = Field(default_factory=list)
    correct_answer: AnswerValue
    points: StrictInt = 1
    explanation: str | None = None

    def to_question(self) -> Question:
        correct = self.correct_answer
        return Question(
            id=self.id or "",
            prompt=self.question,
            options=tuple(self.options),
            correct_answer=tuple(correct) if isinstance(correct, list) else correct,
            points=self.points,
            kind=self.type,
            explanation=self.explanation,
        )


class CreateQuizPayload(BaseModel):
    """Payload schema for the quiz builder form."""

    classroom_id: str
    title: str
    description: str | None = None
    max_attempts: StrictInt | None = None
    questions: list[QuestionPayload]


class AnswerPayload(BaseModel):
    """Payload schema for a recorded answer: an index, or indices for multi-select."""

    value: AnswerValue


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc).isoformat()
    return value.astimezone(timezone.utc).isoformat()


@contextmanager
def _engine_errors() -> Iterator[None]:
    """Translate engine exceptions into HTTP responses."""
    try:
        yield
    except ValidationError as exc:
        detail = {"message": str(exc), "question_id": exc.question_id, "missing": list(exc.missing)}
        raise HTTPException(status_code=422, detail=detail) from exc
    except InvalidStateError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except PermissionDeniedError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except (QuizNotFoundError, SessionNotFoundError) as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except StorageError as exc:
        raise HTTPException(status_code=503, detail="Could not save or load quiz data.") from exc


def get_current_user(
    x_user_id: str | None = Header(default=None),
    x_user_name: str | None = Header(default=None),
    x_user_role: Role = Header(default=Role.STUDENT),
) -> UserProfile:
    """Identity is supplied by the surrounding application through headers."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing user identity.")
    return UserProfile(id=x_user_id, display_name=x_user_name or x_user_id, role=x_user_role)


def _quiz_summary(quiz: Quiz) -> dict[str, object]:
    return {
        "id": quiz.id,
        "classroom_id": quiz.classroom_id,
        "title": quiz.title,
        "description": quiz.description,
        "question_count": len(quiz.questions),
        "total_points": quiz.total_points,
        "max_attempts": quiz.max_attempts,
        "created_by": quiz.created_by,
        "created_at": _iso(quiz.created_at),
    }


def _question_view(question: Question) -> dict[str, object]:
    # The correct answer is never sent to a student before submission.
    return {
        "id": question.id,
        "type": question.kind.value,
        "points": question.points,
        "options": list(question.options),
        **renderer.render_question(question),
    }


def _attempt_view(attempt: QuizAttempt) -> dict[str, object]:
    percent = percentage(attempt.score, attempt.total_points)
    return {
        "id": attempt.id,
        "quiz_id": attempt.quiz_id,
        "student_id": attempt.student_id,
        "student_name": attempt.student_name,
        "answers": dict(attempt.answers),
        "score": attempt.score,
        "total_points": attempt.total_points,
        "percentage": percent,
        "band": band(percent).value,
        "attempt_number": attempt.attempt_number,
        "started_at": _iso(attempt.started_at),
        "completed_at": _iso(attempt.completed_at),
    }


def _session_view(session_id: str, session: QuizSessionController) -> dict[str, object]:
    position, count = session.progress
    return {
        "session_id": session_id,
        "quiz_id": session.quiz.id,
        "state": "in_progress",
        "position": position,
        "question_count": count,
        "is_last_question": session.is_last_question,
        "question": _question_view(session.current_question),
        "answers": session.answers,
        "missing_question_ids": session.missing_question_ids(),
    }


def _gradebook_view(summary: GradebookSummary) -> dict[str, object]:
    return {
        "quiz_id": summary.quiz_id,
        "total_points": summary.total_points,
        "count": summary.count,
        "mean_score": summary.mean_score,
        "mean_percentage": summary.mean_percentage,
        "rows": [
            {
                "attempt_id": row.attempt_id,
                "student_id": row.student_id,
                "student_name": row.student_name,
                "score": row.score,
                "total_points": row.total_points,
                "percentage": row.percentage,
                "band": row.band.value,
                "attempt_number": row.attempt_number,
                "completed_at": _iso(row.completed_at),
            }
            for row in summary.rows
        ],
    }


def _get_quiz_manager_dependency(quiz_manager: QuizManager):
    def dependency() -> QuizManager:
        return quiz_manager

    return dependency


def create_api_app(quiz_manager: QuizManager) -> FastAPI:
    """Create a FastAPI application wired to the provided quiz manager."""
    app = FastAPI(
        title=f"{APP_NAME} API",
        version=APP_VERSION,
        description=APP_ABOUT_TEXT,
        license_info={"name": APP_LICENSE},
    )
    quiz_manager_dep = _get_quiz_manager_dependency(quiz_manager)

    @app.post("/quizzes", status_code=201)
    def create_quiz(
        payload: CreateQuizPayload,
        user: UserProfile = Depends(get_current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        with _engine_errors():
            quiz = manager.create_quiz(
                user,
                payload.classroom_id,
                payload.title,
                [question.to_question() for question in payload.questions],
                description=payload.description,
                max_attempts=payload.max_attempts,
            )
        return _quiz_summary(quiz)

    @app.get("/quizzes")
    def list_quizzes(
        classroom_id: str | None = None,
        user: UserProfile = Depends(get_current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> list[dict[str, object]]:
        with _engine_errors():
            return [_quiz_summary(quiz) for quiz in manager.list_quizzes(classroom_id)]

    @app.get("/quizzes/{quiz_id}")
    def get_quiz(
        quiz_id: str,
        user: UserProfile = Depends(get_current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        with _engine_errors():
            quiz = manager.get_quiz(quiz_id)
        return {**_quiz_summary(quiz), "questions": [_question_view(q) for q in quiz.questions]}

    @app.post("/quizzes/{quiz_id}/sessions", status_code=201)
    def start_session(
        quiz_id: str,
        user: UserProfile = Depends(get_current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        with _engine_errors():
            session_id = manager.start_session(quiz_id, user)
            return _session_view(session_id, manager.get_session(session_id, user))

    @app.get("/sessions/{session_id}")
    def get_session(
        session_id: str,
        user: UserProfile = Depends(get_current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        with _engine_errors():
            return _session_view(session_id, manager.get_session(session_id, user))

    @app.put("/sessions/{session_id}/answers/{question_id}")
    def record_answer(
        session_id: str,
        question_id: str,
        payload: AnswerPayload,
        user: UserProfile = Depends(get_current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        with _engine_errors():
            manager.answer(session_id, question_id, payload.value, user)
            return _session_view(session_id, manager.get_session(session_id, user))

    @app.post("/sessions/{session_id}/advance")
    def advance(
        session_id: str,
        user: UserProfile = Depends(get_current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        with _engine_errors():
            manager.advance(session_id, user)
            return _session_view(session_id, manager.get_session(session_id, user))

    @app.post("/sessions/{session_id}/retreat")
    def retreat(
        session_id: str,
        user: UserProfile = Depends(get_current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        with _engine_errors():
            manager.retreat(session_id, user)
            return _session_view(session_id, manager.get_session(session_id, user))

    @app.post("/sessions/{session_id}/submit", status_code=201)
    def submit(
        session_id: str,
        user: UserProfile = Depends(get_current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        with _engine_errors():
            quiz = manager.get_session(session_id, user).quiz
            attempt = manager.submit(session_id, user)
        items = review(quiz, attempt.answers)
        return {
            "attempt": _attempt_view(attempt),
            "review": [
                {
                    "question_id": item.question_id,
                    "is_correct": item.is_correct,
                    "points_awarded": item.points_awarded,
                    "submitted": item.submitted,
                    "correct_answer": item.correct_answer,
                    "explanation": item.explanation,
                }
                for item in items
            ],
        }

    @app.delete("/sessions/{session_id}", status_code=204)
    def abandon_session(
        session_id: str,
        user: UserProfile = Depends(get_current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> Response:
        with _engine_errors():
            manager.abandon_session(session_id, user)
        return Response(status_code=204)

    @app.get("/quizzes/{quiz_id}/gradebook")
    def gradebook(
        quiz_id: str,
        user: UserProfile = Depends(get_current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        with _engine_errors():
            return _gradebook_view(manager.gradebook(quiz_id, user))

    @app.get("/quizzes/{quiz_id}/attempts/latest")
    def latest_attempt(
        quiz_id: str,
        student_id: str | None = None,
        user: UserProfile = Depends(get_current_user),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        target = student_id or user.id
        if target != user.id and not user.can_author:
            raise HTTPException(status_code=403, detail="Only teachers can view other students' attempts.")
        with _engine_errors():
            attempt = manager.latest_attempt(quiz_id, target)
        if attempt is None:
            raise HTTPException(status_code=404, detail="No attempt recorded yet.")
        return _attempt_view(attempt)

    return app


def start_api_server(
    quiz_manager: QuizManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    log_level: str = "info",
) -> Thread:
    """Start the FastAPI server in a background daemon thread."""
    app = create_api_app(quiz_manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level=log_level)
    server = uvicorn.Server(config)

    def run_server() -> None:
        server.run()

    thread = Thread(target=run_server, name="QuizApiServer", daemon=True)
    thread.start()
    return thread
