"""Exceptions raised by the quiz engine."""

from __future__ import annotations

from typing import Iterable


class QuizEngineError(Exception):
    """Base class for every engine failure."""


class ValidationError(QuizEngineError):
    """Caller input is incomplete or malformed. State is left untouched."""

    def __init__(
        self,
        message: str,
        *,
        question_id: str | None = None,
        missing: Iterable[str] = (),
    ) -> None:
        super().__init__(message)
        self.question_id = question_id
        self.missing: tuple[str, ...] = tuple(missing)


class InvalidStateError(QuizEngineError):
    """Operation invoked on a session that has already been submitted."""


class StorageError(QuizEngineError):
    """The key-value store could not be read or written."""


class PermissionDeniedError(QuizEngineError):
    """The acting user lacks the role required for the operation."""


class QuizNotFoundError(QuizEngineError, LookupError):
    pass


class SessionNotFoundError(QuizEngineError, LookupError):
    pass
