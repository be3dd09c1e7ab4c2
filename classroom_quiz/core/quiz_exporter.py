"""Utilities for exporting quizzes to the plain-text format used for imports."""

from __future__ import annotations

from pathlib import Path

from classroom_quiz.constants.quiz_constants import DEFAULT_QUESTION_POINTS
from classroom_quiz.core.models import Question, QuestionKind
from classroom_quiz.core.quiz_importer import OPTION_LETTERS


def save_quiz_to_file(file_path: Path, questions: list[Question] | tuple[Question, ...]) -> None:
    """Persist the provided questions to disk in the text import format."""

    if not questions:
        raise ValueError("Cannot export an empty quiz.")

    file_path = file_path.resolve()
    file_path.parent.mkdir(parents=True, exist_ok=True)
    document = serialize_questions(questions)
    file_path.write_text(document, encoding="utf-8")


def serialize_questions(questions: list[Question] | tuple[Question, ...]) -> str:
    blocks = [_serialize_question(question) for question in questions]
    return "\n\n---\n\n".join(blocks) + "\n"


def _serialize_question(question: Question) -> str:
    lines: list[str] = []

    question_lines = question.prompt.splitlines() or [question.prompt]
    lines.append(f"Q: {question_lines[0]}")
    lines.extend(question_lines[1:])

    for letter, option_text in zip(OPTION_LETTERS, question.options):
        option_lines = option_text.splitlines() or [option_text]
        lines.append(f"{letter}: {option_lines[0]}")
        lines.extend(option_lines[1:])

    correct_letters = ", ".join(OPTION_LETTERS[index] for index in question.correct_indices())
    lines.append(f"CORRECT: {correct_letters}")

    # A single correct letter would otherwise be read back as mcq.
    if question.kind is not QuestionKind.MCQ:
        lines.append(f"TYPE: {question.kind.value}")

    if question.points != DEFAULT_QUESTION_POINTS:
        lines.append(f"POINTS: {question.points}")

    if question.explanation:
        explanation_lines = question.explanation.splitlines()
        lines.append(f"EXPLANATION: {explanation_lines[0]}")
        lines.extend(explanation_lines[1:])

    return "\n".join(lines)
