"""Utilities for importing quiz questions from a human-friendly text file.

File format (repeat blocks separated by '---' or by a blank line before the
next Q:):

    Q: Question text (supports markdown + LaTeX). Additional lines until the
       next marker are treated as part of the question.
    A: First option text
    B: Second option text
    ...                  (at least two options, letters in order)
    CORRECT: B           (or a comma separated list such as B, D)
    POINTS: 5            (optional, defaults to 1)
    TYPE: multi-select   (optional: mcq, multi-select or true-false)
    EXPLANATION: text    (optional, shown after submission)

Example:

    Q: Which numbers are prime?
    A: 2
    B: 4
    C: 5
    D: 9
    CORRECT: A, C
    POINTS: 2

When TYPE is omitted, several CORRECT letters make the question
multi-select and a single letter makes it a regular multiple choice.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import string

from classroom_quiz.constants.quiz_constants import DEFAULT_QUESTION_POINTS
from classroom_quiz.core.errors import ValidationError
from classroom_quiz.core.models import Question, QuestionKind


class QuizImportError(ValidationError):
    """Raised when a quiz definition cannot be parsed."""


@dataclass(slots=True)
class ImportedQuiz:
    """Container for imported quiz metadata and questions."""

    source_path: Path
    questions: list[Question]


OPTION_LETTERS = string.ascii_uppercase


def load_quiz_from_file(file_path: Path) -> ImportedQuiz:
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise QuizImportError(f"Could not read quiz file {file_path}.") from exc
    questions = parse_quiz_text(text)
    if not questions:
        raise QuizImportError("Quiz file did not contain any questions.")
    return ImportedQuiz(source_path=file_path, questions=questions)


def parse_quiz_text(text: str) -> list[Question]:
    lines = text.splitlines()
    blocks: list[str] = []
    current_block: list[str] = []
    for index, raw_line in enumerate(lines):
        stripped = raw_line.strip()
        if stripped == "---":
            if current_block:
                blocks.append("\n".join(current_block).strip())
                current_block = []
            continue
        if stripped:
            current_block.append(raw_line)
        elif current_block and _starts_new_block(lines, index + 1):
            blocks.append("\n".join(current_block).strip())
            current_block = []
        elif current_block:
            # Blank line inside a multi-paragraph prompt, option or explanation
            current_block.append(raw_line)
    if current_block:
        blocks.append("\n".join(current_block).strip())

    return [
        _parse_block(block, position)
        for position, block in enumerate((b for b in blocks if b), start=1)
    ]


def _starts_new_block(lines: list[str], start: int) -> bool:
    """Whether the next non-blank line from ``start`` opens another question."""
    for raw_line in lines[start:]:
        stripped = raw_line.strip()
        if stripped:
            return stripped == "---" or stripped.upper().startswith("Q:")
    return True


def _parse_block(block: str, position: int) -> Question:
    label = f"Question {position}"
    question_lines: list[str] = []
    options: dict[str, str] = {}
    correct_letters: list[str] | None = None
    points = DEFAULT_QUESTION_POINTS
    kind: QuestionKind | None = None
    explanation_lines: list[str] = []
    current_section: str | None = None

    for raw_line in block.splitlines():
        line = raw_line.strip()
        if not line:
            if current_section == "Q":
                question_lines.append("")
            elif current_section == "EXPLANATION":
                explanation_lines.append("")
            elif current_section in options:
                options[current_section] += "\n"
            continue

        upper = line.upper()
        if upper.startswith("Q:"):
            question_lines = [line[2:].strip()]
            current_section = "Q"
            continue

        if upper.startswith("CORRECT:"):
            raw_value = line.split(":", 1)[1]
            correct_letters = [part.strip().upper() for part in raw_value.split(",") if part.strip()]
            current_section = None
            continue

        if upper.startswith("POINTS:"):
            raw_value = line.split(":", 1)[1].strip()
            try:
                points = int(raw_value)
            except ValueError as exc:
                raise QuizImportError(f"{label}: POINTS must be an integer.") from exc
            if points <= 0:
                raise QuizImportError(f"{label}: POINTS must be a positive integer.")
            current_section = None
            continue

        if upper.startswith("TYPE:"):
            raw_value = line.split(":", 1)[1].strip().lower()
            try:
                kind = QuestionKind(raw_value)
            except ValueError as exc:
                raise QuizImportError(
                    f"{label}: TYPE must be one of mcq, multi-select or true-false."
                ) from exc
            current_section = None
            continue

        if upper.startswith("EXPLANATION:"):
            explanation_lines = [line.split(":", 1)[1].strip()]
            current_section = "EXPLANATION"
            continue

        if len(line) > 2 and line[0].upper() in OPTION_LETTERS and line[1] == ":":
            letter = line[0].upper()
            options[letter] = line[2:].strip()
            current_section = letter
            continue

        if current_section == "Q":
            question_lines.append(line)
        elif current_section == "EXPLANATION":
            explanation_lines.append(line)
        elif current_section in options:
            options[current_section] = options[current_section] + f"\n{line}"
        else:
            raise QuizImportError(f"{label}: text outside of a known section: '{line}'.")

    question_text = "\n".join(question_lines).strip()
    if not question_text:
        raise QuizImportError(f"{label}: question text missing (Q: ...).")

    expected_letters = OPTION_LETTERS[: len(options)]
    if "".join(sorted(options)) != expected_letters:
        raise QuizImportError(f"{label}: options must be lettered in order starting at A.")
    option_list = tuple(options[letter].strip() for letter in expected_letters)
    if kind is QuestionKind.TRUE_FALSE and not option_list:
        option_list = ("True", "False")
    if len(option_list) < 2:
        raise QuizImportError(f"{label}: at least two options are required.")
    if any(not option for option in option_list):
        raise QuizImportError(f"{label}: option text cannot be empty.")

    if not correct_letters:
        raise QuizImportError(f"{label}: CORRECT is required.")
    option_letters = OPTION_LETTERS[: len(option_list)]
    unknown = [letter for letter in correct_letters if letter not in option_letters]
    if unknown:
        raise QuizImportError(
            f"{label}: CORRECT must use the letters {', '.join(option_letters)}."
        )
    indices = tuple(sorted({option_letters.index(letter) for letter in correct_letters}))

    if kind is None:
        kind = QuestionKind.MULTI_SELECT if len(indices) > 1 else QuestionKind.MCQ
    if kind.is_multi_select:
        correct: int | tuple[int, ...] = indices
    elif len(indices) == 1:
        correct = indices[0]
    else:
        raise QuizImportError(f"{label}: only multi-select questions accept several answers.")

    return Question(
        id=f"q_{position}",
        prompt=question_text,
        options=option_list,
        correct_answer=correct,
        points=points,
        kind=kind,
        explanation="\n".join(explanation_lines).strip() or None,
    )
