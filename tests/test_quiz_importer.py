from __future__ import annotations

from pathlib import Path

import pytest

from classroom_quiz.core.models import Question, QuestionKind
from classroom_quiz.core.quiz_exporter import save_quiz_to_file, serialize_questions
from classroom_quiz.core.quiz_importer import QuizImportError, load_quiz_from_file, parse_quiz_text

SAMPLE = """
Q: What is $2 + 2$?
A: 3
B: 4
C: 5
D: 22
CORRECT: B
POINTS: 5

---

Q: Which numbers are prime?
Pick every one.
A: 2
B: 4
C: 5
CORRECT: A, C
EXPLANATION: 4 is divisible by 2.

Q: Water boils at 100 degrees Celsius at sea level.
A: True
B: False
CORRECT: A
TYPE: true-false
"""


def test_parse_sample():
    questions = parse_quiz_text(SAMPLE)

    assert [q.id for q in questions] == ["q_1", "q_2", "q_3"]
    first, second, third = questions
    assert first.kind is QuestionKind.MCQ
    assert first.correct_answer == 1
    assert first.points == 5
    assert second.prompt == "Which numbers are prime?\nPick every one."
    assert second.kind is QuestionKind.MULTI_SELECT
    assert second.correct_answer == (0, 2)
    assert second.explanation == "4 is divisible by 2."
    assert third.kind is QuestionKind.TRUE_FALSE
    assert third.options == ("True", "False")
    assert third.correct_answer == 0


def test_export_then_import_preserves_questions(tmp_path: Path):
    questions = parse_quiz_text(SAMPLE)
    target = tmp_path / "nested" / "quiz.txt"

    save_quiz_to_file(target, questions)

    assert load_quiz_from_file(target).questions == questions


def test_single_correct_multi_select_keeps_type():
    questions = parse_quiz_text("Q: Pick\nA: x\nB: y\nCORRECT: B\nTYPE: multi-select\n")

    assert questions[0].correct_answer == (1,)
    assert "TYPE: multi-select" in serialize_questions(questions)


@pytest.mark.parametrize(
    ("text", "fragment"),
    [
        ("A: x\nB: y\nCORRECT: A", "question text missing"),
        ("Q: Only one\nA: x\nCORRECT: A", "at least two options"),
        ("Q: Gap\nA: x\nC: y\nCORRECT: A", "lettered in order"),
        ("Q: No key\nA: x\nB: y", "CORRECT is required"),
        ("Q: Bad key\nA: x\nB: y\nCORRECT: D", "CORRECT must use"),
        ("Q: Bad pts\nA: x\nB: y\nCORRECT: A\nPOINTS: many", "POINTS must be an integer"),
        ("Q: Zero\nA: x\nB: y\nCORRECT: A\nPOINTS: 0", "positive"),
        ("Q: Kind\nA: x\nB: y\nCORRECT: A\nTYPE: essay", "TYPE must be"),
        ("Q: Many\nA: x\nB: y\nCORRECT: A, B\nTYPE: mcq", "only multi-select"),
    ],
)
def test_parse_errors(text, fragment):
    with pytest.raises(QuizImportError) as excinfo:
        parse_quiz_text(text)

    assert fragment in str(excinfo.value)


def test_empty_file_is_rejected(tmp_path: Path):
    target = tmp_path / "empty.txt"
    target.write_text("\n\n", encoding="utf-8")

    with pytest.raises(QuizImportError):
        load_quiz_from_file(target)


def test_export_requires_questions(tmp_path: Path):
    with pytest.raises(ValueError):
        save_quiz_to_file(tmp_path / "x.txt", [])


def test_blank_lines_inside_a_question_survive_export_and_import():
    question = Question(
        id="q_1",
        prompt="First paragraph.\n\nSecond paragraph.",
        options=("a", "b"),
        correct_answer=0,
    )

    assert parse_quiz_text(serialize_questions([question])) == [question]


def test_blank_line_before_next_question_still_separates_blocks():
    text = "Q: One\n\nstill one\nA: x\nB: y\nCORRECT: A\n\nQ: Two\nA: x\nB: y\nCORRECT: B\n"

    first, second = parse_quiz_text(text)

    assert first.prompt == "One\n\nstill one"
    assert second.prompt == "Two"
    assert second.correct_answer == 1
