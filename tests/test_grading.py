# tests/test_grading.py

from sprint_core.features import extract_features
from sprint_core.grading import build_attempt, check_answer, grade_answer, parse_rational
from sprint_core.schema import Question, RationalNumber


def _int_q(answer=12):
    return Question(text="3 \\times 4", type="integer", answer=answer, operation="mul",
                    operands=(3, 4), features=extract_features("mul", (3, 4)))


def _frac_q():
    ops = (RationalNumber(1, 2), RationalNumber(1, 3))
    return Question(text="\\frac{1}{2} + \\frac{1}{3}", type="rational", answer=RationalNumber(5, 6),
                    operation="add", operands=ops, features=extract_features("add", ops))


def test_integer_answers():
    q = _int_q()
    assert check_answer(q, "12")
    assert check_answer(q, " 12 ")
    assert not check_answer(q, "13")
    assert not check_answer(q, "")
    assert not check_answer(q, "abc")


def test_negative_integer_answer():
    assert check_answer(_int_q(answer=-7), "-7")


def test_rational_answers_must_be_reduced():
    q = _frac_q()
    assert check_answer(q, "5/6")
    assert not check_answer(q, "10/12"), "Phải nhập dạng tối giản"
    assert not check_answer(q, "5/")
    assert not check_answer(q, "")


def test_parse_rational_whole_number():
    assert parse_rational("2") == RationalNumber(2, 1)
    assert parse_rational("-3/4") == RationalNumber(-3, 4)
    assert parse_rational("x/4") is None


def test_grade_answer_placeholders():
    assert grade_answer(_int_q(), "", 4).submitted_answer == "N/A"
    graded = grade_answer(_frac_q(), "  ", 2.6)
    assert graded.submitted_answer == "?/?"
    assert graded.time_taken_seconds == 3
    assert graded.features.operand_size == "fractions"
    assert not graded.is_correct


def test_build_attempt_scores():
    answered = [grade_answer(_int_q(), "12", 3) for _ in range(20)] + \
               [grade_answer(_int_q(), "0", 3) for _ in range(5)]
    attempt = build_attempt(4, answered, 35, date="2026-10-19")
    assert attempt.correct_count == 20
    assert attempt.total_score == 3 * 25 + 20
    assert attempt.time_remaining == 35
    assert len(attempt.answered_questions) == 25
