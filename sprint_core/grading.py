# sprint_core/grading.py

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Sequence

from .schema import TOTAL_QUESTIONS, AnsweredQuestion, Question, RationalNumber, TestAttempt


def _parse_int(raw: str) -> Optional[int]:
    try:
        return int(raw.strip())
    except (AttributeError, ValueError):
        return None


def parse_rational(raw: str) -> Optional[RationalNumber]:
    """
    "n/d" -> RationalNumber(n, d); "n" -> n/1.
    Không tối giản: học sinh phải nhập đúng dạng tối giản.
    """
    if raw is None:
        return None
    text = raw.strip()
    if "/" not in text:
        n = _parse_int(text)
        return RationalNumber(n, 1) if n is not None else None
    num_raw, den_raw = text.split("/", 1)
    num, den = _parse_int(num_raw), _parse_int(den_raw)
    if num is None or den is None:
        return None
    return RationalNumber(num, den)


def check_answer(question: Question, submitted: str) -> bool:
    """So khớp đáp án; nhập sai định dạng là sai, không ném lỗi."""
    if question.type == "integer":
        return _parse_int(submitted or "") == question.answer

    parsed = parse_rational(submitted or "")
    if parsed is None:
        return False
    expected = question.answer
    return parsed.num == expected.num and parsed.den == expected.den


def grade_answer(question: Question, submitted: str, time_taken_seconds: int) -> AnsweredQuestion:
    text = (submitted or "").strip()
    if not text:
        text = "N/A" if question.type == "integer" else "?/?"
    return AnsweredQuestion(
        question_text=question.text,
        submitted_answer=text,
        is_correct=check_answer(question, submitted),
        time_taken_seconds=max(0, int(round(time_taken_seconds))),
        operation=question.operation,
        operands=question.operands,
        features=question.features,
    )


def total_score(level: int, correct_count: int) -> int:
    return (level - 1) * TOTAL_QUESTIONS + correct_count


def build_attempt(
    level: int,
    answered: Sequence[AnsweredQuestion],
    time_remaining: int,
    date: Optional[str] = None,
) -> TestAttempt:
    correct = sum(1 for a in answered if a.is_correct)
    return TestAttempt(
        date=date or datetime.now(timezone.utc).isoformat(),
        level=level,
        correct_count=correct,
        time_remaining=max(0, int(time_remaining)),
        total_score=total_score(level, correct),
        answered_questions=tuple(answered),
    )
