# sprint_core/schema.py

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union


# ============================
# Hằng số cố định của bài luyện tập
# ============================

TOTAL_QUESTIONS = 25
MIN_LEVEL, MAX_LEVEL = 1, 20

OPERATIONS = ("add", "sub", "mul", "div")
COMMUTATIVE_OPERATIONS = ("add", "mul")


@dataclass(frozen=True)
class RationalNumber:
    """
    Phân số num/den.
    Không nhất thiết tối giản khi khởi tạo; dùng rational.simplify()
    trước khi làm đáp án hoặc khóa chống trùng.
    """
    num: int
    den: int

    def __str__(self) -> str:
        return f"{self.num}/{self.den}"


Operand = Union[int, RationalNumber]


def operand_to_dict(op: Operand) -> Any:
    if isinstance(op, RationalNumber):
        return {"num": op.num, "den": op.den}
    return op


def operand_from_dict(raw: Any) -> Operand:
    if isinstance(raw, dict):
        return RationalNumber(num=int(raw["num"]), den=int(raw["den"]))
    return int(raw)


@dataclass(frozen=True)
class QuestionFeatures:
    """
    Đặc trưng sư phạm của một câu hỏi:
    - operation: add | sub | mul | div
    - operand_size: single-digit | double-digit | mixed-digits | fractions
    - requires_carry_or_borrow: phép cộng có nhớ / phép trừ có mượn
    """
    operation: str
    operand_size: str
    requires_carry_or_borrow: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "operand_size": self.operand_size,
            "requires_carry_or_borrow": self.requires_carry_or_borrow,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "QuestionFeatures":
        return cls(
            operation=raw["operation"],
            operand_size=raw["operand_size"],
            requires_carry_or_borrow=bool(raw["requires_carry_or_borrow"]),
        )


@dataclass(frozen=True)
class Question:
    """
    Câu hỏi đã sinh. Bất biến: tạo một lần bởi generator, không bao giờ sửa.
    text dùng cú pháp kiểu LaTeX ("7 \\times 8", "\\frac{1}{2} + \\frac{1}{3}").
    """
    text: str
    type: str  # integer | rational
    answer: Operand
    operation: str  # add | sub | mul | div
    operands: Tuple[Operand, Operand]
    features: QuestionFeatures
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass(frozen=True)
class AnsweredQuestion:
    """Một câu đã trả lời trong bài thi, kèm thời gian làm và đặc trưng."""
    question_text: str
    submitted_answer: str
    is_correct: bool
    time_taken_seconds: int
    operation: str
    operands: Tuple[Operand, ...]
    features: Optional[QuestionFeatures] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question_text": self.question_text,
            "submitted_answer": self.submitted_answer,
            "is_correct": self.is_correct,
            "time_taken_seconds": self.time_taken_seconds,
            "operation": self.operation,
            "operands": [operand_to_dict(o) for o in self.operands],
            "features": self.features.to_dict() if self.features else None,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "AnsweredQuestion":
        feats = raw.get("features")
        return cls(
            question_text=raw["question_text"],
            submitted_answer=raw["submitted_answer"],
            is_correct=bool(raw["is_correct"]),
            time_taken_seconds=int(raw["time_taken_seconds"]),
            operation=raw["operation"],
            operands=tuple(operand_from_dict(o) for o in raw["operands"]),
            features=QuestionFeatures.from_dict(feats) if feats else None,
        )


@dataclass(frozen=True)
class TestAttempt:
    """
    Kết quả một bài thi đã hoàn thành.
    Sinh đúng một lần, sau đó chỉ được nối vào history của học sinh.
    """
    __test__ = False  # pytest không thu thập lớp này

    date: str
    level: int
    correct_count: int
    time_remaining: int
    total_score: int
    answered_questions: Tuple[AnsweredQuestion, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "level": self.level,
            "correct_count": self.correct_count,
            "time_remaining": self.time_remaining,
            "total_score": self.total_score,
            "answered_questions": [a.to_dict() for a in self.answered_questions],
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "TestAttempt":
        return cls(
            date=raw["date"],
            level=int(raw["level"]),
            correct_count=int(raw["correct_count"]),
            time_remaining=int(raw["time_remaining"]),
            total_score=int(raw["total_score"]),
            answered_questions=tuple(
                AnsweredQuestion.from_dict(a) for a in raw.get("answered_questions", [])
            ),
        )


@dataclass(frozen=True)
class StudentProgress:
    """
    Tiến độ của một học sinh:
    - current_level: 1..20
    - history: danh sách TestAttempt (chỉ nối thêm)
    - consecutive_fast_track_count: chuỗi bài "tốt nhưng chưa xuất sắc" liên tiếp
    """
    current_level: int = MIN_LEVEL
    history: Tuple[TestAttempt, ...] = ()
    consecutive_fast_track_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_level": self.current_level,
            "history": [a.to_dict() for a in self.history],
            "consecutive_fast_track_count": self.consecutive_fast_track_count,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "StudentProgress":
        history: List[TestAttempt] = [TestAttempt.from_dict(a) for a in raw.get("history") or []]
        return cls(
            current_level=int(raw.get("current_level", MIN_LEVEL)),
            history=tuple(history),
            consecutive_fast_track_count=int(raw.get("consecutive_fast_track_count", 0)),
        )
