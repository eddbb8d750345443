# sprint_core/features.py

"""
Trích xuất đặc trưng sư phạm của câu hỏi:
- nhóm kích thước toán hạng (1 chữ số / 2 chữ số trở lên / trộn / phân số)
- phép cộng có nhớ, phép trừ có mượn
Dùng cho thống kê điểm yếu và mô phỏng học sinh theo điểm yếu.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, Sequence

from .schema import AnsweredQuestion, Operand, QuestionFeatures, RationalNumber

SINGLE_DIGIT = "single-digit"
DOUBLE_DIGIT = "double-digit"
MIXED_DIGITS = "mixed-digits"
FRACTIONS = "fractions"


def operand_size_category(operands: Sequence[Operand]) -> str:
    if any(isinstance(o, RationalNumber) for o in operands):
        return FRACTIONS
    if all(abs(o) < 10 for o in operands):
        return SINGLE_DIGIT
    if all(abs(o) >= 10 for o in operands):
        return DOUBLE_DIGIT
    return MIXED_DIGITS


def requires_carry(a: int, b: int) -> bool:
    """
    Cộng theo cột từ hàng đơn vị. True ngay ở cột đầu tiên có tổng >= 10,
    tính cả trường hợp nhớ sang chữ số đứng đầu mới (5 + 5, 95 + 7).
    Các cột trước đó không nhớ nên không cần cộng dồn số nhớ.
    Toán hạng âm: luôn False.
    """
    if a < 0 or b < 0:
        return False
    while a > 0 or b > 0:
        if a % 10 + b % 10 >= 10:
            return True
        a //= 10
        b //= 10
    return False


def requires_borrow(minuend: int, subtrahend: int) -> bool:
    """
    True nếu một chữ số của số trừ lớn hơn chữ số tương ứng của số bị trừ
    (căn từ hàng đơn vị). Chỉ xét minuend >= subtrahend >= 0.
    """
    if not (minuend >= subtrahend >= 0):
        return False
    while subtrahend > 0:
        if subtrahend % 10 > minuend % 10:
            return True
        minuend //= 10
        subtrahend //= 10
    return False


def requires_carry_or_borrow(operation: str, operands: Sequence[Operand]) -> bool:
    if len(operands) != 2 or not all(isinstance(o, int) for o in operands):
        return False
    a, b = operands
    if operation == "add":
        return requires_carry(a, b)
    if operation == "sub":
        return requires_borrow(a, b)
    # mul / div: chưa mô hình hóa
    return False


def extract_features(operation: str, operands: Sequence[Operand]) -> QuestionFeatures:
    return QuestionFeatures(
        operation=operation,
        operand_size=operand_size_category(operands),
        requires_carry_or_borrow=requires_carry_or_borrow(operation, operands),
    )


def _features_of(aq: AnsweredQuestion) -> QuestionFeatures:
    return aq.features or extract_features(aq.operation, aq.operands)


def summarize_weaknesses(answered: Iterable[AnsweredQuestion]) -> Dict[str, Dict[str, Dict[str, float]]]:
    """
    Độ chính xác theo nhóm:
    {
      "by_operation": {"add": {"attempted": n, "correct": c, "accuracy": c/n}, ...},
      "by_operand_size": {...},
      "by_carry_or_borrow": {"yes": {...}, "no": {...}},
    }
    """
    counts: Dict[str, Dict[str, list]] = {
        "by_operation": defaultdict(lambda: [0, 0]),
        "by_operand_size": defaultdict(lambda: [0, 0]),
        "by_carry_or_borrow": defaultdict(lambda: [0, 0]),
    }

    for aq in answered:
        f = _features_of(aq)
        buckets = (
            ("by_operation", f.operation),
            ("by_operand_size", f.operand_size),
            ("by_carry_or_borrow", "yes" if f.requires_carry_or_borrow else "no"),
        )
        for group, key in buckets:
            counts[group][key][0] += 1
            if aq.is_correct:
                counts[group][key][1] += 1

    return {
        group: {
            key: {"attempted": n, "correct": c, "accuracy": (c / n) if n else 0.0}
            for key, (n, c) in sorted(table.items())
        }
        for group, table in counts.items()
    }
