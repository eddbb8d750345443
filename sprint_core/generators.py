# sprint_core/generators.py

"""
Bộ sinh câu hỏi theo từng phép toán.
Mỗi hàm nhận vector tham số của level (và level nếu cần), trả về Question
đã có đáp án chuẩn và đặc trưng. Mọi phép rút ngẫu nhiên đều đều trên
khoảng nguyên đóng [min, max]. Truyền rng = random.Random(seed) để tái lập.
"""

from __future__ import annotations

import random
from typing import Callable, Dict, Optional

from . import rational
from .features import extract_features
from .level_params import NEGATIVE_PRACTICE_LEVEL, FracLevelParams, IntLevelParams
from .schema import Operand, Question, RationalNumber

NEGATIVE_DIVISOR_PROB = 0.45
TRIVIAL_REROLL_PROB = 0.75

OP_SYMBOLS = {"add": "+", "sub": "-", "mul": "\\times", "div": "\\div"}


# ============================
# Tiện ích rút số ngẫu nhiên
# ============================

def random_non_zero_int(lo: int, hi: int, rng=None) -> int:
    """Rút lại đến khi khác 0; nếu khoảng không chứa số khác 0 thì trả lần rút đầu."""
    rng = rng or random
    if lo > 0 or hi < 0 or (lo == 0 and hi == 0):
        return rng.randint(lo, hi)
    while True:
        n = rng.randint(lo, hi)
        if n != 0:
            return n


def _build(text: str, qtype: str, answer: Operand, operation: str, a: Operand, b: Operand) -> Question:
    return Question(
        text=text,
        type=qtype,
        answer=answer,
        operation=operation,
        operands=(a, b),
        features=extract_features(operation, (a, b)),
    )


def _int_text(operation: str, a: int, b: int) -> str:
    return f"{a} {OP_SYMBOLS[operation]} {b}"


# ============================
# Câu hỏi số nguyên
# ============================

def add_integer(params: IntLevelParams, rng=None) -> Question:
    n1 = random_non_zero_int(params.min_add, params.max_add, rng)
    n2 = random_non_zero_int(params.min_add, params.max_add, rng)
    return _build(_int_text("add", n1, n2), "integer", n1 + n2, "add", n1, n2)


def subtract_integer(level: int, params: IntLevelParams, rng=None) -> Question:
    n1 = random_non_zero_int(params.min_sub, params.max_sub, rng)
    n2 = random_non_zero_int(params.min_sub, params.max_sub, rng)

    if level < NEGATIVE_PRACTICE_LEVEL:
        # Đáp án là n1 ban đầu, số bị trừ = n1 + n2 > số trừ
        answer = n1
        n1 = n1 + n2
        return _build(_int_text("sub", n1, n2), "integer", answer, "sub", n1, n2)

    return _build(_int_text("sub", n1, n2), "integer", n1 - n2, "sub", n1, n2)


def multiply_integer(params: IntLevelParams, rng=None) -> Question:
    rng = rng or random
    lo, hi = params.min_mul, params.max_mul
    n1 = rng.randint(lo, hi)
    n2 = rng.randint(lo, hi)

    # Giảm tần suất nhân với ±1 nhưng vẫn thỉnh thoảng cho xuất hiện
    if abs(n1) == 1 or abs(n2) == 1:
        if rng.random() < TRIVIAL_REROLL_PROB and hi > lo:
            while abs(n1) == 1 or abs(n2) == 1:
                n1 = rng.randint(lo, hi)
                n2 = rng.randint(lo, hi)

    return _build(_int_text("mul", n1, n2), "integer", n1 * n2, "mul", n1, n2)


def divide_integer(level: int, params: IntLevelParams, rng=None) -> Question:
    rng = rng or random
    y = -1 if (rng.random() < NEGATIVE_DIVISOR_PROB and level >= NEGATIVE_PRACTICE_LEVEL) else 1

    b = rng.randint(1, params.max_div_factor)
    if b == 1 and params.max_div_factor > 1:
        if rng.random() < TRIVIAL_REROLL_PROB:
            while b == 1:
                b = rng.randint(1, params.max_div_factor)

    k = rng.randint(params.min_div_factor, params.max_div_factor)
    n1 = b * params.div_base * k
    n2 = b * y
    return _build(_int_text("div", n1, n2), "integer", n1 // n2, "div", n1, n2)


# ============================
# Câu hỏi phân số
# ============================

def generate_fraction(max_magnitude: int, rng=None) -> RationalNumber:
    """Tử trong [1, M], mẫu = tử + [1, M] nên mẫu luôn lớn hơn tử."""
    rng = rng or random
    num = rng.randint(1, max_magnitude)
    den = num + rng.randint(1, max_magnitude)
    return RationalNumber(num, den)


_FRACTION_OPS: Dict[str, Callable[[RationalNumber, RationalNumber], RationalNumber]] = {
    "add": rational.add,
    "sub": rational.subtract,
    "mul": rational.multiply,
    "div": rational.divide,
}


def fraction_question(operation: str, params: FracLevelParams, rng=None) -> Question:
    r1 = generate_fraction(params.max_magnitude, rng)
    r2 = generate_fraction(params.max_magnitude, rng)
    answer = _FRACTION_OPS[operation](r1, r2)
    text = f"{rational.to_latex(r1)} {OP_SYMBOLS[operation]} {rational.to_latex(r2)}"
    return _build(text, "rational", answer, operation, r1, r2)


def add_fraction(params: FracLevelParams, rng=None) -> Question:
    return fraction_question("add", params, rng)


def subtract_fraction(params: FracLevelParams, rng=None) -> Question:
    return fraction_question("sub", params, rng)


def multiply_fraction(params: FracLevelParams, rng=None) -> Question:
    return fraction_question("mul", params, rng)


def divide_fraction(params: FracLevelParams, rng=None) -> Question:
    return fraction_question("div", params, rng)


# ============================
# Bảng điều phối theo phép toán
# ============================

INTEGER_GENERATORS: Dict[str, Callable[[int, IntLevelParams, Optional[random.Random]], Question]] = {
    "add": lambda level, p, rng=None: add_integer(p, rng),
    "sub": subtract_integer,
    "mul": lambda level, p, rng=None: multiply_integer(p, rng),
    "div": divide_integer,
}

FRACTION_GENERATORS: Dict[str, Callable[[FracLevelParams, Optional[random.Random]], Question]] = {
    "add": add_fraction,
    "sub": subtract_fraction,
    "mul": multiply_fraction,
    "div": divide_fraction,
}
