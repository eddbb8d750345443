# tests/test_generators.py

import random

from sprint_core.generators import (
    add_integer,
    divide_integer,
    fraction_question,
    generate_fraction,
    multiply_integer,
    random_non_zero_int,
    subtract_integer,
)
from sprint_core.level_params import (
    DEFAULT_LEVEL_PARAMS_FRAC,
    DEFAULT_LEVEL_PARAMS_INT,
    FracLevelParams,
    IntLevelParams,
    frac_params_for,
    int_params_for,
)
from sprint_core.rational import simplify
from sprint_core.schema import RationalNumber


def _params(**overrides) -> IntLevelParams:
    base = int_params_for(8, DEFAULT_LEVEL_PARAMS_INT)
    return base._replace(**overrides)


def test_non_zero_draw():
    rng = random.Random(1)
    values = {random_non_zero_int(-3, 3, rng) for _ in range(500)}
    assert 0 not in values
    # Khoảng chỉ có 0: trả lần rút đầu, không lặp vô hạn
    assert random_non_zero_int(0, 0, rng) == 0


def test_add_integer_operands_in_range_and_non_zero():
    rng = random.Random(2)
    p = _params(min_add=-5, max_add=5)
    for _ in range(300):
        q = add_integer(p, rng)
        a, b = q.operands
        assert 0 not in (a, b)
        assert -5 <= a <= 5 and -5 <= b <= 5
        assert q.answer == a + b
        assert q.type == "integer" and q.operation == "add"


def test_beginner_subtraction_non_negative():
    rng = random.Random(3)
    for level in range(1, 6):
        p = int_params_for(level, DEFAULT_LEVEL_PARAMS_INT)
        for _ in range(200):
            q = subtract_integer(level, p, rng)
            n1, n2 = q.operands
            assert q.answer >= 0, f"Level {level}: đáp án âm {q.text} = {q.answer}"
            assert n1 > n2
            assert n1 - n2 == q.answer


def test_advanced_subtraction_can_be_negative():
    rng = random.Random(4)
    p = int_params_for(10, DEFAULT_LEVEL_PARAMS_INT)
    answers = [subtract_integer(10, p, rng).answer for _ in range(300)]
    assert min(answers) < 0, "Level >= 6 phải có thể ra đáp án âm"


def test_multiply_rarely_by_one():
    rng = random.Random(5)
    p = _params(min_mul=1, max_mul=3)
    questions = [multiply_integer(p, rng) for _ in range(2000)]
    trivial = sum(1 for q in questions if 1 in map(abs, q.operands))
    # Không reroll: P(có ±1) = 5/9; reroll 75% -> khoảng 14%
    assert 0 < trivial < 0.25 * len(questions), f"Tỉ lệ ×1 bất thường: {trivial}"
    assert all(q.answer == q.operands[0] * q.operands[1] for q in questions)


def test_multiply_degenerate_range_terminates():
    rng = random.Random(6)
    p = _params(min_mul=1, max_mul=1)
    q = multiply_integer(p, rng)
    assert q.operands == (1, 1)


def test_divide_exact_and_sign_rules():
    rng = random.Random(7)
    for level in (3, 9):
        p = int_params_for(level, DEFAULT_LEVEL_PARAMS_INT)
        divisors = []
        for _ in range(300):
            q = divide_integer(level, p, rng)
            n1, n2 = q.operands
            assert n2 != 0
            assert n1 % n2 == 0, f"Chia không hết: {q.text}"
            assert q.answer == n1 // n2
            divisors.append(n2)
        if level < 6:
            assert min(divisors) > 0, "Level < 6 không có số chia âm"
        else:
            assert min(divisors) < 0


def test_divide_uses_div_base():
    rng = random.Random(8)
    p = int_params_for(16, DEFAULT_LEVEL_PARAMS_INT)
    for _ in range(100):
        q = divide_integer(16, p, rng)
        assert q.operands[0] % p.div_base == 0


def test_generate_fraction_proper():
    rng = random.Random(9)
    for _ in range(500):
        r = generate_fraction(6, rng)
        assert 1 <= r.num <= 6
        assert r.num < r.den <= r.num + 6


def test_fraction_answers_reduced():
    rng = random.Random(10)
    p = frac_params_for(15, DEFAULT_LEVEL_PARAMS_FRAC)
    for op in ("add", "sub", "mul", "div"):
        for _ in range(100):
            q = fraction_question(op, p, rng)
            assert q.type == "rational"
            assert isinstance(q.answer, RationalNumber)
            assert simplify(q.answer) == q.answer, f"Đáp án chưa tối giản: {q.answer}"
            assert q.features.operand_size == "fractions"


def test_fraction_text_and_value():
    p = FracLevelParams(0.0, 0.25, 0.5, 0.75, 1)
    # M = 1: mọi phân số đều là 1/2
    q = fraction_question("add", p, random.Random(0))
    assert q.text == "\\frac{1}{2} + \\frac{1}{2}"
    assert q.answer == RationalNumber(1, 1)
