# sprint_core/rational.py

from .schema import RationalNumber


class DivisionByZero(ZeroDivisionError):
    """Phân số có mẫu bằng 0. Vi phạm tiền điều kiện, không được nuốt lỗi."""


def gcd(a: int, b: int) -> int:
    """Thuật toán Euclid trên số nguyên không âm; gcd(a, 0) = a."""
    while b:
        a, b = b, a % b
    return a


def simplify(r: RationalNumber) -> RationalNumber:
    """
    Dạng chuẩn của phân số:
    - mẫu luôn dương
    - gcd(|num|, den) = 1
    - num = 0 thì den = 1
    Dạng này vừa là đáp án hiển thị vừa là khóa chống trùng.
    """
    if r.den == 0:
        raise DivisionByZero(f"Mẫu số bằng 0: {r.num}/{r.den}")
    if r.num == 0:
        return RationalNumber(0, 1)

    g = gcd(abs(r.num), abs(r.den))
    num, den = r.num // g, r.den // g
    if den < 0:
        return RationalNumber(-num, -den)
    return RationalNumber(num, den)


def make_rational(num: int, den: int) -> RationalNumber:
    return simplify(RationalNumber(num, den))


# ============================
# Phép toán (kết quả đã tối giản)
# ============================

def add(a: RationalNumber, b: RationalNumber) -> RationalNumber:
    return make_rational(a.num * b.den + b.num * a.den, a.den * b.den)


def subtract(a: RationalNumber, b: RationalNumber) -> RationalNumber:
    return make_rational(a.num * b.den - b.num * a.den, a.den * b.den)


def multiply(a: RationalNumber, b: RationalNumber) -> RationalNumber:
    return make_rational(a.num * b.num, a.den * b.den)


def divide(a: RationalNumber, b: RationalNumber) -> RationalNumber:
    # b.num = 0 sẽ ném DivisionByZero qua simplify
    return make_rational(a.num * b.den, a.den * b.num)


# ============================
# So sánh & hiển thị
# ============================

def compare(a: RationalNumber, b: RationalNumber) -> int:
    """Trả -1 / 0 / 1 theo giá trị, so sánh chéo trên dạng chuẩn (mẫu dương)."""
    sa, sb = simplify(a), simplify(b)
    left, right = sa.num * sb.den, sb.num * sa.den
    return (left > right) - (left < right)


def equals(a: RationalNumber, b: RationalNumber) -> bool:
    return simplify(a) == simplify(b)


def format_rational(r: RationalNumber) -> str:
    s = simplify(r)
    return f"{s.num}/{s.den}"


def to_latex(r: RationalNumber) -> str:
    """Hiển thị nguyên trạng (không tối giản), như khi in đề."""
    return f"\\frac{{{r.num}}}{{{r.den}}}"
