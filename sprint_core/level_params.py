# sprint_core/level_params.py

from __future__ import annotations

from typing import List, NamedTuple, Optional, Sequence

from .schema import MIN_LEVEL, MAX_LEVEL

# Phân số chỉ xuất hiện từ level 11 trở lên
FIRST_FRACTION_LEVEL = 11

# Level < 6: phép trừ luôn ra kết quả không âm, phép chia không có số chia âm
NEGATIVE_PRACTICE_LEVEL = 6

INT_PARAMS_LEN = 12
FRAC_PARAMS_LEN = 5
INT_TABLE_ROWS = MAX_LEVEL - MIN_LEVEL + 1
FRAC_TABLE_ROWS = MAX_LEVEL - FIRST_FRACTION_LEVEL + 1


class InvalidLevelParams(ValueError):
    """Bảng tham số level không hợp lệ (kiểm tra lúc admin ghi cấu hình)."""


class LevelOutOfRange(ValueError):
    """Level nằm ngoài [1, 20] hoặc không có bảng tham số tương ứng."""


# ============================
# Dạng có tên cho vector tham số
# ============================

class IntLevelParams(NamedTuple):
    p_add: float
    p_sub: float
    p_mul: float
    min_add: int
    max_add: int
    min_sub: int
    max_sub: int
    min_mul: int
    max_mul: int
    min_div_factor: int
    max_div_factor: int
    div_base: int

    @classmethod
    def from_row(cls, row: Sequence[float]) -> "IntLevelParams":
        if len(row) != INT_PARAMS_LEN:
            raise InvalidLevelParams(f"Vector số nguyên cần {INT_PARAMS_LEN} phần tử, nhận {len(row)}")
        probs = [float(x) for x in row[:3]]
        ranges = [int(x) for x in row[3:]]
        return cls(*probs, *ranges)


class FracLevelParams(NamedTuple):
    p_integer: float
    p_add: float
    p_sub: float
    p_mul: float
    max_magnitude: int

    @classmethod
    def from_row(cls, row: Sequence[float]) -> "FracLevelParams":
        if len(row) != FRAC_PARAMS_LEN:
            raise InvalidLevelParams(f"Vector phân số cần {FRAC_PARAMS_LEN} phần tử, nhận {len(row)}")
        return cls(float(row[0]), float(row[1]), float(row[2]), float(row[3]), int(row[4]))


# ============================
# Bảng mặc định
# ============================

# [pAdd, pSub, pMul, minAdd, maxAdd, minSub, maxSub, minMul, maxMul, minDiv, maxDiv, divBase]
DEFAULT_LEVEL_PARAMS_INT: List[List[float]] = [
    [0.70, 1.00, 1.00, 1, 10, 1, 10, 1, 5, 1, 5, 1],
    [0.50, 1.00, 1.00, 1, 15, 1, 15, 1, 5, 1, 5, 1],
    [0.40, 0.80, 1.00, 1, 20, 1, 20, 2, 5, 1, 5, 1],
    [0.35, 0.70, 0.90, 1, 20, 1, 20, 2, 10, 1, 5, 1],
    [0.30, 0.60, 0.80, 1, 30, 1, 30, 2, 10, 1, 10, 1],
    [0.30, 0.55, 0.80, -10, 30, -10, 30, 2, 10, 1, 10, 1],
    [0.25, 0.50, 0.75, -20, 40, -20, 40, -10, 10, 1, 10, 1],
    [0.25, 0.50, 0.75, -30, 50, -30, 50, -12, 12, 1, 12, 1],
    [0.25, 0.50, 0.75, -50, 75, -50, 75, -12, 12, 2, 12, 1],
    [0.25, 0.50, 0.75, -100, 100, -100, 100, -12, 12, 2, 12, 1],
    [0.25, 0.50, 0.75, -100, 100, -100, 100, -15, 15, 2, 12, 1],
    [0.25, 0.50, 0.75, -150, 150, -150, 150, -15, 15, 2, 15, 1],
    [0.25, 0.50, 0.75, -200, 200, -200, 200, -15, 15, 2, 15, 1],
    [0.25, 0.50, 0.75, -250, 250, -250, 250, -20, 20, 2, 15, 1],
    [0.25, 0.50, 0.75, -300, 300, -300, 300, -20, 20, 2, 20, 1],
    [0.20, 0.45, 0.75, -400, 400, -400, 400, -20, 20, 2, 12, 10],
    [0.20, 0.45, 0.75, -500, 500, -500, 500, -25, 25, 2, 15, 10],
    [0.20, 0.40, 0.70, -750, 750, -750, 750, -25, 25, 2, 15, 10],
    [0.20, 0.40, 0.70, -1000, 1000, -1000, 1000, -30, 30, 2, 20, 10],
    [0.20, 0.40, 0.70, -1000, 1000, -1000, 1000, -30, 30, 2, 20, 10],
]

# [pInteger, pAdd, pSub, pMul, maxFractionMagnitude] cho level 11..20
DEFAULT_LEVEL_PARAMS_FRAC: List[List[float]] = [
    [0.90, 0.50, 1.00, 1.00, 4],
    [0.85, 0.45, 0.90, 1.00, 5],
    [0.80, 0.40, 0.80, 0.95, 5],
    [0.75, 0.35, 0.70, 0.90, 6],
    [0.70, 0.30, 0.60, 0.85, 6],
    [0.65, 0.25, 0.50, 0.75, 8],
    [0.60, 0.25, 0.50, 0.75, 9],
    [0.55, 0.25, 0.50, 0.75, 10],
    [0.50, 0.25, 0.50, 0.75, 12],
    [0.45, 0.25, 0.50, 0.75, 12],
]


def default_tables() -> tuple:
    """Bản sao sâu của hai bảng mặc định (int_table, frac_table)."""
    return (
        [list(row) for row in DEFAULT_LEVEL_PARAMS_INT],
        [list(row) for row in DEFAULT_LEVEL_PARAMS_FRAC],
    )


# ============================
# Tra cứu theo level
# ============================

def is_fraction_level(level: int) -> bool:
    return level >= FIRST_FRACTION_LEVEL


def _check_level(level: int) -> None:
    if not (MIN_LEVEL <= level <= MAX_LEVEL):
        raise LevelOutOfRange(f"Level {level} nằm ngoài [{MIN_LEVEL}, {MAX_LEVEL}]")


def int_params_for(level: int, int_table: Sequence[Sequence[float]]) -> IntLevelParams:
    _check_level(level)
    idx = level - 1
    if idx >= len(int_table):
        raise LevelOutOfRange(f"Bảng số nguyên không có dòng cho level {level}")
    return IntLevelParams.from_row(int_table[idx])


def frac_params_for(level: int, frac_table: Sequence[Sequence[float]]) -> Optional[FracLevelParams]:
    """Trả None với level <= 10 (chưa trộn phân số)."""
    _check_level(level)
    if not is_fraction_level(level):
        return None
    idx = level - FIRST_FRACTION_LEVEL
    if idx >= len(frac_table):
        raise LevelOutOfRange(f"Bảng phân số không có dòng cho level {level}")
    return FracLevelParams.from_row(frac_table[idx])


# ============================
# Kiểm tra cấu hình (lúc ghi, không phải lúc sinh đề)
# ============================

def _check_thresholds(probs: Sequence[float], where: str) -> None:
    prev = 0.0
    for p in probs:
        if not (0.0 <= p <= 1.0):
            raise InvalidLevelParams(f"{where}: ngưỡng {p} nằm ngoài [0, 1]")
        if p < prev:
            raise InvalidLevelParams(f"{where}: ngưỡng phải không giảm, nhận {list(probs)}")
        prev = p


def _check_range(lo: int, hi: int, where: str, name: str) -> None:
    if lo > hi:
        raise InvalidLevelParams(f"{where}: min{name}={lo} > max{name}={hi}")


def validate_level_params(
    int_table: Sequence[Sequence[float]],
    frac_table: Sequence[Sequence[float]],
) -> None:
    """
    Ném InvalidLevelParams nếu:
    - số dòng khác 20 (số nguyên) / 10 (phân số)
    - độ dài vector sai
    - khoảng [min, max] bị ngược
    - minSub < 0 ở level < 6 (phép trừ cho người mới phải ra kết quả không âm)
    - ngưỡng xác suất ngoài [0, 1] hoặc không tăng dần
    - divBase < 1, maxDivFactor < 1, độ lớn phân số < 1
    """
    if len(int_table) != INT_TABLE_ROWS:
        raise InvalidLevelParams(f"Cần {INT_TABLE_ROWS} dòng tham số số nguyên, nhận {len(int_table)}")
    if len(frac_table) != FRAC_TABLE_ROWS:
        raise InvalidLevelParams(f"Cần {FRAC_TABLE_ROWS} dòng tham số phân số, nhận {len(frac_table)}")

    for i, row in enumerate(int_table):
        where = f"level {i + 1}"
        p = IntLevelParams.from_row(row)
        _check_thresholds((p.p_add, p.p_sub, p.p_mul), where)
        _check_range(p.min_add, p.max_add, where, "Add")
        _check_range(p.min_sub, p.max_sub, where, "Sub")
        if i + 1 < NEGATIVE_PRACTICE_LEVEL and p.min_sub < 0:
            raise InvalidLevelParams(f"{where}: minSub phải >= 0 khi level < {NEGATIVE_PRACTICE_LEVEL}")
        _check_range(p.min_mul, p.max_mul, where, "Mul")
        _check_range(p.min_div_factor, p.max_div_factor, where, "DivFactor")
        if p.max_div_factor < 1:
            raise InvalidLevelParams(f"{where}: maxDivFactor phải >= 1")
        if p.div_base < 1:
            raise InvalidLevelParams(f"{where}: divBase phải >= 1")

    for i, row in enumerate(frac_table):
        where = f"level {i + FIRST_FRACTION_LEVEL} (phân số)"
        f = FracLevelParams.from_row(row)
        _check_thresholds((f.p_integer,), where)
        _check_thresholds((f.p_add, f.p_sub, f.p_mul), where)
        if f.max_magnitude < 1:
            raise InvalidLevelParams(f"{where}: độ lớn phân số phải >= 1")
