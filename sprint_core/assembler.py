# sprint_core/assembler.py

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from itertools import islice
from typing import Iterator, List, Optional, Sequence, Tuple

from . import rational
from .generators import FRACTION_GENERATORS, INTEGER_GENERATORS
from .level_params import (
    DEFAULT_LEVEL_PARAMS_FRAC,
    DEFAULT_LEVEL_PARAMS_INT,
    FracLevelParams,
    IntLevelParams,
    frac_params_for,
    int_params_for,
)
from .schema import COMMUTATIVE_OPERATIONS, OPERATIONS, TOTAL_QUESTIONS, Operand, Question, RationalNumber

logger = logging.getLogger(__name__)

# Số lần thử tối đa cho mỗi giai đoạn có ràng buộc duy nhất
ATTEMPTS_PER_QUESTION = 15


# ============================
# Bảng phân phối tích lũy chọn phép toán
# ============================

@dataclass(frozen=True)
class OperationTable:
    """
    Bảng (phép toán, cận trên tích lũy). Với x ∈ [0, 1):
    chọn phép đầu tiên có x < cận. Dòng cuối luôn có cận = +inf
    nên x nằm ngoài mọi ngưỡng vẫn rơi vào phép cuối (div).
    """
    entries: Tuple[Tuple[str, float], ...]

    def pick(self, x: float) -> str:
        for operation, upper in self.entries:
            if x < upper:
                return operation
        return self.entries[-1][0]

    @classmethod
    def from_thresholds(cls, p_add: float, p_sub: float, p_mul: float) -> "OperationTable":
        uppers = (p_add, p_sub, p_mul, float("inf"))
        return cls(tuple(zip(OPERATIONS, uppers)))

    @classmethod
    def for_integers(cls, params: IntLevelParams) -> "OperationTable":
        return cls.from_thresholds(params.p_add, params.p_sub, params.p_mul)

    @classmethod
    def for_fractions(cls, params: FracLevelParams) -> "OperationTable":
        return cls.from_thresholds(params.p_add, params.p_sub, params.p_mul)


# ============================
# Khóa chuẩn chống trùng
# ============================

def _operand_key(op: Operand) -> str:
    if isinstance(op, RationalNumber):
        return rational.format_rational(op)
    return str(op)


def question_key(q: Question) -> str:
    """
    "<phép>:<toán hạng 1>,<toán hạng 2>"; phân số được tối giản trước,
    phép giao hoán (add, mul) sắp xếp toán hạng để a+b và b+a trùng khóa.
    """
    parts = [_operand_key(o) for o in q.operands]
    if q.operation in COMMUTATIVE_OPERATIONS:
        parts.sort()
    return f"{q.operation}:{','.join(parts)}"


def answer_key(q: Question) -> str:
    return _operand_key(q.answer)


# ============================
# Sinh một câu hỏi
# ============================

def generate_single_question(
    level: int,
    int_table: Sequence[Sequence[float]],
    frac_table: Sequence[Sequence[float]],
    rng=None,
) -> Question:
    rng = rng or random
    int_params = int_params_for(level, int_table)
    frac_params = frac_params_for(level, frac_table)
    return _generate(level, int_params, frac_params, rng)


def _generate(
    level: int,
    int_params: IntLevelParams,
    frac_params: Optional[FracLevelParams],
    rng,
) -> Question:
    # frac_params[0] là xác suất vẫn ở lại câu số nguyên
    if frac_params is not None and rng.random() >= frac_params.p_integer:
        operation = OperationTable.for_fractions(frac_params).pick(rng.random())
        return FRACTION_GENERATORS[operation](frac_params, rng)

    operation = OperationTable.for_integers(int_params).pick(rng.random())
    return INTEGER_GENERATORS[operation](level, int_params, rng)


def iter_questions(
    level: int,
    int_table: Sequence[Sequence[float]],
    frac_table: Sequence[Sequence[float]],
    rng=None,
) -> Iterator[Question]:
    """Dòng câu hỏi vô hạn cho một level; tham số được tra một lần."""
    rng = rng or random
    int_params = int_params_for(level, int_table)
    frac_params = frac_params_for(level, frac_table)
    while True:
        yield _generate(level, int_params, frac_params, rng)


# ============================
# Chính sách nới lỏng
# ============================

@dataclass(frozen=True)
class AssemblyStage:
    name: str
    unique_questions: bool
    unique_answers: bool
    max_attempts: Optional[int]  # None: không giới hạn (chỉ khi không ràng buộc)


class FallbackPolicy(Enum):
    """
    STRICT: khóa câu hỏi duy nhất -> cho phép trùng.
    UNIQUE_ANSWERS: câu hỏi và đáp án duy nhất -> câu hỏi duy nhất -> cho phép trùng.
    """
    STRICT = "strict"
    UNIQUE_ANSWERS = "unique_answers"

    def stages(self, total: int) -> List[AssemblyStage]:
        budget = total * ATTEMPTS_PER_QUESTION
        stages: List[AssemblyStage] = []
        if self is FallbackPolicy.UNIQUE_ANSWERS:
            stages.append(AssemblyStage("unique-questions-and-answers", True, True, budget))
        stages.append(AssemblyStage("unique-questions", True, False, budget))
        stages.append(AssemblyStage("duplicates-allowed", False, False, None))
        return stages


@dataclass
class AssembledTest:
    level: int
    questions: List[Question] = field(default_factory=list)
    attempts: int = 0
    stages_used: List[str] = field(default_factory=list)

    @property
    def used_fallback(self) -> bool:
        return len(self.stages_used) > 1


# ============================
# Lắp đề
# ============================

def assemble_test(
    level: int,
    int_table: Optional[Sequence[Sequence[float]]] = None,
    frac_table: Optional[Sequence[Sequence[float]]] = None,
    rng=None,
    policy: FallbackPolicy = FallbackPolicy.STRICT,
    total: int = TOTAL_QUESTIONS,
) -> AssembledTest:
    """
    Lắp đúng `total` câu hỏi cho level, theo thứ tự sinh thành công.
    Hết lượt thử ở một giai đoạn thì chuyển sang giai đoạn nới lỏng kế tiếp
    và ghi cảnh báo (thường do cấu hình tham số level quá hẹp).
    Không bao giờ ném lỗi vì thiếu câu duy nhất.
    """
    int_table = int_table if int_table is not None else DEFAULT_LEVEL_PARAMS_INT
    frac_table = frac_table if frac_table is not None else DEFAULT_LEVEL_PARAMS_FRAC

    stream = iter_questions(level, int_table, frac_table, rng)
    result = AssembledTest(level=level)
    seen_questions = set()
    seen_answers = set()

    for i, stage in enumerate(policy.stages(total)):
        if len(result.questions) >= total:
            break
        if i > 0:
            logger.warning(
                f"⚠️ Level {level}: chỉ lắp được {len(result.questions)}/{total} câu ở giai đoạn "
                f"'{result.stages_used[-1]}'. Nới lỏng sang '{stage.name}'. Kiểm tra lại tham số level."
            )
        result.stages_used.append(stage.name)

        for q in islice(stream, stage.max_attempts):
            result.attempts += 1
            q_key, a_key = question_key(q), answer_key(q)
            if stage.unique_questions and q_key in seen_questions:
                continue
            if stage.unique_answers and a_key in seen_answers:
                continue

            seen_questions.add(q_key)
            seen_answers.add(a_key)
            result.questions.append(q)
            if len(result.questions) >= total:
                break

    return result


def generate_test_questions(
    level: int,
    int_table: Optional[Sequence[Sequence[float]]] = None,
    frac_table: Optional[Sequence[Sequence[float]]] = None,
    rng=None,
    policy: FallbackPolicy = FallbackPolicy.STRICT,
) -> List[Question]:
    return assemble_test(level, int_table, frac_table, rng=rng, policy=policy).questions
