# sprint_core/__init__.py

"""
Core module cho hệ thống luyện tính nhẩm thích ứng (Sprint)

Bao gồm:
- Phân số chuẩn hóa (tối giản, so sánh)
- Bộ sinh câu hỏi số nguyên / phân số theo tham số từng level
- Trích xuất đặc trưng (kích thước toán hạng, có nhớ / có mượn)
- Lắp đề 25 câu không trùng, có chính sách nới lỏng
- Máy trạng thái lên level sau mỗi bài thi

Các thành phần xuất khẩu phổ biến:
    RationalNumber, Question, TestAttempt, StudentProgress
    simplify, generate_test_questions, next_level, apply_attempt
"""

# Schema models
from .schema import (
    TOTAL_QUESTIONS,
    MIN_LEVEL,
    MAX_LEVEL,
    RationalNumber,
    QuestionFeatures,
    Question,
    AnsweredQuestion,
    TestAttempt,
    StudentProgress,
)

# Rational arithmetic
from .rational import (
    DivisionByZero,
    gcd,
    simplify,
    compare,
)

# Level parameter tables
from .level_params import (
    DEFAULT_LEVEL_PARAMS_INT,
    DEFAULT_LEVEL_PARAMS_FRAC,
    InvalidLevelParams,
    LevelOutOfRange,
    validate_level_params,
)

# Features
from .features import (
    extract_features,
    summarize_weaknesses,
)

# Test assembly
from .assembler import (
    FallbackPolicy,
    OperationTable,
    assemble_test,
    generate_test_questions,
    question_key,
)

# Leveling & grading
from .leveling import (
    LevelTransition,
    next_level,
    apply_attempt,
)
from .grading import (
    check_answer,
    grade_answer,
    build_attempt,
)


__all__ = [
    # Schema
    "TOTAL_QUESTIONS",
    "MIN_LEVEL",
    "MAX_LEVEL",
    "RationalNumber",
    "QuestionFeatures",
    "Question",
    "AnsweredQuestion",
    "TestAttempt",
    "StudentProgress",

    # Rational
    "DivisionByZero",
    "gcd",
    "simplify",
    "compare",

    # Level params
    "DEFAULT_LEVEL_PARAMS_INT",
    "DEFAULT_LEVEL_PARAMS_FRAC",
    "InvalidLevelParams",
    "LevelOutOfRange",
    "validate_level_params",

    # Features
    "extract_features",
    "summarize_weaknesses",

    # Assembler
    "FallbackPolicy",
    "OperationTable",
    "assemble_test",
    "generate_test_questions",
    "question_key",

    # Leveling & grading
    "LevelTransition",
    "next_level",
    "apply_attempt",
    "check_answer",
    "grade_answer",
    "build_attempt",
]
