import os
import hashlib
import logging
import sqlite3
from datetime import datetime
from typing import Optional, Sequence, Tuple

from openai import OpenAI

from sprint_core.features import summarize_weaknesses
from sprint_core.schema import Operand, RationalNumber, StudentProgress, TestAttempt
from sprint_services import config
from sprint_services.api_throttler import ApiThrottler, ThrottlerError

logger = logging.getLogger(__name__)

PROMPT_VERSION = "v1"
WRONG_ANSWERS_PER_STUDENT = 5

StudentEntry = Tuple[str, StudentProgress]  # (tên học sinh, hồ sơ)

STUDENT_SYSTEM_PROMPT = (
    "You are an expert data analyst and math tutor. Write a Markdown report for a teacher with 4 sections:\n"
    "1. Overall Summary\n"
    "2. Analysis by Operation (negative numbers, numbers near multiples of 10, weak times tables)\n"
    "3. Analysis by Number Size (single-digit vs double-digit, carrying and borrowing)\n"
    "4. Speed vs. Accuracy\n"
    "Be specific, cite examples from the data and give actionable recommendations."
)

CLASS_SYSTEM_PROMPT = (
    "You are an expert educational analyst. From students' recent incorrect answers, identify common "
    "weakness themes, list them as bold Markdown headers with the names of the students under each, "
    "give one small-group activity per theme and list students with no recent errors as 'Confident Students'."
)

SCHOOL_SYSTEM_PROMPT = (
    "You are a data analyst for a school administrator. From the list of student levels in an adaptive "
    "arithmetic program, describe the distribution (beginner 1-5, intermediate 6-12, advanced 13+), "
    "at-risk cohorts, high achievers and school-level recommendations. Be concise, use Markdown."
)


# ==============================
# 🧾 Định dạng dữ liệu cho prompt
# ==============================
def format_operands(operands: Sequence[Operand]) -> str:
    return ", ".join(
        f"{o.num}/{o.den}" if isinstance(o, RationalNumber) else str(o) for o in operands
    )


def format_student_history(history: Sequence[TestAttempt]) -> str:
    blocks = []
    for i, attempt in enumerate(history, 1):
        lines = [f"Test {i} (Level {attempt.level}, {attempt.correct_count} correct, "
                 f"{attempt.time_remaining}s left):"]
        for q in attempt.answered_questions:
            line = (
                f'- Q: "{q.question_text}", Ans: "{q.submitted_answer}", Correct: {q.is_correct}, '
                f"Time: {q.time_taken_seconds}s, Op: {q.operation}, Operands: [{format_operands(q.operands)}]"
            )
            if q.features:
                line += (f", Size: {q.features.operand_size}, "
                         f"CarryBorrow: {q.features.requires_carry_or_borrow}")
            lines.append(line)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def format_weakness_table(history: Sequence[TestAttempt]) -> str:
    summary = summarize_weaknesses(q for a in history for q in a.answered_questions)
    lines = []
    for group, table in summary.items():
        for key, stats in table.items():
            lines.append(f"- {group}/{key}: {stats['correct']}/{stats['attempted']} "
                         f"({stats['accuracy']:.0%})")
    return "\n".join(lines)


def format_class_data(students: Sequence[StudentEntry]) -> str:
    blocks = []
    for name, progress in students:
        if not progress.history:
            blocks.append(f"Student: {name}\n  - No test history yet.")
            continue
        wrong = [q for a in progress.history for q in a.answered_questions if not q.is_correct]
        wrong = wrong[-WRONG_ANSWERS_PER_STUDENT:]
        header = f"Student: {name} (Current Level: {progress.current_level})"
        if not wrong:
            blocks.append(f"{header}\n  - No recent incorrect answers found.")
            continue
        rows = []
        for q in wrong:
            text = q.question_text.replace("\\", "")
            rows.append(f"    - Question: {text}, Op: {q.operation}, "
                        f"Operands: [{format_operands(q.operands)}]")
        blocks.append(f"{header}\n  - Recent Incorrect Answers:\n" + "\n".join(rows))
    return "\n\n".join(blocks)


def format_school_data(students: Sequence[StudentEntry]) -> str:
    return "\n".join(f" - {name}: Level {p.current_level}" for name, p in students)


# ==============================
# 🤖 Dịch vụ phân tích
# ==============================
class HistoryAnalyzer:
    """
    Dịch vụ phân tích văn bản: nhận lịch sử có cấu trúc, trả về văn bản Markdown.
    Không bao giờ ném lỗi ra ngoài; lỗi được trả về dưới dạng thông báo.
    """

    def __init__(
        self,
        client: Optional[OpenAI] = None,
        model: Optional[str] = None,
        throttler: Optional[ApiThrottler] = None,
        cache_path: Optional[str] = config.AI_CACHE_DB,
        api_key: Optional[str] = None,
        temperature: float = 0.5,
    ):
        self.model = model or config.OPENAI_MODEL
        self.throttler = throttler or ApiThrottler(min_interval=2.0, max_retries=5, max_wait=25.0, per_model=True)
        self.cache_path = cache_path
        self.temperature = temperature
        self._client = client
        self._api_key = api_key or config.OPENAI_API_KEY
        if self.cache_path:
            self._init_db()

    # ------------------------------
    # 💾 Cache kết quả (sqlite)
    # ------------------------------
    def _init_db(self) -> None:
        os.makedirs(os.path.dirname(self.cache_path) or ".", exist_ok=True)
        conn = sqlite3.connect(self.cache_path)
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS cache (
                    key TEXT PRIMARY KEY,
                    model TEXT,
                    created_at TEXT,
                    response TEXT NOT NULL
                );
            """)
            conn.commit()
        finally:
            conn.close()

    def _get_cache(self, key: str) -> Optional[str]:
        if not self.cache_path:
            return None
        conn = sqlite3.connect(self.cache_path)
        try:
            row = conn.execute("SELECT response FROM cache WHERE key=? AND model=?", (key, self.model)).fetchone()
        finally:
            conn.close()
        return row[0] if row else None

    def _set_cache(self, key: str, text: str) -> None:
        if not self.cache_path:
            return
        conn = sqlite3.connect(self.cache_path)
        try:
            conn.execute(
                "INSERT OR REPLACE INTO cache VALUES (?, ?, ?, ?)",
                (key, self.model, datetime.now().isoformat(), text),
            )
            conn.commit()
        finally:
            conn.close()

    def _get_client(self) -> Optional[OpenAI]:
        if self._client is None and self._api_key:
            self._client = OpenAI(api_key=self._api_key)
        return self._client

    # ------------------------------
    # 📡 Gọi mô hình
    # ------------------------------
    def _complete(self, system_prompt: str, user_prompt: str, what: str) -> str:
        client = self._get_client()
        if client is None:
            return f"OpenAI API key is not configured. Could not analyze {what}."

        key_src = f"{PROMPT_VERSION}::{self.model}::{system_prompt}::{user_prompt}"
        key = hashlib.sha256(key_src.encode()).hexdigest()
        cached = self._get_cache(key)
        if cached:
            logger.info(f"⚡ Dùng cache cho báo cáo {what}")
            return cached

        try:
            response = self.throttler.safe_openai_chat(
                client,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                model=self.model,
                temperature=self.temperature,
            )
        except ThrottlerError as e:
            logger.error(f"❌ Phân tích {what} thất bại sau {e.attempts} lần: {e.last_exception}")
            return f"There was an error analyzing {what}. Please try again later."

        report = (response.choices[0].message.content or "").strip()
        self._set_cache(key, report)
        logger.info(f"📊 Báo cáo {what}: ~{len(report.split())} từ")
        return report

    # ------------------------------
    # 📘 Các loại báo cáo
    # ------------------------------
    def analyze_student_history(self, history: Sequence[TestAttempt]) -> str:
        if not history:
            return "No history to analyze."
        prompt = (
            "Here is the student's test history:\n"
            f"{format_student_history(history)}\n\n"
            "Accuracy by feature:\n"
            f"{format_weakness_table(history)}"
        )
        return self._complete(STUDENT_SYSTEM_PROMPT, prompt, "the student's history")

    def analyze_class_groupings(self, students: Sequence[StudentEntry]) -> str:
        if not students:
            return "There are no students in this class to analyze."
        prompt = f"Here is the data of incorrect answers for the class:\n{format_class_data(students)}"
        return self._complete(CLASS_SYSTEM_PROMPT, prompt, "class trends")

    def analyze_school_trends(self, students: Sequence[StudentEntry]) -> str:
        if not students:
            return "There are no students in the school to analyze."
        prompt = f"Here is the list of all students and their current levels:\n{format_school_data(students)}"
        return self._complete(SCHOOL_SYSTEM_PROMPT, prompt, "school trends")
