"""
Mô phỏng tiến độ của học sinh ảo qua nhiều bài thi.
Mỗi học sinh có một hồ sơ điểm yếu theo đặc trưng câu hỏi
(có nhớ / có mượn, phân số, số hai chữ số, nhân, chia) để kiểm tra
máy trạng thái level và phát hiện level có tham số quá hẹp.

    python cli/simulate_progression.py --students 30 --tests 40 --seed 7
"""

import argparse
import random
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List

from rich.console import Console
from rich.table import Table
from tqdm import tqdm

from sprint_core.assembler import assemble_test
from sprint_core.features import summarize_weaknesses
from sprint_core.grading import build_attempt, grade_answer
from sprint_core.schema import Question, RationalNumber, TestAttempt
from sprint_services import config
from sprint_services.progress_service import ProgressService
from sprint_services.store import InMemoryStore

WEAKNESS_KEYS = ["carry_or_borrow", "fractions", "double-digit", "mixed-digits", "mul", "div", "sub"]


@dataclass
class SimulatedStudent:
    name: str
    skill: float
    seconds_per_question: float
    weaknesses: Dict[str, float] = field(default_factory=dict)

    def p_correct(self, q: Question) -> float:
        f = q.features
        p = self.skill - self.weaknesses.get(f.operation, 0.0) - self.weaknesses.get(f.operand_size, 0.0)
        if f.requires_carry_or_borrow:
            p -= self.weaknesses.get("carry_or_borrow", 0.0)
        return min(0.99, max(0.02, p))

    def answer(self, q: Question, rng: random.Random) -> str:
        correct = rng.random() < self.p_correct(q)
        a = q.answer
        if isinstance(a, RationalNumber):
            return f"{a.num}/{a.den}" if correct else f"{a.num + 1}/{a.den}"
        return str(a if correct else a + 1)

    def take_test(self, level: int, questions: List[Question], duration: int, rng: random.Random) -> TestAttempt:
        elapsed = 0.0
        answered = []
        for q in questions:
            t = max(1.0, rng.gauss(self.seconds_per_question, 1.5))
            if q.features.operand_size != "single-digit":
                t *= 1.5
            if elapsed + t > duration:
                break
            elapsed += t
            answered.append(grade_answer(q, self.answer(q, rng), t))
        return build_attempt(level, answered, int(duration - elapsed))


def make_students(n: int, rng: random.Random) -> List[SimulatedStudent]:
    students = []
    for i in range(1, n + 1):
        weak = rng.sample(WEAKNESS_KEYS, k=rng.randint(0, 3))
        students.append(SimulatedStudent(
            name=f"sim-{i:03d}",
            skill=rng.uniform(0.75, 0.99),
            seconds_per_question=rng.uniform(4.0, 12.0),
            weaknesses={w: rng.uniform(0.1, 0.35) for w in weak},
        ))
    return students


def simulate(n_students: int, n_tests: int, seed: int, duration: int):
    rng = random.Random(seed)
    store = InMemoryStore()
    service = ProgressService(store)
    int_table, frac_table = store.get_level_params()
    students = make_students(n_students, rng)
    fallback_levels = Counter()

    for student in tqdm(students, desc="🧪 Mô phỏng học sinh", ncols=80):
        for _ in range(n_tests):
            level = store.get_profile(student.name).current_level
            assembled = assemble_test(level, int_table, frac_table, rng=rng)
            if assembled.used_fallback:
                fallback_levels[level] += 1
            attempt = student.take_test(level, assembled.questions, duration, rng)
            service.submit_attempt(student.name, attempt)

    return students, store, fallback_levels


def print_report(students, store, fallback_levels):
    console = Console()

    levels = Counter(store.get_profile(s.name).current_level for s in students)
    table = Table(title="Phân bố level cuối")
    table.add_column("Level", justify="right")
    table.add_column("Số học sinh", justify="right")
    for level in sorted(levels):
        table.add_row(str(level), str(levels[level]))
    console.print(table)

    if fallback_levels:
        console.print(f"[yellow]⚠️ Đề phải nới lỏng ở các level: {dict(fallback_levels)}[/yellow]")
    else:
        console.print("[green]✅ Không level nào phải nới lỏng ràng buộc duy nhất.[/green]")

    weakest = min(students, key=lambda s: s.skill)
    answered = [q for a in store.get_profile(weakest.name).history for q in a.answered_questions]
    summary = summarize_weaknesses(answered)
    wt = Table(title=f"Độ chính xác theo đặc trưng — {weakest.name} (điểm yếu: {weakest.weaknesses or 'không'})")
    wt.add_column("Nhóm")
    wt.add_column("Giá trị")
    wt.add_column("Đúng/Làm", justify="right")
    wt.add_column("Tỉ lệ", justify="right")
    for group, rows in summary.items():
        for key, stats in rows.items():
            wt.add_row(group, key, f"{stats['correct']}/{stats['attempted']}", f"{stats['accuracy']:.0%}")
    console.print(wt)


def main():
    parser = argparse.ArgumentParser(description="Mô phỏng tiến độ level của học sinh ảo")
    parser.add_argument("--students", type=int, default=20)
    parser.add_argument("--tests", type=int, default=30)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--duration", type=int, default=config.TEST_DURATION_SECONDS)
    args = parser.parse_args()

    config.configure_logging(level="WARNING")
    students, store, fallback_levels = simulate(args.students, args.tests, args.seed, args.duration)
    print_report(students, store, fallback_levels)


if __name__ == "__main__":
    main()
