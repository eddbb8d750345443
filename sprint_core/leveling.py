# sprint_core/leveling.py

from __future__ import annotations

from dataclasses import dataclass, replace

from .schema import MAX_LEVEL, MIN_LEVEL, StudentProgress, TestAttempt

# Ngưỡng lên level
FAST_TRACK_MIN_CORRECT = 23       # correct_count > 22
DOUBLE_JUMP_TIME = 60             # time_remaining > 60 -> +2
SINGLE_JUMP_TIME = 20             # time_remaining > 20 -> +1
STREAK_MIN_CORRECT = 20           # correct_count >= 20 ...
STREAK_MAX_TIME = 20              # ... và time_remaining < 20
STREAK_TO_PROMOTE = 3


@dataclass(frozen=True)
class LevelTransition:
    """
    Kết quả chuyển trạng thái sau một bài thi.
    reason: fast-track | streak | streak-promotion | reset
    """
    old_level: int
    new_level: int
    consecutive_fast_track: int
    reason: str

    @property
    def promoted(self) -> bool:
        return self.new_level > self.old_level


def clamp_level(level: int) -> int:
    return min(max(level, MIN_LEVEL), MAX_LEVEL)


def next_level(
    current_level: int,
    consecutive_fast_track: int,
    correct_count: int,
    time_remaining: int,
) -> LevelTransition:
    """
    Hàm chuyển trạng thái thuần (tổng, không có lỗi), không bao giờ hạ level:
    - > 22 câu đúng: +2 nếu còn > 60s, +1 nếu còn > 20s; reset chuỗi
    - >= 20 câu đúng nhưng còn < 20s: tăng chuỗi, đủ 3 thì +1 và reset chuỗi
    - còn lại: reset chuỗi
    Kết quả luôn bị kẹp trong [1, 20].
    """
    level = current_level
    streak = consecutive_fast_track

    if correct_count >= FAST_TRACK_MIN_CORRECT:
        if time_remaining > DOUBLE_JUMP_TIME:
            level += 2
        elif time_remaining > SINGLE_JUMP_TIME:
            level += 1
        streak = 0
        reason = "fast-track"
    elif correct_count >= STREAK_MIN_CORRECT and time_remaining < STREAK_MAX_TIME:
        streak += 1
        reason = "streak"
        if streak >= STREAK_TO_PROMOTE:
            level += 1
            streak = 0
            reason = "streak-promotion"
    else:
        streak = 0
        reason = "reset"

    return LevelTransition(
        old_level=current_level,
        new_level=clamp_level(level),
        consecutive_fast_track=streak,
        reason=reason,
    )


def transition(progress: StudentProgress, attempt: TestAttempt) -> LevelTransition:
    return next_level(
        progress.current_level,
        progress.consecutive_fast_track_count,
        attempt.correct_count,
        attempt.time_remaining,
    )


def apply_attempt(progress: StudentProgress, attempt: TestAttempt) -> StudentProgress:
    """Áp dụng đúng một lần cho mỗi bài thi: cập nhật level/chuỗi và nối attempt vào history."""
    t = transition(progress, attempt)
    return replace(
        progress,
        current_level=t.new_level,
        consecutive_fast_track_count=t.consecutive_fast_track,
        history=tuple(progress.history) + (attempt,),
    )
