# tests/test_leveling.py

from sprint_core.leveling import apply_attempt, clamp_level, next_level
from sprint_core.schema import StudentProgress, TestAttempt


def _attempt(correct, time_remaining, level=1):
    return TestAttempt(
        date="2026-10-19T00:00:00+00:00",
        level=level,
        correct_count=correct,
        time_remaining=time_remaining,
        total_score=(level - 1) * 25 + correct,
    )


def test_fast_track_two_levels():
    t = next_level(3, 1, correct_count=24, time_remaining=70)
    assert t.new_level == 5
    assert t.consecutive_fast_track == 0
    assert t.reason == "fast-track"


def test_fast_track_one_level():
    t = next_level(3, 0, correct_count=23, time_remaining=40)
    assert t.new_level == 4


def test_fast_track_boundaries():
    # 22 câu đúng chưa phải fast-track
    assert next_level(3, 0, 22, 100).reason != "fast-track"
    # > 22 nhưng thời gian <= 20: giữ level, reset chuỗi
    t = next_level(3, 2, 25, 20)
    assert t.new_level == 3 and t.consecutive_fast_track == 0
    # đúng 60s còn lại: chỉ +1
    assert next_level(3, 0, 24, 60).new_level == 4


def test_streak_promotion_on_third():
    t = next_level(5, 2, correct_count=21, time_remaining=10)
    assert t.new_level == 6
    assert t.consecutive_fast_track == 0
    assert t.reason == "streak-promotion"
    assert t.promoted


def test_streak_increments_without_promotion():
    t = next_level(5, 0, correct_count=20, time_remaining=19)
    assert t.new_level == 5
    assert t.consecutive_fast_track == 1
    assert not t.promoted


def test_streak_needs_little_time_left():
    # >= 20 đúng nhưng còn >= 20s: không tính vào chuỗi
    t = next_level(5, 2, correct_count=21, time_remaining=20)
    assert t.new_level == 5
    assert t.consecutive_fast_track == 0


def test_weak_attempt_resets_streak():
    t = next_level(8, 2, correct_count=15, time_remaining=5)
    assert t.new_level == 8
    assert t.consecutive_fast_track == 0
    assert t.reason == "reset"


def test_clamp_at_top():
    top = next_level(20, 0, 25, 100)
    assert top.new_level == 20 and not top.promoted, "Level 20 không thể lên nữa"
    assert next_level(19, 0, 25, 100).new_level == 20
    assert next_level(25, 9, 0, 0).new_level == 20
    assert next_level(-3, 0, 0, 0).new_level == 1
    assert clamp_level(0) == 1


def test_never_decreases_level():
    for level in range(1, 21):
        for streak in range(0, 4):
            for correct in range(0, 26):
                for time_left in (0, 10, 19, 20, 21, 60, 61, 200):
                    t = next_level(level, streak, correct, time_left)
                    assert level <= t.new_level <= 20, (level, streak, correct, time_left)


def test_apply_attempt_appends_history_without_mutating():
    progress = StudentProgress(current_level=5, consecutive_fast_track_count=2)
    attempt = _attempt(21, 10, level=5)

    updated = apply_attempt(progress, attempt)

    assert updated.current_level == 6
    assert updated.consecutive_fast_track_count == 0
    assert updated.history == (attempt,)
    assert progress.history == () and progress.current_level == 5
