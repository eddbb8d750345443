# sprint_services/progress_service.py

import logging
import weakref
from threading import Lock
from typing import List, Optional

from sprint_core.assembler import FallbackPolicy, assemble_test
from sprint_core.leveling import apply_attempt, transition
from sprint_core.schema import Question, StudentProgress, TestAttempt
from sprint_services.store import ConcurrentUpdateError, ProfileStore

logger = logging.getLogger(__name__)


class ProgressService:
    """
    Điều phối: đọc hồ sơ -> tính trạng thái mới -> ghi lại.
    Mỗi học sinh chỉ có một người ghi tại một thời điểm (Lock theo student_id)
    và mỗi lần ghi kèm version để phát hiện ghi chồng từ tiến trình khác.
    """

    def __init__(self, store: ProfileStore, max_retries: int = 3,
                 policy: FallbackPolicy = FallbackPolicy.STRICT):
        self.store = store
        self.max_retries = max(1, max_retries)
        self.policy = policy
        # Lock tự bị gỡ khỏi map khi không còn ai giữ
        self._locks: "weakref.WeakValueDictionary[str, Lock]" = weakref.WeakValueDictionary()
        self._locks_guard = Lock()

    def _lock_for(self, student_id: str) -> Lock:
        with self._locks_guard:
            lock = self._locks.get(student_id)
            if lock is None:
                lock = self._locks[student_id] = Lock()
            return lock

    # ------------------------------
    # 📝 Sinh đề cho học sinh
    # ------------------------------
    def start_test(self, student_id: str, rng=None) -> List[Question]:
        progress = self.store.get_profile(student_id)
        int_table, frac_table = self.store.get_level_params()
        assembled = assemble_test(progress.current_level, int_table, frac_table,
                                  rng=rng, policy=self.policy)
        if assembled.used_fallback:
            logger.warning(
                f"Đề của {student_id} (level {progress.current_level}) dùng giai đoạn nới lỏng: "
                f"{' -> '.join(assembled.stages_used)}"
            )
        return assembled.questions

    # ------------------------------
    # 📥 Nộp bài và cập nhật level
    # ------------------------------
    def submit_attempt(self, student_id: str, attempt: TestAttempt) -> StudentProgress:
        """
        Áp dụng bài thi đúng một lần. Nếu version bị đổi giữa lúc đọc và ghi,
        đọc lại và tính lại trên trạng thái mới, tối đa max_retries lần.
        """
        last_exc: Optional[ConcurrentUpdateError] = None
        with self._lock_for(student_id):
            for attempt_no in range(1, self.max_retries + 1):
                progress, version = self.store.get_profile_versioned(student_id)
                t = transition(progress, attempt)
                new_progress = apply_attempt(progress, attempt)
                try:
                    self.store.save_profile(student_id, new_progress, expected_version=version)
                except ConcurrentUpdateError as e:
                    logger.warning(f"🔁 Ghi chồng hồ sơ {student_id} ({attempt_no}/{self.max_retries}): {e}")
                    last_exc = e
                    continue

                icon = "📈" if t.promoted else "➖"
                logger.info(
                    f"{icon} {student_id}: level {t.old_level} -> {t.new_level} "
                    f"({t.reason}, chuỗi={t.consecutive_fast_track})"
                )
                return new_progress

        raise last_exc
