"""
sprint_services/api_throttler.py
-----------------------------------
Bộ điều tiết (throttler) và retry cho các lệnh gọi dịch vụ phân tích AI.
Báo cáo phân tích chạy theo yêu cầu của giáo viên, có thể dồn nhiều lệnh
cho cả lớp / cả trường, nên cần giãn nhịp và retry khi bị giới hạn.

- Khoảng cách tối thiểu giữa 2 lần gọi, theo model hoặc toàn cục
- Retry với backoff cấp số nhân + jitter, tôn trọng Retry-After
- Phân biệt lỗi tạm thời (429, timeout, 5xx) và lỗi vĩnh viễn
- Thread-safe
"""

import time
import random
import logging
from threading import Lock
from typing import Any, Callable, Dict, List, Optional, Tuple
from openai import OpenAI
from openai import RateLimitError, APIError, APITimeoutError

# ==============================
# ⚙️ Cấu hình logging
# ==============================
logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter("[%(asctime)s] %(levelname)s - %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


# ==============================
# 🧩 Exception
# ==============================
class ThrottlerError(Exception):
    """Hết lượt retry hoặc gặp lỗi không retry được."""

    def __init__(self, message: str, last_exception: Optional[BaseException], attempts: int):
        super().__init__(message)
        self.last_exception = last_exception
        self.attempts = attempts


# ==============================
# 🚀 ApiThrottler
# ==============================
class ApiThrottler:
    def __init__(
        self,
        min_interval: float = 2.0,
        max_retries: int = 5,
        max_wait: float = 30.0,
        per_model: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Tham số:
            min_interval: khoảng cách tối thiểu giữa 2 lần gọi (giây)
            max_retries: số lần thử tối đa
            max_wait: thời gian chờ tối đa giữa các lần retry
            per_model: giới hạn riêng theo model (True) hoặc toàn cục (False)
            sleep: hàm chờ, thay được trong test
        """
        self.min_interval = min_interval
        self.max_retries = max_retries
        self.max_wait = max_wait
        self.per_model = per_model
        self._sleep = sleep

        self._lock = Lock()
        self._last_call: Dict[str, float] = {}

    def _key(self, model: str) -> str:
        return model if self.per_model else "__global__"

    # ------------------------------
    # ⏳ Chờ đến lượt gọi
    # ------------------------------
    def _wait_for_slot(self, key: str) -> None:
        with self._lock:
            now = time.monotonic()
            next_allowed = self._last_call.get(key, float("-inf")) + self.min_interval
            # Giữ chỗ trước khi nhả lock để luồng khác xếp sau
            slot = max(now, next_allowed)
            self._last_call[key] = slot
        wait = slot - now
        if wait > 0:
            logger.debug(f"⏳ Chờ {wait:.2f}s trước khi gọi API ({key})")
            self._sleep(wait)

    def _compute_backoff(self, attempt: int, retry_after: Optional[float]) -> float:
        if retry_after is not None:
            return min(self.max_wait, max(0.0, retry_after))
        return min(self.max_wait, 2 ** attempt + random.uniform(0.5, 2.0))

    # ------------------------------
    # 🔍 Phân loại lỗi
    # ------------------------------
    def _classify(self, exc: Exception) -> Tuple[bool, Optional[float], str]:
        """Trả (retry được?, retry_after, nhãn)."""
        if isinstance(exc, RateLimitError):
            return True, _retry_after(exc), "Rate limit (HTTP 429)"
        if isinstance(exc, APITimeoutError):
            return True, None, "Timeout API"
        if isinstance(exc, APIError):
            status = getattr(exc, "status_code", None)
            if status and 500 <= status < 600:
                return True, None, f"Lỗi máy chủ ({status})"
            return False, None, f"Lỗi API ({status})"
        return False, None, "Lỗi không xác định"

    # ------------------------------
    # 📥 Gọi an toàn
    # ------------------------------
    def call(self, fn: Callable[..., Any], *args, key: str = "__global__", **kwargs) -> Any:
        """
        Gọi fn(*args, **kwargs) với giãn nhịp + retry.
        Ném ThrottlerError khi hết lượt hoặc gặp lỗi không retry được.
        """
        slot_key = self._key(key)
        last_exc: Optional[BaseException] = None

        for attempt in range(1, self.max_retries + 1):
            self._wait_for_slot(slot_key)
            try:
                return fn(*args, **kwargs)
            except Exception as e:
                last_exc = e
                retryable, retry_after, label = self._classify(e)
                if not retryable:
                    logger.error(f"🚫 {label}, không retry: {e}")
                    raise ThrottlerError(f"{label}: {e}", e, attempt) from e

                wait_time = self._compute_backoff(attempt, retry_after)
                logger.warning(f"⚠️ {label}. Chờ {wait_time:.1f}s rồi retry ({attempt}/{self.max_retries})")
                self._sleep(wait_time)

        raise ThrottlerError("❌ Hết lượt retry — dịch vụ phân tích thất bại.", last_exc, self.max_retries)

    def safe_openai_chat(
        self,
        client: OpenAI,
        messages: List[Dict[str, Any]],
        model: str = "gpt-4o-mini",
        **kwargs,
    ):
        return self.call(
            client.chat.completions.create,
            key=model,
            model=model,
            messages=messages,
            **kwargs,
        )


def _retry_after(exc: Exception) -> Optional[float]:
    response = getattr(exc, "response", None)
    headers = getattr(response, "headers", None)
    if not headers:
        return None
    val = headers.get("Retry-After")
    try:
        return float(val) if val else None
    except (TypeError, ValueError):
        return None
