# tests/test_api_throttler.py

import httpx
import pytest
from openai import APITimeoutError

from sprint_services.api_throttler import ApiThrottler, ThrottlerError


def _throttler(**kwargs):
    sleeps = []
    t = ApiThrottler(min_interval=0.0, max_wait=0.0, sleep=sleeps.append, **kwargs)
    return t, sleeps


def _timeout():
    return APITimeoutError(request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))


def test_success_passes_arguments_through():
    t, _ = _throttler()
    assert t.call(lambda a, b=0: a + b, 2, b=3, key="m") == 5


def test_retries_transient_errors_then_succeeds():
    t, sleeps = _throttler(max_retries=3)
    calls = {"n": 0}

    def flaky():
        calls["n"] += 1
        if calls["n"] < 3:
            raise _timeout()
        return "ok"

    assert t.call(flaky) == "ok"
    assert calls["n"] == 3
    assert len(sleeps) == 2, "Mỗi lần lỗi tạm thời phải chờ backoff"


def test_gives_up_after_max_retries():
    t, _ = _throttler(max_retries=2)

    def always_timeout():
        raise _timeout()

    with pytest.raises(ThrottlerError) as exc:
        t.call(always_timeout)
    assert exc.value.attempts == 2
    assert isinstance(exc.value.last_exception, APITimeoutError)


def test_unknown_error_not_retried():
    t, _ = _throttler(max_retries=5)
    calls = {"n": 0}

    def broken():
        calls["n"] += 1
        raise KeyError("boom")

    with pytest.raises(ThrottlerError) as exc:
        t.call(broken)
    assert calls["n"] == 1
    assert isinstance(exc.value.last_exception, KeyError)


def test_min_interval_spacing():
    sleeps = []
    t = ApiThrottler(min_interval=10.0, max_wait=0.0, sleep=sleeps.append)
    t.call(lambda: None, key="gpt")
    t.call(lambda: None, key="gpt")
    assert sleeps and sleeps[0] > 9.0, "Lần gọi thứ hai phải chờ đủ min_interval"


def test_backoff_capped_by_max_wait():
    t = ApiThrottler(max_wait=3.0)
    assert t._compute_backoff(10, None) == 3.0
    assert t._compute_backoff(1, 1.5) == 1.5
