import pytest

from checkout.utils.retry import call_with_retry


class Flaky(Exception):
    pass


def _failing(times, result="ok", error=Flaky):
    calls = {"count": 0}

    def func():
        calls["count"] += 1
        if calls["count"] <= times:
            raise error("transient")
        return result

    return func, calls


def test_returns_first_success():
    func, calls = _failing(0)
    assert call_with_retry(func, attempts=3, backoff_seconds=0, retry_on=(Flaky,), operation="t") == "ok"
    assert calls["count"] == 1


def test_retries_transient_errors_with_backoff():
    sleeps = []
    func, calls = _failing(2)
    result = call_with_retry(
        func, attempts=3, backoff_seconds=0.5, retry_on=(Flaky,), operation="t", sleep=sleeps.append
    )
    assert result == "ok"
    assert calls["count"] == 3
    assert sleeps == [0.5, 1.0]


def test_reraises_after_last_attempt():
    func, calls = _failing(5)
    with pytest.raises(Flaky):
        call_with_retry(func, attempts=3, backoff_seconds=0, retry_on=(Flaky,), operation="t")
    assert calls["count"] == 3


def test_other_errors_propagate_immediately():
    func, calls = _failing(1, error=KeyError)
    with pytest.raises(KeyError):
        call_with_retry(func, attempts=3, backoff_seconds=0, retry_on=(Flaky,), operation="t")
    assert calls["count"] == 1


def test_at_least_one_attempt():
    func, calls = _failing(0)
    call_with_retry(func, attempts=0, backoff_seconds=0, retry_on=(Flaky,), operation="t")
    assert calls["count"] == 1
