from __future__ import annotations

import threading

import pytest

from ecrscan.exceptions import ReconciliationCancelled, ScanFailed, ScanUnavailable
from ecrscan.retry import RetryableError, RetryPolicy, with_retry


def _flaky(failures, result="done", error=RetryableError("still running")):
    calls = []

    def operation():
        calls.append(1)
        if len(calls) <= failures:
            raise error
        return result

    return operation, calls


def test_returns_first_success():
    operation, calls = _flaky(0)
    assert with_retry(operation, RetryPolicy(delay_seconds=0)) == "done"
    assert len(calls) == 1


def test_retries_retriable_errors_and_notifies():
    operation, calls = _flaky(3)
    seen = []
    result = with_retry(
        operation,
        RetryPolicy(delay_seconds=0, max_attempts=5),
        on_retry=lambda attempt, err: seen.append((attempt, str(err))),
    )
    assert result == "done"
    assert len(calls) == 4
    assert seen == [(1, "still running"), (2, "still running"), (3, "still running")]


def test_exhaustion_raises_scan_unavailable():
    operation, calls = _flaky(100)
    with pytest.raises(ScanUnavailable) as excinfo:
        with_retry(operation, RetryPolicy(delay_seconds=0, max_attempts=3), on_retry=None)
    assert len(calls) == 3
    assert "after 3 attempts" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, RetryableError)


def test_unrecoverable_errors_propagate_immediately():
    operation, calls = _flaky(5, error=ScanFailed("image scan failed"))
    with pytest.raises(ScanFailed):
        with_retry(operation, RetryPolicy(delay_seconds=0, max_attempts=10))
    assert len(calls) == 1


def test_unbounded_policy_keeps_trying():
    operation, calls = _flaky(50)
    assert with_retry(operation, RetryPolicy(delay_seconds=0, max_attempts=None), on_retry=None) == "done"
    assert len(calls) == 51


def test_sleeps_fixed_delay_between_attempts(monkeypatch):
    sleeps = []
    monkeypatch.setattr("ecrscan.retry.time.sleep", lambda seconds: sleeps.append(seconds))
    operation, _ = _flaky(2)
    with_retry(operation, RetryPolicy(delay_seconds=15, max_attempts=5), on_retry=None)
    assert sleeps == [15, 15]


def test_cancelled_before_first_attempt():
    cancel = threading.Event()
    cancel.set()
    operation, calls = _flaky(0)
    with pytest.raises(ReconciliationCancelled):
        with_retry(operation, RetryPolicy(delay_seconds=0), cancel=cancel)
    assert calls == []


def test_cancel_interrupts_delay():
    cancel = threading.Event()
    operation, calls = _flaky(100)
    with pytest.raises(ReconciliationCancelled):
        with_retry(
            operation,
            RetryPolicy(delay_seconds=60, max_attempts=None),
            on_retry=lambda attempt, err: cancel.set(),
            cancel=cancel,
        )
    assert len(calls) == 1


def test_default_policy_matches_reference_delay():
    policy = RetryPolicy()
    assert policy.delay_seconds == 15
    assert policy.max_attempts == 20


@pytest.mark.parametrize("kwargs", [{"delay_seconds": -1}, {"max_attempts": 0}])
def test_invalid_policy(kwargs):
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)
