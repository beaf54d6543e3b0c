from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from ecrscan.exceptions import ReconciliationCancelled, ScanUnavailable

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRY_DELAY_SECONDS = 15.0
DEFAULT_RETRY_MAX_ATTEMPTS = 20


class RetryableError(Exception):
    """Raised by a polled operation when the remote state may still change."""


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-delay retry policy.

    ``max_attempts`` of ``None`` retries until the operation succeeds, fails
    unrecoverably or the cancellation signal fires.
    """
    delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS
    max_attempts: int | None = DEFAULT_RETRY_MAX_ATTEMPTS

    def __post_init__(self) -> None:
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must not be negative")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")


def log_retry(attempt: int, error: Exception) -> None:
    LOGGER.info("Retry describe image scan findings attempt=%d reason=%s", attempt, error)


def check_cancelled(cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise ReconciliationCancelled("reconciliation cancelled")


def _wait(delay: float, cancel: threading.Event | None) -> None:
    if cancel is None:
        time.sleep(delay)
        return
    if cancel.wait(delay):
        raise ReconciliationCancelled("reconciliation cancelled while waiting to retry")


def with_retry(
    operation: Callable[[], T],
    policy: RetryPolicy | None = None,
    on_retry: Callable[[int, Exception], None] | None = log_retry,
    cancel: threading.Event | None = None,
) -> T:
    """Call ``operation`` until it returns, retrying on :class:`RetryableError`.

    Any other exception propagates immediately. When the attempt budget runs
    out with only retriable errors seen, :class:`ScanUnavailable` is raised so
    callers never have to interpret the last retriable reason.
    """
    policy = policy or RetryPolicy()
    attempt = 0
    while True:
        check_cancelled(cancel)
        attempt += 1
        try:
            return operation()
        except RetryableError as exc:
            if policy.max_attempts is not None and attempt >= policy.max_attempts:
                raise ScanUnavailable(
                    f"unable to retrieve scan findings after {attempt} attempts"
                ) from exc
            if on_retry is not None:
                on_retry(attempt, exc)
            _wait(policy.delay_seconds, cancel)
