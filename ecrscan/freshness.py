from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable

from ecrscan.exceptions import IntegrityError, RegistryError, ScanFailed, ScanUnavailable
from ecrscan.models import ScanRecord, ScanStatus, Target, utc_now
from ecrscan.registry import ScanRegistry
from ecrscan.retry import RetryableError, RetryPolicy, check_cancelled, with_retry
from ecrscan.trigger import trigger_and_await

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_SCAN_AGE_HOURS = 24
DEFAULT_MAX_RESCANS = 2
# one hundred years
MAX_SCAN_AGE_LIMIT_HOURS = 876000


class FreshnessResolver:
    """
    Finds a complete scan for a target that is no older than the maximum age.

    Missing and stale scans are retriggered and then looked up again; every
    lookup, including the one after a trigger, runs the full freshness check.
    The number of triggers per call is capped by ``max_rescans``.
    """

    def __init__(
        self,
        registry: ScanRegistry,
        max_scan_age_hours: float = DEFAULT_MAX_SCAN_AGE_HOURS,
        retry_policy: RetryPolicy | None = None,
        max_rescans: int = DEFAULT_MAX_RESCANS,
        clock: Callable[[], datetime] = utc_now,
        cancel: threading.Event | None = None,
    ) -> None:
        if not 0 <= max_scan_age_hours <= MAX_SCAN_AGE_LIMIT_HOURS:
            raise ValueError(f"max_scan_age_hours must be between 0 and {MAX_SCAN_AGE_LIMIT_HOURS}")
        if max_rescans < 0:
            raise ValueError("max_rescans must not be negative")
        self.registry = registry
        self.max_scan_age = timedelta(hours=max_scan_age_hours)
        self.retry_policy = retry_policy or RetryPolicy()
        self.max_rescans = max_rescans
        self.clock = clock
        self.cancel = cancel

    def resolve(self, target: Target) -> ScanRecord:
        rescans = 0
        triggered = False
        while True:
            record = self._query(target, triggered)
            if record.status is ScanStatus.NOT_FOUND:
                LOGGER.info("No scan found for image repository=%s image_tag=%s", target.repository, target.image_tag)
            elif self.is_stale(record):
                LOGGER.info(
                    "Scan is stale repository=%s image_tag=%s completed_at=%s max_age=%s",
                    target.repository,
                    target.image_tag,
                    record.completed_at.isoformat(),
                    self.max_scan_age,
                )
            else:
                return record
            if rescans >= self.max_rescans:
                raise ScanUnavailable(f"no fresh scan available after {rescans} rescans")
            check_cancelled(self.cancel)
            trigger_and_await(self.registry, target)
            rescans += 1
            triggered = True

    def is_stale(self, record: ScanRecord) -> bool:
        """True when the completed scan is strictly older than the maximum age."""
        if record.completed_at is None:
            raise IntegrityError("complete scan record has no completion time")
        completed_at = record.completed_at
        if completed_at.tzinfo is None:
            completed_at = completed_at.replace(tzinfo=timezone.utc)
        return self.clock() - completed_at > self.max_scan_age

    def _query(self, target: Target, triggered: bool) -> ScanRecord:
        def describe() -> ScanRecord:
            try:
                record = self.registry.describe_scan(target)
            except RegistryError as exc:
                if exc.retriable:
                    raise RetryableError(str(exc)) from exc
                raise
            if record.status is ScanStatus.FAILED:
                raise ScanFailed(f"image scan failed: {record.description or 'no reason given'}")
            if record.status is ScanStatus.IN_PROGRESS:
                raise RetryableError("image scan still in progress")
            if record.status is ScanStatus.NOT_FOUND and triggered:
                # a scan we just started may not be visible yet
                raise RetryableError("waiting for new scan to become visible")
            return record

        return with_retry(describe, self.retry_policy, cancel=self.cancel)
