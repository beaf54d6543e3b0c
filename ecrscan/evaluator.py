from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator

from ecrscan.aggregate import total_findings
from ecrscan.exceptions import EcrScanError, EvaluationError
from ecrscan.freshness import DEFAULT_MAX_RESCANS, DEFAULT_MAX_SCAN_AGE_HOURS, FreshnessResolver
from ecrscan.models import Report, Target, utc_now
from ecrscan.registry import ScanRegistry
from ecrscan.retry import RetryPolicy
from ecrscan.validation import validate_target

LOGGER = logging.getLogger(__name__)


@contextmanager
def stage(name: str) -> Iterator[None]:
    try:
        yield
    except EcrScanError as exc:
        if exc.stage is None:
            exc.stage = name
        raise
    except Exception as exc:  # noqa: BLE001
        raise EvaluationError(f"{type(exc).__name__}: {exc}", stage=name) from exc


class Evaluator:
    """
    Retrieves and counts the vulnerability findings for one ECR image.
    """

    def __init__(
        self,
        registry: ScanRegistry,
        max_scan_age: float = DEFAULT_MAX_SCAN_AGE_HOURS,
        retry_policy: RetryPolicy | None = None,
        max_rescans: int = DEFAULT_MAX_RESCANS,
        clock: Callable[[], datetime] = utc_now,
        cancel: threading.Event | None = None,
    ) -> None:
        self.registry = registry
        self.resolver = FreshnessResolver(
            registry,
            max_scan_age_hours=max_scan_age,
            retry_policy=retry_policy,
            max_rescans=max_rescans,
            clock=clock,
            cancel=cancel,
        )

    def evaluate(self, target: Target | None) -> Report:
        with stage("validate"):
            validate_target(target)
        LOGGER.info("Evaluating image repository=%s image_tag=%s", target.repository, target.image_tag)
        with stage("resolve"):
            record = self.resolver.resolve(target)
        with stage("aggregate"):
            count = total_findings(record.severity_counts)
        return Report(total_findings=count)
