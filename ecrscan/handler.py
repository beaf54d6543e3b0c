"""
AWS Lambda entry point.

Configure the function handler as ``ecrscan.handler.handler``. The event names
the image to evaluate, e.g. ``{"repository": "app", "imageTag": "v1.2.3"}``;
everything else comes from the function's environment.
"""

from __future__ import annotations

import logging
from typing import Any

from ecrscan.exceptions import EcrScanError, InvalidTarget
from ecrscan.main import deadline, evaluate_image
from ecrscan.models import Target
from ecrscan.settings import resolve_settings

LOGGER = logging.getLogger(__name__)

#: Time kept back from the invocation deadline to log and return the error
DEADLINE_MARGIN_SECONDS = 5.0


def remaining_seconds(context: Any) -> float | None:
    get_remaining = getattr(context, "get_remaining_time_in_millis", None)
    if get_remaining is None:
        return None
    return max(get_remaining() / 1000.0 - DEADLINE_MARGIN_SECONDS, 0.001)


def target_from_event(event: Any) -> Target:
    if event is None:
        event = {}
    if not isinstance(event, dict):
        raise InvalidTarget(f"invalid target: event must be an object, got {type(event).__name__}")
    return Target.from_dict(event)


def handler(event: dict[str, Any] | None, context: Any = None, registry=None) -> dict[str, int]:
    target = None
    try:
        settings = resolve_settings()
        # the Lambda runtime installs its own handler on the root logger
        logging.getLogger().setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

        target = target_from_event(event)
        timeout = settings.timeout_seconds
        remaining = remaining_seconds(context)
        if remaining is not None:
            timeout = min(timeout, remaining) if timeout else remaining

        with deadline(timeout) as cancel:
            report = evaluate_image(settings, target=target, registry=registry, cancel=cancel)
    except EcrScanError:
        LOGGER.exception(
            "Error evaluating target image target=%s",
            target.to_dict() if target is not None else event,
        )
        raise
    LOGGER.info("Scan result report=%s", report.to_dict())
    return report.to_dict()
