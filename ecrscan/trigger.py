from __future__ import annotations

import logging

from ecrscan.exceptions import RegistryError, TriggerFailed, WaitFailed
from ecrscan.models import Target
from ecrscan.registry import ScanRegistry

LOGGER = logging.getLogger(__name__)


def trigger_and_await(registry: ScanRegistry, target: Target) -> None:
    """Start a scan of ``target`` and block until that scan is no longer running.

    Waiting uses the registry's own completion primitive, scoped to this one
    scan, rather than the describe poll loop.
    """
    LOGGER.info("Scanning image repository=%s image_tag=%s", target.repository, target.image_tag)
    try:
        registry.start_scan(target)
    except RegistryError as exc:
        raise TriggerFailed(f"start image scan failed: {exc}") from exc
    try:
        registry.await_scan_completion(target)
    except RegistryError as exc:
        raise WaitFailed(f"wait for image scan to complete failed: {exc}") from exc
