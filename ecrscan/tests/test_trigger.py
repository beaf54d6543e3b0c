from __future__ import annotations

import pytest

from ecrscan.exceptions import RegistryError, ScanUnavailable, TriggerFailed, WaitFailed
from ecrscan.tests.fakes import FakeRegistry
from ecrscan.trigger import trigger_and_await


def test_starts_then_waits(target):
    registry = FakeRegistry()
    trigger_and_await(registry, target)
    assert registry.calls == ["start", "wait"]


def test_start_rejected_skips_wait(target):
    registry = FakeRegistry(start_error=RegistryError("LimitExceededException"))
    with pytest.raises(TriggerFailed) as excinfo:
        trigger_and_await(registry, target)
    assert registry.calls == ["start"]
    assert isinstance(excinfo.value.__cause__, RegistryError)


def test_wait_failure(target):
    registry = FakeRegistry(wait_error=RegistryError("Max attempts exceeded"))
    with pytest.raises(WaitFailed) as excinfo:
        trigger_and_await(registry, target)
    # trigger failures abandon reconciliation as an unavailable scan
    assert isinstance(excinfo.value, ScanUnavailable)
    assert "Max attempts exceeded" in str(excinfo.value)
