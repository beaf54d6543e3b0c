"""
Shared fixtures for ecr-scan tests.
"""
from __future__ import annotations

import pytest

from ecrscan.models import Target
from ecrscan.retry import RetryPolicy
from ecrscan.settings import ENV_VARS
from ecrscan.tests.fakes import NOW


@pytest.fixture
def target():
    return Target(repository="test-repo", image_tag="latest")


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def no_delay():
    return RetryPolicy(delay_seconds=0, max_attempts=5)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep settings from the developer's shell out of the tests."""
    for var_name in ENV_VARS:
        monkeypatch.delenv(var_name, raising=False)
    yield


@pytest.fixture
def no_aws_config(monkeypatch, tmp_path):
    """Point boto3 at empty configuration so no region or profile resolves."""
    for var_name in (
        "AWS_REGION",
        "AWS_DEFAULT_REGION",
        "AWS_PROFILE",
        "AWS_DEFAULT_PROFILE",
        "AWS_ACCESS_KEY_ID",
        "AWS_SECRET_ACCESS_KEY",
    ):
        monkeypatch.delenv(var_name, raising=False)
    monkeypatch.setenv("AWS_CONFIG_FILE", str(tmp_path / "aws-config"))
    monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", str(tmp_path / "aws-credentials"))
    monkeypatch.setenv("AWS_EC2_METADATA_DISABLED", "true")
    yield
