"""
Settings for evaluating ECR image scan findings.

Values are layered from lowest to highest precedence: model defaults, an
optional YAML settings file, environment variables and explicit overrides
(command line flags or the Lambda event).
"""

from __future__ import annotations

import logging
import os
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, Field, ValidationError

from ecrscan.exceptions import ConfigError
from ecrscan.freshness import MAX_SCAN_AGE_LIMIT_HOURS
from ecrscan.retry import DEFAULT_RETRY_DELAY_SECONDS, DEFAULT_RETRY_MAX_ATTEMPTS, RetryPolicy

#: Maps environment variables onto settings fields
ENV_VARS = {
    "ECR_REPOSITORY": "repository",
    "IMAGE_TAG": "image_tag",
    "MAX_SCAN_AGE": "max_scan_age",
    "AWS_PROFILE": "profile",
    "AWS_REGION": "region",
    "LOG_LEVEL": "log_level",
    "ECRSCAN_RETRY_DELAY": "retry_delay_seconds",
    "ECRSCAN_RETRY_MAX_ATTEMPTS": "retry_max_attempts",
    "ECRSCAN_MAX_RESCANS": "max_rescans",
    "ECRSCAN_TIMEOUT": "timeout_seconds",
}


class Settings(BaseModel):
    """
    Model defining the settings for one evaluation.
    """
    #: The ECR repository where the image is located
    repository: str = ""
    #: The image tag to retrieve findings for
    image_tag: str = ""
    #: Maximum allowed age for an image scan, in hours
    max_scan_age: float = Field(24, ge=0, le=MAX_SCAN_AGE_LIMIT_HOURS, allow_inf_nan=False)
    #: The AWS region and profile used to build the ECR client
    region: str | None = None
    profile: str | None = None
    #: Delay between describe attempts while a scan is running
    retry_delay_seconds: float = Field(DEFAULT_RETRY_DELAY_SECONDS, ge=0)
    #: Describe attempts before giving up; 0 retries until the timeout fires
    retry_max_attempts: int = Field(DEFAULT_RETRY_MAX_ATTEMPTS, ge=0)
    #: Number of scans that may be triggered per evaluation
    max_rescans: int = Field(2, ge=0)
    #: Polling used by the registry's scan-complete waiter
    wait_delay_seconds: int = Field(5, ge=1)
    wait_max_attempts: int = Field(60, ge=1)
    #: Overall deadline for one evaluation, in seconds
    timeout_seconds: float | None = Field(None, gt=0)
    log_level: str = "INFO"

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            delay_seconds=self.retry_delay_seconds,
            max_attempts=self.retry_max_attempts or None,
        )


def load_yaml(path: str) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"settings file {path} must contain a mapping")
    return data


def env_settings(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    environ = os.environ if environ is None else environ
    return {
        field: environ[var_name]
        for var_name, field in ENV_VARS.items()
        if environ.get(var_name)
    }


def resolve_settings(
    path: str | None = None,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    values: dict[str, Any] = {}
    if path:
        try:
            values.update(load_yaml(path))
        except OSError as exc:
            raise ConfigError(f"unable to read settings file {path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ConfigError(f"invalid settings file {path}: {exc}") from exc
    values.update(env_settings(environ))
    values.update({key: value for key, value in (overrides or {}).items() if value is not None})
    try:
        return Settings(**values)
    except ValidationError as exc:
        raise ConfigError(f"invalid settings: {exc}") from exc


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
