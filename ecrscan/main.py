from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from ecrscan.evaluator import Evaluator
from ecrscan.exceptions import ConfigError, EcrScanError, InvalidTarget
from ecrscan.models import Report, Target
from ecrscan.registry import EcrScanRegistry, ScanRegistry
from ecrscan.settings import Settings, resolve_settings, setup_logging

LOGGER = logging.getLogger(__name__)


@contextmanager
def deadline(timeout_seconds: float | None) -> Iterator[threading.Event]:
    """Yield a cancellation event that is set once ``timeout_seconds`` elapse."""
    cancel = threading.Event()
    timer = None
    if timeout_seconds:
        timer = threading.Timer(timeout_seconds, cancel.set)
        timer.daemon = True
        timer.start()
    try:
        yield cancel
    finally:
        if timer is not None:
            timer.cancel()


def make_registry(settings: Settings) -> ScanRegistry:
    return EcrScanRegistry.from_session(
        region=settings.region,
        profile=settings.profile,
        wait_delay_seconds=settings.wait_delay_seconds,
        wait_max_attempts=settings.wait_max_attempts,
    )


def evaluate_image(
    settings: Settings,
    target: Target | None = None,
    registry: ScanRegistry | None = None,
    cancel: threading.Event | None = None,
) -> Report:
    if target is None:
        target = Target(repository=settings.repository, image_tag=settings.image_tag)
    evaluator = Evaluator(
        registry if registry is not None else make_registry(settings),
        max_scan_age=settings.max_scan_age,
        retry_policy=settings.retry_policy(),
        max_rescans=settings.max_rescans,
        cancel=cancel,
    )
    return evaluator.evaluate(target)


def write_json_file(path: str, payload: dict) -> None:
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ecr-scan",
        description="ecr-scan is an application for analyzing ECR scan findings",
    )
    parser.add_argument("-r", "--repository", help="ECR repository where the image is located")
    parser.add_argument("-t", "--tag", dest="image_tag", help="Image tag to retrieve findings for")
    parser.add_argument("-m", "--max-scan-age", type=float, help="Maximum allowed age for image scan (hours, default 24)")
    parser.add_argument("--profile", help="The AWS profile to use")
    parser.add_argument("--region", help="The AWS region to use")
    parser.add_argument("--settings", help="Optional path to a settings YAML file")
    parser.add_argument("--log-level", help="Logging level")
    parser.add_argument("--timeout", dest="timeout_seconds", type=float, help="Abort the evaluation after this many seconds")
    parser.add_argument("--json-output", help="Optional path to write the report JSON to")
    return parser


def main(argv: list[str] | None = None, registry: ScanRegistry | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    overrides = {
        key: getattr(args, key)
        for key in ("repository", "image_tag", "max_scan_age", "profile", "region", "log_level", "timeout_seconds")
    }
    try:
        settings = resolve_settings(args.settings, overrides)
    except ConfigError as exc:
        setup_logging()
        LOGGER.error("Invalid configuration: %s", exc)
        return 2
    setup_logging(settings.log_level)

    exit_code = 0
    report = Report()
    with deadline(settings.timeout_seconds) as cancel:
        try:
            report = evaluate_image(settings, registry=registry, cancel=cancel)
        except InvalidTarget as exc:
            LOGGER.error("Error evaluating target image: %s", exc)
            exit_code = 2
        except EcrScanError as exc:
            LOGGER.error("Error evaluating target image: %s", exc)
            exit_code = 1
    LOGGER.info("Scan result report=%s", report.to_dict())

    payload = report.to_dict()
    if args.json_output and exit_code == 0:
        write_json_file(args.json_output, payload)
    print(json.dumps(payload))
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
