"""
Clients for the registry that holds image scan results.

The reconciliation logic only depends on the :class:`ScanRegistry` protocol;
:class:`EcrScanRegistry` implements it on top of a boto3 ECR client.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from ecrscan.exceptions import RegistryError
from ecrscan.models import ScanRecord, ScanStatus, Target

LOGGER = logging.getLogger(__name__)

SCAN_NOT_FOUND_CODE = "ScanNotFoundException"

# Error codes that describe a temporary condition on the registry side
RETRIABLE_ERROR_CODES = {"ThrottlingException", "ServerException"}

STATUS_MAP = {
    "IN_PROGRESS": ScanStatus.IN_PROGRESS,
    "PENDING": ScanStatus.IN_PROGRESS,
    "COMPLETE": ScanStatus.COMPLETE,
    "ACTIVE": ScanStatus.COMPLETE,
    "FAILED": ScanStatus.FAILED,
    "UNSUPPORTED_IMAGE": ScanStatus.FAILED,
    "FINDINGS_UNAVAILABLE": ScanStatus.FAILED,
    "SCAN_ELIGIBILITY_EXPIRED": ScanStatus.FAILED,
}


class ScanRegistry(Protocol):
    """
    Operations the reconciliation engine needs from a scanning registry.
    """

    def describe_scan(self, target: Target) -> ScanRecord:
        """
        Return the current scan record for the target.

        A target without any scan yields a record with status ``NOT_FOUND``.
        Other remote errors raise :class:`RegistryError`.
        """
        ...

    def start_scan(self, target: Target) -> None:
        """
        Ask the registry to start scanning the target.
        """
        ...

    def await_scan_completion(self, target: Target) -> None:
        """
        Block until the target's scan leaves the in-progress state.

        Raises :class:`RegistryError` if the scan fails or waiting errors out.
        """
        ...


def make_ecr_client(region: str | None = None, profile: str | None = None):
    try:
        session = boto3.Session(profile_name=profile or None, region_name=region or None)
        return session.client("ecr")
    except BotoCoreError as exc:
        raise RegistryError(f"unable to create ECR client: {exc}") from exc


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


def _registry_error(action: str, exc: Exception) -> RegistryError:
    if isinstance(exc, ClientError):
        code = _error_code(exc)
        return RegistryError(f"{action} failed: {exc}", retriable=code in RETRIABLE_ERROR_CODES, code=code)
    return RegistryError(f"{action} failed: {exc}")


class EcrScanRegistry:
    """
    Scan registry backed by Amazon ECR image scanning.

    Without an explicit client, one is built from the region and profile on
    first use, so a misconfigured session surfaces as a :class:`RegistryError`
    from the first registry call.
    """

    def __init__(
        self,
        client: Any = None,
        wait_delay_seconds: int = 5,
        wait_max_attempts: int = 60,
        region: str | None = None,
        profile: str | None = None,
    ) -> None:
        self._client = client
        self.region = region
        self.profile = profile
        self.wait_delay_seconds = wait_delay_seconds
        self.wait_max_attempts = wait_max_attempts

    @classmethod
    def from_session(cls, region: str | None = None, profile: str | None = None, **kwargs: Any) -> "EcrScanRegistry":
        return cls(region=region, profile=profile, **kwargs)

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = make_ecr_client(self.region, self.profile)
        return self._client

    @staticmethod
    def _image_params(target: Target) -> dict[str, Any]:
        return {
            "repositoryName": target.repository,
            "imageId": {"imageTag": target.image_tag},
        }

    def describe_scan(self, target: Target) -> ScanRecord:
        try:
            response = self.client.describe_image_scan_findings(**self._image_params(target))
        except ClientError as exc:
            if _error_code(exc) == SCAN_NOT_FOUND_CODE:
                return ScanRecord(status=ScanStatus.NOT_FOUND)
            raise _registry_error("describe image scan findings", exc) from exc
        except BotoCoreError as exc:
            raise _registry_error("describe image scan findings", exc) from exc
        record = parse_scan_findings(response)
        LOGGER.debug("Describe image scan findings status=%s", record.metadata["registry_status"])
        return record

    def start_scan(self, target: Target) -> None:
        try:
            self.client.start_image_scan(**self._image_params(target))
        except (ClientError, BotoCoreError) as exc:
            raise _registry_error("start image scan", exc) from exc

    def await_scan_completion(self, target: Target) -> None:
        waiter = self.client.get_waiter("image_scan_complete")
        try:
            waiter.wait(
                WaiterConfig={"Delay": self.wait_delay_seconds, "MaxAttempts": self.wait_max_attempts},
                **self._image_params(target),
            )
        except (WaiterError, ClientError, BotoCoreError) as exc:
            raise _registry_error("wait for image scan to complete", exc) from exc


def parse_scan_findings(response: dict[str, Any]) -> ScanRecord:
    """Convert a DescribeImageScanFindings response into a scan record."""
    scan_status = response.get("imageScanStatus") or {}
    raw_status = scan_status.get("status")
    status = STATUS_MAP.get(raw_status)
    if status is None:
        raise RegistryError(f"unrecognised image scan status: {raw_status}")
    findings = response.get("imageScanFindings")
    severity_counts = None
    completed_at = None
    # ECR omits findingSeverityCounts for a clean image, but a missing
    # imageScanFindings block means there is nothing to aggregate
    if findings is not None:
        severity_counts = dict(findings.get("findingSeverityCounts") or {})
        completed_at = findings.get("imageScanCompletedAt")
    return ScanRecord(
        status=status,
        completed_at=completed_at,
        severity_counts=severity_counts,
        description=scan_status.get("description"),
        metadata={
            "registry_status": raw_status,
            "registry_id": response.get("registryId"),
            "image_digest": (response.get("imageId") or {}).get("imageDigest"),
        },
    )
