"""
Exceptions raised while evaluating an image's scan findings.
"""

from __future__ import annotations


class EcrScanError(RuntimeError):
    """
    Base class for all ecr-scan errors.

    ``stage`` is filled in by the evaluator with the name of the stage that
    failed, so the message identifies where reconciliation stopped.
    """

    def __init__(self, message: str = "", stage: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage

    def __str__(self) -> str:
        message = super().__str__()
        if self.stage:
            return f"{self.stage}: {message}"
        return message


class ConfigError(EcrScanError):
    """
    Raised when settings cannot be loaded or fail validation.
    """


class InvalidTarget(EcrScanError):
    """
    Raised when a request does not name a usable repository and image tag.
    """


class ScanUnavailable(EcrScanError):
    """
    Raised when a usable scan could not be obtained from the registry.
    """


class TriggerFailed(ScanUnavailable):
    """
    Raised when the registry rejects a request to start a scan.
    """


class WaitFailed(ScanUnavailable):
    """
    Raised when waiting for a triggered scan to finish errors out.
    """


class RegistryError(ScanUnavailable):
    """
    Raised by registry clients for remote errors other than "no scan".

    Retriable errors (throttling, service briefly unavailable) are retried
    by the poll driver; anything else ends reconciliation.
    """

    def __init__(self, message: str = "", retriable: bool = False, code: str | None = None) -> None:
        super().__init__(message)
        self.retriable = retriable
        self.code = code


class ReconciliationCancelled(ScanUnavailable):
    """
    Raised when the caller's cancellation signal fires mid-reconciliation.
    """


class ScanFailed(EcrScanError):
    """
    Raised when the registry reports that the image scan failed.
    """


class IntegrityError(EcrScanError):
    """
    Raised when the registry returns a structurally inconsistent scan record.
    """


class EmptyFindings(EcrScanError):
    """
    Raised when there are no severity counts to aggregate.
    """
    #: The total reported alongside this error
    sentinel = -1


class EvaluationError(EcrScanError):
    """
    Raised when a stage fails with an exception outside this hierarchy.
    """
