from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ScanStatus(str, Enum):
    """Scan states observable on the registry."""
    NOT_FOUND = "NOT_FOUND"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"


@dataclass(frozen=True)
class Target:
    repository: str
    image_tag: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Target":
        return cls(
            repository=str(data.get("repository") or ""),
            image_tag=str(data.get("imageTag") or data.get("image_tag") or ""),
        )

    def to_dict(self) -> dict[str, str]:
        return {"repository": self.repository, "imageTag": self.image_tag}


@dataclass(frozen=True)
class ScanRecord:
    status: ScanStatus
    completed_at: datetime | None = None
    severity_counts: dict[str, int] | None = None
    description: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Report:
    total_findings: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"totalFindings": self.total_findings}
