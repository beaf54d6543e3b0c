from __future__ import annotations

from ecrscan.exceptions import InvalidTarget
from ecrscan.models import Target


def validate_target(target: Target | None) -> None:
    if target is None:
        raise InvalidTarget("invalid target: no target given")
    missing = [
        name
        for name, value in (("repository", target.repository), ("imageTag", target.image_tag))
        if not isinstance(value, str) or not value.strip()
    ]
    if missing:
        raise InvalidTarget(f"invalid target: missing {', '.join(missing)}")
