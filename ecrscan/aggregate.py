from __future__ import annotations

from collections.abc import Mapping

from ecrscan.exceptions import EmptyFindings, IntegrityError


def total_findings(severity_counts: Mapping[str, int] | None) -> int:
    """Sum the finding counts across every severity label.

    The registry caps the number of individual findings it returns per page,
    so the total comes from the severity counts rather than the length of the
    findings list. Labels are summed as given, including ones added by the
    registry in future.
    """
    if severity_counts is None:
        raise EmptyFindings("findings input is empty")
    total = 0
    for severity, count in severity_counts.items():
        # bool is an int subclass but never a valid count
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise IntegrityError(f"invalid finding count for severity {severity}: {count!r}")
        total += count
    return total
