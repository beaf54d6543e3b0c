from __future__ import annotations

import pytest

from ecrscan.aggregate import total_findings
from ecrscan.exceptions import EmptyFindings, IntegrityError

SEVERITIES = ["UNDEFINED", "INFORMATIONAL", "LOW", "MEDIUM", "HIGH", "CRITICAL"]


@pytest.mark.parametrize(
    "counts, expected",
    [
        ([0, 0, 0, 0, 0, 0], 0),
        ([1, 0, 0, 0, 0, 0], 1),
        ([0, 0, 0, 0, 0, 1], 1),
        ([1, 1, 1, 1, 1, 1], 6),
        ([5, 8, 13, 21, 34, 55], 136),
    ],
)
def test_total_findings_sums_every_severity(counts, expected):
    assert total_findings(dict(zip(SEVERITIES, counts))) == expected


def test_total_findings_independent_of_order():
    counts = dict(zip(SEVERITIES, [5, 8, 13, 21, 34, 55]))
    reordered = dict(reversed(list(counts.items())))
    assert total_findings(counts) == total_findings(reordered) == 136


def test_total_findings_includes_unknown_labels():
    assert total_findings({"HIGH": 2, "EXTREME": 3}) == 5


def test_total_findings_empty_mapping_is_clean():
    assert total_findings({}) == 0


def test_total_findings_none_is_an_error():
    with pytest.raises(EmptyFindings) as excinfo:
        total_findings(None)
    assert excinfo.value.sentinel == -1
    assert "empty" in str(excinfo.value)


@pytest.mark.parametrize("bad", [-1, 1.5, "3", None, True])
def test_total_findings_rejects_invalid_counts(bad):
    with pytest.raises(IntegrityError):
        total_findings({"HIGH": 1, "LOW": bad})
