"""
Summary statistics derived from a collection of analysis records.

The status gauges match on the raw server string rather than the decoded
enumeration because the backend has been seen emitting free-text statuses.
They are computed independently and do not partition the collection: a status
mentioning both "non" and "partial" counts towards both gauges.
"""

from __future__ import annotations

from collections import Counter
from datetime import tzinfo
from typing import Dict, Iterable, List, Optional, Sequence

from compliance_client.schemas import (
    AnalysisRecord,
    ComplianceStatus,
    MonthlyBucket,
    StatisticsSummary,
)

DEFAULT_MAX_MONTHS = 6


def _status_text(record: AnalysisRecord) -> str:
    return (record.compliance_status_raw or "").strip().lower()


def is_compliant(record: AnalysisRecord) -> bool:
    return _status_text(record) == "compliant"


def is_partial(record: AnalysisRecord) -> bool:
    return "partial" in _status_text(record)


def is_non_compliant(record: AnalysisRecord) -> bool:
    status = _status_text(record)
    return "non" in status or status in ("", "unknown")


def _mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return round(sum(values) / len(values), 1)


def monthly_histogram(
    records: Iterable[AnalysisRecord],
    *,
    tz: Optional[tzinfo] = None,
    max_months: int = DEFAULT_MAX_MONTHS,
) -> List[MonthlyBucket]:
    """Count records per calendar month in the display time zone.

    ``tz=None`` means the local time zone. Buckets are chronological and only
    the most recent ``max_months`` are kept.
    """
    counts: Counter = Counter()
    for record in records:
        local = record.created_at.astimezone(tz)
        counts[(local.year, local.month)] += 1
    ordered = sorted(counts.items())
    if max_months > 0:
        ordered = ordered[-max_months:]
    return [
        MonthlyBucket(year=year, month=month, count=count)
        for (year, month), count in ordered
    ]


def summarize(
    records: Sequence[AnalysisRecord],
    *,
    tz: Optional[tzinfo] = None,
    max_months: int = DEFAULT_MAX_MONTHS,
) -> StatisticsSummary:
    """Compute the dashboard summary for ``records``; never divides by zero."""
    total = len(records)
    compliant_count = sum(1 for record in records if is_compliant(record))
    partial_count = sum(1 for record in records if is_partial(record))
    non_compliant_count = sum(1 for record in records if is_non_compliant(record))

    compliance_rate = round(compliant_count / total * 100, 1) if total else 0.0

    by_status: Dict[str, float] = {}
    for status in (
        ComplianceStatus.COMPLIANT,
        ComplianceStatus.PARTIAL,
        ComplianceStatus.NON_COMPLIANT,
    ):
        by_status[status.value] = _mean(
            [r.compliance_score for r in records if r.compliance_status is status]
        )

    return StatisticsSummary(
        total=total,
        compliant_count=compliant_count,
        partial_count=partial_count,
        non_compliant_count=non_compliant_count,
        average_score=_mean([record.compliance_score for record in records]),
        compliance_rate=compliance_rate,
        average_score_by_status=by_status,
        monthly=monthly_histogram(records, tz=tz, max_months=max_months),
    )


def recent(records: Iterable[AnalysisRecord], *, limit: int = 5) -> List[AnalysisRecord]:
    """Newest ``limit`` records, as listed on the dashboard."""
    ordered = sorted(records, key=lambda record: record.created_at.astimezone(), reverse=True)
    return ordered[:limit]


__all__ = [
    "DEFAULT_MAX_MONTHS",
    "is_compliant",
    "is_non_compliant",
    "is_partial",
    "monthly_histogram",
    "recent",
    "summarize",
]
