from __future__ import annotations

from datetime import timedelta, timezone

import pytest

from compliance_client.schemas import AnalysisRecord, ComplianceStatus
from compliance_client.services import monthly_histogram, recent, summarize
from stubs import analysis_payload


def _record(**overrides) -> AnalysisRecord:
    return AnalysisRecord.model_validate(analysis_payload(**overrides))


def test_mixed_collection_summary():
    records = [
        _record(id=1, compliance_status="compliant", compliance_score=90),
        _record(id=2, compliance_status="partial", compliance_score=50),
        _record(id=3, compliance_status="non_compliant", compliance_score=0),
    ]

    summary = summarize(records)

    assert summary.total == 3
    assert summary.compliant_count == 1
    assert summary.partial_count == 1
    assert summary.non_compliant_count == 1
    assert summary.average_score == 46.7
    assert summary.compliance_rate == 33.3
    assert summary.trend == "down"
    assert summary.average_score_by_status == {
        "compliant": 90.0,
        "partial": 50.0,
        "non_compliant": 0.0,
    }


def test_empty_collection_never_divides_by_zero():
    summary = summarize([])

    assert summary.total == 0
    assert summary.average_score == 0.0
    assert summary.compliance_rate == 0.0
    assert summary.monthly == []
    assert summary.trend == "down"


def test_trend_is_up_above_half_compliant():
    records = [
        _record(id=1, compliance_status="compliant"),
        _record(id=2, compliance_status="compliant"),
        _record(id=3, compliance_status="partial"),
    ]

    assert summarize(records).trend == "up"


def test_gauges_do_not_partition_free_text_statuses():
    record = _record(compliance_status="non-partial")

    summary = summarize([record])

    assert record.compliance_status is ComplianceStatus.UNRECOGNIZED
    assert record.compliance_status_raw == "non-partial"
    assert summary.partial_count == 1
    assert summary.non_compliant_count == 1
    assert summary.compliant_count == 0


@pytest.mark.parametrize("status", [None, "", "unknown"])
def test_missing_status_counts_as_non_compliant(status):
    summary = summarize([_record(compliance_status=status)])

    assert summary.non_compliant_count == 1


def test_compliant_gauge_requires_exact_status():
    records = [
        _record(compliance_status="Compliant "),
        _record(compliance_status="mostly compliant"),
    ]

    summary = summarize(records)

    assert summary.compliant_count == 1


def test_monthly_histogram_keeps_latest_six_months_in_order():
    records = [
        _record(id=month, created_at=f"2024-{month:02d}-15T12:00:00Z")
        for month in range(1, 9)
    ]
    records.append(_record(id=99, created_at="2024-08-20T12:00:00Z"))

    buckets = monthly_histogram(records, tz=timezone.utc)

    assert [(bucket.year, bucket.month) for bucket in buckets] == [
        (2024, 3),
        (2024, 4),
        (2024, 5),
        (2024, 6),
        (2024, 7),
        (2024, 8),
    ]
    assert buckets[-1].count == 2
    assert buckets[0].label == "Mar 2024"


def test_monthly_histogram_uses_display_time_zone():
    record = _record(created_at="2024-03-31T23:30:00Z")

    utc_buckets = monthly_histogram([record], tz=timezone.utc)
    east_buckets = monthly_histogram([record], tz=timezone(timedelta(hours=2)))

    assert (utc_buckets[0].year, utc_buckets[0].month) == (2024, 3)
    assert (east_buckets[0].year, east_buckets[0].month) == (2024, 4)


def test_monthly_histogram_spans_year_boundary():
    records = [
        _record(id=1, created_at="2023-12-10T00:00:00Z"),
        _record(id=2, created_at="2024-01-10T00:00:00Z"),
    ]

    buckets = monthly_histogram(records, tz=timezone.utc)

    assert [bucket.label for bucket in buckets] == ["Dec 2023", "Jan 2024"]


def test_recent_returns_newest_first():
    records = [
        _record(id=index, created_at=f"2024-05-{index:02d}T08:00:00Z") for index in range(1, 9)
    ]

    newest = recent(records, limit=5)

    assert [record.id for record in newest] == [8, 7, 6, 5, 4]


def test_null_numeric_fields_decode_as_zero():
    record = _record(compliance_score=None, total_objects=None, detected_objects=None)

    assert record.compliance_score == 0.0
    assert record.total_objects == 0
    assert record.detected_objects == []
