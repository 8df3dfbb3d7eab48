"""
Pydantic models for analysis records, pending uploads and statistics.
"""

from __future__ import annotations

import base64
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ComplianceStatus(str, Enum):
    """Categorical outcome of an analysis as decoded from the server payload."""

    COMPLIANT = "compliant"
    PARTIAL = "partial"
    NON_COMPLIANT = "non_compliant"
    UNKNOWN = "unknown"
    UNRECOGNIZED = "unrecognized"

    @classmethod
    def parse(cls, value: Any) -> "ComplianceStatus":
        """Map a free-form server string onto the enumeration."""
        if isinstance(value, ComplianceStatus):
            return value
        if value is None:
            return cls.UNKNOWN
        normalized = str(value).strip().lower().replace("-", "_").replace(" ", "_")
        if not normalized:
            return cls.UNKNOWN
        for member in (cls.COMPLIANT, cls.PARTIAL, cls.NON_COMPLIANT, cls.UNKNOWN):
            if normalized == member.value:
                return member
        return cls.UNRECOGNIZED


class DetectedObject(BaseModel):
    """Fixture or feature located on the floor plan by the detector."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    label: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    description: str = ""
    bounding_box: Tuple[float, float, float, float]


class ComplianceCheck(BaseModel):
    """Single accessibility requirement evaluated against the plan."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    requirement: str
    code_reference: str = ""
    status: str = ""
    details: str = ""
    issues: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class AnalysisRecord(BaseModel):
    """Durable output of one compliance evaluation performed by the backend.

    ``compliance_status`` is derived server-side and is never recomputed for a
    single record. ``compliance_status_raw`` keeps the server string verbatim
    so collection summaries can apply their own matching rules.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int | str
    name: str = ""
    created_at: datetime
    compliance_status: ComplianceStatus = ComplianceStatus.UNKNOWN
    compliance_status_raw: Optional[str] = None
    compliance_score: float = Field(0.0, ge=0.0, le=100.0)
    total_objects: int = Field(0, ge=0)
    critical_issues_count: int = Field(0, ge=0)
    detected_objects: List[DetectedObject] = Field(default_factory=list)
    compliance_checks: List[ComplianceCheck] = Field(default_factory=list)
    image_url: Optional[str] = None
    annotated_image_url: Optional[str] = None
    measurements: Optional[Dict[str, Any]] = None

    @model_validator(mode="before")
    @classmethod
    def _keep_raw_status(cls, data: Any) -> Any:
        if isinstance(data, dict) and "compliance_status_raw" not in data:
            data = dict(data)
            raw = data.get("compliance_status")
            if isinstance(raw, Enum):
                raw = raw.value
            data["compliance_status_raw"] = None if raw is None else str(raw)
        return data

    @field_validator("compliance_status", mode="before")
    @classmethod
    def _decode_status(cls, value: Any) -> ComplianceStatus:
        return ComplianceStatus.parse(value)

    @field_validator("compliance_score", "total_objects", "critical_issues_count", mode="before")
    @classmethod
    def _null_as_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("detected_objects", "compliance_checks", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class PendingUpload(BaseModel):
    """Image selected for analysis but not yet submitted."""

    model_config = ConfigDict(frozen=True)

    content: bytes
    filename: str
    media_type: str
    validated: bool = False

    @property
    def size(self) -> int:
        return len(self.content)

    def to_data_url(self) -> str:
        """Encode the raw bytes as a ``data:`` URL suitable for a local preview."""
        encoded = base64.b64encode(self.content).decode("ascii")
        return f"data:{self.media_type};base64,{encoded}"


class ServerStatistics(BaseModel):
    """Summary computed by ``GET /compliance/analyses/statistics/``."""

    model_config = ConfigDict(extra="allow")

    total_analyses: int = 0
    compliant: int = 0
    partial: int = 0
    non_compliant: int = 0
    average_compliance_score: float = 0.0


class MonthlyBucket(BaseModel):
    """Number of analyses created in one calendar month."""

    model_config = ConfigDict(frozen=True)

    year: int
    month: int
    count: int

    @property
    def label(self) -> str:
        return datetime(self.year, self.month, 1).strftime("%b %Y")


class StatisticsSummary(BaseModel):
    """Client-side summary of a collection of analysis records.

    The status counts are independent gauges rather than a partition of
    ``total``; see ``compliance_client.services.statistics``.
    """

    model_config = ConfigDict(frozen=True)

    total: int = 0
    compliant_count: int = 0
    partial_count: int = 0
    non_compliant_count: int = 0
    average_score: float = 0.0
    compliance_rate: float = 0.0
    average_score_by_status: Dict[str, float] = Field(default_factory=dict)
    monthly: List[MonthlyBucket] = Field(default_factory=list)

    @property
    def trend(self) -> str:
        return "up" if self.compliance_rate > 50 else "down"


__all__ = [
    "AnalysisRecord",
    "ComplianceCheck",
    "ComplianceStatus",
    "DetectedObject",
    "MonthlyBucket",
    "PendingUpload",
    "ServerStatistics",
    "StatisticsSummary",
]
