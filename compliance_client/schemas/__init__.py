"""Public schema exports."""

from .analysis import (
    AnalysisRecord,
    ComplianceCheck,
    ComplianceStatus,
    DetectedObject,
    MonthlyBucket,
    PendingUpload,
    ServerStatistics,
    StatisticsSummary,
)
from .auth import CredentialPair, RegistrationRequest, UserProfile

__all__ = [
    "AnalysisRecord",
    "ComplianceCheck",
    "ComplianceStatus",
    "CredentialPair",
    "DetectedObject",
    "MonthlyBucket",
    "PendingUpload",
    "RegistrationRequest",
    "ServerStatistics",
    "StatisticsSummary",
    "UserProfile",
]
