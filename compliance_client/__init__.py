"""Asynchronous client for the floor-plan accessibility compliance service."""

from .context import ComplianceClient
from .core.config import ClientSettings, get_settings
from .core.errors import (
    ComplianceClientError,
    FileTooLarge,
    InvalidCredentials,
    NetworkError,
    NotFound,
    RequestFailed,
    SessionExpired,
    UnsupportedFileType,
    ValidationError,
    WorkflowStateError,
)

__version__ = "0.1.0"

__all__ = [
    "ClientSettings",
    "ComplianceClient",
    "ComplianceClientError",
    "FileTooLarge",
    "InvalidCredentials",
    "NetworkError",
    "NotFound",
    "RequestFailed",
    "SessionExpired",
    "UnsupportedFileType",
    "ValidationError",
    "WorkflowStateError",
    "get_settings",
]
