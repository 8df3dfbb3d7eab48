"""Error taxonomy shared by the gateway, the controllers and the CLI."""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class ComplianceClientError(Exception):
    """Base class for every failure surfaced by the client."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


class ValidationError(ComplianceClientError):
    """Raised before any network activity when input is rejected locally.

    Also raised when the backend reports structured field errors.
    """

    def __init__(
        self,
        message: str,
        *,
        fields: Optional[Dict[str, List[str]]] = None,
        status_code: Optional[int] = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message, status_code=status_code, payload=payload)
        self.fields: Dict[str, List[str]] = dict(fields or {})


class FileTooLarge(ValidationError):
    """Raised when a selected file exceeds the upload size limit."""


class UnsupportedFileType(ValidationError):
    """Raised when a selected file is not an image."""


class InvalidCredentials(ComplianceClientError):
    """Raised when the token endpoint rejects the supplied email/password."""


class SessionExpired(ComplianceClientError):
    """Raised when the access token cannot be refreshed; re-login required."""


class RequestFailed(ComplianceClientError):
    """Raised for non-2xx responses carrying a server-supplied message."""


class NotFound(RequestFailed):
    """Raised when the requested resource does not exist (HTTP 404)."""


class NetworkError(ComplianceClientError):
    """Raised when no response was received from the remote service."""


class WorkflowStateError(ComplianceClientError):
    """Raised when a workflow operation is invoked from the wrong state."""


__all__ = [
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
]
