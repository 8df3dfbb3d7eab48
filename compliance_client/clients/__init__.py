"""Expose constructed client wrappers."""

from .compliance_api import ComplianceAPI
from .credential_store import (
    CredentialStore,
    MemoryCredentialStore,
    SQLiteCredentialStore,
    TokenCipher,
)
from .gateway import GatewayClient

__all__ = [
    "ComplianceAPI",
    "CredentialStore",
    "GatewayClient",
    "MemoryCredentialStore",
    "SQLiteCredentialStore",
    "TokenCipher",
]
