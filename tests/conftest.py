"""Pytest configuration shared across the suite."""

from __future__ import annotations

try:
    from . import _bootstrap  # noqa: F401
except ImportError:  # pragma: no cover - fallback for rootdir-relative imports
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from compliance_client.clients import ComplianceAPI, GatewayClient, MemoryCredentialStore
from compliance_client.schemas import CredentialPair
from compliance_client.services import SessionStore
from stubs import RecordingBackend


@pytest.fixture
def anyio_backend() -> str:
    """Run AnyIO-marked tests on the asyncio backend only."""
    return "asyncio"


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def credential_store() -> MemoryCredentialStore:
    return MemoryCredentialStore(CredentialPair(access="expired-access", refresh="refresh-1"))


@pytest.fixture
def session(credential_store: MemoryCredentialStore) -> SessionStore:
    return SessionStore(credential_store)


@pytest.fixture
def gateway(session: SessionStore, backend: RecordingBackend) -> GatewayClient:
    return GatewayClient(session, base_url="http://testserver", transport=backend.transport)


@pytest.fixture
def api(gateway: GatewayClient) -> ComplianceAPI:
    return ComplianceAPI(gateway)
