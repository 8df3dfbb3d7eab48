"""
Owned client context wiring settings, session, gateway and controllers.
"""

from __future__ import annotations

from typing import Optional

import httpx

from compliance_client.clients import (
    ComplianceAPI,
    CredentialStore,
    GatewayClient,
    SQLiteCredentialStore,
    TokenCipher,
)
from compliance_client.core.config import ClientSettings, get_settings
from compliance_client.services import AnalysisWorkflow, AuthController, SessionStore


def build_credential_store(settings: ClientSettings) -> SQLiteCredentialStore:
    """Create the on-disk token store, encrypted when a secret is configured."""
    cipher = None
    if settings.token_encryption_secret:
        cipher = TokenCipher(secret=settings.token_encryption_secret)
    return SQLiteCredentialStore(settings.credential_store_path, cipher=cipher)


class ComplianceClient:
    """Process-wide session handle passed by reference to every consumer.

    Use as ``async with ComplianceClient() as client:`` to bootstrap the
    session on entry and release the HTTP connection pool on exit.
    """

    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        *,
        credential_store: Optional[CredentialStore] = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        store = credential_store
        if store is None:
            store = build_credential_store(self.settings)
        self.session = SessionStore(store)
        self.gateway = GatewayClient(
            self.session,
            base_url=self.settings.api_url,
            timeout=self.settings.request_timeout_seconds,
            transport=transport,
        )
        self.api = ComplianceAPI(self.gateway)
        self.auth = AuthController(self.api, self.session)

    async def bootstrap(self) -> None:
        await self.session.bootstrap(self.api)

    def new_workflow(self) -> AnalysisWorkflow:
        return AnalysisWorkflow(self.api, max_upload_bytes=self.settings.max_upload_bytes)

    async def aclose(self) -> None:
        await self.gateway.aclose()

    async def __aenter__(self) -> "ComplianceClient":
        await self.bootstrap()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


__all__ = ["ComplianceClient", "build_credential_store"]
