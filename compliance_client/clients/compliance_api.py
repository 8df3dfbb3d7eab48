"""Typed wrappers for the compliance service endpoints."""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import ValidationError as PayloadValidationError

from compliance_client.clients.gateway import GatewayClient
from compliance_client.core.errors import RequestFailed
from compliance_client.schemas import (
    AnalysisRecord,
    CredentialPair,
    PendingUpload,
    ServerStatistics,
    UserProfile,
)


def _decode(model: Any, payload: Any, what: str) -> Any:
    try:
        return model.model_validate(payload)
    except PayloadValidationError as exc:
        raise RequestFailed(
            f"Unexpected {what} payload: {exc.error_count()} invalid field(s).",
            payload=payload,
        ) from exc


class ComplianceAPI:
    """Endpoint surface of the compliance backend built on ``GatewayClient``."""

    TOKEN_PATH = "/token/"
    USERS_PATH = "/accounts/users/"
    ANALYSES_PATH = "/compliance/analyses/"
    STATISTICS_PATH = "/compliance/analyses/statistics/"
    HEALTH_PATH = "/compliance/health/"

    def __init__(self, gateway: GatewayClient) -> None:
        self._gateway = gateway

    @property
    def gateway(self) -> GatewayClient:
        return self._gateway

    async def obtain_tokens(self, *, email: str, password: str) -> CredentialPair:
        payload = await self._gateway.call(
            self.TOKEN_PATH,
            method="POST",
            json={"email": email, "password": password},
            skip_auth=True,
        )
        credentials = CredentialPair.from_payload(payload)
        if credentials is None:
            raise RequestFailed("Token response did not include both tokens.", payload=payload)
        return credentials

    async def register_user(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        payload = await self._gateway.call(
            self.USERS_PATH, method="POST", json=fields, skip_auth=True
        )
        return payload if isinstance(payload, dict) else {"result": payload}

    async def current_user(self) -> UserProfile:
        payload = await self._gateway.call(self.USERS_PATH)
        # Some deployments answer with a one-element list.
        if isinstance(payload, list):
            if not payload:
                raise RequestFailed("No user profile returned.", payload=payload)
            payload = payload[0]
        return _decode(UserProfile, payload, "user profile")

    async def upload_and_analyze(self, upload: PendingUpload, *, name: str = "") -> AnalysisRecord:
        data = {"name": name} if name else None
        payload = await self._gateway.call(
            self.ANALYSES_PATH,
            method="POST",
            files={"image": (upload.filename, upload.content, upload.media_type)},
            data=data,
        )
        return _decode(AnalysisRecord, payload, "analysis")

    async def list_analyses(self) -> List[AnalysisRecord]:
        payload = await self._gateway.call(self.ANALYSES_PATH)
        if isinstance(payload, dict) and isinstance(payload.get("results"), list):
            payload = payload["results"]
        if not isinstance(payload, list):
            raise RequestFailed("Expected a list of analyses.", payload=payload)
        return [_decode(AnalysisRecord, item, "analysis") for item in payload]

    async def get_analysis(self, analysis_id: int | str) -> AnalysisRecord:
        payload = await self._gateway.call(f"{self.ANALYSES_PATH}{analysis_id}/")
        return _decode(AnalysisRecord, payload, "analysis")

    async def delete_analysis(self, analysis_id: int | str) -> None:
        await self._gateway.call(f"{self.ANALYSES_PATH}{analysis_id}/", method="DELETE")

    async def server_statistics(self) -> ServerStatistics:
        payload = await self._gateway.call(self.STATISTICS_PATH)
        return _decode(ServerStatistics, payload, "statistics")

    async def health_check(self) -> Dict[str, Any]:
        payload = await self._gateway.call(self.HEALTH_PATH, skip_auth=True)
        return payload if isinstance(payload, dict) else {"result": payload}


__all__ = ["ComplianceAPI"]
