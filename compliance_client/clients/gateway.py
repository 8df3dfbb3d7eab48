"""
Authenticated HTTP gateway to the compliance service.

Every network call made by the client goes through ``GatewayClient.call``,
which attaches the bearer credential, normalizes failures into the
``compliance_client.core.errors`` taxonomy and transparently refreshes an
expired access token once per logical call.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Tuple

import httpx

from compliance_client.core.errors import (
    ComplianceClientError,
    NetworkError,
    NotFound,
    RequestFailed,
    SessionExpired,
)

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from compliance_client.services.session import SessionStore

logger = logging.getLogger(__name__)

NO_CONTENT_RESULT: Dict[str, Any] = {"success": True, "message": "Operation successful"}
EMPTY_RESULT: Dict[str, Any] = {"success": True}

SESSION_EXPIRED_MESSAGE = "Session expired. Please login again."


def _field_error_message(payload: Mapping[str, Any]) -> Optional[str]:
    """Render DRF-style ``{"field": ["message", ...]}`` bodies as one line."""
    parts = []
    for field_name, messages in payload.items():
        if isinstance(messages, str):
            messages = [messages]
        if not isinstance(messages, list) or not messages:
            continue
        rendered = " ".join(str(message) for message in messages)
        if field_name == "non_field_errors":
            parts.append(rendered)
        else:
            parts.append(f"{field_name}: {rendered}")
    return "; ".join(parts) or None


def extract_error_message(response: httpx.Response) -> Tuple[str, Any]:
    """Return a human-readable message and the decoded body of an error response."""
    fallback = f"HTTP {response.status_code}: {response.reason_phrase}"
    try:
        payload = response.json()
    except ValueError:
        return fallback, None

    if isinstance(payload, dict):
        for key in ("detail", "error"):
            value = payload.get(key)
            if not value:
                continue
            if isinstance(value, list):
                return " ".join(str(item) for item in value), payload
            return str(value), payload
        return _field_error_message(payload) or fallback, payload
    return fallback, payload


class GatewayClient:
    """Single chokepoint for network I/O against the compliance service."""

    REFRESH_PATH = "/token/refresh/"

    def __init__(
        self,
        session: "SessionStore",
        *,
        base_url: str,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._session = session
        self._http = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )
        self._refresh_task: Optional[asyncio.Task[bool]] = None

    @property
    def session(self) -> "SessionStore":
        return self._session

    async def aclose(self) -> None:
        await self._http.aclose()

    async def call(
        self,
        path: str,
        *,
        method: str = "GET",
        json: Any = None,
        files: Mapping[str, Any] | None = None,
        data: Mapping[str, Any] | None = None,
        skip_auth: bool = False,
        skip_refresh: bool = False,
    ) -> Any:
        """Issue one logical request and return its decoded result.

        ``json`` bodies are serialized with a JSON content type. ``files`` and
        ``data`` form a multipart body whose content type (and boundary) is
        left to the transport.
        """
        headers: Dict[str, str] = {}
        sent_token: Optional[str] = None
        if not skip_auth and self._session.access_token:
            sent_token = self._session.access_token
            headers["Authorization"] = f"Bearer {sent_token}"

        request_kwargs: Dict[str, Any] = {}
        if files is not None or data is not None:
            request_kwargs["files"] = files
            request_kwargs["data"] = data
        elif json is not None:
            request_kwargs["json"] = json

        try:
            response = await self._http.request(
                method, path, headers=headers, **request_kwargs
            )
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed without a response: %s", method, path, exc)
            raise NetworkError(f"Unable to reach the compliance service: {exc}") from exc

        logger.debug("%s %s -> %s", method, path, response.status_code)

        if response.status_code == httpx.codes.UNAUTHORIZED and not skip_auth:
            if skip_refresh:
                logger.warning("%s %s rejected after token refresh", method, path)
                self._session.clear()
                raise SessionExpired(SESSION_EXPIRED_MESSAGE, status_code=401)
            refreshed = await self.refresh_access_token(rejected_token=sent_token)
            if not refreshed:
                raise SessionExpired(SESSION_EXPIRED_MESSAGE, status_code=401)
            return await self.call(
                path,
                method=method,
                json=json,
                files=files,
                data=data,
                skip_auth=skip_auth,
                skip_refresh=True,
            )

        if response.status_code == httpx.codes.NO_CONTENT:
            return dict(NO_CONTENT_RESULT)

        if not response.is_success:
            message, payload = extract_error_message(response)
            logger.warning("%s %s returned %s: %s", method, path, response.status_code, message)
            not_found = response.status_code == httpx.codes.NOT_FOUND
            error_cls = NotFound if not_found else RequestFailed
            raise error_cls(message, status_code=response.status_code, payload=payload)

        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                return response.json()
            except ValueError as exc:
                raise RequestFailed(
                    "Malformed JSON in response.", status_code=response.status_code
                ) from exc
        return dict(EMPTY_RESULT)

    async def refresh_access_token(self, *, rejected_token: Optional[str] = None) -> bool:
        """Refresh the access token, sharing one in-flight attempt across callers.

        ``rejected_token`` is the token the caller's request carried. When the
        session already holds a different one, a refresh completed after that
        request was sent and the caller can retry without starting another.
        """
        if self._refresh_task is None:
            current = self._session.access_token
            if current is not None and current != rejected_token:
                return True
            task = asyncio.create_task(self._perform_refresh())
            task.add_done_callback(self._forget_refresh)
            self._refresh_task = task
        return await asyncio.shield(self._refresh_task)

    def _forget_refresh(self, task: "asyncio.Task[bool]") -> None:
        if self._refresh_task is task:
            self._refresh_task = None

    async def _perform_refresh(self) -> bool:
        refresh_token = self._session.refresh_token
        if not refresh_token:
            logger.info("No refresh token available; session cannot be renewed")
            self._session.clear()
            return False

        logger.info("Access token rejected; refreshing")
        try:
            payload = await self.call(
                self.REFRESH_PATH,
                method="POST",
                json={"refresh": refresh_token},
                skip_auth=True,
                skip_refresh=True,
            )
        except ComplianceClientError as exc:
            logger.warning("Token refresh failed: %s", exc.message)
            self._discard_session(refresh_token)
            return False

        access_token = payload.get("access") if isinstance(payload, dict) else None
        if not access_token:
            logger.warning("Token refresh response did not include an access token")
            self._discard_session(refresh_token)
            return False

        if self._session.refresh_token != refresh_token:
            # Logged out or logged in again while the refresh was in flight.
            return self._session.access_token is not None

        self._session.replace_access_token(access_token)
        logger.info("Access token refreshed")
        return True

    def _discard_session(self, refresh_token: str) -> None:
        if self._session.refresh_token == refresh_token:
            self._session.clear()


__all__ = [
    "EMPTY_RESULT",
    "GatewayClient",
    "NO_CONTENT_RESULT",
    "SESSION_EXPIRED_MESSAGE",
    "extract_error_message",
]
