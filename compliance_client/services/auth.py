"""
Login, registration and logout built on the gateway and the session store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from compliance_client.clients.compliance_api import ComplianceAPI
from compliance_client.core.errors import (
    ComplianceClientError,
    InvalidCredentials,
    RequestFailed,
    SessionExpired,
    ValidationError,
)
from compliance_client.schemas import CredentialPair, RegistrationRequest, UserProfile
from compliance_client.services.session import SessionStore

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

_AUTH_MESSAGE_KEYS = ("detail", "non_field_errors")

SESSION_ENDED_MESSAGE = "Session ended while signing in."


@dataclass(slots=True)
class RegistrationResult:
    """Outcome of a sign-up call.

    ``profile`` is only set when the backend issued tokens and a session was
    established; otherwise the caller must log in explicitly.
    """

    payload: Dict[str, Any]
    profile: Optional[UserProfile] = None
    session_established: bool = False


@dataclass(slots=True)
class _FieldErrors:
    fields: Dict[str, List[str]] = field(default_factory=dict)

    def add(self, name: str, message: str) -> None:
        self.fields.setdefault(name, []).append(message)

    def raise_if_any(self) -> None:
        if not self.fields:
            return
        first = next(iter(self.fields.values()))[0]
        raise ValidationError(first, fields=self.fields)


def validate_registration(request: RegistrationRequest) -> None:
    """Reject a sign-up form locally before any network round trip."""
    errors = _FieldErrors()
    if not request.email.strip():
        errors.add("email", "Email is required")
    if request.password != request.password_confirm:
        errors.add("password_confirm", "Passwords do not match")
    if len(request.password) < MIN_PASSWORD_LENGTH:
        errors.add(
            "password", f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    errors.raise_if_any()


def _field_errors_from_payload(payload: Any) -> Dict[str, List[str]]:
    if not isinstance(payload, dict):
        return {}
    fields: Dict[str, List[str]] = {}
    for name, messages in payload.items():
        if name in ("detail", "error"):
            continue
        if isinstance(messages, str):
            messages = [messages]
        if isinstance(messages, list) and messages:
            fields[name] = [str(message) for message in messages]
    return fields


def _field_validation_error(exc: RequestFailed) -> Optional[ValidationError]:
    """Turn a 4xx carrying per-field messages into a ``ValidationError``."""
    if exc.status_code is None or not 400 <= exc.status_code < 500:
        return None
    fields = _field_errors_from_payload(exc.payload)
    if not fields:
        return None
    return ValidationError(
        exc.message, fields=fields, status_code=exc.status_code, payload=exc.payload
    )


def _is_authentication_failure(exc: RequestFailed) -> bool:
    """401, or a 400/403 whose body reports an account-level message."""
    if exc.status_code == 401:
        return True
    if exc.status_code in (400, 403) and isinstance(exc.payload, dict):
        return any(exc.payload.get(key) for key in _AUTH_MESSAGE_KEYS)
    return False


class AuthController:
    """Owns the session lifecycle for interactive sign-in flows."""

    def __init__(self, api: ComplianceAPI, session: SessionStore) -> None:
        self._api = api
        self._session = session
        self.loading = False
        self.last_error: Optional[str] = None

    @property
    def session(self) -> SessionStore:
        return self._session

    async def login(self, email: str, password: str) -> UserProfile:
        """Exchange email/password for tokens and load the profile."""
        self.loading = True
        self.last_error = None
        try:
            try:
                credentials = await self._api.obtain_tokens(email=email, password=password)
            except RequestFailed as exc:
                if _is_authentication_failure(exc):
                    raise InvalidCredentials(
                        exc.message, status_code=exc.status_code, payload=exc.payload
                    ) from exc
                field_error = _field_validation_error(exc)
                if field_error is not None:
                    raise field_error from exc
                raise
            profile = await self._establish_session(credentials)
            logger.info("Logged in as %s", profile.email)
            return profile
        except ComplianceClientError as exc:
            self.last_error = exc.message
            raise
        finally:
            self.loading = False

    async def register(self, request: RegistrationRequest) -> RegistrationResult:
        """Create an account, logging in implicitly when tokens come back."""
        self.last_error = None
        try:
            validate_registration(request)
        except ValidationError as exc:
            self.last_error = exc.message
            raise

        self.loading = True
        try:
            try:
                payload = await self._api.register_user(request.to_payload())
            except RequestFailed as exc:
                field_error = _field_validation_error(exc)
                if field_error is not None:
                    raise field_error from exc
                raise

            credentials = CredentialPair.from_payload(payload)
            if credentials is None:
                logger.info("Registered %s; explicit login required", request.email)
                return RegistrationResult(payload=payload)

            profile = await self._establish_session(credentials)
            logger.info("Registered and logged in as %s", profile.email)
            return RegistrationResult(
                payload=payload, profile=profile, session_established=True
            )
        except ComplianceClientError as exc:
            self.last_error = exc.message
            raise
        finally:
            self.loading = False

    def logout(self) -> None:
        """Forget the session locally; no network round trip."""
        self._session.clear()
        self.last_error = None

    async def _establish_session(self, credentials: CredentialPair) -> UserProfile:
        self._session.store_credentials(credentials)
        try:
            profile = await self._api.current_user()
        except ComplianceClientError:
            self._session.clear()
            raise
        if self._session.refresh_token != credentials.refresh_token:
            # Logged out (or signed in again) while the profile was loading.
            raise SessionExpired(SESSION_ENDED_MESSAGE)
        # The access token may have been refreshed while the profile loaded.
        self._session.set_profile(profile)
        return profile


__all__ = [
    "AuthController",
    "MIN_PASSWORD_LENGTH",
    "RegistrationResult",
    "validate_registration",
]
