"""
Session state: the persisted credential pair and the authenticated profile.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Optional

from compliance_client.clients.credential_store import CredentialStore
from compliance_client.schemas import CredentialPair, UserProfile

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from compliance_client.clients.compliance_api import ComplianceAPI

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    BOOTSTRAPPING = "bootstrapping"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


class SessionStore:
    """Single source of truth for who is logged in.

    The credential pair is only ever replaced as a whole, so an access token
    from one generation is never paired with a refresh token from another.
    This is the only writer of the persisted token keys.
    """

    def __init__(self, store: CredentialStore) -> None:
        self._store = store
        self._credentials: Optional[CredentialPair] = store.load()
        self._profile: Optional[UserProfile] = None
        self._state = SessionState.BOOTSTRAPPING

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def loading(self) -> bool:
        return self._state is SessionState.BOOTSTRAPPING

    @property
    def is_authenticated(self) -> bool:
        return self._state is SessionState.AUTHENTICATED

    @property
    def profile(self) -> Optional[UserProfile]:
        return self._profile

    @property
    def credentials(self) -> Optional[CredentialPair]:
        return self._credentials

    @property
    def access_token(self) -> Optional[str]:
        return self._credentials.access_token if self._credentials else None

    @property
    def refresh_token(self) -> Optional[str]:
        return self._credentials.refresh_token if self._credentials else None

    async def bootstrap(self, api: "ComplianceAPI") -> Optional[UserProfile]:
        """Restore the session from persisted credentials.

        Never raises: any failure leaves the session anonymous.
        """
        if self._state is not SessionState.BOOTSTRAPPING:
            return self._profile
        if self._credentials is None:
            self._state = SessionState.ANONYMOUS
            return None
        try:
            profile = await api.current_user()
        except Exception as exc:  # pragma: no cover - defensive
            logger.warning("Session bootstrap failed, continuing anonymously: %s", exc)
            self.clear()
            return None
        if self._credentials is None:
            # Cleared by a failed refresh while the profile was loading.
            self._state = SessionState.ANONYMOUS
            return None
        self._profile = profile
        self._state = SessionState.AUTHENTICATED
        logger.info("Session restored for %s", profile.email)
        return profile

    def set_session(self, profile: UserProfile, credentials: CredentialPair) -> None:
        """Store the profile and the credential pair together."""
        self._store.save(credentials)
        self._credentials = credentials
        self._profile = profile
        self._state = SessionState.AUTHENTICATED

    def store_credentials(self, credentials: CredentialPair) -> None:
        """Persist a freshly issued pair before the profile is known."""
        self._store.save(credentials)
        self._credentials = credentials

    def set_profile(self, profile: UserProfile) -> None:
        if self._credentials is None:
            raise ValueError("Cannot attach a profile to a session without credentials.")
        self._profile = profile
        self._state = SessionState.AUTHENTICATED

    def replace_access_token(self, access_token: str) -> bool:
        """Swap in a refreshed access token, keeping the current refresh token."""
        if self._credentials is None:
            return False
        updated = CredentialPair(
            access=access_token, refresh=self._credentials.refresh_token
        )
        self._store.save(updated)
        self._credentials = updated
        return True

    def clear(self) -> None:
        """Drop credentials and profile; safe to call repeatedly."""
        self._store.clear()
        if self._credentials is not None or self._profile is not None:
            logger.info("Session cleared")
        self._credentials = None
        self._profile = None
        self._state = SessionState.ANONYMOUS


__all__ = ["SessionState", "SessionStore"]
