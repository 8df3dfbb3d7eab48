"""Schemas related to authentication and the user profile."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class CredentialPair(BaseModel):
    """Access/refresh token pair issued by the token endpoint."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    access_token: str = Field(..., min_length=1, alias="access")
    refresh_token: str = Field(..., min_length=1, alias="refresh")

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["CredentialPair"]:
        """Return a pair when the payload carries both tokens, otherwise ``None``."""
        if not isinstance(payload, dict):
            return None
        access = payload.get("access")
        refresh = payload.get("refresh")
        if not access or not refresh:
            return None
        return cls(access=access, refresh=refresh)


class UserProfile(BaseModel):
    """Authenticated user as returned by ``GET /accounts/users/``."""

    model_config = ConfigDict(extra="ignore")

    id: int | str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.first_name and self.first_name.strip():
            return self.first_name.strip()
        local_part = self.email.split("@")[0] if self.email else ""
        return local_part or "User"


class RegistrationRequest(BaseModel):
    """Fields collected by the sign-up form."""

    email: str
    password: str
    password_confirm: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        """Body sent to the registration endpoint."""
        return self.model_dump(exclude_none=True)


__all__ = ["CredentialPair", "RegistrationRequest", "UserProfile"]
