"""OAuth credential model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class CredentialState:
    """Access/refresh token pair for the bot account.

    ``expires_at`` is an absolute epoch timestamp, ``None`` when unknown.
    """

    access_token: str
    refresh_token: str
    expires_at: float | None = None
    consecutive_refresh_failures: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "expiresAt": self.expires_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CredentialState:
        access = data.get("accessToken")
        refresh = data.get("refreshToken")
        if not access or not refresh:
            raise ValueError("Credential record is missing accessToken or refreshToken")
        expires_at = data.get("expiresAt")
        return cls(
            access_token=str(access),
            refresh_token=str(refresh),
            expires_at=float(expires_at) if expires_at is not None else None,
        )
