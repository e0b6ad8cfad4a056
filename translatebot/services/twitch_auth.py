"""Twitch OAuth token endpoint client.

Only the two user-token calls the bot needs:
- refresh: exchange a refresh token for a new access token
- validate: check an access token and learn its remaining lifetime
"""

import logging
from dataclasses import dataclass

import httpx

from translatebot.errors import TokenExchangeError

logger = logging.getLogger(__name__)

OAUTH_BASE = "https://id.twitch.tv/oauth2"

# Lifetime assumed when the endpoint omits expires_in
DEFAULT_EXPIRES_IN = 14400


@dataclass
class TokenExchange:
    """Result of a successful refresh."""

    access_token: str
    refresh_token: str | None
    expires_in: int


@dataclass
class ValidatedToken:
    """Result of a successful validation."""

    user_id: str | None
    login: str | None
    expires_in: int | None
    scopes: list[str]


class TwitchAuthClient:
    """Client for the Twitch ``id.twitch.tv/oauth2`` endpoints.

    Manages a shared httpx client for connection reuse.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        *,
        base_url: str = OAUTH_BASE,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        if not client_id or not client_secret:
            raise ValueError("Twitch client_id and client_secret are required")

        self.client_id = client_id
        self.client_secret = client_secret
        self.base_url = base_url.rstrip("/")
        self._http = http or httpx.AsyncClient(timeout=10.0)

    async def close(self) -> None:
        """Close the shared HTTP client. Call on shutdown."""
        await self._http.aclose()

    async def refresh(self, refresh_token: str) -> TokenExchange:
        """Exchange ``refresh_token`` for a new access token.

        The refresh token itself may be rotated; ``TokenExchange.refresh_token``
        is ``None`` when the endpoint did not return one. Raises
        :class:`TokenExchangeError` on non-2xx or malformed responses; transport
        errors propagate as ``httpx.HTTPError``.
        """
        response = await self._http.post(
            f"{self.base_url}/token",
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            },
        )

        if not response.is_success:
            try:
                error_data = response.json() if response.text else {}
            except ValueError:
                error_data = {}
            error_msg = error_data.get("message") or f"HTTP {response.status_code}"
            raise TokenExchangeError(
                f"HTTP Error {response.status_code}: {error_msg}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise TokenExchangeError(f"Failed to parse token response: {e}") from e

        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not access_token:
            raise TokenExchangeError("Invalid token response: missing access_token")

        try:
            expires_in = int(data.get("expires_in") or DEFAULT_EXPIRES_IN)
        except (TypeError, ValueError) as e:
            raise TokenExchangeError(f"Invalid expires_in in token response: {e}") from e

        logger.debug("Successfully refreshed user access token")
        return TokenExchange(
            access_token=str(access_token),
            refresh_token=data.get("refresh_token") or None,
            expires_in=expires_in,
        )

    async def validate(self, access_token: str) -> ValidatedToken | None:
        """Validate ``access_token``. Returns ``None`` if it is rejected."""
        try:
            response = await self._http.get(
                f"{self.base_url}/validate",
                headers={"Authorization": f"OAuth {access_token}"},
            )
        except httpx.HTTPError as e:
            logger.warning(f"Token validation request failed: {type(e).__name__}: {e}")
            return None

        if response.status_code != 200:
            logger.info(f"Token validation rejected: HTTP {response.status_code}")
            return None

        data = response.json()
        expires_in = data.get("expires_in")
        return ValidatedToken(
            user_id=data.get("user_id"),
            login=data.get("login"),
            expires_in=int(expires_in) if expires_in is not None else None,
            scopes=list(data.get("scopes") or []),
        )
