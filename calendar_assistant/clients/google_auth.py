"""Google OAuth token handling."""

from typing import Protocol

import httpx

from calendar_assistant.utils.logging import get_logger

logger = get_logger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_REVOKE_URL = "https://oauth2.googleapis.com/revoke"
CALENDAR_SCOPE = "https://www.googleapis.com/auth/calendar"


class IdentityError(Exception):
    """Token could not be obtained or revoked."""


def _json_body(response: httpx.Response) -> dict:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


class IdentityProvider(Protocol):
    """Issues and revokes the access token used for calendar calls."""

    async def request_token(self) -> str:
        """Return a valid access token."""
        ...

    async def revoke(self, token: str) -> None:
        """Revoke a previously issued token."""
        ...


async def revoke_token(token: str, transport: httpx.AsyncBaseTransport | None = None) -> None:
    """Revoke an access or refresh token at Google's revocation endpoint.

    Raises:
        IdentityError: If Google refuses the revocation or cannot be reached
    """
    try:
        async with httpx.AsyncClient(timeout=30.0, transport=transport) as client:
            response = await client.post(
                GOOGLE_REVOKE_URL,
                data={"token": token},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
    except httpx.HTTPError as e:
        logger.error(f"Token revocation request failed: {e}", exc_info=True)
        raise IdentityError(f"Token revocation failed: {e}") from e

    if response.status_code != 200:
        logger.error(f"Token revocation failed with HTTP {response.status_code}")
        raise IdentityError(f"Token revocation failed (HTTP {response.status_code})")

    logger.info("Access token revoked")


class StaticTokenProvider:
    """Wraps a token obtained elsewhere, e.g. by the browser's consent flow."""

    def __init__(self, access_token: str, transport: httpx.AsyncBaseTransport | None = None):
        if not access_token or not access_token.strip():
            raise IdentityError("An access token is required")
        self.access_token = access_token.strip()
        self.transport = transport

    async def request_token(self) -> str:
        return self.access_token

    async def revoke(self, token: str) -> None:
        await revoke_token(token, self.transport)


class RefreshTokenProvider:
    """Exchanges a stored refresh token for access tokens."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.transport = transport

    async def request_token(self) -> str:
        """Refresh and return a new access token.

        Raises:
            IdentityError: If the token endpoint rejects the refresh or cannot be reached
        """
        try:
            async with httpx.AsyncClient(timeout=30.0, transport=self.transport) as client:
                response = await client.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "refresh_token": self.refresh_token,
                        "grant_type": "refresh_token",
                    },
                )
        except httpx.HTTPError as e:
            logger.error(f"Token refresh request failed: {e}", exc_info=True)
            raise IdentityError(f"Token refresh failed: {e}") from e

        data = _json_body(response)
        if response.status_code != 200:
            logger.error(f"Token refresh failed with HTTP {response.status_code}: {data}")
            raise IdentityError(data.get("error_description", "Token refresh failed"))

        if "access_token" not in data:
            logger.error("Token endpoint response has no access_token")
            raise IdentityError("Token refresh failed")

        logger.info(f"Refreshed access token, expires in {data.get('expires_in', 3600)}s")
        return data["access_token"]

    async def revoke(self, token: str) -> None:
        await revoke_token(token, self.transport)
