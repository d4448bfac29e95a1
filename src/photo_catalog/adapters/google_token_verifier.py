"""Google ID token verification via the tokeninfo endpoint."""

import logging
from dataclasses import dataclass

import httpx

from photo_catalog.domain.errors import AuthenticationError
from photo_catalog.domain.users import UserInfo
from photo_catalog.services.auth import TokenVerifier

logger = logging.getLogger(__name__)

TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"


@dataclass
class GoogleTokenVerifier(TokenVerifier):
    """Token verifier using httpx."""

    client_id: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, client_id: str) -> "GoogleTokenVerifier":
        """Create a verifier with a managed httpx session."""
        return cls(client_id=client_id, http_client=httpx.AsyncClient())

    async def verify(self, token: str) -> UserInfo:
        """Check the token with Google and its audience against our client id."""
        try:
            response = await self.http_client.get(
                TOKENINFO_URL, params={"id_token": token}, timeout=10
            )
        except httpx.HTTPError as exc:
            logger.warning("Token verification request failed", exc_info=True)
            raise AuthenticationError("Failed to verify token") from exc
        if response.status_code != httpx.codes.OK:
            raise AuthenticationError("Invalid token")
        payload = response.json()
        if payload.get("aud") != self.client_id:
            raise AuthenticationError("Token was not issued for this application")
        email = payload.get("email")
        if not email:
            raise AuthenticationError("Token has no email claim")
        return UserInfo(
            email=email,
            name=payload.get("name"),
            picture=payload.get("picture"),
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
