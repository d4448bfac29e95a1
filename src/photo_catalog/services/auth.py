"""Bearer token verification interface."""

from typing import Protocol

from photo_catalog.domain.users import UserInfo


class TokenVerifier(Protocol):
    """Resolves an ID token to a verified user."""

    async def verify(self, token: str) -> UserInfo:
        """Return the user for a valid token or raise AuthenticationError."""
