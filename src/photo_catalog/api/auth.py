"""Session endpoint for the signed-in user."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Header, Request

from photo_catalog.api.models import UserResponse
from photo_catalog.api.photos import bearer_token
from photo_catalog.domain.errors import AuthenticationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.get("/user")
async def current_user(
    request: Request, authorization: str | None = Header(default=None)
) -> UserResponse:
    """Verify the bearer token and return the caller's profile."""
    token = bearer_token(authorization)
    if token is None:
        raise AuthenticationError("Missing or invalid authorization token")
    try:
        user = await request.app.state.container.token_verifier.verify(token)
    except AuthenticationError as exc:
        logger.warning("Rejected token: %s", exc)
        raise AuthenticationError("Invalid or expired token") from exc
    return UserResponse(email=user.email, name=user.name, picture=user.picture)
