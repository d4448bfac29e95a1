"""Storage notification webhook with simple token auth."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import unquote_plus

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from photo_catalog.api.models import S3EventNotification
from photo_catalog.domain.errors import NotFoundError, ValidationError

if TYPE_CHECKING:
    from photo_catalog.containers import AppContainer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/storage", tags=["storage"])


def _get_webhook_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.storage_webhook_token


async def require_storage_token(
    x_storage_token: str | None = Header(default=None),
    webhook_token: str = Depends(_get_webhook_token),
) -> None:
    """Ensure notifications carry the shared webhook token."""
    if not x_storage_token or x_storage_token != webhook_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.post(
    "/object-created",
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[Depends(require_storage_token)],
)
async def object_created(
    notification: S3EventNotification, request: Request
) -> dict[str, int]:
    """Queue enrichment for objects uploaded through signed URLs."""
    container: AppContainer = request.app.state.container
    enqueued = 0
    for record in notification.records:
        object_key = unquote_plus(record.s3.object.key)
        try:
            if await container.catalog_service.handle_object_created(object_key):
                enqueued += 1
        except (NotFoundError, ValidationError):
            logger.warning(
                "Ignoring notification for unknown object",
                extra={"object_key": object_key},
            )
    return {"received": len(notification.records), "enqueued": enqueued}
