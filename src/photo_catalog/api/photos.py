"""Photo endpoints authenticated with Google ID tokens."""

from __future__ import annotations

import base64
import binascii
import re
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response, status

from photo_catalog.api.models import (
    DirectUploadRequest,
    DirectUploadResponse,
    PhotoListResponse,
    PhotoResponse,
    PhotoStatusResponse,
    PhotoUrlResponse,
    UploadUrlRequest,
    UploadUrlResponse,
)
from photo_catalog.domain.errors import AuthenticationError
from photo_catalog.domain.users import UserInfo

if TYPE_CHECKING:
    from photo_catalog.containers import AppContainer

router = APIRouter(prefix="/api/photos", tags=["photos"])

_DATA_URL_PREFIX = re.compile(r"^data:image/[a-zA-Z0-9.+-]+;base64,")


def _container(request: Request) -> AppContainer:
    return request.app.state.container


def bearer_token(authorization: str | None) -> str | None:
    """Return the token of an `Authorization: Bearer` header, if any."""
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    return authorization.split(" ", maxsplit=1)[1].strip() or None


async def require_user(
    request: Request, authorization: str | None = Header(default=None)
) -> UserInfo:
    """Resolve the caller from an `Authorization: Bearer` header."""
    token = bearer_token(authorization)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    try:
        return await _container(request).token_verifier.verify(token)
    except AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)
        ) from exc


@router.post("/upload-url")
def create_upload_url(
    body: UploadUrlRequest, request: Request, user: UserInfo = Depends(require_user)
) -> UploadUrlResponse:
    """Create a pending photo and a signed URL for a client-side upload."""
    ticket = _container(request).catalog_service.begin_upload(
        user.email, body.filename, body.content_type
    )
    return UploadUrlResponse(
        photo_id=ticket.photo_id,
        lookup_key=ticket.lookup_key,
        upload_url=ticket.upload_url,
        status=ticket.status,
    )


@router.post("/upload")
async def upload_photo(
    body: DirectUploadRequest,
    request: Request,
    user: UserInfo = Depends(require_user),
) -> DirectUploadResponse:
    """Upload base64 image data and queue it for enrichment."""
    encoded = _DATA_URL_PREFIX.sub("", body.image_data.strip())
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid base64 image data",
        ) from exc
    upload = await _container(request).catalog_service.upload_direct(
        user.email, data, body.filename, body.content_type
    )
    return DirectUploadResponse(
        **PhotoResponse.from_record(upload.record).model_dump(),
        view_url=upload.view_url,
    )


@router.get("")
def list_photos(
    request: Request,
    page_size: int | None = None,
    next_token: str | None = None,
    user: UserInfo = Depends(require_user),
) -> PhotoListResponse:
    """List the caller's photos, newest first."""
    container = _container(request)
    if page_size is None:
        page_size = container.settings.default_page_size
    page = container.catalog_service.list_photos(user.email, page_size, next_token)
    return PhotoListResponse(
        photos=[PhotoResponse.from_record(photo) for photo in page.photos],
        next_token=page.next_page_token,
    )


@router.get("/{lookup_key}/status")
def photo_status(
    lookup_key: str, request: Request, user: UserInfo = Depends(require_user)
) -> PhotoStatusResponse:
    """Return the enrichment status of a photo."""
    record = _container(request).catalog_service.get_by_lookup_key(
        user.email, lookup_key
    )
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Photo not found"
        )
    return PhotoStatusResponse(
        photo_id=record.photo_id,
        status=record.status,
        created_at=record.created_at,
        title=record.title,
        description=record.description,
        processing_error=record.processing_error,
    )


@router.get("/{lookup_key}/url")
def photo_url(
    lookup_key: str, request: Request, user: UserInfo = Depends(require_user)
) -> PhotoUrlResponse:
    """Return a fresh signed view URL."""
    url = _container(request).catalog_service.get_photo_url(user.email, lookup_key)
    return PhotoUrlResponse(presigned_url=url)


@router.delete("/{lookup_key}", status_code=status.HTTP_204_NO_CONTENT)
def delete_photo(
    lookup_key: str, request: Request, user: UserInfo = Depends(require_user)
) -> Response:
    """Delete a photo and its stored bytes."""
    deleted = _container(request).catalog_service.delete_photo(user.email, lookup_key)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Photo not found or could not be deleted",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
