"""Photo catalog: uploads, listing, lookup and deletion."""

import asyncio
import base64
import binascii
import json
import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from photo_catalog.domain.errors import NotFoundError, StorageError, ValidationError
from photo_catalog.domain.photos import (
    DirectUpload,
    EnrichmentJob,
    PhotoPage,
    PhotoRecord,
    PhotoStatus,
    UploadTicket,
)
from photo_catalog.services.metadata import (
    PhotoMetadataStore,
    TableKey,
    owner_partition,
)
from photo_catalog.services.objects import (
    ObjectStore,
    build_object_key,
    parse_object_key,
)
from photo_catalog.services.queue import EnrichmentQueue

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
SIGNED_URL_TTL_SECONDS = 3600


def generate_photo_id() -> str:
    """Return 16 lowercase hex characters from 8 random bytes."""
    return secrets.token_hex(8)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class CatalogService:
    """Owns the photo lifecycle outside of enrichment."""

    metadata_store: PhotoMetadataStore
    object_store: ObjectStore
    queue: EnrichmentQueue
    url_ttl_seconds: int = SIGNED_URL_TTL_SECONDS
    max_page_size: int = 100
    clock: Callable[[], datetime] = _utc_now

    def begin_upload(
        self, owner_id: str, filename: str, content_type: str
    ) -> UploadTicket:
        """Create a pending record and a signed PUT URL for a client upload.

        Enrichment starts when the storage notification for the uploaded
        object reaches `handle_object_created`.
        """
        _require(owner_id=owner_id, filename=filename, content_type=content_type)
        record = self._new_record(owner_id, filename, content_type, enqueued_at=None)
        self.metadata_store.create(record)
        upload_url = self.object_store.sign_url(
            record.object_key,
            "PUT",
            self.url_ttl_seconds,
            content_type=content_type,
        )
        logger.info(
            "Issued upload url",
            extra={"photo_id": record.photo_id, "owner_id": owner_id},
        )
        return UploadTicket(
            photo_id=record.photo_id,
            lookup_key=record.lookup_key,
            upload_url=upload_url,
        )

    async def upload_direct(
        self, owner_id: str, data: bytes, filename: str, content_type: str
    ) -> DirectUpload:
        """Store bytes and metadata, enqueue enrichment, return a view URL."""
        _require(owner_id=owner_id, filename=filename, content_type=content_type)
        if not content_type.startswith("image/"):
            raise ValidationError("Content type must be an image")
        if not data:
            raise ValidationError("Image data is required")
        record = self._new_record(
            owner_id, filename, content_type, enqueued_at=self.clock().isoformat()
        )
        await asyncio.to_thread(
            self.object_store.put, record.object_key, data, content_type
        )
        try:
            await asyncio.to_thread(self.metadata_store.create, record)
        except StorageError:
            await asyncio.to_thread(self.object_store.delete, record.object_key)
            raise
        try:
            await self.queue.enqueue(_job_for(record))
        except StorageError as exc:
            logger.exception(
                "Failed to enqueue enrichment", extra={"photo_id": record.photo_id}
            )
            await asyncio.to_thread(
                self.metadata_store.mark_failed,
                owner_id,
                record.lookup_key,
                f"failed to enqueue enrichment: {exc}",
            )
            raise
        view_url = self.object_store.sign_url(
            record.object_key, "GET", self.url_ttl_seconds
        )
        logger.info(
            "Stored photo",
            extra={"photo_id": record.photo_id, "owner_id": owner_id},
        )
        return DirectUpload(record=record, view_url=view_url)

    def list_photos(
        self,
        owner_id: str,
        page_size: int = DEFAULT_PAGE_SIZE,
        page_token: str | None = None,
    ) -> PhotoPage:
        """Return one page of the owner's photos, newest first."""
        _require(owner_id=owner_id)
        if page_size < 1 or page_size > self.max_page_size:
            raise ValidationError(
                f"page_size must be between 1 and {self.max_page_size}"
            )
        start_after = None
        if page_token:
            start_after = decode_page_token(page_token)
            if start_after.partition != owner_partition(owner_id):
                raise ValidationError("invalid page token")
        photos, continuation_key = self.metadata_store.list_page(
            owner_id, page_size, start_after
        )
        next_token = encode_page_token(continuation_key) if continuation_key else None
        return PhotoPage(photos=photos, next_page_token=next_token)

    def get_by_lookup_key(self, owner_id: str, lookup_key: str) -> PhotoRecord | None:
        """Return the owner's record for a lookup key, if present."""
        _require(owner_id=owner_id, lookup_key=lookup_key)
        return self.metadata_store.get(owner_id, lookup_key)

    def get_photo_url(self, owner_id: str, lookup_key: str) -> str:
        """Return a fresh signed GET URL for the owner's photo."""
        record = self.get_by_lookup_key(owner_id, lookup_key)
        if record is None:
            raise NotFoundError("Photo not found")
        return self.object_store.sign_url(
            record.object_key, "GET", self.url_ttl_seconds
        )

    def delete_photo(self, owner_id: str, lookup_key: str) -> bool:
        """Delete the photo bytes and metadata; False when nothing matched."""
        record = self.get_by_lookup_key(owner_id, lookup_key)
        if record is None:
            return False
        self.object_store.delete(record.object_key)
        deleted = self.metadata_store.delete(owner_id, record.photo_id, lookup_key)
        logger.info(
            "Deleted photo",
            extra={"photo_id": record.photo_id, "deleted": deleted},
        )
        return deleted

    async def handle_object_created(self, object_key: str) -> bool:
        """Enqueue enrichment for an object uploaded through a signed URL.

        The enqueue time is recorded before the job is sent, so a worker that
        picks the job up immediately never has its result overwritten.
        """
        owner_id, photo_id, _ = parse_object_key(object_key)
        record = await asyncio.to_thread(
            self.metadata_store.find_by_photo_id, owner_id, photo_id
        )
        if record is None or record.object_key != object_key:
            raise NotFoundError("photo not found for owner")
        if record.enqueued_at is not None:
            return False
        enqueued_at = self.clock().isoformat()
        await asyncio.to_thread(
            self.metadata_store.mark_enqueued, owner_id, record.lookup_key, enqueued_at
        )
        try:
            await self.queue.enqueue(_job_for(record, enqueued_at))
        except StorageError as exc:
            logger.exception(
                "Failed to enqueue enrichment", extra={"photo_id": record.photo_id}
            )
            await asyncio.to_thread(
                self.metadata_store.mark_failed,
                owner_id,
                record.lookup_key,
                f"failed to enqueue enrichment: {exc}",
            )
            raise
        return True

    def _new_record(
        self,
        owner_id: str,
        filename: str,
        content_type: str,
        enqueued_at: str | None,
    ) -> PhotoRecord:
        photo_id = generate_photo_id()
        object_key = build_object_key(owner_id, photo_id, filename)
        now = self.clock()
        return PhotoRecord(
            photo_id=photo_id,
            owner_id=owner_id,
            object_key=object_key,
            created_at=now.isoformat(),
            lookup_key=f"{int(now.timestamp() * 1000)}#{photo_id}",
            status=PhotoStatus.PENDING,
            content_type=content_type,
            filename=object_key.rsplit("/", maxsplit=1)[-1],
            enqueued_at=enqueued_at,
        )


def encode_page_token(key: TableKey) -> str:
    """Encode a continuation key as an opaque page token."""
    raw = json.dumps({"pk": key.partition, "sk": key.sort}, separators=(",", ":"))
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")


def decode_page_token(token: str) -> TableKey:
    """Decode a page token produced by `encode_page_token`."""
    try:
        payload = json.loads(base64.urlsafe_b64decode(token.encode("ascii")))
        return TableKey(partition=str(payload["pk"]), sort=str(payload["sk"]))
    except (binascii.Error, UnicodeError, ValueError, KeyError, TypeError) as exc:
        raise ValidationError("invalid page token") from exc


def _job_for(record: PhotoRecord, enqueued_at: str | None = None) -> EnrichmentJob:
    return EnrichmentJob(
        photo_id=record.photo_id,
        owner_id=record.owner_id,
        object_key=record.object_key,
        enqueued_at=enqueued_at or record.enqueued_at or record.created_at,
    )


def _require(**values: str) -> None:
    for name, value in values.items():
        if not value or not value.strip():
            raise ValidationError(f"{name} is required")
