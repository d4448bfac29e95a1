"""Background enrichment of uploaded photos."""

import asyncio
import logging
from dataclasses import dataclass

from photo_catalog.domain.errors import NotFoundError, StorageError
from photo_catalog.domain.photos import EnrichmentJob, PhotoStatus, can_transition
from photo_catalog.services.metadata import PhotoMetadataStore
from photo_catalog.services.objects import ObjectStore
from photo_catalog.services.vision import CaptionService

logger = logging.getLogger(__name__)


@dataclass
class EnrichmentWorker:
    """Moves a photo from pending to completed or failed.

    Each status change is written before the next step starts, so a lookup
    always shows the latest known state. Errors are recorded on the photo
    and re-raised; retrying is left to the queue. Blocking store calls run
    in worker threads so concurrent jobs overlap.
    """

    metadata_store: PhotoMetadataStore
    object_store: ObjectStore
    caption_service: CaptionService

    async def handle(self, job: EnrichmentJob) -> None:
        """Enrich the photo referenced by a queue job."""
        record = await asyncio.to_thread(
            self.metadata_store.find_by_photo_id, job.owner_id, job.photo_id
        )
        if record is None:
            raise NotFoundError("photo not found for owner")
        if not can_transition(record.status, PhotoStatus.PROCESSING):
            logger.info(
                "Skipping job for photo that is already %s",
                record.status.value,
                extra={"photo_id": job.photo_id},
            )
            return

        owner_id, lookup_key = record.owner_id, record.lookup_key
        try:
            await asyncio.to_thread(
                self.metadata_store.mark_processing, owner_id, lookup_key
            )
            image_bytes = await asyncio.to_thread(self.object_store.get, job.object_key)
            if image_bytes is None:
                raise StorageError("failed to retrieve image")
            caption = await self.caption_service.describe(image_bytes, job.photo_id)
            await asyncio.to_thread(
                self.metadata_store.mark_completed,
                owner_id,
                lookup_key,
                caption.title,
                caption.description,
            )
        except Exception as exc:
            logger.exception(
                "Enrichment failed",
                extra={"photo_id": job.photo_id, "attempt": job.attempt},
            )
            await asyncio.to_thread(
                self.metadata_store.mark_failed,
                owner_id,
                lookup_key,
                str(exc) or type(exc).__name__,
            )
            raise
        logger.info(
            "Enrichment completed",
            extra={"photo_id": job.photo_id, "title": caption.title},
        )
