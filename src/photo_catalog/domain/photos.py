"""Domain models for photos and enrichment jobs."""

from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel, Field


class PhotoStatus(StrEnum):
    """Enrichment status exposed to clients."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# failed -> processing and processing -> processing are the redelivery edges.
_TRANSITIONS: dict[PhotoStatus, set[PhotoStatus]] = {
    PhotoStatus.PENDING: {PhotoStatus.PROCESSING},
    PhotoStatus.PROCESSING: {
        PhotoStatus.PROCESSING,
        PhotoStatus.COMPLETED,
        PhotoStatus.FAILED,
    },
    PhotoStatus.FAILED: {PhotoStatus.PROCESSING},
    PhotoStatus.COMPLETED: set(),
}


def can_transition(current: PhotoStatus, target: PhotoStatus) -> bool:
    """Return true when a record may move from current to target status."""
    return target in _TRANSITIONS[current]


@dataclass(frozen=True)
class PhotoRecord:
    """Persisted photo metadata."""

    photo_id: str
    owner_id: str
    object_key: str
    created_at: str
    lookup_key: str
    status: PhotoStatus
    content_type: str | None = None
    filename: str | None = None
    title: str | None = None
    description: str | None = None
    processing_error: str | None = None
    enqueued_at: str | None = None


@dataclass(frozen=True)
class PhotoPage:
    """One page of an owner's photos, newest first."""

    photos: list[PhotoRecord]
    next_page_token: str | None = None


@dataclass(frozen=True)
class UploadTicket:
    """Signed upload target for a client-side upload."""

    photo_id: str
    lookup_key: str
    upload_url: str
    status: PhotoStatus = PhotoStatus.PENDING


@dataclass(frozen=True)
class DirectUpload:
    """Result of a server-side upload."""

    record: PhotoRecord
    view_url: str


class EnrichmentJob(BaseModel):
    """Queue message asking the worker to enrich one photo."""

    photo_id: str
    owner_id: str
    object_key: str
    enqueued_at: str
    attempt: int = Field(default=1, ge=1)


class PhotoCaption(BaseModel):
    """Title and description generated for a photo."""

    title: str
    description: str
