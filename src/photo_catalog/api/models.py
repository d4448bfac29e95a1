"""Request and response models for the photo API."""

from pydantic import BaseModel, Field

from photo_catalog.domain.photos import PhotoRecord, PhotoStatus


class UploadUrlRequest(BaseModel):
    """Body for requesting a signed upload URL."""

    filename: str = Field(min_length=1, max_length=255)
    content_type: str = Field(min_length=1, max_length=100)


class UploadUrlResponse(BaseModel):
    """Signed upload target."""

    photo_id: str
    lookup_key: str
    upload_url: str
    status: PhotoStatus


class DirectUploadRequest(BaseModel):
    """Body carrying base64 image data, optionally as a data URL."""

    image_data: str = Field(min_length=1)
    filename: str = Field(min_length=1, max_length=255)
    content_type: str = Field(min_length=1, max_length=100)


class PhotoResponse(BaseModel):
    """Photo metadata as returned to clients."""

    photo_id: str
    owner_id: str
    object_key: str
    created_at: str
    lookup_key: str
    status: PhotoStatus
    content_type: str | None = None
    title: str | None = None
    description: str | None = None
    processing_error: str | None = None

    @classmethod
    def from_record(cls, record: PhotoRecord) -> "PhotoResponse":
        """Build a response from a domain record."""
        return cls(
            photo_id=record.photo_id,
            owner_id=record.owner_id,
            object_key=record.object_key,
            created_at=record.created_at,
            lookup_key=record.lookup_key,
            status=record.status,
            content_type=record.content_type,
            title=record.title,
            description=record.description,
            processing_error=record.processing_error,
        )


class DirectUploadResponse(PhotoResponse):
    """Stored photo with a URL for immediate display."""

    view_url: str


class PhotoListResponse(BaseModel):
    """One page of photos."""

    photos: list[PhotoResponse]
    next_token: str | None = None


class PhotoStatusResponse(BaseModel):
    """Enrichment status of one photo."""

    photo_id: str
    status: PhotoStatus
    created_at: str
    title: str | None = None
    description: str | None = None
    processing_error: str | None = None


class PhotoUrlResponse(BaseModel):
    """Fresh signed view URL."""

    presigned_url: str


class S3EventObject(BaseModel):
    key: str


class S3EventEntity(BaseModel):
    object: S3EventObject


class S3EventRecord(BaseModel):
    event_name: str | None = Field(default=None, alias="eventName")
    s3: S3EventEntity


class S3EventNotification(BaseModel):
    """Subset of an S3 event notification payload."""

    records: list[S3EventRecord] = Field(default_factory=list, alias="Records")


class UserResponse(BaseModel):
    """Profile of the authenticated caller."""

    email: str
    name: str | None = None
    picture: str | None = None
