"""Object storage interface for photo bytes."""

from pathlib import PurePosixPath
from typing import Protocol

from photo_catalog.domain.errors import ValidationError


class ObjectStore(Protocol):
    """Blob store holding uploaded photo bytes."""

    def put(self, key: str, data: bytes, content_type: str) -> None:
        """Store bytes under a key."""

    def get(self, key: str) -> bytes | None:
        """Return the stored bytes, or None when the key is absent."""

    def delete(self, key: str) -> None:
        """Delete an object; absent keys and transient errors are ignored."""

    def sign_url(
        self,
        key: str,
        method: str,
        ttl_seconds: int,
        content_type: str | None = None,
    ) -> str:
        """Return a time-limited URL for GET or PUT on the key."""


def build_object_key(owner_id: str, photo_id: str, filename: str) -> str:
    """Return the object key for an owner's photo."""
    name = PurePosixPath(filename.replace("\\", "/")).name
    if not name or name in {".", ".."}:
        raise ValidationError("filename is required")
    return f"{owner_id}/{photo_id}/{name}"


def parse_object_key(key: str) -> tuple[str, str, str]:
    """Split an object key into owner id, photo id and filename."""
    parts = key.split("/", maxsplit=2)
    if len(parts) != 3 or not all(parts):  # noqa: PLR2004
        raise ValidationError(f"unrecognized object key: {key}")
    owner_id, photo_id, filename = parts
    return owner_id, photo_id, filename
