"""Photo metadata persisted in a single composite-key table."""

from dataclasses import dataclass
from typing import Protocol

from photo_catalog.domain.photos import PhotoRecord, PhotoStatus

OWNER_PREFIX = "OWNER#"
PHOTO_PREFIX = "PHOTO#"

_RECORD_FIELDS = (
    "photo_id",
    "owner_id",
    "object_key",
    "created_at",
    "content_type",
    "filename",
    "title",
    "description",
    "processing_error",
    "enqueued_at",
)


@dataclass(frozen=True)
class TableKey:
    """Composite primary key of a table item."""

    partition: str
    sort: str


@dataclass(frozen=True)
class TableItem:
    """Key and attributes of a stored item."""

    key: TableKey
    attributes: dict[str, object]


@dataclass(frozen=True)
class QueryPage:
    """Items returned by a partition query and where to resume."""

    items: list[TableItem]
    continuation_key: TableKey | None = None


class TableStore(Protocol):
    """Key-value table keyed by (partition, sort)."""

    def put(self, key: TableKey, attributes: dict[str, object]) -> None:
        """Create or replace an item."""

    def get(self, key: TableKey) -> dict[str, object] | None:
        """Return item attributes, if present."""

    def query(  # noqa: PLR0913
        self,
        partition: str,
        *,
        limit: int,
        descending: bool = False,
        start_after: TableKey | None = None,
        filters: dict[str, str] | None = None,
    ) -> QueryPage:
        """Return up to limit items of a partition ordered by sort key."""

    def update(self, key: TableKey, changes: dict[str, object]) -> None:
        """Merge attribute changes into an existing item."""

    def delete(self, key: TableKey) -> bool:
        """Delete an item and return whether it existed."""


def owner_partition(owner_id: str) -> str:
    """Partition key holding all photos of one owner."""
    return f"{OWNER_PREFIX}{owner_id}"


def photo_index_key(owner_id: str, photo_id: str) -> TableKey:
    """Key of the index item pointing a photo id at its lookup key."""
    return TableKey(
        partition=f"{PHOTO_PREFIX}{photo_id}", sort=owner_partition(owner_id)
    )


@dataclass
class PhotoMetadataStore:
    """Maps photo records onto the table and keeps the photo-id index."""

    table: TableStore

    def create(self, record: PhotoRecord) -> None:
        """Write a new record and its photo-id index item."""
        self.table.put(
            _record_key(record.owner_id, record.lookup_key), _to_attributes(record)
        )
        self.table.put(
            photo_index_key(record.owner_id, record.photo_id),
            {"lookup_key": record.lookup_key},
        )

    def get(self, owner_id: str, lookup_key: str) -> PhotoRecord | None:
        """Return a record by lookup key within the owner's partition."""
        attributes = self.table.get(_record_key(owner_id, lookup_key))
        if attributes is None or attributes.get("owner_id") != owner_id:
            return None
        return _from_attributes(lookup_key, attributes)

    def find_by_photo_id(self, owner_id: str, photo_id: str) -> PhotoRecord | None:
        """Return a record by photo id, scoped to the owner."""
        pointer = self.table.get(photo_index_key(owner_id, photo_id))
        if pointer is not None:
            return self.get(owner_id, str(pointer["lookup_key"]))
        # Items written before the index existed only resolve by scanning.
        start_after: TableKey | None = None
        while True:
            page = self.table.query(
                owner_partition(owner_id),
                limit=100,
                start_after=start_after,
                filters={"photo_id": photo_id},
            )
            if page.items:
                item = page.items[0]
                return _from_attributes(item.key.sort, item.attributes)
            if page.continuation_key is None:
                return None
            start_after = page.continuation_key

    def list_page(
        self, owner_id: str, limit: int, start_after: TableKey | None = None
    ) -> tuple[list[PhotoRecord], TableKey | None]:
        """Return the owner's records newest first with a continuation key."""
        page = self.table.query(
            owner_partition(owner_id),
            limit=limit,
            descending=True,
            start_after=start_after,
        )
        records = [
            _from_attributes(item.key.sort, item.attributes) for item in page.items
        ]
        return records, page.continuation_key

    def mark_processing(self, owner_id: str, lookup_key: str) -> None:
        """Record that enrichment started."""
        self._update(owner_id, lookup_key, {"status": PhotoStatus.PROCESSING.value})

    def mark_completed(
        self, owner_id: str, lookup_key: str, title: str, description: str
    ) -> None:
        """Store enrichment results."""
        self._update(
            owner_id,
            lookup_key,
            {
                "status": PhotoStatus.COMPLETED.value,
                "title": title,
                "description": description,
                "processing_error": None,
            },
        )

    def mark_failed(self, owner_id: str, lookup_key: str, error: str) -> None:
        """Record an enrichment failure."""
        self._update(
            owner_id,
            lookup_key,
            {"status": PhotoStatus.FAILED.value, "processing_error": error},
        )

    def mark_enqueued(self, owner_id: str, lookup_key: str, enqueued_at: str) -> None:
        """Remember that an enrichment job was enqueued."""
        self._update(owner_id, lookup_key, {"enqueued_at": enqueued_at})

    def delete(self, owner_id: str, photo_id: str, lookup_key: str) -> bool:
        """Delete a record and its index item."""
        deleted = self.table.delete(_record_key(owner_id, lookup_key))
        self.table.delete(photo_index_key(owner_id, photo_id))
        return deleted

    def _update(
        self, owner_id: str, lookup_key: str, changes: dict[str, object]
    ) -> None:
        self.table.update(_record_key(owner_id, lookup_key), changes)


def _record_key(owner_id: str, lookup_key: str) -> TableKey:
    return TableKey(partition=owner_partition(owner_id), sort=lookup_key)


def _to_attributes(record: PhotoRecord) -> dict[str, object]:
    attributes: dict[str, object] = {
        name: getattr(record, name) for name in _RECORD_FIELDS
    }
    attributes["status"] = record.status.value
    return attributes


def _from_attributes(lookup_key: str, attributes: dict[str, object]) -> PhotoRecord:
    def optional(name: str) -> str | None:
        value = attributes.get(name)
        return None if value is None else str(value)

    return PhotoRecord(
        photo_id=str(attributes["photo_id"]),
        owner_id=str(attributes["owner_id"]),
        object_key=str(attributes["object_key"]),
        created_at=str(attributes["created_at"]),
        lookup_key=lookup_key,
        status=PhotoStatus(str(attributes["status"])),
        content_type=optional("content_type"),
        filename=optional("filename"),
        title=optional("title"),
        description=optional("description"),
        processing_error=optional("processing_error"),
        enqueued_at=optional("enqueued_at"),
    )
