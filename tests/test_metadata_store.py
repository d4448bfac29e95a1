"""Tests for the photo metadata store."""

import pytest

from photo_catalog.domain.errors import NotFoundError
from photo_catalog.domain.photos import PhotoRecord, PhotoStatus
from photo_catalog.services.metadata import (
    PhotoMetadataStore,
    TableKey,
    owner_partition,
    photo_index_key,
)
from tests.conftest import InMemoryTableStore


def _record(photo_id: str, millis: int, owner_id: str = "alice") -> PhotoRecord:
    return PhotoRecord(
        photo_id=photo_id,
        owner_id=owner_id,
        object_key=f"{owner_id}/{photo_id}/photo.jpg",
        created_at="2024-05-01T12:00:00+00:00",
        lookup_key=f"{millis}#{photo_id}",
        status=PhotoStatus.PENDING,
        content_type="image/jpeg",
        filename="photo.jpg",
    )


def test_create_writes_record_and_index_item(
    metadata_store: PhotoMetadataStore, table_store: InMemoryTableStore
) -> None:
    record = _record("a1", 1000)
    metadata_store.create(record)

    stored = table_store.get(TableKey(owner_partition("alice"), "1000#a1"))
    pointer = table_store.get(photo_index_key("alice", "a1"))

    assert stored is not None
    assert stored["status"] == "pending"
    assert pointer == {"lookup_key": "1000#a1"}
    assert metadata_store.get("alice", "1000#a1") == record


def test_get_is_scoped_to_owner(metadata_store: PhotoMetadataStore) -> None:
    metadata_store.create(_record("a1", 1000))

    assert metadata_store.get("bob", "1000#a1") is None
    assert metadata_store.find_by_photo_id("bob", "a1") is None


def test_find_by_photo_id_scans_when_index_item_is_missing(
    metadata_store: PhotoMetadataStore, table_store: InMemoryTableStore
) -> None:
    for index in range(150):
        metadata_store.create(_record(f"p{index:03d}", 1000 + index))
    table_store.delete(photo_index_key("alice", "p005"))

    found = metadata_store.find_by_photo_id("alice", "p005")

    assert found is not None
    assert found.lookup_key == "1005#p005"
    assert metadata_store.find_by_photo_id("alice", "missing") is None


def test_list_page_is_newest_first_with_continuation(
    metadata_store: PhotoMetadataStore,
) -> None:
    for index in range(3):
        metadata_store.create(_record(f"p{index}", 1000 + index))

    first, continuation = metadata_store.list_page("alice", 2)
    second, final = metadata_store.list_page("alice", 2, continuation)

    assert [record.photo_id for record in first] == ["p2", "p1"]
    assert [record.photo_id for record in second] == ["p0"]
    assert final is None


def test_status_updates_merge_into_record(metadata_store: PhotoMetadataStore) -> None:
    metadata_store.create(_record("a1", 1000))

    metadata_store.mark_processing("alice", "1000#a1")
    metadata_store.mark_failed("alice", "1000#a1", "timeout")
    failed = metadata_store.get("alice", "1000#a1")
    metadata_store.mark_completed("alice", "1000#a1", "Title", "Description")
    completed = metadata_store.get("alice", "1000#a1")

    assert failed is not None
    assert failed.status is PhotoStatus.FAILED
    assert failed.processing_error == "timeout"
    assert completed is not None
    assert completed.status is PhotoStatus.COMPLETED
    assert completed.title == "Title"
    assert completed.processing_error is None
    assert completed.object_key == "alice/a1/photo.jpg"


def test_update_of_deleted_record_raises(metadata_store: PhotoMetadataStore) -> None:
    metadata_store.create(_record("a1", 1000))

    assert metadata_store.delete("alice", "a1", "1000#a1") is True
    assert metadata_store.delete("alice", "a1", "1000#a1") is False
    with pytest.raises(NotFoundError):
        metadata_store.mark_processing("alice", "1000#a1")
    assert metadata_store.find_by_photo_id("alice", "a1") is None
