"""Shared test fixtures."""

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest

from photo_catalog.config import Settings
from photo_catalog.containers import AppContainer
from photo_catalog.domain.errors import (
    AuthenticationError,
    NotFoundError,
    StorageError,
)
from photo_catalog.domain.photos import EnrichmentJob
from photo_catalog.domain.users import UserInfo
from photo_catalog.services.auth import TokenVerifier
from photo_catalog.services.catalog import CatalogService
from photo_catalog.services.enrichment import EnrichmentWorker
from photo_catalog.services.metadata import (
    PhotoMetadataStore,
    QueryPage,
    TableItem,
    TableKey,
    TableStore,
)
from photo_catalog.services.objects import ObjectStore
from photo_catalog.services.queue import EnrichmentQueue, JobHandler
from photo_catalog.services.vision import CaptionService, VisionClient

JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"fake-jpeg-body"


@dataclass
class InMemoryTableStore(TableStore):
    """In-memory composite-key table for tests."""

    partitions: dict[str, dict[str, dict[str, object]]] = field(default_factory=dict)

    def put(self, key: TableKey, attributes: dict[str, object]) -> None:
        self.partitions.setdefault(key.partition, {})[key.sort] = dict(attributes)

    def get(self, key: TableKey) -> dict[str, object] | None:
        attributes = self.partitions.get(key.partition, {}).get(key.sort)
        return None if attributes is None else dict(attributes)

    def query(  # noqa: PLR0913
        self,
        partition: str,
        *,
        limit: int,
        descending: bool = False,
        start_after: TableKey | None = None,
        filters: dict[str, str] | None = None,
    ) -> QueryPage:
        rows = sorted(self.partitions.get(partition, {}).items(), reverse=descending)
        if start_after is not None:
            rows = [
                (sort, attributes)
                for sort, attributes in rows
                if (sort < start_after.sort if descending else sort > start_after.sort)
            ]
        for name, value in (filters or {}).items():
            rows = [
                (sort, attributes)
                for sort, attributes in rows
                if str(attributes.get(name)) == value
            ]
        items = [
            TableItem(key=TableKey(partition, sort), attributes=dict(attributes))
            for sort, attributes in rows[:limit]
        ]
        continuation_key = items[-1].key if len(rows) > limit else None
        return QueryPage(items=items, continuation_key=continuation_key)

    def update(self, key: TableKey, changes: dict[str, object]) -> None:
        current = self.partitions.get(key.partition, {}).get(key.sort)
        if current is None:
            raise NotFoundError(f"no item for {key.partition}/{key.sort}")
        current.update(changes)

    def delete(self, key: TableKey) -> bool:
        return self.partitions.get(key.partition, {}).pop(key.sort, None) is not None


@dataclass
class InMemoryObjectStore(ObjectStore):
    """In-memory object store that signs fake URLs."""

    objects: dict[str, tuple[bytes, str]] = field(default_factory=dict)
    deleted: list[str] = field(default_factory=list)

    def put(self, key: str, data: bytes, content_type: str) -> None:
        self.objects[key] = (data, content_type)

    def get(self, key: str) -> bytes | None:
        stored = self.objects.get(key)
        return None if stored is None else stored[0]

    def delete(self, key: str) -> None:
        self.deleted.append(key)
        self.objects.pop(key, None)

    def sign_url(
        self,
        key: str,
        method: str,
        ttl_seconds: int,
        content_type: str | None = None,
    ) -> str:
        return f"https://storage.test/{key}?method={method}&ttl={ttl_seconds}"


@dataclass
class InMemoryQueue(EnrichmentQueue):
    """Queue that holds jobs until the test delivers them."""

    jobs: list[tuple[EnrichmentJob, int]] = field(default_factory=list)
    handler: JobHandler | None = None
    failures: list[Exception] = field(default_factory=list)
    fail_enqueue: bool = False

    async def enqueue(self, job: EnrichmentJob, delay_seconds: int = 0) -> None:
        if self.fail_enqueue:
            raise StorageError("queue send failed")
        self.jobs.append((job, delay_seconds))

    def subscribe(self, handler: JobHandler) -> None:
        self.handler = handler

    async def run(self) -> None:
        await self.deliver_all()

    async def deliver_all(self) -> None:
        """Hand every pending job to the handler, recording failures."""
        assert self.handler is not None
        while self.jobs:
            job, _ = self.jobs.pop(0)
            try:
                await self.handler(job)
            except Exception as exc:  # noqa: BLE001
                self.failures.append(exc)


@dataclass
class FakeVisionClient(VisionClient):
    """Fake vision client returning a fixed answer or raising."""

    payload: dict[str, object] = field(
        default_factory=lambda: {
            "title": "Golden Sunset Over Calm Ocean",
            "description": "A vivid orange sunset reflecting on still water.",
        }
    )
    raw: str | None = None
    error: Exception | None = None
    calls: list[dict[str, object]] = field(default_factory=list)

    async def complete(
        self, *, image_data_url: str, prompt: str, schema: dict[str, object]
    ) -> str:
        self.calls.append(
            {"image_data_url": image_data_url, "prompt": prompt, "schema": schema}
        )
        if self.error is not None:
            raise self.error
        if self.raw is not None:
            return self.raw
        return json.dumps(self.payload)


@dataclass
class FakeTokenVerifier(TokenVerifier):
    """Token verifier with a fixed token table."""

    users: dict[str, UserInfo] = field(
        default_factory=lambda: {
            "alice-token": UserInfo(email="alice@example.com", name="Alice"),
            "bob-token": UserInfo(email="bob@example.com", name="Bob"),
        }
    )

    async def verify(self, token: str) -> UserInfo:
        user = self.users.get(token)
        if user is None:
            raise AuthenticationError("Invalid token")
        return user


@dataclass
class TickingClock:
    """Clock that advances one second per reading."""

    current: datetime = field(
        default_factory=lambda: datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
    )

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        s3_bucket="photos-test",
        openai_api_key="openai-key",
        google_oauth_client_id="client-id.apps.googleusercontent.com",
        storage_webhook_token="storage-token",
    )


@pytest.fixture
def table_store() -> InMemoryTableStore:
    return InMemoryTableStore()


@pytest.fixture
def metadata_store(table_store: InMemoryTableStore) -> PhotoMetadataStore:
    return PhotoMetadataStore(table_store)


@pytest.fixture
def object_store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def queue() -> InMemoryQueue:
    return InMemoryQueue()


@pytest.fixture
def vision_client() -> FakeVisionClient:
    return FakeVisionClient()


@pytest.fixture
def catalog_service(
    metadata_store: PhotoMetadataStore,
    object_store: InMemoryObjectStore,
    queue: InMemoryQueue,
) -> CatalogService:
    return CatalogService(
        metadata_store=metadata_store,
        object_store=object_store,
        queue=queue,
        clock=TickingClock(),
    )


@pytest.fixture
def enrichment_worker(
    metadata_store: PhotoMetadataStore,
    object_store: InMemoryObjectStore,
    vision_client: FakeVisionClient,
) -> EnrichmentWorker:
    return EnrichmentWorker(
        metadata_store=metadata_store,
        object_store=object_store,
        caption_service=CaptionService(vision_client),
    )


@pytest.fixture
def closed() -> list[bool]:
    return []


@pytest.fixture
def container(
    settings: Settings,
    catalog_service: CatalogService,
    enrichment_worker: EnrichmentWorker,
    queue: InMemoryQueue,
    closed: list[bool],
) -> AppContainer:
    async def close_resources() -> None:
        closed.append(True)

    return AppContainer(
        settings=settings,
        catalog_service=catalog_service,
        enrichment_worker=enrichment_worker,
        enrichment_queue=queue,
        token_verifier=FakeTokenVerifier(),
        close_resources=close_resources,
    )
