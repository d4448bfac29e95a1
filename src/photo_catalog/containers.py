"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from photo_catalog.adapters.google_token_verifier import GoogleTokenVerifier
from photo_catalog.adapters.openai_vision_client import OpenAIVisionClient
from photo_catalog.adapters.s3_object_store import S3ObjectStore
from photo_catalog.adapters.supabase_queue import SupabaseEnrichmentQueue
from photo_catalog.adapters.supabase_table_store import SupabaseTableStore
from photo_catalog.config import Settings
from photo_catalog.services.auth import TokenVerifier
from photo_catalog.services.catalog import CatalogService
from photo_catalog.services.enrichment import EnrichmentWorker
from photo_catalog.services.metadata import PhotoMetadataStore
from photo_catalog.services.queue import EnrichmentQueue
from photo_catalog.services.vision import CaptionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    catalog_service: CatalogService
    enrichment_worker: EnrichmentWorker
    enrichment_queue: EnrichmentQueue
    token_verifier: TokenVerifier
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    metadata_store = PhotoMetadataStore(
        SupabaseTableStore(supabase_client, resolved_settings.photos_table)
    )
    object_store = S3ObjectStore.create(
        bucket=resolved_settings.s3_bucket,
        region=resolved_settings.aws_region,
        endpoint_url=resolved_settings.s3_endpoint_url,
    )
    enrichment_queue = SupabaseEnrichmentQueue(
        client=supabase_client,
        queue_name=resolved_settings.enrichment_queue_name,
        max_concurrency=resolved_settings.enrichment_concurrency,
        max_attempts=resolved_settings.enrichment_max_attempts,
        visibility_timeout_seconds=(
            resolved_settings.enrichment_visibility_timeout_seconds
        ),
        retry_base_seconds=resolved_settings.enrichment_retry_base_seconds,
        retry_max_seconds=resolved_settings.enrichment_retry_max_seconds,
        poll_interval_seconds=resolved_settings.queue_poll_interval_seconds,
    )
    vision_client = OpenAIVisionClient.create(
        api_key=resolved_settings.openai_api_key,
        model=resolved_settings.openai_model,
        timeout_seconds=resolved_settings.openai_timeout_seconds,
    )
    catalog_service = CatalogService(
        metadata_store=metadata_store,
        object_store=object_store,
        queue=enrichment_queue,
        url_ttl_seconds=resolved_settings.presigned_url_ttl_seconds,
        max_page_size=resolved_settings.max_page_size,
    )
    enrichment_worker = EnrichmentWorker(
        metadata_store=metadata_store,
        object_store=object_store,
        caption_service=CaptionService(vision_client),
    )
    token_verifier = GoogleTokenVerifier.create(
        resolved_settings.google_oauth_client_id
    )

    async def close_resources() -> None:
        await vision_client.close()
        await token_verifier.close()

    return AppContainer(
        settings=resolved_settings,
        catalog_service=catalog_service,
        enrichment_worker=enrichment_worker,
        enrichment_queue=enrichment_queue,
        token_verifier=token_verifier,
        close_resources=close_resources,
    )
