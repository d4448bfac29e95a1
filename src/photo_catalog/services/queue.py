"""Enrichment job queue interface."""

from collections.abc import Awaitable, Callable
from typing import Protocol

from photo_catalog.domain.errors import NotFoundError, ValidationError
from photo_catalog.domain.photos import EnrichmentJob

JobHandler = Callable[[EnrichmentJob], Awaitable[None]]

# Failures that redelivery cannot fix.
NON_RETRYABLE_ERRORS: tuple[type[Exception], ...] = (NotFoundError, ValidationError)


class EnrichmentQueue(Protocol):
    """Durable at-least-once queue of enrichment jobs."""

    async def enqueue(self, job: EnrichmentJob, delay_seconds: int = 0) -> None:
        """Durably record a job for asynchronous delivery."""

    def subscribe(self, handler: JobHandler) -> None:
        """Register the single handler invoked for each delivered job."""

    async def run(self) -> None:
        """Deliver jobs to the handler until cancelled."""


def retry_delay_seconds(attempt: int, base_seconds: int, max_seconds: int) -> int:
    """Exponential backoff before redelivering a job that failed `attempt` times."""
    return min(base_seconds * 2 ** (attempt - 1), max_seconds)
