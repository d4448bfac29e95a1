"""Enrichment queue on Supabase Queues (pgmq)."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx
import pydantic
from postgrest.exceptions import APIError
from supabase import Client

from photo_catalog.domain.errors import StorageError
from photo_catalog.domain.photos import EnrichmentJob
from photo_catalog.services.queue import (
    NON_RETRYABLE_ERRORS,
    EnrichmentQueue,
    JobHandler,
    retry_delay_seconds,
)

logger = logging.getLogger(__name__)

QUEUE_SCHEMA = "pgmq_public"


@dataclass
class SupabaseEnrichmentQueue(EnrichmentQueue):
    """Queue backed by the pgmq_public RPC functions.

    Messages read from pgmq stay invisible for `visibility_timeout_seconds`.
    A consumer that dies mid-job therefore gets its message redelivered once
    the timeout lapses. Handler failures are retried by re-sending the job
    with a higher attempt number and a backoff delay, then deleting the
    original. Jobs that exhaust `max_attempts` are archived.
    """

    client: Client
    queue_name: str
    max_concurrency: int = 4
    max_attempts: int = 5
    visibility_timeout_seconds: int = 120
    retry_base_seconds: int = 5
    retry_max_seconds: int = 300
    poll_interval_seconds: float = 1.0
    _channel: Any = field(default=None, init=False, repr=False)
    _open_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)
    _handler: JobHandler | None = field(default=None, init=False, repr=False)
    _in_flight: set[asyncio.Task] = field(default_factory=set, init=False)

    async def enqueue(self, job: EnrichmentJob, delay_seconds: int = 0) -> None:
        """Send a job message to the queue."""
        await self._send(job, delay_seconds)
        logger.info(
            "Enqueued enrichment job",
            extra={"photo_id": job.photo_id, "attempt": job.attempt},
        )

    def subscribe(self, handler: JobHandler) -> None:
        """Register the job handler."""
        if self._handler is not None:
            raise RuntimeError("enrichment queue already has a subscriber")
        self._handler = handler

    async def run(self) -> None:
        """Poll for messages and deliver them until cancelled."""
        if self._handler is None:
            raise RuntimeError("subscribe a handler before running the queue")
        logger.info("Enrichment consumer started", extra={"queue": self.queue_name})
        try:
            while True:
                try:
                    started = await self.poll_once()
                except StorageError:
                    logger.exception("Failed to read enrichment queue")
                    started = 0
                if not started:
                    await asyncio.sleep(self.poll_interval_seconds)
        finally:
            for task in list(self._in_flight):
                task.cancel()
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def poll_once(self) -> int:
        """Read as many messages as free slots allow and start delivering them."""
        free_slots = self.max_concurrency - len(self._in_flight)
        if free_slots <= 0:
            return 0
        channel = await self._open()
        response = await self._call(
            channel.rpc(
                "read",
                {
                    "queue_name": self.queue_name,
                    "sleep_seconds": self.visibility_timeout_seconds,
                    "n": free_slots,
                },
            ),
            "read",
        )
        rows = response.data or []
        for row in rows:
            task = asyncio.create_task(self._deliver(row))
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)
        return len(rows)

    async def drain(self) -> None:
        """Wait for in-flight deliveries to finish."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    async def _deliver(self, row: dict[str, Any]) -> None:
        try:
            await self._process(row)
        except StorageError:
            # The message becomes visible again when its timeout lapses.
            logger.exception(
                "Failed to settle queue message", extra={"msg_id": row.get("msg_id")}
            )

    async def _process(self, row: dict[str, Any]) -> None:
        msg_id = row["msg_id"]
        try:
            job = EnrichmentJob.model_validate(row["message"])
        except pydantic.ValidationError:
            logger.exception(
                "Discarding malformed queue message", extra={"msg_id": msg_id}
            )
            await self._settle("archive", msg_id)
            return
        if self._handler is None:
            raise RuntimeError("no subscriber registered")
        try:
            await self._handler(job)
        except NON_RETRYABLE_ERRORS:
            logger.exception(
                "Enrichment job cannot succeed, archiving",
                extra={"photo_id": job.photo_id, "msg_id": msg_id},
            )
            await self._settle("archive", msg_id)
            return
        except Exception:
            logger.exception(
                "Enrichment job failed",
                extra={"photo_id": job.photo_id, "attempt": job.attempt},
            )
            await self._retry_or_archive(job, msg_id)
            return
        await self._settle("delete", msg_id)

    async def _retry_or_archive(self, job: EnrichmentJob, msg_id: int) -> None:
        if job.attempt >= self.max_attempts:
            logger.error(
                "Enrichment job exhausted retries, archiving",
                extra={"photo_id": job.photo_id, "attempt": job.attempt},
            )
            await self._settle("archive", msg_id)
            return
        delay = retry_delay_seconds(
            job.attempt, self.retry_base_seconds, self.retry_max_seconds
        )
        retry = job.model_copy(update={"attempt": job.attempt + 1})
        await self._send(retry, delay)
        await self._settle("delete", msg_id)

    async def _send(self, job: EnrichmentJob, delay_seconds: int) -> None:
        channel = await self._open()
        await self._call(
            channel.rpc(
                "send",
                {
                    "queue_name": self.queue_name,
                    "message": job.model_dump(mode="json"),
                    "sleep_seconds": delay_seconds,
                },
            ),
            "send",
        )

    async def _settle(self, action: str, msg_id: int) -> None:
        channel = await self._open()
        await self._call(
            channel.rpc(action, {"queue_name": self.queue_name, "message_id": msg_id}),
            action,
        )

    async def _open(self) -> Any:
        """Open the queue channel once, even under concurrent first use."""
        if self._channel is not None:
            return self._channel
        async with self._open_lock:
            if self._channel is None:
                self._channel = self.client.schema(QUEUE_SCHEMA)
                logger.info("Opened enrichment queue", extra={"queue": self.queue_name})
        return self._channel

    async def _call(self, request, operation: str):  # type: ignore[no-untyped-def]
        try:
            return await asyncio.to_thread(request.execute)
        except (APIError, httpx.HTTPError) as exc:
            raise StorageError(f"queue {operation} failed") from exc
