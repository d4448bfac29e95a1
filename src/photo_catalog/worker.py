"""Standalone enrichment consumer process."""

import asyncio
import logging

from photo_catalog.app_logging import configure_logging
from photo_catalog.containers import AppContainer, build_container

logger = logging.getLogger(__name__)


async def run_worker(container: AppContainer) -> None:
    """Consume enrichment jobs until cancelled, then release resources."""
    queue = container.enrichment_queue
    queue.subscribe(container.enrichment_worker.handle)
    logger.info("Enrichment worker running")
    try:
        await queue.run()
    finally:
        await container.close_resources()


def main() -> None:
    """Run the enrichment worker with settings from the environment."""
    configure_logging()
    try:
        asyncio.run(run_worker(build_container()))
    except KeyboardInterrupt:
        logger.info("Enrichment worker stopped")


if __name__ == "__main__":
    main()
