"""
Daemon entry point: ``python -m src.main``.

Builds every long-lived dependency once, then lets the scheduler drive passes
until the process is terminated.
"""

import asyncio

import httpx

from src.catalog.steam import SteamStoreClient, build_http_client
from src.config import settings
from src.dispatcher import Dispatcher
from src.ledger import create_ledger
from src.notifier import DiscordWebhookTransport
from src.pipeline import AnnouncementPipeline
from src.scheduler import PassRunner, create_scheduler
from src.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def build_pipeline(store_http: httpx.AsyncClient, webhook_http: httpx.AsyncClient) -> AnnouncementPipeline:
    return AnnouncementPipeline(
        catalog=SteamStoreClient(store_http, settings),
        ledger=create_ledger(settings),
        dispatcher=Dispatcher(DiscordWebhookTransport(webhook_http)),
        item_delay_seconds=settings.item_delay_seconds,
    )


async def main() -> None:
    setup_logging()

    async with build_http_client(settings) as store_http, \
            httpx.AsyncClient(timeout=settings.http_timeout_seconds) as webhook_http:
        runner = PassRunner(build_pipeline(store_http, webhook_http))
        scheduler = create_scheduler(runner, settings)
        scheduler.start()
        logger.info(
            "scheduler_started",
            interval_minutes=settings.poll_interval_minutes,
            media_mode=settings.media_mode,
            ledger_backend=settings.ledger_backend,
        )
        try:
            await asyncio.Event().wait()
        finally:
            scheduler.shutdown(wait=False)
            logger.info("scheduler_stopped")


if __name__ == "__main__":
    asyncio.run(main())
