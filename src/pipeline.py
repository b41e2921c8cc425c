"""
Discover → Dedup → Enrich → Filter/Order → Dispatch → Record pipeline.

Items are handled one at a time; a failure on one item never stops the rest.
"""

import asyncio
from typing import Awaitable, Callable

from src.catalog.base import BaseCatalogClient, ItemMeta
from src.dispatcher import Dispatcher
from src.ledger import BaseLedger, announcement_timestamp
from src.metadata import MetadataFetcher
from src.release import filter_and_order
from src.utils.logging import get_logger

logger = get_logger(__name__)


class AnnouncementPipeline:
    """One instance per process; dependencies are built once and injected."""

    def __init__(
        self,
        catalog: BaseCatalogClient,
        ledger: BaseLedger,
        dispatcher: Dispatcher,
        item_delay_seconds: float = 5.0,
        fetcher: MetadataFetcher | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.catalog = catalog
        self.ledger = ledger
        self.dispatcher = dispatcher
        self.fetcher = fetcher or MetadataFetcher(catalog)
        self.item_delay_seconds = item_delay_seconds
        self._sleep = sleep

    async def _enrich_new(self, app_ids: list[int], summary: dict) -> list[ItemMeta]:
        metas = []
        for app_id in app_ids:
            try:
                if await self.ledger.has(app_id):
                    continue
                summary["new"] += 1
                meta = await self.fetcher.fetch(app_id)
            except Exception as exc:
                logger.exception("pipeline_enrich_failed", app_id=app_id, error=str(exc))
                continue
            if meta is not None:
                metas.append(meta)
        summary["enriched"] = len(metas)
        return metas

    async def _announce(self, meta: ItemMeta, summary: dict) -> None:
        try:
            posted = await self.dispatcher.post_item(meta)
        finally:
            await self._sleep(self.item_delay_seconds)

        if not posted:
            summary["failed"] += 1
            return
        summary["announced"] += 1

        if await self.ledger.record(meta.app_id, announcement_timestamp()):
            summary["recorded"] += 1
        else:
            logger.error("ledger_record_failed", app_id=meta.app_id, name=meta.name)

    async def run_pass(self) -> dict:
        """
        Run one full pass.

        Returns a summary dict with counts for logging/monitoring.
        """
        summary = {
            "discovered": 0,
            "new": 0,
            "enriched": 0,
            "released": 0,
            "announced": 0,
            "recorded": 0,
            "failed": 0,
        }

        try:
            app_ids = await self.catalog.discover()
        except Exception as exc:
            logger.error("pipeline_discover_failed", error=str(exc))
            return summary
        summary["discovered"] = len(app_ids)

        metas = filter_and_order(await self._enrich_new(app_ids, summary))
        summary["released"] = len(metas)

        for meta in metas:
            try:
                await self._announce(meta, summary)
            except Exception as exc:
                summary["failed"] += 1
                logger.exception("pipeline_item_failed", app_id=meta.app_id, name=meta.name, error=str(exc))

        logger.info("pass_complete", **summary)
        return summary
