"""
APScheduler wiring.

A single interval job drives the announcement pass. The job fires once
immediately at start-up and then every ``poll_interval_minutes``. Passes never
overlap: PassRunner turns a tick that arrives mid-pass into a no-op.
"""

from datetime import datetime, timezone
from enum import Enum

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from src.config import Settings
from src.pipeline import AnnouncementPipeline
from src.utils.logging import get_logger

logger = get_logger(__name__)

JOB_ID = "announcement_pass"


class PassState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class PassRunner:
    """Idle ⇄ Running state machine around AnnouncementPipeline.run_pass."""

    def __init__(self, pipeline: AnnouncementPipeline):
        self.pipeline = pipeline
        self.state = PassState.IDLE
        self.passes_run = 0

    async def tick(self) -> dict | None:
        """
        Run one pass unless one is already running.

        Returns the pass summary, or None when the tick was skipped or the
        pass failed. Never raises.
        """
        if self.state is PassState.RUNNING:
            logger.warning("pass_skipped_already_running")
            return None

        self.state = PassState.RUNNING
        try:
            summary = await self.pipeline.run_pass()
        except Exception as exc:
            logger.exception("pass_failed", error=str(exc))
            return None
        finally:
            self.state = PassState.IDLE
            self.passes_run += 1
        return summary


def create_scheduler(runner: PassRunner, settings: Settings) -> AsyncIOScheduler:
    """Create and configure the APScheduler instance (not yet started)."""
    scheduler = AsyncIOScheduler(timezone=timezone.utc)
    scheduler.add_job(
        runner.tick,
        "interval",
        minutes=settings.poll_interval_minutes,
        id=JOB_ID,
        next_run_time=datetime.now(timezone.utc),
        max_instances=1,
        coalesce=True,
    )
    return scheduler
