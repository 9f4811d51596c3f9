"""Timed triggers for the content generation pipeline."""

import logging
from datetime import timedelta
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger

from matchday.config import Settings
from matchday.content.pipeline import ALL_SCANS, LINEUP_SCANS, ContentPipeline, GenerationReport
from matchday.models import utcnow
from matchday.telemetry import capture_exception

logger = logging.getLogger(__name__)


class NewsScheduler:
    """
    Owns the AsyncIOScheduler that drives periodic news generation.

    Jobs:
    - news_generation: full pass on NEWS_GENERATION_SCHEDULE (every 6h)
    - lineup_check: lineup scan only on LINEUP_CHECK_SCHEDULE (hourly)
    - news_initial_run: one full pass shortly after start
    """

    def __init__(self, pipeline: ContentPipeline, settings: Settings):
        self._pipeline = pipeline
        self._settings = settings
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        """Register jobs and start. A second call is a no-op."""
        if self.running:
            logger.warning("[SCHEDULER] News scheduler already started, skipping duplicate initialization")
            return

        s = self._settings
        tz = s.NEWS_SCHEDULER_TIMEZONE
        self._scheduler = AsyncIOScheduler(timezone=tz)

        # Full pass: lineup, result, upcoming, league update
        self._scheduler.add_job(
            self.run_news_generation,
            trigger=CronTrigger.from_crontab(s.NEWS_GENERATION_SCHEDULE, timezone=tz),
            id="news_generation",
            name="News Generation (full pass)",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        # Lineups are time-sensitive: check every hour
        self._scheduler.add_job(
            self.run_lineup_check,
            trigger=CronTrigger.from_crontab(s.LINEUP_CHECK_SCHEDULE, timezone=tz),
            id="lineup_check",
            name="Lineup Check",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        if s.NEWS_INITIAL_RUN_DELAY_SECONDS > 0:
            run_at = utcnow() + timedelta(seconds=s.NEWS_INITIAL_RUN_DELAY_SECONDS)
            self._scheduler.add_job(
                self.run_news_generation,
                trigger=DateTrigger(run_date=run_at, timezone="UTC"),
                id="news_initial_run",
                name="News Generation (startup)",
                replace_existing=True,
                kwargs={"trigger": "startup"},
            )

        self._scheduler.start()
        logger.info(
            f"[SCHEDULER] News scheduler started: news='{s.NEWS_GENERATION_SCHEDULE}', "
            f"lineups='{s.LINEUP_CHECK_SCHEDULE}' ({tz}), "
            f"initial run in {s.NEWS_INITIAL_RUN_DELAY_SECONDS}s"
        )

    def stop(self) -> None:
        if self.running:
            self._scheduler.shutdown(wait=False)
            logger.info("[SCHEDULER] News scheduler stopped")
        self._scheduler = None

    def job_ids(self) -> list[str]:
        if self._scheduler is None:
            return []
        return [job.id for job in self._scheduler.get_jobs()]

    async def run_news_generation(self, trigger: str = "timer") -> Optional[GenerationReport]:
        return await self._run(trigger, ALL_SCANS)

    async def run_lineup_check(self) -> Optional[GenerationReport]:
        return await self._run("lineup_timer", LINEUP_SCANS)

    async def _run(self, trigger: str, scans: tuple[str, ...]) -> Optional[GenerationReport]:
        try:
            report = await self._pipeline.generate_from_current_state(trigger=trigger, scans=scans)
        except Exception as e:
            logger.error(f"[SCHEDULER] {trigger} generation failed: {e}", exc_info=True)
            capture_exception(e, job_id=trigger)
            return None

        if not report.success:
            logger.warning(f"[SCHEDULER] {trigger} generation finished with errors: {report.error}")
        return report
