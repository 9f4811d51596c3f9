"""
Content Generation Pipeline.

One entry point, generate_from_current_state(), shared by the news timer,
the lineup timer, the webhooks and the manual operator call. A run executes
up to four scans in order:

1. lineup    - lineups uploaded in the last 2h for matches not yet played
2. result    - matches completed in the last 24h
3. upcoming  - the two soonest scheduled matches in the next 7 days
4. league_update - one generic article per 24h for the most active league

Each newsworthy item is checked against the Article Store through its
structured (source_kind, source_match_id) reference before anything is
written.

Concurrency: the dedup check and the insert are separate operations, so two
overlapping runs could both pass the check. Two guards close that gap:
- single-flight: callers asking for the same scans while a run is in flight
  await that run's report instead of starting another; runs over different
  scan sets are serialized by a lock
- every article carries a unique dedup_key, so an insert that still loses a
  race (e.g. a second process) fails and is counted as a skip
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

from matchday.config import Settings
from matchday.llm.article_writer import ArticleWriter
from matchday.llm.image_client import ImageClient
from matchday.llm.schemas import (
    LEAGUE_UPDATE,
    LINEUP,
    MATCH_RESULT,
    UPCOMING_MATCH,
    ArticleContext,
)
from matchday.models import GeneratedArticle, utcnow
from matchday.stores.articles import ArticleStore
from matchday.stores.matches import MatchStore, MatchSummary
from matchday.telemetry import record_article, record_article_skipped, record_generation_run

logger = logging.getLogger(__name__)

SCAN_LINEUP = "lineup"
SCAN_RESULT = "result"
SCAN_UPCOMING = "upcoming"
SCAN_LEAGUE_UPDATE = "league_update"

ALL_SCANS = (SCAN_LINEUP, SCAN_RESULT, SCAN_UPCOMING, SCAN_LEAGUE_UPDATE)
LINEUP_SCANS = (SCAN_LINEUP,)


def dedup_key(kind: str, now: datetime, match_id: Optional[int] = None, league_id: Optional[int] = None) -> str:
    """
    Unique key of one newsworthy item.

    The date bucket mirrors each kind's dedup window: results are covered
    forever, lineups per day, previews per ISO week, league updates per
    league per day.
    """
    if kind == MATCH_RESULT:
        return f"{kind}:{match_id}"
    if kind == LINEUP:
        return f"{kind}:{match_id}:{now:%Y-%m-%d}"
    if kind == UPCOMING_MATCH:
        year, week, _ = now.isocalendar()
        return f"{kind}:{match_id}:{year}-W{week:02d}"
    return f"{kind}:{league_id}:{now:%Y-%m-%d}"


@dataclass
class GenerationReport:
    """Summary of one pipeline run, returned to every trigger source."""

    trigger: str
    scans: tuple[str, ...]
    success: bool = True
    articles: list[str] = field(default_factory=list)
    by_kind: dict[str, int] = field(default_factory=dict)
    skipped: dict[str, int] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def count(self) -> int:
        return len(self.articles)

    @property
    def error(self) -> Optional[str]:
        return "; ".join(self.errors) if self.errors else None

    def add_article(self, kind: str, title: str) -> None:
        self.articles.append(title)
        self.by_kind[kind] = self.by_kind.get(kind, 0) + 1

    def add_skip(self, kind: str) -> None:
        self.skipped[kind] = self.skipped.get(kind, 0) + 1

    def to_dict(self) -> dict:
        return {
            "trigger": self.trigger,
            "scans": list(self.scans),
            "success": self.success,
            "count": self.count,
            "articles": self.articles,
            "by_kind": self.by_kind,
            "skipped": self.skipped,
            "error": self.error,
            "duration_ms": self.duration_ms,
        }


def _player_line(player: dict) -> str:
    name = f"{player['first_name']} {player['last_name']}".strip()
    position = player.get("position") or "Player"
    if player.get("jersey_number") is not None:
        return f"{name} (#{player['jersey_number']}, {position})"
    return f"{name} ({position})"


def _match_context(kind: str, match: MatchSummary, **extra) -> ArticleContext:
    return ArticleContext(
        kind=kind,
        home_team=match.home_team,
        away_team=match.away_team,
        venue=match.venue,
        competition=match.competition,
        match_date=match.match_date,
        **extra,
    )


class ContentPipeline:
    def __init__(
        self,
        matches: MatchStore,
        articles: ArticleStore,
        writer: ArticleWriter,
        images: ImageClient,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._matches = matches
        self._articles = articles
        self._writer = writer
        self._images = images
        self._settings = settings
        self._clock = clock

        self._inflight: dict[tuple[str, ...], asyncio.Task] = {}
        self._lock = asyncio.Lock()

    # ── entry point ─────────────────────────────────────────────────────────

    async def generate_from_current_state(
        self,
        trigger: str = "manual",
        scans: tuple[str, ...] = ALL_SCANS,
    ) -> GenerationReport:
        """
        Run the requested scans and return what was generated.

        Concurrent callers with the same scans share one run (single-flight).
        Never raises for scan failures; they are reported in the result.
        """
        unknown = set(scans) - set(ALL_SCANS)
        if unknown:
            raise ValueError(f"Unknown scans: {sorted(unknown)}")
        key = tuple(scan for scan in ALL_SCANS if scan in scans)

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._run(trigger, key), name=f"content_generation:{trigger}")
            self._inflight[key] = task
            task.add_done_callback(lambda done, key=key: self._forget(key, done))
        else:
            logger.info(f"[NEWS] {trigger} joined in-flight run ({task.get_name()})")

        return await asyncio.shield(task)

    def _forget(self, key: tuple[str, ...], task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    @property
    def in_flight(self) -> bool:
        return bool(self._inflight)

    async def _run(self, trigger: str, scans: tuple[str, ...]) -> GenerationReport:
        report = GenerationReport(trigger=trigger, scans=scans)
        scan_fns = {
            SCAN_LINEUP: self._scan_lineups,
            SCAN_RESULT: self._scan_results,
            SCAN_UPCOMING: self._scan_upcoming,
            SCAN_LEAGUE_UPDATE: self._scan_league_update,
        }

        async with self._lock:
            start_time = time.time()
            logger.info(f"[NEWS] Generation run started (trigger={trigger}, scans={list(scans)})")

            for scan in scans:
                try:
                    await scan_fns[scan](self._clock(), report)
                except Exception as e:
                    report.success = False
                    report.errors.append(f"{scan}: {e}")
                    logger.error(f"[NEWS] {scan} scan failed: {e}", exc_info=True)

            report.duration_ms = int((time.time() - start_time) * 1000)

        record_generation_run(trigger, "ok" if report.success else "error", report.duration_ms)
        logger.info(
            f"[NEWS] Generated {report.count} articles {report.by_kind} "
            f"(skipped={report.skipped}, trigger={trigger}, {report.duration_ms}ms): {report.articles}"
        )
        return report

    # ── scans ───────────────────────────────────────────────────────────────

    async def _scan_lineups(self, now: datetime, report: GenerationReport) -> None:
        s = self._settings
        candidates = await self._matches.recent_lineups(
            uploaded_since=now - timedelta(hours=s.LINEUP_UPLOAD_WINDOW_HOURS),
            now=now,
            min_players=s.LINEUP_MIN_PLAYERS,
            limit=s.SCAN_MAX_MATCHES,
        )
        dedup_since = now - timedelta(hours=s.LINEUP_DEDUP_HOURS)

        for match in candidates:
            if await self._articles.exists_for_source(LINEUP, match.match_id, since=dedup_since):
                self._skip(report, LINEUP, match)
                continue

            home_lineup = await self._matches.lineup(match.match_id, match.home_team_id)
            away_lineup = await self._matches.lineup(match.match_id, match.away_team_id)
            if not home_lineup and not away_lineup:
                continue

            ctx = _match_context(
                LINEUP,
                match,
                home_lineup=[_player_line(p) for p in home_lineup],
                away_lineup=[_player_line(p) for p in away_lineup],
            )
            await self._publish(ctx, report, now, match_id=match.match_id, league_id=match.league_id)

    async def _scan_results(self, now: datetime, report: GenerationReport) -> None:
        s = self._settings
        results = await self._matches.recent_results(
            since=now - timedelta(hours=s.RESULT_WINDOW_HOURS),
            limit=s.SCAN_MAX_MATCHES,
        )
        for match in results:
            if await self._articles.exists_for_source(MATCH_RESULT, match.match_id):
                self._skip(report, MATCH_RESULT, match)
                continue

            ctx = _match_context(
                MATCH_RESULT,
                match,
                home_score=match.home_score,
                away_score=match.away_score,
            )
            await self._publish(ctx, report, now, match_id=match.match_id, league_id=match.league_id)

    async def _scan_upcoming(self, now: datetime, report: GenerationReport) -> None:
        s = self._settings
        upcoming = await self._matches.upcoming(
            now=now,
            until=now + timedelta(days=s.UPCOMING_WINDOW_DAYS),
            limit=s.UPCOMING_MAX_MATCHES,
        )
        dedup_since = now - timedelta(days=s.UPCOMING_DEDUP_DAYS)

        for match in upcoming:
            if await self._articles.exists_for_source(UPCOMING_MATCH, match.match_id, since=dedup_since):
                self._skip(report, UPCOMING_MATCH, match)
                continue

            ctx = _match_context(UPCOMING_MATCH, match)
            await self._publish(ctx, report, now, match_id=match.match_id, league_id=match.league_id)

    async def _scan_league_update(self, now: datetime, report: GenerationReport) -> None:
        s = self._settings
        if await self._articles.exists_kind_since(
            LEAGUE_UPDATE, now - timedelta(hours=s.LEAGUE_UPDATE_DEDUP_HOURS)
        ):
            report.add_skip(LEAGUE_UPDATE)
            record_article_skipped(LEAGUE_UPDATE)
            logger.debug("[NEWS] League update already published in the last day")
            return

        league = await self._matches.most_active_league(now - timedelta(days=s.LEAGUE_ACTIVITY_DAYS))
        if league is None:
            logger.debug("[NEWS] No league with recent matches, no league update")
            return

        ctx = ArticleContext(kind=LEAGUE_UPDATE, competition=league["competition"])
        await self._publish(ctx, report, now, league_id=league["league_id"])

    # ── synthesis ───────────────────────────────────────────────────────────

    def _skip(self, report: GenerationReport, kind: str, match: MatchSummary) -> None:
        report.add_skip(kind)
        record_article_skipped(kind)
        logger.debug(
            f"[NEWS] {kind} for match_id={match.match_id} "
            f"({match.home_team} vs {match.away_team}) already covered"
        )

    async def _publish(
        self,
        ctx: ArticleContext,
        report: GenerationReport,
        now: datetime,
        match_id: Optional[int] = None,
        league_id: Optional[int] = None,
    ) -> Optional[GeneratedArticle]:
        written = await self._writer.write(ctx)
        image_url = await self._images.lookup()

        article = GeneratedArticle(
            title=written.draft.title,
            summary=written.draft.summary,
            content=written.draft.content,
            image_url=image_url,
            source_kind=ctx.kind,
            source_match_id=match_id,
            source_league_id=league_id,
            dedup_key=dedup_key(ctx.kind, now, match_id=match_id, league_id=league_id),
            generator=written.generator,
            published_at=now,
            created_at=now,
        )
        stored = await self._articles.create(article)
        if stored is None:
            report.add_skip(ctx.kind)
            record_article_skipped(ctx.kind)
            return None

        report.add_article(ctx.kind, stored.title)
        record_article(ctx.kind, written.generator)
        logger.info(f"[NEWS] Published {ctx.kind} article id={stored.id}: {stored.title}")
        return stored
