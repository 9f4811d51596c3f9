"""
Prometheus metrics for the live pipeline.

Design principles:
- Low cardinality (controlled labels)
- Best-effort (never block main flow)

ALLOWED LABELS (bounded sets):
- outcome:  "stored", "unauthorized", "invalid", "error"
- kind:     "lineup", "match-result", "upcoming-match", "league-update"
- generator: "ai", "fallback"
- task:     "standings_recompute", "content_generation"
- trigger:  "timer", "lineup_timer", "startup", "webhook", "manual"

FORBIDDEN AS LABELS: match_id, team names, league ids, error messages.
"""

import logging

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)

# =============================================================================
# INGESTION / FAN-OUT
# =============================================================================

live_webhooks_total = Counter(
    "matchday_live_webhooks_total",
    "Inbound webhook calls by endpoint and outcome",
    ["endpoint", "outcome"],
)

fanout_deliveries_total = Counter(
    "matchday_fanout_deliveries_total",
    "Messages handed to subscriber channels",
    ["status"],
)

live_subscribers = Gauge(
    "matchday_live_subscribers",
    "Currently registered live subscriber channels",
)

# =============================================================================
# DETACHED TASKS
# =============================================================================

detached_tasks_total = Counter(
    "matchday_detached_tasks_total",
    "Detached task completions",
    ["task", "status"],
)

# =============================================================================
# CONTENT PIPELINE
# =============================================================================

articles_generated_total = Counter(
    "matchday_articles_generated_total",
    "Articles persisted by the content pipeline",
    ["kind", "generator"],
)

articles_skipped_total = Counter(
    "matchday_articles_skipped_total",
    "Newsworthy items skipped because an article already covers them",
    ["kind"],
)

generation_runs_total = Counter(
    "matchday_generation_runs_total",
    "Content pipeline runs",
    ["trigger", "status"],
)

generation_duration_ms = Histogram(
    "matchday_generation_duration_ms",
    "Content pipeline run duration in milliseconds",
    buckets=[50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000, 60000],
)

upstream_fallbacks_total = Counter(
    "matchday_upstream_fallbacks_total",
    "Generative-text or image lookups that fell back locally",
    ["capability"],
)

standings_recomputes_total = Counter(
    "matchday_standings_recomputes_total",
    "Standings recomputations",
    ["status"],
)


def record_webhook(endpoint: str, outcome: str) -> None:
    try:
        live_webhooks_total.labels(endpoint=endpoint, outcome=outcome).inc()
    except Exception as e:
        logger.warning(f"Failed to record webhook metric: {e}")


def record_fanout(delivered: int, failed: int) -> None:
    try:
        if delivered:
            fanout_deliveries_total.labels(status="ok").inc(delivered)
        if failed:
            fanout_deliveries_total.labels(status="error").inc(failed)
    except Exception as e:
        logger.warning(f"Failed to record fan-out metric: {e}")


def set_subscriber_count(count: int) -> None:
    try:
        live_subscribers.set(count)
    except Exception as e:
        logger.warning(f"Failed to set subscriber gauge: {e}")


def record_detached_task(task: str, status: str) -> None:
    try:
        detached_tasks_total.labels(task=task, status=status).inc()
    except Exception as e:
        logger.warning(f"Failed to record detached task metric: {e}")


def record_article(kind: str, generator: str) -> None:
    try:
        articles_generated_total.labels(kind=kind, generator=generator).inc()
    except Exception as e:
        logger.warning(f"Failed to record article metric: {e}")


def record_article_skipped(kind: str) -> None:
    try:
        articles_skipped_total.labels(kind=kind).inc()
    except Exception as e:
        logger.warning(f"Failed to record skipped article metric: {e}")


def record_generation_run(trigger: str, status: str, duration_ms: float) -> None:
    """
    Record a content pipeline run.

    Args:
        trigger: Bounded trigger source label
        status: "ok" or "error"
        duration_ms: Run duration in milliseconds
    """
    try:
        generation_runs_total.labels(trigger=trigger, status=status).inc()
        if duration_ms > 0:
            generation_duration_ms.observe(duration_ms)
    except Exception as e:
        logger.warning(f"Failed to record generation run metric: {e}")


def record_upstream_fallback(capability: str) -> None:
    try:
        upstream_fallbacks_total.labels(capability=capability).inc()
    except Exception as e:
        logger.warning(f"Failed to record fallback metric: {e}")


def record_standings_recompute(status: str) -> None:
    try:
        standings_recomputes_total.labels(status=status).inc()
    except Exception as e:
        logger.warning(f"Failed to record standings metric: {e}")


def get_metrics_text() -> tuple[str, str]:
    """
    Generate Prometheus metrics text output.

    Returns:
        Tuple of (content, content_type)
    """
    return generate_latest(REGISTRY).decode("utf-8"), CONTENT_TYPE_LATEST
