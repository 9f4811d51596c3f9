"""
Telemetry for the live pipeline.

- Prometheus counters for ingestion, fan-out, detached tasks and generation
- Sentry capture for detached task and scheduler failures
"""

from matchday.telemetry.metrics import (
    get_metrics_text,
    record_article,
    record_article_skipped,
    record_detached_task,
    record_fanout,
    record_generation_run,
    record_standings_recompute,
    record_upstream_fallback,
    record_webhook,
    set_subscriber_count,
)
from matchday.telemetry.sentry import capture_exception, init_sentry, is_sentry_enabled

__all__ = [
    "get_metrics_text",
    "record_article",
    "record_article_skipped",
    "record_detached_task",
    "record_fanout",
    "record_generation_run",
    "record_standings_recompute",
    "record_upstream_fallback",
    "record_webhook",
    "set_subscriber_count",
    "capture_exception",
    "init_sentry",
    "is_sentry_enabled",
]
