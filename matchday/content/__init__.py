from matchday.content.pipeline import (
    ALL_SCANS,
    LINEUP_SCANS,
    ContentPipeline,
    GenerationReport,
    dedup_key,
)

__all__ = [
    "ALL_SCANS",
    "LINEUP_SCANS",
    "ContentPipeline",
    "GenerationReport",
    "dedup_key",
]
