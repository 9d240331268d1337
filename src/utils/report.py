"""
Assembly and persistence of the final migration report.

:func:`build_migration_report` derives every figure from the counters and
failure lists accumulated during the run; :func:`write_report` saves the
result as ``migration-report.json`` in the output directory.
"""

from __future__ import annotations

import json
import os
from collections import Counter
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from models.migration_state import (
    ContentTypeBreakdown,
    FailedItem,
    FailureReason,
    MigrationReport,
    MigrationStats,
    ReportSummary,
)


def format_duration(start: datetime, end: datetime) -> str:
    seconds = max(0, int((end - start).total_seconds()))
    hours, rest = divmod(seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def count_failure_reasons(failures: Iterable[FailedItem]) -> List[FailureReason]:
    counts = Counter(f.reason for f in failures)
    ordered = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return [FailureReason(reason=reason, count=count) for reason, count in ordered]


def build_migration_report(
    *,
    stats: MigrationStats,
    breakdown: Dict[str, ContentTypeBreakdown],
    failures: List[FailedItem],
    successes: Optional[List[Dict[str, str]]] = None,
    start_time: datetime,
    end_time: datetime,
) -> MigrationReport:
    """Build the report for a finished run.

    Parameters
    ----------
    stats:
        Final run counters.
    breakdown:
        Per content type (``page``, ``post``) totals.
    failures:
        Items counted as failed content; their reasons are aggregated into
        ``failureReasons``.
    successes:
        ``{"name", "url"}`` entries for migrated items.
    start_time, end_time:
        Run boundaries, used for the summary and ``migrationTime``.
    """
    summary = ReportSummary(
        total_content=stats.total_pages + stats.total_posts,
        migrated_content=stats.uploaded_content,
        failed_content=stats.failed_content,
        skipped_content=stats.skipped_content,
        migration_time=format_duration(start_time, end_time),
        start_time=start_time,
        end_time=end_time,
    )
    return MigrationReport(
        summary=summary,
        content_breakdown=breakdown,
        failure_reasons=count_failure_reasons(failures),
        success_list=list(successes or []),
        failure_list=[
            {"id": f.id, "type": f.type, "name": f.title, "error": f.reason} for f in failures
        ],
    )


def write_report(report: MigrationReport, out_path: str = "migration-output/migration-report.json") -> str:
    """Write ``report`` as pretty-printed JSON and return the path written."""
    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(report.model_dump(mode="json", by_alias=True), f, ensure_ascii=False, indent=2)
    return out_path
