"""
Export functionality for snapshots and organization reports.
Serializes analytics to camelCase dicts, JSON files and CSV tables.
"""

import json
from dataclasses import asdict
from datetime import date, datetime
from pathlib import Path
from typing import Iterable, Mapping, Optional, Union

import pandas as pd

from .analytics import (
    category_breakdown,
    performance_distribution,
    system_overview,
    volunteer_activity,
    volunteer_performance,
)
from .config import AnalyticsPolicy
from .exceptions import ValidationError
from .clock import utc_now
from .logger import setup_logger
from .models import Goal, PerformanceSnapshot
from .models.analytics import SNAPSHOT_FIELDS

logger = setup_logger(__name__)

REPORT_KINDS = ("overview", "performance", "goals")

TREND_CSV_COLUMNS = ["week", "week_start", "completion_rate", "goals_completed", "total_goals"]


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _jsonable(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {_camel(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return getattr(value, "value", value)


def snapshot_to_dict(snapshot: PerformanceSnapshot) -> dict:
    """
    Convert a snapshot to a JSON-ready dict with camelCase keys.

    The 'provenance' key maps every field to 'server', 'derived' or
    'synthesized'; 'isFallback' flags client-side approximations.
    """
    data = {
        "overallCompletionRate": snapshot.overall_completion_rate,
        "averageProgress": snapshot.average_progress,
        "performanceScore": snapshot.performance_score,
        "streakCount": snapshot.streak_count,
        "longestStreak": snapshot.longest_streak,
        "weeklyTrends": [_jsonable(asdict(t)) for t in snapshot.weekly_trends],
        "categoryStats": [_jsonable(asdict(c)) for c in snapshot.category_stats],
        "achievements": [_jsonable(asdict(a)) for a in snapshot.achievements],
        "productiveData": [_jsonable(asdict(d)) for d in snapshot.productive_days],
        "mostProductiveDay": snapshot.most_productive_day,
        "predictedCompletionDate": _jsonable(snapshot.predicted_completion_date),
    }
    data["provenance"] = {
        _camel(name): snapshot.provenance_of(name).value
        for name in SNAPSHOT_FIELDS
    }
    data["isFallback"] = snapshot.is_fallback
    return data


def export_snapshot_json(snapshot: PerformanceSnapshot, path: Optional[Union[str, Path]] = None) -> str:
    """
    Serialize a snapshot to JSON.

    Args:
        snapshot: Snapshot to export
        path: Optional file to write to

    Returns:
        The JSON text
    """
    text = json.dumps(snapshot_to_dict(snapshot), indent=2, ensure_ascii=False)
    if path is not None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        logger.info(f"Exported snapshot to {path}")
    return text


def weekly_trends_frame(snapshot: PerformanceSnapshot) -> pd.DataFrame:
    """Weekly trends as a DataFrame, oldest week first."""
    rows = [
        {
            "week": t.week_label,
            "week_start": t.week_start,
            "completion_rate": t.completion_rate,
            "goals_completed": t.goals_completed,
            "total_goals": t.total_goals,
        }
        for t in snapshot.weekly_trends
    ]
    return pd.DataFrame(rows, columns=TREND_CSV_COLUMNS)


def export_weekly_trends_csv(snapshot: PerformanceSnapshot, path: Union[str, Path]) -> Path:
    """Write the snapshot's weekly trends to a CSV file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    weekly_trends_frame(snapshot).to_csv(path, index=False)
    logger.info(f"Exported {len(snapshot.weekly_trends)} weekly trend row(s) to {path}")
    return path


def export_report(
    kind: str,
    goals: Iterable[Goal],
    names: Optional[Mapping[str, str]] = None,
    volunteers: Optional[Iterable[dict]] = None,
    policy: Optional[AnalyticsPolicy] = None,
    now: Optional[datetime] = None,
) -> dict:
    """
    Build an organization report.

    Args:
        kind: 'overview', 'performance' or 'goals'
        goals: Every goal in scope
        names: Optional volunteer id -> display name
        volunteers: Optional volunteer records for the overview
        policy: Scoring policy for performance rows

    Returns:
        Dict with 'type', 'generatedAt' and 'data' (camelCase keys)

    Raises:
        ValidationError: unknown report kind
    """
    if kind not in REPORT_KINDS:
        raise ValidationError(
            f"Unknown report type '{kind}', expected one of {', '.join(REPORT_KINDS)}",
            field="type",
        )

    goals = list(goals)
    now = now or utc_now()

    if kind == "overview":
        data = system_overview(goals, volunteers)
    elif kind == "performance":
        data = [asdict(row) for row in volunteer_performance(goals, names=names, policy=policy)]
    else:
        rows = volunteer_performance(goals, names=names, policy=policy)
        data = {
            "goals": [g.to_dict() for g in goals],
            "category_breakdown": category_breakdown(goals),
            "performance_distribution": performance_distribution(rows),
            "volunteer_activity": volunteer_activity(goals, names=names),
        }

    logger.info(f"Built '{kind}' report over {len(goals)} goal(s)")
    return {"type": kind, "generatedAt": now.isoformat(), "data": _jsonable(data)}
