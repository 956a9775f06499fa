"""
Organization Analytics Module
Administrator views across every volunteer's goals.
"""

from typing import Iterable, Mapping, Optional, Sequence

import pandas as pd

from ..config import DEFAULT_POLICY, PERFORMANCE_BUCKETS, UNCATEGORIZED, AnalyticsPolicy
from ..logger import setup_logger
from ..models import Goal, GoalStatus, VolunteerPerformance
from .aggregation import (
    calculate_performance_score,
    percentage,
    validate_goals,
)

logger = setup_logger(__name__)


def _goals_frame(goals: Sequence[Goal]) -> pd.DataFrame:
    return pd.DataFrame({
        "owner_id": [g.owner_id for g in goals],
        "category": [(g.category or "").strip() or UNCATEGORIZED for g in goals],
        "progress": [g.progress for g in goals],
        "completed": [g.status == GoalStatus.COMPLETED for g in goals],
    })


def system_overview(goals: Iterable[Goal], volunteers: Optional[Iterable[dict]] = None) -> dict:
    """
    Organization headline numbers.

    Args:
        goals: Every goal in the organization
        volunteers: Optional volunteer records with a 'status' key ('active', ...)

    Returns:
        Dict with volunteer and goal totals, completion rate and overdue count
    """
    goals = list(goals)
    volunteers = list(volunteers or [])

    completed = sum(1 for g in goals if g.status == GoalStatus.COMPLETED)

    return {
        "total_volunteers": len(volunteers),
        "active_volunteers": sum(1 for v in volunteers if v.get("status") == "active"),
        "total_goals": len(goals),
        "completed_goals": completed,
        "completion_rate": percentage(completed, len(goals)),
        "overdue_goals": sum(1 for g in goals if g.status == GoalStatus.OVERDUE),
    }


def volunteer_performance(
    goals: Iterable[Goal],
    names: Optional[Mapping[str, str]] = None,
    policy: Optional[AnalyticsPolicy] = None,
) -> list[VolunteerPerformance]:
    """
    Per-volunteer completion rate and performance score.

    Returns:
        One row per goal owner, best performers first
    """
    policy = policy or DEFAULT_POLICY
    names = names or {}
    goals = list(goals)
    validate_goals(goals)

    if not goals:
        return []

    df = _goals_frame(goals)
    per_owner = df.groupby("owner_id").agg(
        goals_count=("progress", "size"),
        completed=("completed", "sum"),
        progress_total=("progress", "sum"),
    ).reset_index()

    rows = []
    for row in per_owner.itertuples(index=False):
        count = int(row.goals_count)
        completion_rate = percentage(int(row.completed), count)
        average_progress = int(int(row.progress_total) / count + 0.5)
        rows.append(VolunteerPerformance(
            volunteer_id=row.owner_id,
            name=names.get(row.owner_id, row.owner_id),
            performance=calculate_performance_score(completion_rate, average_progress, policy),
            completion_rate=completion_rate,
            goals_count=count,
        ))

    rows.sort(key=lambda r: (-r.performance, r.volunteer_id))
    logger.debug(f"Computed performance for {len(rows)} volunteer(s)")
    return rows


def performance_distribution(rows: Iterable[VolunteerPerformance]) -> list[dict]:
    """Count volunteers per completion-rate bucket (high / good / average / needs improvement)."""
    counts = {label: 0 for label, _ in PERFORMANCE_BUCKETS}
    for row in rows:
        for label, lower in PERFORMANCE_BUCKETS:
            if row.completion_rate >= lower:
                counts[label] += 1
                break
    return [{"name": label, "value": value} for label, value in counts.items()]


def category_breakdown(goals: Iterable[Goal]) -> list[dict]:
    """Number of goals per category, most common first."""
    goals = list(goals)
    if not goals:
        return []

    counts = _goals_frame(goals)["category"].value_counts()
    breakdown = [{"name": name, "value": int(value)} for name, value in counts.items()]
    breakdown.sort(key=lambda item: (-item["value"], item["name"]))
    return breakdown


def volunteer_activity(
    goals: Iterable[Goal],
    names: Optional[Mapping[str, str]] = None,
) -> list[dict]:
    """Goal totals per volunteer with at least one goal, highest completion rate first."""
    names = names or {}
    goals = list(goals)
    if not goals:
        return []

    df = _goals_frame(goals)
    per_owner = df.groupby("owner_id").agg(
        total_goals=("completed", "size"),
        completed_goals=("completed", "sum"),
    ).reset_index()

    activity = [
        {
            "volunteer_id": row.owner_id,
            "name": names.get(row.owner_id, row.owner_id),
            "total_goals": int(row.total_goals),
            "completed_goals": int(row.completed_goals),
            "completion_rate": percentage(int(row.completed_goals), int(row.total_goals)),
        }
        for row in per_owner.itertuples(index=False)
    ]
    activity.sort(key=lambda a: (-a["completion_rate"], a["volunteer_id"]))
    return activity
