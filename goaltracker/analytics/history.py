"""
Progress History Analytics
Week-by-week and month-by-month views over the progress ledgers.

An entry counts as completed when it records 100% progress.
"""

import calendar
from datetime import datetime, timedelta
from typing import Optional, Sequence

import pandas as pd

from ..clock import utc_now
from ..config import (
    DEFAULT_POLICY,
    IMPROVEMENT_BAND,
    PROGRESS_MAX,
    PROGRESS_RANGES,
    TOP_CATEGORY_LIMIT,
    UNCATEGORIZED,
    AnalyticsPolicy,
)
from ..exceptions import ValidationError
from ..logger import setup_logger
from ..models import (
    CategoryActivity,
    Goal,
    MonthlySummary,
    ProgressBucket,
    VolunteerTrends,
    WeeklyProgress,
)
from .aggregation import collect_entries, iso_week_label, percentage

logger = setup_logger(__name__)

HISTORY_COLUMNS = ["entry_id", "goal_id", "category", "progress", "created_at"]


def _mean(values: pd.Series) -> int:
    if values.empty:
        return 0
    return int(values.mean() + 0.5)


def entries_frame(
    goals: Sequence[Goal],
    ledgers,
    now: datetime,
    policy: AnalyticsPolicy = DEFAULT_POLICY,
) -> pd.DataFrame:
    """
    One row per ledger entry with its goal category and ISO week.

    Orphaned entries are dropped the same way compute_snapshot drops them.
    """
    entries_by_goal, _ = collect_entries(goals, ledgers, now, policy)
    categories = {g.id: (g.category or "").strip() or UNCATEGORIZED for g in goals}

    rows = [
        (e.id, e.goal_id, categories[e.goal_id], e.progress, e.created_at)
        for entries in entries_by_goal.values()
        for e in entries
    ]
    df = pd.DataFrame(rows, columns=HISTORY_COLUMNS)
    df["created_at"] = pd.to_datetime(df["created_at"])
    df["progress"] = df["progress"].astype(int)
    df["completed"] = df["progress"] >= PROGRESS_MAX
    df["week_start"] = df["created_at"].dt.to_period("W-SUN").dt.start_time
    return df.sort_values("created_at", kind="mergesort").reset_index(drop=True)


def weekly_progress(df: pd.DataFrame) -> list[WeeklyProgress]:
    """Per-week entry counts and averages, oldest week first. Weeks without entries are omitted."""
    if df.empty:
        return []

    weekly = df.groupby("week_start", sort=True).agg(
        total=("entry_id", "count"),
        completed=("completed", "sum"),
        average=("progress", "mean"),
    )
    return [
        WeeklyProgress(
            week_label=iso_week_label(week_start),
            week_start=week_start.date(),
            total_entries=int(row["total"]),
            completed_entries=int(row["completed"]),
            average_progress=int(row["average"] + 0.5),
            completion_rate=percentage(row["completed"], row["total"]),
        )
        for week_start, row in weekly.iterrows()
    ]


def improvement_trend(rates: Sequence[float], band: float = IMPROVEMENT_BAND) -> str:
    """
    Compare the last two of the final four weekly rates against the first two.

    Returns 'improving', 'declining' or 'stable'. Fewer than four weeks is 'stable'.
    """
    if len(rates) < 4:
        return "stable"
    recent = list(rates)[-4:]
    earlier = (recent[0] + recent[1]) / 2
    later = (recent[2] + recent[3]) / 2
    if later > earlier + band:
        return "improving"
    if later < earlier - band:
        return "declining"
    return "stable"


def volunteer_trends(
    goals: Sequence[Goal],
    ledgers,
    now: Optional[datetime] = None,
    policy: AnalyticsPolicy = DEFAULT_POLICY,
) -> VolunteerTrends:
    """
    Ledger activity over the last policy.trend_weeks weeks.

    Args:
        goals: The volunteer's goals
        ledgers: Progress ledgers (mapping of goal id to entries, or ProgressLedger objects)
        now: Reference time (naive UTC)
        policy: Supplies the window length and clock-skew tolerance

    Returns:
        VolunteerTrends with one WeeklyProgress per active week, the best and
        worst week by completion rate and the improvement trend
    """
    now = now or utc_now()
    df = entries_frame(goals, ledgers, now, policy)
    window_start = now - timedelta(days=policy.trend_weeks * 7)
    df = df[df["created_at"] >= window_start]

    weeks = weekly_progress(df)
    if not weeks:
        return VolunteerTrends()

    best = worst = weeks[0]
    for week in weeks[1:]:
        if week.completion_rate > best.completion_rate:
            best = week
        if week.completion_rate < worst.completion_rate:
            worst = week

    trends = VolunteerTrends(
        weekly=weeks,
        total_entries=len(df),
        average_progress=_mean(df["progress"]),
        completion_rate=percentage(int(df["completed"].sum()), len(df)),
        best_week=best,
        worst_week=worst,
        improvement_trend=improvement_trend([w.completion_rate for w in weeks]),
    )
    logger.debug(f"Volunteer trends over {len(weeks)} weeks: {trends.improvement_trend}")
    return trends


def progress_distribution(progress: pd.Series) -> list[ProgressBucket]:
    """Entry counts per progress range (0-20, 21-40, ... 81-100)."""
    labels = [f"{low}-{high}%" for low, high in PROGRESS_RANGES]
    bins = [PROGRESS_RANGES[0][0] - 1] + [high for _, high in PROGRESS_RANGES]
    counts = (
        pd.cut(progress, bins=bins, labels=labels)
        .value_counts(sort=False)
        .reindex(labels, fill_value=0)
    )
    total = len(progress)
    return [
        ProgressBucket(label=label, count=int(count), percentage=percentage(count, total))
        for label, count in counts.items()
    ]


def top_categories(df: pd.DataFrame, limit: int = TOP_CATEGORY_LIMIT) -> list[CategoryActivity]:
    """Categories with the most entries, ties broken by name."""
    if df.empty:
        return []

    stats = df.groupby("category").agg(
        entries=("entry_id", "count"),
        completed=("completed", "sum"),
    ).reset_index()
    stats = stats.sort_values(["entries", "category"], ascending=[False, True], kind="mergesort").head(limit)
    return [
        CategoryActivity(
            category=row.category,
            entries=int(row.entries),
            completion_rate=percentage(row.completed, row.entries),
        )
        for row in stats.itertuples(index=False)
    ]


def monthly_summary(
    goals: Sequence[Goal],
    ledgers,
    year: int,
    month: int,
    now: Optional[datetime] = None,
    policy: AnalyticsPolicy = DEFAULT_POLICY,
) -> MonthlySummary:
    """
    Summarize the entries logged in one calendar month.

    Raises:
        ValidationError: month outside 1-12
    """
    if not 1 <= month <= 12:
        raise ValidationError(f"Month must be between 1 and 12, got {month}", field="month")

    now = now or utc_now()
    month_start = datetime(year, month, 1)
    next_month = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)

    df = entries_frame(goals, ledgers, now, policy)
    df = df[(df["created_at"] >= month_start) & (df["created_at"] < next_month)]
    completed = int(df["completed"].sum())

    logger.debug(f"Monthly summary {year}-{month:02d}: {len(df)} entries")
    return MonthlySummary(
        year=year,
        month=month,
        month_name=calendar.month_name[month],
        total_entries=len(df),
        completed_entries=completed,
        average_progress=_mean(df["progress"]),
        completion_rate=percentage(completed, len(df)),
        categories_worked=sorted(df["category"].unique()),
        weekly_breakdown=weekly_progress(df),
        top_categories=top_categories(df),
        progress_distribution=progress_distribution(df["progress"]),
    )
