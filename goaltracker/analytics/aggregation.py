"""
Aggregation Engine
Folds a goal set and its progress ledgers into a PerformanceSnapshot.
Pure and deterministic: identical inputs give identical snapshots.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Iterable, Optional, Sequence

import pandas as pd

from ..config import (
    DEFAULT_POLICY,
    MAX_UPCOMING_DEADLINES,
    PROGRESS_MAX,
    PROGRESS_MIN,
    UNCATEGORIZED,
    UPCOMING_DEADLINE_DAYS,
    AnalyticsPolicy,
)
from ..exceptions import AggregationInputError, ValidationError
from ..goals import upcoming_deadlines, validate_progress_value
from ..ledger import ProgressLedger
from ..clock import utc_now
from ..logger import log_goal_set_stats, setup_logger
from ..models import (
    CategoryStat,
    Goal,
    GoalStatus,
    PerformanceSnapshot,
    ProductiveDay,
    ProgressEntry,
    Provenance,
    WeeklyTrend,
)
from ..models.analytics import SNAPSHOT_FIELDS
from .gamification import (
    calculate_current_streak,
    calculate_longest_streak,
    check_achievements,
    qualifying_weeks,
)
from .predictions import forecast_goals

logger = setup_logger(__name__)

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
WEEKLY_COLUMNS = ["week_start", "week_label", "total_goals", "goals_completed", "completion_rate"]
COMPLETION_COLUMNS = ["goal_id", "completed_at", "week_start"]


def percentage(part: float, whole: float) -> int:
    """part/whole as a whole percentage, rounded half up; 0 when whole is 0."""
    if whole <= 0:
        return 0
    return int(part * 100 / whole + 0.5)


def calculate_completion_rate(goals: Sequence[Goal]) -> int:
    """Share of completed goals, 0-100."""
    completed = sum(1 for g in goals if g.status == GoalStatus.COMPLETED)
    return percentage(completed, len(goals))


def calculate_average_progress(goals: Sequence[Goal]) -> int:
    """Mean goal progress, rounded; 0 for no goals."""
    if not goals:
        return 0
    return int(sum(g.progress for g in goals) / len(goals) + 0.5)


def calculate_performance_score(
    completion_rate: float,
    average_progress: float,
    policy: AnalyticsPolicy = DEFAULT_POLICY,
) -> int:
    """Weighted blend of completion rate and average progress, clamped to [0, 100]."""
    raw = policy.completion_weight * completion_rate + policy.progress_weight * average_progress
    return max(PROGRESS_MIN, min(PROGRESS_MAX, int(raw + 0.5)))


def week_start_of(timestamp) -> pd.Timestamp:
    """Monday 00:00 of the ISO week containing timestamp."""
    return pd.Timestamp(timestamp).to_period("W-SUN").start_time


def iso_week_label(week_start: pd.Timestamp) -> str:
    year, week, _ = week_start.isocalendar()
    return f"{year}-W{week:02d}"


def _iter_ledgers(ledgers):
    """Yield (goal_id or None, entries) pairs from any supported ledger container."""
    if ledgers is None:
        return
    if isinstance(ledgers, Mapping):
        for goal_id, entries in ledgers.items():
            if isinstance(entries, ProgressLedger):
                entries = entries.oldest_first()
            yield goal_id, list(entries)
        return
    for item in ledgers:
        if isinstance(item, ProgressLedger):
            yield item.goal_id, item.oldest_first()
        elif isinstance(item, ProgressEntry):
            yield None, [item]
        else:
            yield None, list(item)


def validate_goals(goals: Sequence[Goal]) -> None:
    """Reject goals whose progress lies outside [0, 100]."""
    for goal in goals:
        validate_progress_value(goal.progress, entity_id=goal.id)


def collect_entries(
    goals: Sequence[Goal],
    ledgers,
    now: datetime,
    policy: AnalyticsPolicy = DEFAULT_POLICY,
) -> tuple[dict[str, list[ProgressEntry]], list[AggregationInputError]]:
    """
    Group ledger entries by goal, oldest-first.

    Orphaned entries (unknown goal, or filed under another goal's ledger)
    are left out and reported as AggregationInputError values.

    Raises:
        ValidationError: entry progress out of range or entry dated in the future
    """
    goal_ids = {g.id for g in goals}
    entries_by_goal: dict[str, list[ProgressEntry]] = {g.id: [] for g in goals}
    issues: list[AggregationInputError] = []
    latest_allowed = now + policy.clock_skew_tolerance

    for ledger_goal_id, entries in _iter_ledgers(ledgers):
        for entry in entries:
            validate_progress_value(entry.progress, entity_id=entry.id)
            if entry.created_at > latest_allowed:
                raise ValidationError(
                    f"Progress entry {entry.id} is dated in the future ({entry.created_at.isoformat()})",
                    field="created_at",
                    entity_id=entry.id,
                )

            if ledger_goal_id is not None and entry.goal_id != ledger_goal_id:
                issues.append(AggregationInputError(
                    f"Entry {entry.id} references goal {entry.goal_id} but was filed under {ledger_goal_id}",
                    entity_id=entry.id,
                    goal_id=entry.goal_id,
                ))
                continue

            if entry.goal_id not in goal_ids:
                issues.append(AggregationInputError(
                    f"Entry {entry.id} references unknown goal {entry.goal_id}",
                    entity_id=entry.id,
                    goal_id=entry.goal_id,
                ))
                continue

            entries_by_goal[entry.goal_id].append(entry)

    for issue in issues:
        logger.warning(f"Excluding orphaned progress entry: {issue.message}")

    for goal_id in entries_by_goal:
        entries_by_goal[goal_id].sort(key=lambda e: e.created_at)

    return entries_by_goal, issues


def completion_times(goals: Sequence[Goal], entries_by_goal: Mapping) -> pd.DataFrame:
    """
    When each completed goal became completed.

    The first entry reaching 100 marks the moment; goals completed without
    such an entry fall back to their updated_at.
    """
    rows = []
    for goal in goals:
        if goal.status != GoalStatus.COMPLETED:
            continue
        completed_at = goal.updated_at
        for entry in entries_by_goal.get(goal.id, ()):
            if entry.progress >= PROGRESS_MAX:
                completed_at = entry.created_at
                break
        rows.append((goal.id, completed_at))

    completions = pd.DataFrame(rows, columns=["goal_id", "completed_at"])
    if completions.empty:
        completions["week_start"] = pd.Series(dtype="datetime64[ns]")
        return completions[COMPLETION_COLUMNS]

    completions["completed_at"] = pd.to_datetime(completions["completed_at"])
    completions["week_start"] = completions["completed_at"].dt.to_period("W-SUN").dt.start_time
    return completions[COMPLETION_COLUMNS]


def build_weekly_frame(
    entries_by_goal: Mapping,
    completions: pd.DataFrame,
    now: datetime,
) -> pd.DataFrame:
    """
    Weekly completion series, oldest to newest.

    A goal counts as touched in a week when it received an entry or was
    completed in it. The series runs without gaps from the first week with
    data up to the current week; empty weeks have zero totals.
    """
    rows = [(e.goal_id, e.created_at) for entries in entries_by_goal.values() for e in entries]
    rows.extend(zip(completions["goal_id"], completions["completed_at"]))

    if not rows:
        return pd.DataFrame(columns=WEEKLY_COLUMNS)

    events = pd.DataFrame(rows, columns=["goal_id", "timestamp"])
    events["timestamp"] = pd.to_datetime(events["timestamp"])
    events["week_start"] = events["timestamp"].dt.to_period("W-SUN").dt.start_time

    touched = events.groupby("week_start")["goal_id"].nunique()
    completed = completions.groupby("week_start")["goal_id"].nunique()

    first_week = touched.index.min()
    last_week = max(touched.index.max(), week_start_of(now))
    index = pd.date_range(first_week, last_week, freq="7D")

    weekly = pd.DataFrame({"week_start": index})
    weekly["week_label"] = [iso_week_label(ts) for ts in index]
    weekly["total_goals"] = touched.reindex(index, fill_value=0).to_numpy().astype(int)
    weekly["goals_completed"] = completed.reindex(index, fill_value=0).to_numpy().astype(int)
    weekly["completion_rate"] = [
        percentage(c, t) for c, t in zip(weekly["goals_completed"], weekly["total_goals"])
    ]

    return weekly[WEEKLY_COLUMNS]


def weekly_trends(weekly: pd.DataFrame, trend_weeks: int) -> list[WeeklyTrend]:
    """The most recent trend_weeks weeks as WeeklyTrend values, oldest first."""
    if weekly.empty:
        return []
    return [
        WeeklyTrend(
            week_label=row.week_label,
            week_start=row.week_start.date(),
            completion_rate=int(row.completion_rate),
            goals_completed=int(row.goals_completed),
            total_goals=int(row.total_goals),
        )
        for row in weekly.tail(trend_weeks).itertuples(index=False)
    ]


def calculate_category_stats(goals: Sequence[Goal]) -> list[CategoryStat]:
    """Completion rate and goal count per category, largest categories first."""
    if not goals:
        return []

    df = pd.DataFrame({
        "category": [(g.category or "").strip() or UNCATEGORIZED for g in goals],
        "completed": [g.status == GoalStatus.COMPLETED for g in goals],
    })
    grouped = df.groupby("category")["completed"].agg(total="count", done="sum").reset_index()
    grouped = grouped.sort_values(["total", "category"], ascending=[False, True], kind="mergesort")

    return [
        CategoryStat(
            category=row.category,
            completion_rate=percentage(int(row.done), int(row.total)),
            total_goals=int(row.total),
        )
        for row in grouped.itertuples(index=False)
    ]


def calculate_productive_days(completions: pd.DataFrame) -> list[ProductiveDay]:
    """Completed goals per weekday, Monday through Sunday."""
    counts = [0] * 7
    for ts in completions["completed_at"]:
        counts[ts.weekday()] += 1
    return [ProductiveDay(day=day, completed_goals=count) for day, count in zip(WEEKDAYS, counts)]


def most_productive_day(days: Sequence[ProductiveDay]) -> Optional[str]:
    """Weekday with the most completions (earliest weekday on ties); None without any."""
    best = None
    for day in days:
        if day.completed_goals > 0 and (best is None or day.completed_goals > best.completed_goals):
            best = day
    return best.day if best else None


def compute_snapshot(
    goals: Iterable[Goal],
    ledgers=None,
    policy: Optional[AnalyticsPolicy] = None,
    now: Optional[datetime] = None,
    previously_earned: Iterable = (),
) -> PerformanceSnapshot:
    """
    Fold goals and their ledgers into a PerformanceSnapshot.

    Args:
        goals: The goal set in scope
        ledgers: goal_id -> entries mapping, or an iterable of ProgressLedger
        policy: Score weights, streak threshold and trend window
        now: Reference time for the current week and the clock-skew guard
        previously_earned: Achievements from earlier snapshots, kept as earned

    Returns:
        PerformanceSnapshot with every field tagged as derived

    Raises:
        ValidationError: a goal or entry progress outside [0, 100], or an
            entry dated after now
    """
    policy = policy or DEFAULT_POLICY
    now = now or utc_now()
    goals = list(goals)

    validate_goals(goals)
    log_goal_set_stats(goals, logger)
    entries_by_goal, issues = collect_entries(goals, ledgers, now, policy)

    completion_rate = calculate_completion_rate(goals)
    average_progress = calculate_average_progress(goals)

    completions = completion_times(goals, entries_by_goal)
    weekly = build_weekly_frame(entries_by_goal, completions, now)
    qualifying = qualifying_weeks(weekly, policy.streak_threshold)

    productive = calculate_productive_days(completions)
    forecasts = forecast_goals(goals, entries_by_goal, now=now)

    snapshot = PerformanceSnapshot(
        overall_completion_rate=completion_rate,
        average_progress=average_progress,
        performance_score=calculate_performance_score(completion_rate, average_progress, policy),
        streak_count=calculate_current_streak(qualifying),
        longest_streak=calculate_longest_streak(qualifying),
        weekly_trends=weekly_trends(weekly, policy.trend_weeks),
        category_stats=calculate_category_stats(goals),
        achievements=check_achievements(completions, weekly, policy.streak_threshold, previously_earned),
        productive_days=productive,
        most_productive_day=most_productive_day(productive),
        predicted_completion_date=max(f.predicted_date for f in forecasts) if forecasts else None,
        provenance={name: Provenance.DERIVED for name in SNAPSHOT_FIELDS},
        input_issues=issues,
    )

    logger.debug(
        f"Snapshot: completion {snapshot.overall_completion_rate}%, score {snapshot.performance_score}, "
        f"streak {snapshot.streak_count}, {len(snapshot.achievements)} achievement(s)"
    )

    return snapshot


def summarize_goals(goals: Iterable[Goal], now: Optional[datetime] = None) -> dict:
    """
    Dashboard header numbers for a goal set.

    Returns:
        Dict with per-status counts, completion_rate, average_progress,
        categories_count and upcoming_deadlines (Goal list)
    """
    goals = list(goals)
    counts = {status: 0 for status in GoalStatus}
    for goal in goals:
        counts[goal.status] += 1

    return {
        "total_goals": len(goals),
        "completed_goals": counts[GoalStatus.COMPLETED],
        "pending_goals": counts[GoalStatus.PENDING],
        "in_progress_goals": counts[GoalStatus.IN_PROGRESS],
        "overdue_goals": counts[GoalStatus.OVERDUE],
        "cancelled_goals": counts[GoalStatus.CANCELLED],
        "completion_rate": calculate_completion_rate(goals),
        "average_progress": calculate_average_progress(goals),
        "categories_count": len({(g.category or "").strip() or UNCATEGORIZED for g in goals}),
        "upcoming_deadlines": upcoming_deadlines(goals, now=now, days=UPCOMING_DEADLINE_DAYS)[:MAX_UPCOMING_DEADLINES],
    }
