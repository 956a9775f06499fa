"""
Fallback Synthesizer
Builds a PerformanceSnapshot when the analytics backend can't be reached.

Whatever real data is at hand (goals, ledgers, per-volunteer performance
rows) is used first and tagged as derived. Only fields with no real data
behind them are synthesized, using a seedless deterministic policy:

    key      = sorted goal ids joined by "|" (or the failure reason)
    fraction = first 8 hex digits of md5("<salt>:<key>") / 0xFFFFFFFF
    weekday  = WEEKDAYS[int(fraction * 7)]
    horizon  = FALLBACK_MIN_HORIZON_DAYS + fraction * (max - min) days

Identical input always yields identical output.
"""

import hashlib
from datetime import datetime, timedelta
from typing import Optional, Sequence

from ..config import (
    DEFAULT_POLICY,
    FALLBACK_MAX_HORIZON_DAYS,
    FALLBACK_MIN_HORIZON_DAYS,
    PROGRESS_MAX,
    PROGRESS_MIN,
    AnalyticsPolicy,
)
from ..clock import utc_now
from ..logger import setup_logger
from ..models import Goal, PerformanceSnapshot, Provenance, VolunteerPerformance
from ..models.analytics import SNAPSHOT_FIELDS, SYNTHESIZABLE_FIELDS
from ..result import Unavailable
from .aggregation import WEEKDAYS, compute_snapshot

logger = setup_logger(__name__)


def stable_fraction(key: str, salt: str) -> float:
    """Deterministic value in [0, 1] derived from key."""
    digest = hashlib.md5(f"{salt}:{key}".encode()).hexdigest()
    return int(digest[:8], 16) / 0xFFFFFFFF


def _stable_key(unavailable: Unavailable) -> str:
    if unavailable.goals:
        return "|".join(sorted(g.id for g in unavailable.goals))
    if unavailable.performance_rows:
        return "|".join(sorted(r.volunteer_id for r in unavailable.performance_rows))
    return unavailable.reason or "goaltracker"


def synthesize_weekday(key: str) -> str:
    index = min(6, int(stable_fraction(key, "weekday") * 7))
    return WEEKDAYS[index]


def synthesize_completion_date(key: str, open_goals: Sequence[Goal], now: datetime):
    """
    Approximate completion date for the open goals.

    Falls between the min and max fallback horizons and never past the
    latest due date, unless that due date has already passed.
    """
    if not open_goals:
        return None

    span = FALLBACK_MAX_HORIZON_DAYS - FALLBACK_MIN_HORIZON_DAYS
    days = FALLBACK_MIN_HORIZON_DAYS + int(stable_fraction(key, "completion") * span)
    predicted = now + timedelta(days=days)

    due_dates = [g.due_date for g in open_goals if g.due_date is not None]
    if due_dates:
        latest_due = max(due_dates)
        if now <= latest_due < predicted:
            predicted = latest_due

    return predicted.date()


def _from_performance_rows(rows: Sequence[VolunteerPerformance]) -> tuple[int, int]:
    """Goal-count-weighted completion rate and performance score."""
    total_goals = sum(r.goals_count for r in rows)
    if total_goals <= 0:
        return 0, 0

    completion = sum(r.completion_rate * r.goals_count for r in rows) / total_goals
    performance = sum(r.performance * r.goals_count for r in rows) / total_goals

    def clamp(value: float) -> int:
        return max(PROGRESS_MIN, min(PROGRESS_MAX, int(value + 0.5)))

    return clamp(completion), clamp(performance)


def synthesize_fallback(
    unavailable: Unavailable,
    policy: Optional[AnalyticsPolicy] = None,
    now: Optional[datetime] = None,
    previously_earned=(),
) -> PerformanceSnapshot:
    """
    Approximate a PerformanceSnapshot from the data an Unavailable result carries.

    Args:
        unavailable: The failed fetch, with any real goals/ledgers/rows attached
        policy: Same policy the aggregation engine would use
        now: Reference time (defaults to utc_now())
        previously_earned: Achievements earned before, kept as earned

    Returns:
        PerformanceSnapshot whose provenance marks most_productive_day and
        predicted_completion_date as synthesized and every other field as derived
    """
    policy = policy or DEFAULT_POLICY
    now = now or utc_now()
    goals = list(unavailable.goals)
    key = _stable_key(unavailable)

    logger.warning(f"Analytics unavailable ({unavailable.reason}); building local fallback snapshot")

    if goals:
        base = compute_snapshot(
            goals,
            unavailable.ledgers,
            policy=policy,
            now=now,
            previously_earned=previously_earned,
        )
    elif unavailable.performance_rows:
        completion_rate, performance = _from_performance_rows(unavailable.performance_rows)
        base = PerformanceSnapshot(
            overall_completion_rate=completion_rate,
            performance_score=performance,
            achievements=tuple(previously_earned),
        )
    else:
        base = PerformanceSnapshot(achievements=tuple(previously_earned))

    most_productive = base.most_productive_day or synthesize_weekday(key)

    predicted = base.predicted_completion_date
    if predicted is None:
        open_goals = [g for g in goals if not g.status.is_terminal]
        predicted = synthesize_completion_date(key, open_goals, now)

    provenance = {name: Provenance.DERIVED for name in SNAPSHOT_FIELDS}
    provenance.update({name: Provenance.SYNTHESIZED for name in SYNTHESIZABLE_FIELDS})

    return PerformanceSnapshot(
        overall_completion_rate=base.overall_completion_rate,
        average_progress=base.average_progress,
        performance_score=base.performance_score,
        streak_count=base.streak_count,
        longest_streak=base.longest_streak,
        weekly_trends=base.weekly_trends,
        category_stats=base.category_stats,
        achievements=base.achievements,
        productive_days=base.productive_days,
        most_productive_day=most_productive,
        predicted_completion_date=predicted,
        provenance=provenance,
        input_issues=base.input_issues,
    )
