"""
Predictive Analytics Module
Forecasts goal completion dates from progress ledgers.
Uses simple statistical models optimized for small datasets.
"""

from datetime import datetime, timedelta
from typing import Mapping, Optional, Sequence

import numpy as np

from ..config import FORECAST_HORIZON_DAYS, PROGRESS_MAX
from ..clock import utc_now
from ..logger import setup_logger
from ..models import CompletionForecast, Goal, ProgressEntry

logger = setup_logger(__name__)

# Days past the due date still considered "medium" risk
MEDIUM_RISK_GRACE_DAYS = 7


def progress_rate(entries: Sequence[ProgressEntry]) -> Optional[float]:
    """
    Least-squares progress points per day over a ledger.

    Returns None when the entries span no time (fewer than two timestamps).
    """
    ordered = sorted(entries, key=lambda e: e.created_at)
    if len(ordered) < 2:
        return None

    origin = ordered[0].created_at
    x = np.array([(e.created_at - origin).total_seconds() / 86400 for e in ordered])
    y = np.array([e.progress for e in ordered], dtype=float)

    if np.ptp(x) == 0:
        return None

    return float(np.polyfit(x, y, 1)[0])


def assess_risk(predicted: datetime, due_date: Optional[datetime]) -> str:
    """'low' when on track for the due date, 'medium' within a week late, else 'high'."""
    if due_date is None or predicted.date() <= due_date.date():
        return "low"
    if predicted.date() <= (due_date + timedelta(days=MEDIUM_RISK_GRACE_DAYS)).date():
        return "medium"
    return "high"


def forecast_completion(
    goal: Goal,
    entries: Sequence[ProgressEntry],
    now: Optional[datetime] = None,
    horizon_days: int = FORECAST_HORIZON_DAYS,
) -> Optional[CompletionForecast]:
    """
    Project when an open goal reaches 100% at its current pace.

    Args:
        goal: The goal to forecast
        entries: Its progress entries (any order)
        now: Reference time (defaults to utc_now())
        horizon_days: Latest date a forecast may point to

    Returns:
        CompletionForecast, or None for closed goals and ledgers without upward movement
    """
    if goal.status.is_terminal:
        return None

    rate = progress_rate(entries)
    if rate is None or rate <= 0:
        return None

    now = now or utc_now()
    latest = max(entries, key=lambda e: e.created_at)
    remaining = max(0, PROGRESS_MAX - max(latest.progress, goal.progress))
    days_needed = min(remaining / rate, float(horizon_days))
    predicted = now + timedelta(days=days_needed)

    # More entries, more confidence
    confidence = round(min(0.9, 0.3 + 0.1 * len(entries)), 2)

    return CompletionForecast(
        goal_id=goal.id,
        predicted_date=predicted.date(),
        progress_per_day=round(rate, 2),
        risk_level=assess_risk(predicted, goal.due_date),
        confidence=confidence,
    )


def forecast_goals(
    goals: Sequence[Goal],
    entries_by_goal: Mapping[str, Sequence[ProgressEntry]],
    now: Optional[datetime] = None,
    horizon_days: int = FORECAST_HORIZON_DAYS,
) -> list[CompletionForecast]:
    """Forecasts for every open goal that has enough ledger data, soonest first."""
    forecasts = []
    for goal in goals:
        forecast = forecast_completion(goal, entries_by_goal.get(goal.id, ()), now=now, horizon_days=horizon_days)
        if forecast is not None:
            forecasts.append(forecast)

    forecasts.sort(key=lambda f: (f.predicted_date, f.goal_id))
    logger.debug(f"Forecast {len(forecasts)} of {len(goals)} goals")
    return forecasts
