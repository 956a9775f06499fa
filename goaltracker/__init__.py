"""
goaltracker - Volunteer goal tracking core.

Goal lifecycle rules, an append-only progress ledger, the analytics
aggregation engine and an offline fallback for when the backend is down.
"""

from .clock import utc_now
from .config import DEFAULT_POLICY, AnalyticsPolicy, load_policy
from .exceptions import (
    AggregationInputError,
    GoalTrackerError,
    InvalidTransitionError,
    OwnershipError,
    ValidationError,
)
from .models import (
    Achievement,
    CategoryStat,
    Goal,
    GoalPriority,
    GoalStatus,
    PerformanceSnapshot,
    ProgressEntry,
    Provenance,
    UpdateKind,
    WeeklyTrend,
)
from .goals import apply_transition, can_transition, create_goal, mark_overdue, sync_goal_with_entry
from .ledger import ProgressLedger, append_progress, delta, latest_n, week_over_week_change
from .result import Ok, Result, Unavailable
from .analytics import compute_snapshot, monthly_summary, synthesize_fallback, volunteer_trends

__version__ = "0.1.0"

__all__ = [
    # Configuration
    'AnalyticsPolicy',
    'DEFAULT_POLICY',
    'load_policy',
    'utc_now',
    # Errors
    'GoalTrackerError',
    'ValidationError',
    'InvalidTransitionError',
    'AggregationInputError',
    'OwnershipError',
    # Models
    'Achievement',
    'CategoryStat',
    'Goal',
    'GoalPriority',
    'GoalStatus',
    'PerformanceSnapshot',
    'ProgressEntry',
    'Provenance',
    'UpdateKind',
    'WeeklyTrend',
    # Goal rules
    'apply_transition',
    'can_transition',
    'create_goal',
    'mark_overdue',
    'sync_goal_with_entry',
    # Ledger
    'ProgressLedger',
    'append_progress',
    'delta',
    'latest_n',
    'week_over_week_change',
    # Results
    'Ok',
    'Result',
    'Unavailable',
    # Analytics
    'compute_snapshot',
    'synthesize_fallback',
    'volunteer_trends',
    'monthly_summary',
]
