"""
Models package - Data models and type definitions.
"""

from .goal import Goal, GoalPriority, GoalStatus
from .progress import ProgressEntry, UpdateKind
from .analytics import (
    Achievement,
    CategoryStat,
    CategoryActivity,
    CompletionForecast,
    MonthlySummary,
    PerformanceSnapshot,
    ProductiveDay,
    ProgressBucket,
    Provenance,
    VolunteerPerformance,
    VolunteerTrends,
    WeeklyProgress,
    WeeklyTrend,
)

__all__ = [
    'Goal',
    'GoalPriority',
    'GoalStatus',
    'ProgressEntry',
    'UpdateKind',
    'Achievement',
    'CategoryStat',
    'CategoryActivity',
    'CompletionForecast',
    'MonthlySummary',
    'PerformanceSnapshot',
    'ProductiveDay',
    'ProgressBucket',
    'Provenance',
    'VolunteerPerformance',
    'VolunteerTrends',
    'WeeklyProgress',
    'WeeklyTrend',
]
