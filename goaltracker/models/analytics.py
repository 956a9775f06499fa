"""
Derived analytics value types.
Everything here is a view computed from goals and ledgers; nothing is persisted.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Mapping, Optional


class Provenance(str, Enum):
    """Where an analytics value came from."""
    SERVER = "server"  # Confirmed by the analytics backend
    DERIVED = "derived"  # Computed locally from real goal/ledger data
    SYNTHESIZED = "synthesized"  # Approximated, no real data behind it

    @property
    def is_authoritative(self) -> bool:
        return self is not Provenance.SYNTHESIZED


@dataclass(frozen=True)
class WeeklyTrend:
    """Completion statistics for one ISO week."""
    week_label: str  # e.g. "2026-W42"
    completion_rate: int
    goals_completed: int
    total_goals: int
    week_start: Optional[date] = None  # Monday of the week; the backend may omit it


@dataclass(frozen=True)
class CategoryStat:
    """Completion statistics for one goal category."""
    category: str
    completion_rate: int
    total_goals: int


@dataclass(frozen=True)
class Achievement:
    """A milestone badge, keyed by a stable id."""
    id: str
    title: str
    description: str
    icon: str
    earned_at: datetime


@dataclass(frozen=True)
class ProductiveDay:
    """Goal completions falling on one weekday."""
    day: str
    completed_goals: int


SNAPSHOT_FIELDS = (
    "overall_completion_rate",
    "average_progress",
    "performance_score",
    "streak_count",
    "longest_streak",
    "weekly_trends",
    "category_stats",
    "achievements",
    "productive_days",
    "most_productive_day",
    "predicted_completion_date",
)

SYNTHESIZABLE_FIELDS = ("most_productive_day", "predicted_completion_date")


@dataclass(frozen=True)
class PerformanceSnapshot:
    """The aggregation engine's output: all derived analytics at a point in time."""
    overall_completion_rate: int = 0
    average_progress: int = 0
    performance_score: int = 0
    streak_count: int = 0
    longest_streak: int = 0
    weekly_trends: tuple = ()
    category_stats: tuple = ()
    achievements: tuple = ()
    productive_days: tuple = ()
    most_productive_day: Optional[str] = None
    predicted_completion_date: Optional[date] = None
    provenance: Mapping[str, Provenance] = field(default_factory=dict)
    input_issues: tuple = ()

    def __post_init__(self):
        for name in ("weekly_trends", "category_stats", "achievements", "productive_days", "input_issues"):
            object.__setattr__(self, name, tuple(getattr(self, name)))
        object.__setattr__(self, "provenance", dict(self.provenance))

    def provenance_of(self, field_name: str) -> Provenance:
        """Provenance of a field; untagged fields count as derived."""
        if field_name not in SNAPSHOT_FIELDS:
            raise KeyError(field_name)
        return self.provenance.get(field_name, Provenance.DERIVED)

    def is_authoritative(self, field_name: str) -> bool:
        return self.provenance_of(field_name).is_authoritative

    @property
    def is_fallback(self) -> bool:
        """True when any field is a client-side approximation."""
        return any(p is Provenance.SYNTHESIZED for p in self.provenance.values())


@dataclass(frozen=True)
class CompletionForecast:
    """Projected completion date for an open goal."""
    goal_id: str
    predicted_date: date
    progress_per_day: float
    risk_level: str  # "low", "medium", "high"
    confidence: float  # 0-1


@dataclass(frozen=True)
class VolunteerPerformance:
    """One row of the organization-wide performance table."""
    volunteer_id: str
    name: str
    performance: int
    completion_rate: int
    goals_count: int


@dataclass(frozen=True)
class WeeklyProgress:
    """Progress-entry statistics for one ISO week."""
    week_label: str
    week_start: date
    total_entries: int
    completed_entries: int  # Entries that reached 100%
    average_progress: int
    completion_rate: int


@dataclass(frozen=True)
class VolunteerTrends:
    """Week-by-week ledger activity over the trend window."""
    weekly: tuple = ()
    total_entries: int = 0
    average_progress: int = 0
    completion_rate: int = 0
    best_week: Optional[WeeklyProgress] = None
    worst_week: Optional[WeeklyProgress] = None
    improvement_trend: str = "stable"  # "improving", "declining", "stable"

    def __post_init__(self):
        object.__setattr__(self, "weekly", tuple(self.weekly))


@dataclass(frozen=True)
class CategoryActivity:
    """Progress entries logged against one goal category."""
    category: str
    entries: int
    completion_rate: int


@dataclass(frozen=True)
class ProgressBucket:
    """Entries whose progress falls in one range."""
    label: str  # e.g. "21-40%"
    count: int
    percentage: int


@dataclass(frozen=True)
class MonthlySummary:
    """Ledger activity of one calendar month."""
    year: int
    month: int
    month_name: str
    total_entries: int = 0
    completed_entries: int = 0
    average_progress: int = 0
    completion_rate: int = 0
    categories_worked: tuple = ()
    weekly_breakdown: tuple = ()
    top_categories: tuple = ()
    progress_distribution: tuple = ()

    def __post_init__(self):
        for name in ("categories_worked", "weekly_breakdown", "top_categories", "progress_distribution"):
            object.__setattr__(self, name, tuple(getattr(self, name)))
