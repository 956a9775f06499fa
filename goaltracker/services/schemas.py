"""
Wire schemas for the backend REST API.

Payloads arrive in camelCase with the backend's enum spellings
(IN_PROGRESS, HIGH); each schema converts itself into the matching
domain model. Timestamps are normalized to naive UTC.
"""

from datetime import date, datetime, timezone
from typing import Annotated, Optional

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..analytics.aggregation import calculate_performance_score, most_productive_day
from ..models import (
    Achievement,
    CategoryStat,
    Goal,
    GoalPriority,
    GoalStatus,
    PerformanceSnapshot,
    ProductiveDay,
    ProgressEntry,
    Provenance,
    UpdateKind,
    VolunteerPerformance,
    WeeklyTrend,
)
from ..models.analytics import SNAPSHOT_FIELDS


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Drop timezone info after converting to UTC; naive values pass through."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def status_to_backend(status) -> str:
    """'in-progress' -> 'IN_PROGRESS'."""
    return GoalStatus.parse(status).value.replace("-", "_").upper()


class ApiModel(BaseModel):
    """Base schema: camelCase aliases, snake_case accepted too, unknown keys ignored."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def _round_half_up(value):
    if isinstance(value, float):
        return int(value + 0.5)
    return value


# Percentages may arrive as floats (66.67); stored as rounded ints
Percent = Annotated[int, BeforeValidator(_round_half_up)]


def _as_str(value):
    return value if value is None else str(value)


class GoalPayload(ApiModel):
    id: str
    title: str
    description: Optional[str] = ""
    category: Optional[str] = ""
    priority: str = "medium"
    status: str = "pending"
    progress: int = 0
    due_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    owner_id: str = Field(validation_alias=AliasChoices("volunteerId", "ownerId", "owner_id"))
    tags: Optional[list[str]] = None

    @field_validator("id", "owner_id", mode="before")
    @classmethod
    def coerce_ids(cls, value):
        return _as_str(value)

    @field_validator("status", mode="before")
    @classmethod
    def known_status(cls, value):
        return GoalStatus.parse(value).value

    @field_validator("priority", mode="before")
    @classmethod
    def known_priority(cls, value):
        return GoalPriority.parse(value).value

    def to_goal(self) -> Goal:
        return Goal(
            id=self.id,
            title=self.title,
            description=self.description or "",
            category=self.category or "",
            priority=self.priority,
            status=self.status,
            progress=self.progress,
            due_date=to_naive_utc(self.due_date),
            created_at=to_naive_utc(self.created_at),
            updated_at=to_naive_utc(self.updated_at),
            owner_id=self.owner_id,
            tags=tuple(self.tags or ()),
        )


class ProgressEntryPayload(ApiModel):
    id: str
    goal_id: str
    progress: int
    notes: Optional[str] = ""
    created_at: datetime = Field(validation_alias=AliasChoices("createdAt", "timestamp", "created_at"))
    kind: str = "manual"
    updated_by: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("updatedBy", "volunteerId", "updated_by"),
    )

    @field_validator("id", "goal_id", "updated_by", mode="before")
    @classmethod
    def coerce_ids(cls, value):
        return _as_str(value)

    @field_validator("kind", mode="before")
    @classmethod
    def known_kind(cls, value):
        return UpdateKind(str(value).lower()).value

    def to_entry(self) -> ProgressEntry:
        return ProgressEntry(
            id=self.id,
            goal_id=self.goal_id,
            progress=self.progress,
            notes=self.notes or "",
            kind=self.kind,
            created_at=to_naive_utc(self.created_at),
            updated_by=self.updated_by,
        )


class WeeklyTrendPayload(ApiModel):
    week: str
    week_start: Optional[date] = None
    completion_rate: Percent = 0
    goals_completed: int = 0
    total_goals: int = 0

    def to_trend(self) -> WeeklyTrend:
        return WeeklyTrend(
            week_label=self.week,
            week_start=self.week_start,
            completion_rate=self.completion_rate,
            goals_completed=self.goals_completed,
            total_goals=self.total_goals,
        )


class AchievementPayload(ApiModel):
    id: str
    title: str
    description: str = ""
    icon: str = ""
    earned_date: datetime = Field(validation_alias=AliasChoices("earnedDate", "earnedAt", "earned_date"))

    def to_achievement(self) -> Achievement:
        return Achievement(
            id=self.id,
            title=self.title,
            description=self.description,
            icon=self.icon,
            earned_at=to_naive_utc(self.earned_date),
        )


class CategoryStatPayload(ApiModel):
    category: str
    completion_rate: Percent = 0
    total_goals: int = 0


class ProductiveDayPayload(ApiModel):
    day: str
    completed_goals: int = 0


class PersonalAnalyticsPayload(ApiModel):
    """Response of GET /analytics/personal/{volunteerId}."""
    overall_completion_rate: Percent = 0
    average_progress: Percent = 0
    performance_score: Percent = 0
    streak_count: int = 0
    longest_streak: Optional[int] = None
    weekly_trends: list[WeeklyTrendPayload] = []
    achievements: list[AchievementPayload] = []
    category_stats: list[CategoryStatPayload] = []
    productive_data: list[ProductiveDayPayload] = []
    predicted_completion_date: Optional[date] = None

    def to_snapshot(self) -> PerformanceSnapshot:
        """Snapshot with every field tagged as server-confirmed."""
        productive_days = [ProductiveDay(day=d.day, completed_goals=d.completed_goals) for d in self.productive_data]
        achievements = sorted(
            (a.to_achievement() for a in self.achievements),
            key=lambda a: (a.earned_at, a.id),
        )

        return PerformanceSnapshot(
            overall_completion_rate=self.overall_completion_rate,
            average_progress=self.average_progress,
            performance_score=self.performance_score,
            streak_count=self.streak_count,
            longest_streak=self.streak_count if self.longest_streak is None else self.longest_streak,
            weekly_trends=[t.to_trend() for t in self.weekly_trends],
            category_stats=[
                CategoryStat(category=c.category, completion_rate=c.completion_rate, total_goals=c.total_goals)
                for c in self.category_stats
            ],
            achievements=achievements,
            productive_days=productive_days,
            most_productive_day=most_productive_day(productive_days),
            predicted_completion_date=self.predicted_completion_date,
            provenance={name: Provenance.SERVER for name in SNAPSHOT_FIELDS},
        )


class VolunteerPerformancePayload(ApiModel):
    """One row of GET /analytics/volunteer-performance."""
    volunteer_id: str = Field(validation_alias=AliasChoices("volunteerId", "id", "volunteer_id"))
    volunteer_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("volunteerName", "name", "volunteer_name"),
    )
    performance: Optional[Percent] = None
    completion_rate: Percent = 0
    average_progress: Percent = 0
    goals_count: int = Field(default=0, validation_alias=AliasChoices("goalsCount", "totalGoals", "goals_count"))

    @field_validator("volunteer_id", mode="before")
    @classmethod
    def coerce_ids(cls, value):
        return _as_str(value)

    def to_row(self) -> VolunteerPerformance:
        performance = self.performance
        if performance is None:
            performance = calculate_performance_score(self.completion_rate, self.average_progress)

        return VolunteerPerformance(
            volunteer_id=self.volunteer_id,
            name=self.volunteer_name or self.volunteer_id,
            performance=performance,
            completion_rate=self.completion_rate,
            goals_count=self.goals_count,
        )
