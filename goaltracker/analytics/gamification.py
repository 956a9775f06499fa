"""
Streaks & Achievements Module
Tracks weekly completion streaks and awards milestone achievements.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Sequence

import pandas as pd

from ..config import (
    FIRST_GOAL_THRESHOLD,
    GOAL_ACHIEVER_THRESHOLD,
    GOAL_MASTER_THRESHOLD,
    STREAK_ACHIEVEMENT_WEEKS,
)
from ..logger import setup_logger
from ..models import Achievement

logger = setup_logger(__name__)


@dataclass(frozen=True)
class AchievementDefinition:
    """A milestone that can be earned once."""
    id: str
    title: str
    description: str
    icon: str

    def earn(self, earned_at: datetime) -> Achievement:
        return Achievement(
            id=self.id,
            title=self.title,
            description=self.description,
            icon=self.icon,
            earned_at=earned_at,
        )


# Achievement definitions
ACHIEVEMENT_DEFINITIONS = [
    # Volume achievements
    AchievementDefinition("first_goal_completed", "First Goal Completed", "Completed your first goal!", "🎯"),
    AchievementDefinition("goal_achiever", "Goal Achiever", f"Completed {GOAL_ACHIEVER_THRESHOLD} goals", "⭐"),
    AchievementDefinition("goal_master", "Goal Master", f"Completed {GOAL_MASTER_THRESHOLD} goals", "🏆"),

    # Consistency achievements
    AchievementDefinition(
        "four_week_streak", "On a Roll", f"{STREAK_ACHIEVEMENT_WEEKS} weeks in a row with a completed goal", "🔥",
    ),
    AchievementDefinition("perfect_week", "Perfect Week", "Completed every goal you worked on in a week", "💎"),
]

ACHIEVEMENTS_BY_ID = {d.id: d for d in ACHIEVEMENT_DEFINITIONS}

COMPLETION_MILESTONES = [
    ("first_goal_completed", FIRST_GOAL_THRESHOLD),
    ("goal_achiever", GOAL_ACHIEVER_THRESHOLD),
    ("goal_master", GOAL_MASTER_THRESHOLD),
]


def qualifying_weeks(weekly: pd.DataFrame, threshold: float) -> list[bool]:
    """Per week (oldest first), whether its completion rate beats the threshold."""
    if weekly.empty:
        return []
    return [bool(rate > threshold) for rate in weekly["completion_rate"]]


def calculate_current_streak(qualifying: Sequence[bool]) -> int:
    """
    Consecutive qualifying weeks ending at the most recent week.

    The most recent week may still be running: if it doesn't qualify yet
    the count starts from the week before.
    """
    if not qualifying:
        return 0

    weeks = list(qualifying)
    if not weeks[-1]:
        weeks = weeks[:-1]

    streak = 0
    for qualifies in reversed(weeks):
        if not qualifies:
            break
        streak += 1

    return streak


def calculate_longest_streak(qualifying: Sequence[bool]) -> int:
    """Longest run of consecutive qualifying weeks anywhere in the series."""
    longest = 0
    current = 0

    for qualifies in qualifying:
        if qualifies:
            current += 1
            longest = max(longest, current)
        else:
            current = 0

    return longest


def _last_completion_in_week(completions: pd.DataFrame, week_start) -> Optional[datetime]:
    in_week = completions[completions["week_start"] == week_start]
    if in_week.empty:
        return None
    return in_week["completed_at"].max().to_pydatetime()


def check_achievements(
    completions: pd.DataFrame,
    weekly: pd.DataFrame,
    streak_threshold: float = 0.0,
    previously_earned: Iterable[Achievement] = (),
) -> list[Achievement]:
    """
    Determine earned achievements.

    Args:
        completions: One row per completed goal (goal_id, completed_at, week_start)
        weekly: Full weekly series (week_start, goals_completed, total_goals, completion_rate)
        streak_threshold: Completion rate a week must exceed to extend a streak
        previously_earned: Achievements earned in earlier runs; never revoked

    Returns:
        Achievements sorted by earned_at then id, one per id
    """
    earned: dict[str, Achievement] = {}

    if not completions.empty:
        ordered = completions.sort_values(["completed_at", "goal_id"], kind="mergesort")
        times = [ts.to_pydatetime() for ts in ordered["completed_at"]]

        # Volume achievements: timestamp of the n-th completion
        for achievement_id, threshold in COMPLETION_MILESTONES:
            if len(times) >= threshold:
                earned[achievement_id] = ACHIEVEMENTS_BY_ID[achievement_id].earn(times[threshold - 1])

    if not weekly.empty:
        qualifying = qualifying_weeks(weekly, streak_threshold)
        week_starts = list(weekly["week_start"])

        # Streak achievement: last completion of the week the run reached its target
        run = 0
        for i, qualifies in enumerate(qualifying):
            run = run + 1 if qualifies else 0
            if run == STREAK_ACHIEVEMENT_WEEKS:
                earned_at = _last_completion_in_week(completions, week_starts[i])
                if earned_at is not None:
                    earned["four_week_streak"] = ACHIEVEMENTS_BY_ID["four_week_streak"].earn(earned_at)
                break

        # Perfect week: every touched goal of a week completed in that week
        perfect = weekly[(weekly["total_goals"] > 0) & (weekly["goals_completed"] == weekly["total_goals"])]
        if not perfect.empty:
            earned_at = _last_completion_in_week(completions, perfect["week_start"].iloc[0])
            if earned_at is not None:
                earned["perfect_week"] = ACHIEVEMENTS_BY_ID["perfect_week"].earn(earned_at)

    return merge_achievements(previously_earned, earned.values())


def merge_achievements(previous: Iterable[Achievement], current: Iterable[Achievement]) -> list[Achievement]:
    """
    Union two achievement lists by id.

    Earned achievements are never revoked; when both lists hold an id the
    earliest earned_at wins.
    """
    merged: dict[str, Achievement] = {}
    for achievement in list(previous) + list(current):
        existing = merged.get(achievement.id)
        if existing is None or achievement.earned_at < existing.earned_at:
            merged[achievement.id] = achievement

    result = sorted(merged.values(), key=lambda a: (a.earned_at, a.id))
    logger.debug(f"{len(result)} achievement(s) earned")
    return result
