"""
Goal entity rules for goaltracker.
Enforces valid status transitions and the progress/status coupling.
"""

import uuid
from datetime import datetime, timedelta
from typing import Iterable, Optional

from .config import (
    DEFAULT_POLICY,
    PROGRESS_MAX,
    PROGRESS_MIN,
    AnalyticsPolicy,
)
from .exceptions import InvalidTransitionError, OwnershipError, ValidationError
from .clock import utc_now
from .logger import setup_logger
from .models import Goal, GoalPriority, GoalStatus, ProgressEntry

logger = setup_logger(__name__)

# current status -> statuses it may move to
ALLOWED_TRANSITIONS = {
    GoalStatus.PENDING: {
        GoalStatus.IN_PROGRESS,
        GoalStatus.COMPLETED,
        GoalStatus.OVERDUE,
        GoalStatus.CANCELLED,
    },
    GoalStatus.IN_PROGRESS: {
        GoalStatus.PENDING,
        GoalStatus.COMPLETED,
        GoalStatus.OVERDUE,
        GoalStatus.CANCELLED,
    },
    GoalStatus.OVERDUE: {
        GoalStatus.IN_PROGRESS,
        GoalStatus.COMPLETED,
        GoalStatus.CANCELLED,
    },
    GoalStatus.COMPLETED: set(),
    GoalStatus.CANCELLED: set(),
}


def can_transition(current, target) -> bool:
    """Whether the state machine allows moving from current to target."""
    current = GoalStatus.parse(current)
    target = GoalStatus.parse(target)
    return target in ALLOWED_TRANSITIONS[current]


def validate_progress_value(progress, field: str = "progress", entity_id: Optional[str] = None) -> int:
    """Check that progress is an integer percentage in [0, 100]."""
    if isinstance(progress, bool) or not isinstance(progress, int):
        raise ValidationError(
            f"Progress must be a whole number, got {progress!r}",
            field=field,
            entity_id=entity_id,
        )
    if not PROGRESS_MIN <= progress <= PROGRESS_MAX:
        raise ValidationError(
            f"Progress must be between {PROGRESS_MIN} and {PROGRESS_MAX}, got {progress}",
            field=field,
            entity_id=entity_id,
        )
    return progress


def is_consistent(goal: Goal) -> bool:
    """A goal is consistent when 'completed' and progress 100 go together."""
    return (goal.status == GoalStatus.COMPLETED) == (goal.progress == PROGRESS_MAX)


def apply_transition(
    goal: Goal,
    target_status,
    now: Optional[datetime] = None,
    policy: AnalyticsPolicy = DEFAULT_POLICY,
) -> Goal:
    """
    Move a goal to a new status.

    Args:
        goal: The goal to transition (left untouched)
        target_status: Desired GoalStatus (or its string value)
        now: Timestamp for updated_at (defaults to utc_now())
        policy: Supplies the progress baseline for starting a goal

    Returns:
        A new Goal with status, progress and updated_at applied

    Raises:
        ValidationError: goal progress outside [0, 100]
        InvalidTransitionError: goal is inconsistent or the move is not allowed
    """
    target = GoalStatus.parse(target_status)
    validate_progress_value(goal.progress, entity_id=goal.id)

    if not is_consistent(goal):
        raise InvalidTransitionError(goal.id, goal.status, target, reason="inconsistent")

    if not can_transition(goal.status, target):
        raise InvalidTransitionError(goal.id, goal.status, target)

    progress = goal.progress
    if target == GoalStatus.COMPLETED:
        progress = PROGRESS_MAX
    elif target == GoalStatus.IN_PROGRESS and goal.status == GoalStatus.PENDING and progress == 0:
        progress = policy.start_baseline

    logger.debug(f"Goal {goal.id}: {goal.status.value} -> {target.value} (progress {goal.progress} -> {progress})")

    return goal.replace(
        status=target,
        progress=progress,
        updated_at=now or utc_now(),
    )


def toggle_pause(goal: Goal, now: Optional[datetime] = None, policy: AnalyticsPolicy = DEFAULT_POLICY) -> Goal:
    """Start a pending goal or pause an in-progress one."""
    if goal.status == GoalStatus.PENDING:
        return apply_transition(goal, GoalStatus.IN_PROGRESS, now=now, policy=policy)
    if goal.status == GoalStatus.IN_PROGRESS:
        return apply_transition(goal, GoalStatus.PENDING, now=now, policy=policy)
    raise InvalidTransitionError(goal.id, goal.status, "pending/in-progress")


def sync_goal_with_entry(goal: Goal, entry: ProgressEntry) -> Goal:
    """
    Bring a goal in line with a freshly appended progress entry.

    Progress 100 completes the goal; nonzero progress starts a pending goal.
    The ledger itself never touches the goal, callers use this after appending.
    """
    if entry.goal_id != goal.id:
        raise ValidationError(
            f"Entry {entry.id} belongs to goal {entry.goal_id}, not {goal.id}",
            field="goal_id",
            entity_id=entry.id,
        )
    validate_progress_value(entry.progress, entity_id=entry.id)

    if goal.status.is_terminal:
        raise InvalidTransitionError(goal.id, goal.status, goal.status, reason="terminal")

    status = goal.status
    if entry.progress == PROGRESS_MAX:
        status = GoalStatus.COMPLETED
    elif entry.progress > 0 and goal.status == GoalStatus.PENDING:
        status = GoalStatus.IN_PROGRESS

    return goal.replace(status=status, progress=entry.progress, updated_at=entry.created_at)


def mark_overdue(goals: Iterable[Goal], today: Optional[datetime] = None) -> list[Goal]:
    """
    Weekly sweep: flag open goals whose due date has passed.

    Returns:
        All goals, with overdue ones replaced by updated copies
    """
    today = today or utc_now()
    swept = []
    flagged = 0

    for goal in goals:
        if (
            goal.due_date is not None
            and goal.due_date < today
            and can_transition(goal.status, GoalStatus.OVERDUE)
        ):
            goal = goal.replace(status=GoalStatus.OVERDUE, updated_at=today)
            flagged += 1
        swept.append(goal)

    if flagged:
        logger.info(f"Marked {flagged} goal(s) overdue")

    return swept


def create_goal(
    owner_id: str,
    title: str,
    category: str,
    due_date: datetime,
    priority=GoalPriority.MEDIUM,
    description: str = "",
    tags: Iterable[str] = (),
    now: Optional[datetime] = None,
    goal_id: Optional[str] = None,
) -> Goal:
    """
    Validate and build a new pending goal.

    Raises:
        ValidationError: blank title/owner, unknown priority, or due date in the past
    """
    now = now or utc_now()

    if not title or not title.strip():
        raise ValidationError("Title is required", field="title")
    if not owner_id:
        raise ValidationError("A goal needs an owner", field="owner_id")
    try:
        priority = GoalPriority.parse(priority)
    except ValueError:
        raise ValidationError(f"Unknown priority: {priority!r}", field="priority") from None
    if due_date is None:
        raise ValidationError("Due date is required", field="due_date")
    # Same-day deadlines are fine
    if due_date.date() < now.date():
        raise ValidationError("Due date cannot be in the past", field="due_date")

    return Goal(
        id=goal_id or str(uuid.uuid4()),
        title=title.strip(),
        description=description,
        category=(category or "").strip(),
        priority=priority,
        status=GoalStatus.PENDING,
        progress=0,
        due_date=due_date,
        created_at=now,
        updated_at=now,
        owner_id=owner_id,
        tags=tuple(tags),
    )


def ensure_can_mutate(goal: Goal, actor_id: str, is_admin: bool = False) -> None:
    """Only the owner or an administrator may change a goal."""
    if is_admin or actor_id == goal.owner_id:
        return
    raise OwnershipError(goal.id, actor_id)


def upcoming_deadlines(goals: Iterable[Goal], now: Optional[datetime] = None, days: int = 7) -> list[Goal]:
    """Open goals due within the next `days` days, soonest first."""
    now = now or utc_now()
    horizon = now + timedelta(days=days)
    due_soon = [
        g for g in goals
        if not g.status.is_terminal and g.due_date is not None and now <= g.due_date <= horizon
    ]
    return sorted(due_soon, key=lambda g: (g.due_date, g.id))
