"""
Error taxonomy for goaltracker.

Every error carries the field and entity id the presentation layer needs
to produce a specific message.
"""

from typing import Optional


class GoalTrackerError(Exception):
    """Base class for all goaltracker errors."""


class ValidationError(GoalTrackerError):
    """Malformed input: progress out of range, missing notes, future-dated entry."""

    def __init__(self, message: str, field: Optional[str] = None, entity_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.entity_id = entity_id

    def to_dict(self) -> dict:
        return {
            "error": "validation_error",
            "message": self.message,
            "field": self.field,
            "entityId": self.entity_id,
        }


class InvalidTransitionError(GoalTrackerError):
    """A status change the goal state machine does not permit."""

    def __init__(self, goal_id, current, target, reason: str = "not_allowed"):
        current_value = getattr(current, "value", current)
        target_value = getattr(target, "value", target)
        if reason == "inconsistent":
            message = (
                f"Goal {goal_id} is inconsistent (status '{current_value}' does not match "
                f"its progress); cannot move it to '{target_value}'"
            )
        else:
            message = f"Goal {goal_id} cannot move from '{current_value}' to '{target_value}'"
        super().__init__(message)
        self.message = message
        self.goal_id = goal_id
        self.current = current
        self.target = target
        self.reason = reason

    def to_dict(self) -> dict:
        return {
            "error": "invalid_transition",
            "message": self.message,
            "goalId": self.goal_id,
            "from": getattr(self.current, "value", self.current),
            "to": getattr(self.target, "value", self.target),
            "reason": self.reason,
        }


class AggregationInputError(GoalTrackerError):
    """
    Structurally inconsistent input to the aggregation engine.

    The engine logs these, excludes the offending record and lists the
    error in the snapshot instead of raising it.
    """

    def __init__(self, message: str, entity_id: Optional[str] = None, goal_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.entity_id = entity_id
        self.goal_id = goal_id

    def __eq__(self, other):
        if not isinstance(other, AggregationInputError):
            return NotImplemented
        return (self.message, self.entity_id, self.goal_id) == (other.message, other.entity_id, other.goal_id)

    def __hash__(self):
        return hash((self.message, self.entity_id, self.goal_id))


class OwnershipError(GoalTrackerError):
    """Someone other than the owner or an administrator tried to mutate a goal."""

    def __init__(self, goal_id, actor_id):
        message = f"User {actor_id} is not allowed to modify goal {goal_id}"
        super().__init__(message)
        self.message = message
        self.goal_id = goal_id
        self.actor_id = actor_id
