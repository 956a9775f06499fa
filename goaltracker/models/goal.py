"""
Goal data models and type definitions.
"""

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class GoalStatus(str, Enum):
    """Lifecycle states of a goal."""
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value) -> "GoalStatus":
        """Parse a status, accepting the backend spelling 'in_progress'."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("_", "-")
        return cls(normalized)

    @property
    def is_terminal(self) -> bool:
        return self in (GoalStatus.COMPLETED, GoalStatus.CANCELLED)


class GoalPriority(str, Enum):
    """Goal priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, value) -> "GoalPriority":
        """Parse a priority case-insensitively ('High' -> HIGH)."""
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


@dataclass(frozen=True)
class Goal:
    """
    A tracked objective owned by one volunteer.

    Attributes:
        id: Opaque unique identifier
        title: Short title
        description: Free text
        category: Free-text label used for grouping
        priority: low / medium / high
        status: Lifecycle state
        progress: Integer percentage (0-100)
        due_date: Deadline
        created_at: Creation timestamp
        updated_at: Last mutation timestamp
        owner_id: Volunteer who owns the goal
        tags: Optional labels
    """
    id: str
    title: str
    category: str
    owner_id: str
    created_at: datetime
    updated_at: datetime
    status: GoalStatus = GoalStatus.PENDING
    priority: GoalPriority = GoalPriority.MEDIUM
    progress: int = 0
    description: str = ""
    due_date: Optional[datetime] = None
    tags: tuple = field(default_factory=tuple)

    def __post_init__(self):
        """Coerce enum fields; progress range is checked by the rules and the engine."""
        object.__setattr__(self, "status", GoalStatus.parse(self.status))
        object.__setattr__(self, "priority", GoalPriority.parse(self.priority))
        object.__setattr__(self, "tags", tuple(self.tags))

    def replace(self, **changes) -> "Goal":
        """Return a copy with the given fields changed."""
        return dataclasses.replace(self, **changes)

    @property
    def is_completed(self) -> bool:
        return self.status == GoalStatus.COMPLETED

    def to_dict(self) -> dict:
        """Convert goal to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "priority": self.priority.value,
            "status": self.status.value,
            "progress": self.progress,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "ownerId": self.owner_id,
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Goal":
        """Create Goal from dictionary (as produced by to_dict)."""
        due = data.get("dueDate")
        return cls(
            id=data["id"],
            title=data["title"],
            description=data.get("description", ""),
            category=data.get("category", ""),
            priority=data.get("priority", GoalPriority.MEDIUM),
            status=data.get("status", GoalStatus.PENDING),
            progress=data.get("progress", 0),
            due_date=datetime.fromisoformat(due) if due else None,
            created_at=datetime.fromisoformat(data["createdAt"]),
            updated_at=datetime.fromisoformat(data["updatedAt"]),
            owner_id=data["ownerId"],
            tags=tuple(data.get("tags", ())),
        )
