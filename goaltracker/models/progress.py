"""
Progress entry model.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class UpdateKind(str, Enum):
    """How a progress update was submitted."""
    MANUAL = "manual"  # Slider + notes form, notes required
    QUICK = "quick"  # One-click increments, notes optional


@dataclass(frozen=True)
class ProgressEntry:
    """One immutable, timestamped progress update against a goal."""
    id: str
    goal_id: str
    progress: int
    created_at: datetime
    notes: str = ""
    kind: UpdateKind = UpdateKind.MANUAL
    updated_by: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "kind", UpdateKind(self.kind))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "goalId": self.goal_id,
            "progress": self.progress,
            "notes": self.notes,
            "kind": self.kind.value,
            "createdAt": self.created_at.isoformat(),
            "updatedBy": self.updated_by,
        }
