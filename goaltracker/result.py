"""
Result types returned by the data access layer.

A fetch either succeeds (Ok) or reports what it could not reach
(Unavailable), carrying whatever real data was gathered along the way.
The fallback synthesizer takes the Unavailable case as its only input.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, Mapping, Optional, TypeVar, Union

from .models import Provenance

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """A value obtained from the backend."""
    value: T
    provenance: Provenance = Provenance.SERVER

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Unavailable:
    """
    A source that could not be reached.

    Attributes:
        reason: Human-readable cause (offline mode, HTTP status, timeout)
        goals: Real goals gathered anyway, if any
        ledgers: Real progress entries gathered anyway (goal_id -> entries)
        performance_rows: Real per-volunteer performance rows, if any
        status_code: HTTP status when the backend answered with an error
    """
    reason: str
    goals: tuple = ()
    ledgers: Mapping[str, Any] = field(default_factory=dict)
    performance_rows: tuple = ()
    status_code: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "goals", tuple(self.goals))
        object.__setattr__(self, "performance_rows", tuple(self.performance_rows))
        object.__setattr__(self, "ledgers", dict(self.ledgers))

    @property
    def is_ok(self) -> bool:
        return False

    def with_data(self, goals=None, ledgers=None, performance_rows=None) -> "Unavailable":
        """Copy with the real data gathered so far attached."""
        return Unavailable(
            reason=self.reason,
            goals=self.goals if goals is None else goals,
            ledgers=self.ledgers if ledgers is None else ledgers,
            performance_rows=self.performance_rows if performance_rows is None else performance_rows,
            status_code=self.status_code,
        )


Result = Union[Ok[T], Unavailable]
