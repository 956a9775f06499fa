"""
Progress ledger for goaltracker.
Append-only, time-ordered progress entries for a single goal.
"""

import uuid
from datetime import datetime
from typing import Iterable, Optional, Sequence

import pandas as pd

from .clock import utc_now
from .exceptions import ValidationError
from .goals import validate_progress_value
from .models import ProgressEntry, UpdateKind

LEDGER_COLUMNS = ["id", "goal_id", "progress", "notes", "kind", "created_at"]


class ProgressLedger:
    """
    The ordered sequence of progress entries for one goal.

    Entries may be passed in any order; they are kept oldest-first
    (stable for identical timestamps) and are never reordered or edited.
    """

    def __init__(self, goal_id: str, entries: Iterable[ProgressEntry] = ()):
        self.goal_id = goal_id
        entries = list(entries)
        for entry in entries:
            if entry.goal_id != goal_id:
                raise ValidationError(
                    f"Entry {entry.id} belongs to goal {entry.goal_id}, not {goal_id}",
                    field="goal_id",
                    entity_id=entry.id,
                )
        self._entries = sorted(entries, key=lambda e: e.created_at)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self.newest_first())

    def __repr__(self) -> str:
        return f"ProgressLedger(goal_id={self.goal_id!r}, entries={len(self._entries)})"

    def newest_first(self) -> list[ProgressEntry]:
        return list(reversed(self._entries))

    def oldest_first(self) -> list[ProgressEntry]:
        return list(self._entries)

    @property
    def latest(self) -> Optional[ProgressEntry]:
        return self._entries[-1] if self._entries else None

    def build_entry(
        self,
        progress: int,
        notes: str = "",
        kind=UpdateKind.MANUAL,
        now: Optional[datetime] = None,
        updated_by: Optional[str] = None,
        entry_id: Optional[str] = None,
    ) -> ProgressEntry:
        """
        Validate a new progress entry without appending it.

        Args:
            progress: New progress percentage (0-100)
            notes: Update notes, required for manual updates
            kind: UpdateKind.MANUAL or UpdateKind.QUICK
            now: Entry timestamp (defaults to utc_now())
            updated_by: Optional actor id

        Returns:
            The validated ProgressEntry

        Raises:
            ValidationError: progress out of range, blank notes on a manual
                update, or a timestamp older than the newest entry
        """
        kind = UpdateKind(kind)
        validate_progress_value(progress, entity_id=self.goal_id)

        notes = (notes or "").strip()
        if kind == UpdateKind.MANUAL and not notes:
            raise ValidationError(
                "Notes are required for a manual progress update",
                field="notes",
                entity_id=self.goal_id,
            )

        created_at = now or utc_now()
        self._check_order(created_at)

        return ProgressEntry(
            id=entry_id or str(uuid.uuid4()),
            goal_id=self.goal_id,
            progress=progress,
            notes=notes,
            kind=kind,
            created_at=created_at,
            updated_by=updated_by,
        )

    def record(self, entry: ProgressEntry) -> ProgressEntry:
        """Append an already-built entry, e.g. one confirmed by the backend."""
        if entry.goal_id != self.goal_id:
            raise ValidationError(
                f"Entry {entry.id} belongs to goal {entry.goal_id}, not {self.goal_id}",
                field="goal_id",
                entity_id=entry.id,
            )
        validate_progress_value(entry.progress, entity_id=self.goal_id)
        self._check_order(entry.created_at)
        self._entries.append(entry)
        return entry

    def append(
        self,
        progress: int,
        notes: str = "",
        kind=UpdateKind.MANUAL,
        now: Optional[datetime] = None,
        updated_by: Optional[str] = None,
        entry_id: Optional[str] = None,
    ) -> ProgressEntry:
        """Validate and append a new progress entry (see build_entry)."""
        entry = self.build_entry(
            progress, notes, kind=kind, now=now, updated_by=updated_by, entry_id=entry_id,
        )
        return self.record(entry)

    def _check_order(self, created_at: datetime):
        if self._entries and created_at < self._entries[-1].created_at:
            raise ValidationError(
                "Progress entries cannot be dated before the latest entry",
                field="created_at",
                entity_id=self.goal_id,
            )


def append_progress(
    ledger: ProgressLedger,
    progress: int,
    notes: str = "",
    kind=UpdateKind.MANUAL,
    now: Optional[datetime] = None,
    updated_by: Optional[str] = None,
) -> ProgressEntry:
    """Append a progress entry to a ledger (see ProgressLedger.append)."""
    return ledger.append(progress, notes, kind=kind, now=now, updated_by=updated_by)


def delta(entries: Sequence[ProgressEntry]) -> list[Optional[int]]:
    """
    Signed change of each entry against the next older one.

    Args:
        entries: Entries ordered newest-first

    Returns:
        List aligned with entries; None marks the oldest entry (no predecessor)

    Example:
        progress [80, 50, 50, 20] -> [30, 0, 30, None]
    """
    entries = list(entries)
    deltas: list[Optional[int]] = []
    for i, entry in enumerate(entries):
        if i + 1 < len(entries):
            deltas.append(entry.progress - entries[i + 1].progress)
        else:
            deltas.append(None)
    return deltas


def change_direction(value: Optional[int]) -> Optional[str]:
    """Map a delta to 'up', 'down' or 'unchanged'; None stays None."""
    if value is None:
        return None
    if value > 0:
        return "up"
    if value < 0:
        return "down"
    return "unchanged"


def latest_n(entries: Sequence[ProgressEntry], n: int) -> list[ProgressEntry]:
    """Up to n most recent entries, newest-first."""
    if n <= 0:
        return []
    return list(entries)[:n]


def week_over_week_change(entries: Sequence[ProgressEntry]) -> Optional[int]:
    """Progress of the newest entry minus the one before it; None with fewer than two."""
    entries = list(entries)
    if len(entries) < 2:
        return None
    return entries[0].progress - entries[1].progress


def ledger_frame(entries: Iterable[ProgressEntry]) -> pd.DataFrame:
    """DataFrame view of progress entries, one row per entry."""
    rows = [
        {
            "id": e.id,
            "goal_id": e.goal_id,
            "progress": e.progress,
            "notes": e.notes,
            "kind": e.kind.value,
            "created_at": e.created_at,
        }
        for e in entries
    ]
    if not rows:
        return pd.DataFrame(columns=LEDGER_COLUMNS)

    df = pd.DataFrame(rows, columns=LEDGER_COLUMNS)
    df["created_at"] = pd.to_datetime(df["created_at"])
    return df
