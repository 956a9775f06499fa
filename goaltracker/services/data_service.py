"""
Data service - Goal and progress access against the backend.
Every read returns a Result: Ok with the parsed value, or Unavailable with
the reason and whatever real data was gathered. Writes are validated by the
entity rules first and raise on failure; they are never synthesized.
"""

import time
from datetime import datetime
from typing import Any, Iterable, Optional

from pydantic import ValidationError as PayloadError

from .. import goals as goal_rules
from ..ledger import ProgressLedger
from ..clock import utc_now
from ..config import DEFAULT_POLICY, AnalyticsPolicy
from ..logger import log_goal_set_stats, setup_logger
from ..models import Goal, GoalPriority, ProgressEntry, UpdateKind
from ..result import Ok, Result, Unavailable
from .http_client import ApiClient, ApiError
from .schemas import (
    GoalPayload,
    PersonalAnalyticsPayload,
    ProgressEntryPayload,
    VolunteerPerformancePayload,
    status_to_backend,
)

logger = setup_logger(__name__)

OFFLINE_REASON = "offline mode"


def _items(payload: Any, *keys: str) -> list:
    """Unwrap a list from a bare list or a paginated envelope ({"goals": [...], "total": n})."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in keys + ("data", "items"):
            if isinstance(payload.get(key), list):
                return payload[key]
    return []


def _unavailable(error: ApiError) -> Unavailable:
    return Unavailable(reason=error.message, status_code=error.status_code)


class GoalDataService:
    """
    Backend access for goals, ledgers and server-side analytics.

    Args:
        client: ApiClient for the backend
        online: Connectivity capability; when False every read is Unavailable
            and every write raises ApiError without touching the network
        policy: Supplies the start baseline for status changes
    """

    def __init__(
        self,
        client: Optional[ApiClient] = None,
        online: bool = True,
        policy: Optional[AnalyticsPolicy] = None,
    ):
        self.client = client or ApiClient()
        self.online = online
        self.policy = policy or DEFAULT_POLICY
        self._goals_cache: dict[Optional[str], list[Goal]] = {}
        self._cache_timestamp: dict[Optional[str], float] = {}
        self._cache_ttl_seconds = 300  # 5 minutes cache

    # ------------------------------------------------------------------ reads

    def fetch_goals(self, owner_id: Optional[str] = None, force_refresh: bool = False) -> Result:
        """
        Get goals, optionally for a single volunteer.

        Returns:
            Ok(list[Goal]) or Unavailable
        """
        if not self.online:
            return Unavailable(OFFLINE_REASON)

        current_time = time.time()
        if not force_refresh and owner_id in self._goals_cache:
            if (current_time - self._cache_timestamp[owner_id]) < self._cache_ttl_seconds:
                logger.debug("Returning cached goals")
                return Ok(list(self._goals_cache[owner_id]))

        params = {"volunteerId": owner_id} if owner_id else None
        try:
            payload = self.client.get("/goals", params=params)
        except ApiError as e:
            return _unavailable(e)

        try:
            goals = [GoalPayload.model_validate(item).to_goal() for item in _items(payload, "goals")]
        except PayloadError as e:
            logger.error(f"Malformed goals payload: {e.error_count()} error(s)")
            return Unavailable(f"malformed goals payload ({e.error_count()} errors)")

        log_goal_set_stats(goals, logger, name=f"Goals for {owner_id or 'organization'}")
        self._goals_cache[owner_id] = goals
        self._cache_timestamp[owner_id] = current_time
        return Ok(list(goals))

    def fetch_ledger(self, goal_id: str, limit: Optional[int] = None) -> Result:
        """
        Get the progress ledger of one goal.

        Returns:
            Ok(ProgressLedger) or Unavailable
        """
        if not self.online:
            return Unavailable(OFFLINE_REASON)

        params = {"goalId": goal_id, "sortBy": "createdAt", "sortOrder": "DESC"}
        if limit:
            params["limit"] = limit

        try:
            payload = self.client.get("/progress-history", params=params)
        except ApiError as e:
            return _unavailable(e)

        try:
            entries = [ProgressEntryPayload.model_validate(item).to_entry() for item in _items(payload, "progressHistory")]
        except PayloadError as e:
            logger.error(f"Malformed progress payload for goal {goal_id}: {e.error_count()} error(s)")
            return Unavailable(f"malformed progress payload ({e.error_count()} errors)")

        foreign = [e for e in entries if e.goal_id != goal_id]
        if foreign:
            logger.warning(f"Dropped {len(foreign)} progress entries not belonging to goal {goal_id}")

        return Ok(ProgressLedger(goal_id, [e for e in entries if e.goal_id == goal_id]))

    def fetch_ledgers(self, goal_ids: Iterable[str]) -> Result:
        """
        Get the ledgers of several goals.

        Returns:
            Ok(dict goal_id -> ProgressLedger), or Unavailable carrying the
            ledgers that could be fetched before the first failure
        """
        ledgers: dict[str, ProgressLedger] = {}
        for goal_id in goal_ids:
            result = self.fetch_ledger(goal_id)
            if not result.is_ok:
                return result.with_data(ledgers=ledgers)
            ledgers[goal_id] = result.value
        return Ok(ledgers)

    def fetch_personal_analytics(self, volunteer_id: str) -> Result:
        """
        Get the server-computed performance snapshot of a volunteer.

        Returns:
            Ok(PerformanceSnapshot) with server provenance, or Unavailable
        """
        if not self.online:
            return Unavailable(OFFLINE_REASON)

        try:
            payload = self.client.get(f"/analytics/personal/{volunteer_id}")
        except ApiError as e:
            return _unavailable(e)

        try:
            snapshot = PersonalAnalyticsPayload.model_validate(payload or {}).to_snapshot()
        except PayloadError as e:
            logger.error(f"Malformed analytics payload: {e.error_count()} error(s)")
            return Unavailable(f"malformed analytics payload ({e.error_count()} errors)")

        return Ok(snapshot)

    def fetch_volunteer_performance(self) -> Result:
        """
        Get the organization-wide per-volunteer performance table.

        Returns:
            Ok(list[VolunteerPerformance]) or Unavailable
        """
        if not self.online:
            return Unavailable(OFFLINE_REASON)

        try:
            payload = self.client.get("/analytics/volunteer-performance")
        except ApiError as e:
            return _unavailable(e)

        try:
            rows = [VolunteerPerformancePayload.model_validate(item).to_row() for item in _items(payload, "volunteers")]
        except PayloadError as e:
            logger.error(f"Malformed performance payload: {e.error_count()} error(s)")
            return Unavailable(f"malformed performance payload ({e.error_count()} errors)")

        return Ok(rows)

    # ----------------------------------------------------------------- writes

    def _require_online(self, action: str):
        if not self.online:
            raise ApiError(f"Cannot {action} in {OFFLINE_REASON}")

    def _parse_goal(self, payload: Any) -> Optional[Goal]:
        if not isinstance(payload, dict):
            return None
        try:
            return GoalPayload.model_validate(payload).to_goal()
        except PayloadError as e:
            logger.warning(f"Backend returned an unparseable goal: {e.error_count()} error(s)")
            return None

    def submit_progress(
        self,
        goal: Goal,
        ledger: ProgressLedger,
        progress: int,
        notes: str = "",
        kind=UpdateKind.MANUAL,
        actor_id: Optional[str] = None,
        is_admin: bool = False,
        now: Optional[datetime] = None,
    ) -> tuple[Goal, ProgressEntry]:
        """
        Record a progress update.

        The entry is validated and the goal synchronized locally before the
        backend is called; the ledger only grows once the backend accepts it.

        Returns:
            (updated goal, appended entry)

        Raises:
            ValidationError, InvalidTransitionError, OwnershipError, ApiError
        """
        if actor_id is not None:
            goal_rules.ensure_can_mutate(goal, actor_id, is_admin=is_admin)

        entry = ledger.build_entry(progress, notes, kind=kind, now=now, updated_by=actor_id)
        updated = goal_rules.sync_goal_with_entry(goal, entry)

        self._require_online("submit progress")
        payload = self.client.patch(
            f"/goals/{goal.id}/progress",
            json={"progress": entry.progress, "notes": entry.notes or None},
        )

        ledger.record(entry)
        self.invalidate_cache()
        logger.info(f"Progress for goal {goal.id}: {goal.progress}% -> {entry.progress}%")
        return self._parse_goal(payload) or updated, entry

    def change_status(
        self,
        goal: Goal,
        target_status,
        actor_id: Optional[str] = None,
        is_admin: bool = False,
        now: Optional[datetime] = None,
    ) -> Goal:
        """
        Move a goal to a new status through the state machine.

        Raises:
            InvalidTransitionError, OwnershipError, ApiError
        """
        if actor_id is not None:
            goal_rules.ensure_can_mutate(goal, actor_id, is_admin=is_admin)

        updated = goal_rules.apply_transition(goal, target_status, now=now, policy=self.policy)

        self._require_online("change goal status")
        body = {"status": status_to_backend(updated.status)}
        if updated.progress != goal.progress:
            body["progress"] = updated.progress
        payload = self.client.patch(f"/goals/{goal.id}", json=body)

        self.invalidate_cache()
        logger.info(f"Goal {goal.id}: {goal.status.value} -> {updated.status.value}")
        return self._parse_goal(payload) or updated

    def create_goal(
        self,
        owner_id: str,
        title: str,
        category: str,
        due_date: datetime,
        priority=GoalPriority.MEDIUM,
        description: str = "",
        tags: Iterable[str] = (),
        now: Optional[datetime] = None,
    ) -> Goal:
        """
        Validate and create a goal.

        Raises:
            ValidationError, ApiError
        """
        now = now or utc_now()
        goal = goal_rules.create_goal(
            owner_id, title, category, due_date,
            priority=priority, description=description, tags=tags, now=now,
        )

        self._require_online("create a goal")
        payload = self.client.post("/goals", json={
            "title": goal.title,
            "description": goal.description,
            "category": goal.category,
            "volunteerId": goal.owner_id,
            "priority": goal.priority.value.upper(),
            "startDate": now.date().isoformat(),
            "dueDate": goal.due_date.isoformat(),
            "tags": list(goal.tags),
            "progress": 0,
        })

        self.invalidate_cache()
        logger.info(f"Created goal '{goal.title}' for {owner_id}")
        return self._parse_goal(payload) or goal

    def invalidate_cache(self):
        """Clear cached goals (after writes)."""
        logger.debug("Invalidating goals cache")
        self._goals_cache = {}
        self._cache_timestamp = {}


# Global instance, created on first use
_data_service: Optional[GoalDataService] = None


def get_data_service() -> GoalDataService:
    """
    Get the global GoalDataService instance.

    Returns:
        GoalDataService singleton using the configured backend
    """
    global _data_service
    if _data_service is None:
        _data_service = GoalDataService()
    return _data_service
