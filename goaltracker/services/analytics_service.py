"""
Analytics service - Personal and organization analytics with offline fallback.
Prefers the backend's numbers, recomputes locally from real data when the
analytics endpoint is down, and synthesizes only what no data can answer.
"""

from datetime import datetime
from typing import Iterable, Mapping, Optional

from ..analytics import (
    category_breakdown,
    compute_snapshot,
    monthly_summary,
    performance_distribution,
    synthesize_fallback,
    system_overview,
    volunteer_activity,
    volunteer_performance,
    volunteer_trends,
)
from ..config import AnalyticsPolicy
from ..logger import setup_logger
from ..models import Achievement, MonthlySummary, PerformanceSnapshot, Provenance, VolunteerTrends
from .data_service import GoalDataService, get_data_service

logger = setup_logger(__name__)


class AnalyticsService:
    """
    Service layer for analytics.

    Args:
        data_service: Backend access (defaults to the global GoalDataService)
        policy: Scoring and streak policy for locally computed snapshots
            (defaults to the data service policy)
    """

    def __init__(self, data_service: Optional[GoalDataService] = None, policy: Optional[AnalyticsPolicy] = None):
        self.data = data_service or get_data_service()
        self.policy = policy or self.data.policy

    def personal_snapshot(
        self,
        volunteer_id: str,
        now: Optional[datetime] = None,
        previously_earned: Iterable[Achievement] = (),
    ) -> PerformanceSnapshot:
        """
        Performance snapshot for one volunteer.

        Returns:
            The server snapshot when available; otherwise a fallback snapshot
            built from whatever goals and ledgers can still be fetched
        """
        result = self.data.fetch_personal_analytics(volunteer_id)
        if result.is_ok:
            return result.value

        goals_result = self.data.fetch_goals(owner_id=volunteer_id)
        goals = goals_result.value if goals_result.is_ok else list(goals_result.goals)

        ledgers = {}
        if goals:
            ledgers_result = self.data.fetch_ledgers([g.id for g in goals])
            ledgers = ledgers_result.value if ledgers_result.is_ok else ledgers_result.ledgers

        logger.info(
            f"Personal analytics for {volunteer_id} unavailable ({result.reason}); "
            f"falling back on {len(goals)} goal(s), {len(ledgers)} ledger(s)"
        )
        unavailable = result.with_data(goals=goals, ledgers=ledgers)
        return synthesize_fallback(unavailable, policy=self.policy, now=now, previously_earned=previously_earned)

    def local_snapshot(
        self,
        volunteer_id: str,
        now: Optional[datetime] = None,
        previously_earned: Iterable[Achievement] = (),
    ) -> Optional[PerformanceSnapshot]:
        """
        Snapshot computed locally from the volunteer's goals and ledgers.

        Returns:
            Derived snapshot, or None when the goals cannot be fetched
        """
        fetched = self._goals_and_ledgers(volunteer_id, "local snapshot")
        if fetched is None:
            return None
        goals, ledgers = fetched
        return compute_snapshot(goals, ledgers, policy=self.policy, now=now, previously_earned=previously_earned)

    def volunteer_trends(self, volunteer_id: str, now: Optional[datetime] = None) -> Optional[VolunteerTrends]:
        """Week-by-week ledger activity, or None when the goals cannot be fetched."""
        fetched = self._goals_and_ledgers(volunteer_id, "volunteer trends")
        if fetched is None:
            return None
        goals, ledgers = fetched
        return volunteer_trends(goals, ledgers, now=now, policy=self.policy)

    def monthly_summary(
        self,
        volunteer_id: str,
        year: int,
        month: int,
        now: Optional[datetime] = None,
    ) -> Optional[MonthlySummary]:
        """One month of ledger activity, or None when the goals cannot be fetched."""
        fetched = self._goals_and_ledgers(volunteer_id, "monthly summary")
        if fetched is None:
            return None
        goals, ledgers = fetched
        return monthly_summary(goals, ledgers, year, month, now=now, policy=self.policy)

    def _goals_and_ledgers(self, volunteer_id: str, purpose: str):
        goals_result = self.data.fetch_goals(owner_id=volunteer_id)
        if not goals_result.is_ok:
            logger.warning(f"Cannot compute {purpose} for {volunteer_id}: {goals_result.reason}")
            return None

        goals = goals_result.value
        ledgers_result = self.data.fetch_ledgers([g.id for g in goals])
        if not ledgers_result.is_ok:
            logger.warning(f"Ledgers incomplete for {volunteer_id}: {ledgers_result.reason}")
        ledgers = ledgers_result.value if ledgers_result.is_ok else ledgers_result.ledgers
        return goals, ledgers

    def organization_report(
        self,
        names: Optional[Mapping[str, str]] = None,
        volunteers: Optional[Iterable[dict]] = None,
    ) -> dict:
        """
        Administrator overview across all volunteers.

        Computed from the full goal list when it is reachable; otherwise the
        backend's performance table is used for the volunteer rows and the
        goal-based sections stay empty.

        Returns:
            Dict with overview, volunteer_performance, performance_distribution,
            category_breakdown, volunteer_activity and their provenance
        """
        goals_result = self.data.fetch_goals()

        if goals_result.is_ok:
            goals = goals_result.value
            rows = volunteer_performance(goals, names=names, policy=self.policy)
            return {
                "overview": system_overview(goals, volunteers),
                "volunteer_performance": rows,
                "performance_distribution": performance_distribution(rows),
                "category_breakdown": category_breakdown(goals),
                "volunteer_activity": volunteer_activity(goals, names=names),
                "provenance": Provenance.DERIVED,
            }

        logger.warning(f"Goals unavailable for organization report ({goals_result.reason})")
        rows_result = self.data.fetch_volunteer_performance()
        rows = rows_result.value if rows_result.is_ok else []

        return {
            "overview": system_overview([], volunteers),
            "volunteer_performance": rows,
            "performance_distribution": performance_distribution(rows),
            "category_breakdown": [],
            "volunteer_activity": [],
            "provenance": Provenance.SERVER if rows_result.is_ok else Provenance.SYNTHESIZED,
        }
