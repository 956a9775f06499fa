"""
Unit tests for the analytics service
"""
from datetime import datetime

import httpx
import pytest

from goaltracker.models import Provenance
from goaltracker.models.analytics import SYNTHESIZABLE_FIELDS
from goaltracker.services.analytics_service import AnalyticsService
from goaltracker.services.data_service import GoalDataService
from goaltracker.services.http_client import ApiClient

GOALS = [
    {
        "id": "g1", "title": "Food drive", "category": "Outreach", "priority": "HIGH",
        "status": "COMPLETED", "progress": 100, "volunteerId": "v1",
        "dueDate": "2026-10-28T00:00:00Z", "createdAt": "2026-09-14T12:00:00Z", "updatedAt": "2026-10-08T10:00:00Z",
    },
    {
        "id": "g2", "title": "Park cleanup", "category": "Environment", "priority": "MEDIUM",
        "status": "IN_PROGRESS", "progress": 60, "volunteerId": "v1",
        "dueDate": "2026-10-28T00:00:00Z", "createdAt": "2026-09-14T12:00:00Z", "updatedAt": "2026-10-13T09:00:00Z",
    },
]

HISTORY = {
    "g1": [
        {"id": "p2", "goalId": "g1", "progress": 100, "notes": "done", "createdAt": "2026-10-08T10:00:00Z"},
        {"id": "p1", "goalId": "g1", "progress": 50, "notes": "half", "createdAt": "2026-10-06T10:00:00Z"},
    ],
    "g2": [
        {"id": "p4", "goalId": "g2", "progress": 60, "notes": "more", "createdAt": "2026-10-13T09:00:00Z"},
        {"id": "p3", "goalId": "g2", "progress": 30, "notes": "start", "createdAt": "2026-10-07T09:00:00Z"},
    ],
}

SERVER_ANALYTICS = {
    "overallCompletionRate": 50,
    "averageProgress": 80,
    "performanceScore": 59,
    "streakCount": 1,
    "weeklyTrends": [{"week": "Oct 12", "completionRate": 0, "goalsCompleted": 0, "totalGoals": 1}],
    "achievements": [],
    "categoryStats": [],
    "productiveData": [{"day": "Thursday", "completedGoals": 1}],
}


def history(request):
    return httpx.Response(200, json={"progressHistory": HISTORY.get(request.url.params["goalId"], [])})


@pytest.fixture
def make_analytics(mock_transport):
    """Build an AnalyticsService over a mocked backend."""
    def _build(routes, online=True):
        transport = mock_transport(routes)
        client = ApiClient(base_url="http://test/api", token="", transport=transport)
        return AnalyticsService(GoalDataService(client=client, online=online)), transport
    return _build


@pytest.mark.unit
class TestPersonalSnapshot:
    """Test server, derived and synthesized personal snapshots."""

    def test_server_snapshot(self, make_analytics, now):
        service, transport = make_analytics({("GET", "/api/analytics/personal/v1"): (200, SERVER_ANALYTICS)})

        snapshot = service.personal_snapshot("v1", now=now)

        assert snapshot.performance_score == 59
        assert snapshot.most_productive_day == "Thursday"
        assert snapshot.provenance_of("most_productive_day") == Provenance.SERVER
        assert not snapshot.is_fallback
        assert len(transport.requests) == 1

    def test_fallback_from_real_data(self, make_analytics, now):
        service, _ = make_analytics({
            ("GET", "/api/analytics/personal/v1"): (503, {"message": "Service unavailable"}),
            ("GET", "/api/goals"): (200, {"goals": GOALS}),
            ("GET", "/api/progress-history"): history,
        })

        snapshot = service.personal_snapshot("v1", now=now)

        assert snapshot.is_fallback
        assert snapshot.overall_completion_rate == 50
        assert snapshot.average_progress == 80
        assert snapshot.performance_score == 59
        assert snapshot.streak_count == 1
        assert snapshot.most_productive_day == "Thursday"
        assert [a.id for a in snapshot.achievements] == ["first_goal_completed"]
        assert snapshot.achievements[0].earned_at == datetime(2026, 10, 8, 10, 0)
        assert snapshot.provenance_of("performance_score") == Provenance.DERIVED
        for name in SYNTHESIZABLE_FIELDS:
            assert snapshot.provenance_of(name) == Provenance.SYNTHESIZED

    def test_fallback_with_partial_ledgers(self, make_analytics, now):
        def flaky_history(request):
            if request.url.params["goalId"] == "g2":
                return httpx.Response(502, json={"message": "Bad gateway"})
            return history(request)

        service, _ = make_analytics({
            ("GET", "/api/analytics/personal/v1"): (503, {"message": "Service unavailable"}),
            ("GET", "/api/goals"): (200, GOALS),
            ("GET", "/api/progress-history"): flaky_history,
        })

        snapshot = service.personal_snapshot("v1", now=now)

        assert snapshot.is_fallback
        assert snapshot.overall_completion_rate == 50
        assert snapshot.achievements[0].earned_at == datetime(2026, 10, 8, 10, 0)

    def test_offline_fallback(self, make_analytics, now):
        service, transport = make_analytics({}, online=False)

        snapshot = service.personal_snapshot("v1", now=now)

        assert snapshot.is_fallback
        assert snapshot.overall_completion_rate == 0
        assert snapshot.weekly_trends == ()
        assert snapshot.predicted_completion_date is None
        assert transport.requests == []

    def test_local_snapshot(self, make_analytics, now):
        service, _ = make_analytics({
            ("GET", "/api/goals"): (200, GOALS),
            ("GET", "/api/progress-history"): history,
        })

        snapshot = service.local_snapshot("v1", now=now)

        assert not snapshot.is_fallback
        assert snapshot.performance_score == 59
        assert snapshot.provenance_of("most_productive_day") == Provenance.DERIVED

    def test_local_snapshot_without_goals(self, make_analytics, now):
        service, _ = make_analytics({}, online=False)

        assert service.local_snapshot("v1", now=now) is None


@pytest.mark.unit
class TestOrganizationReport:
    """Test the administrator report."""

    def test_from_goals(self, make_analytics):
        service, _ = make_analytics({("GET", "/api/goals"): (200, GOALS)})

        report = service.organization_report(names={"v1": "Ada"})

        assert report["provenance"] == Provenance.DERIVED
        assert report["overview"]["total_goals"] == 2
        assert report["overview"]["completion_rate"] == 50
        row = report["volunteer_performance"][0]
        assert (row.volunteer_id, row.name, row.goals_count) == ("v1", "Ada", 2)
        assert report["category_breakdown"] == [{"name": "Environment", "value": 1}, {"name": "Outreach", "value": 1}]

    def test_from_performance_table(self, make_analytics):
        rows = [{"volunteerId": "v1", "volunteerName": "Ada", "completionRate": 50, "averageProgress": 80, "totalGoals": 2}]
        service, _ = make_analytics({
            ("GET", "/api/goals"): (500, {"message": "boom"}),
            ("GET", "/api/analytics/volunteer-performance"): (200, rows),
        })

        report = service.organization_report()

        assert report["provenance"] == Provenance.SERVER
        assert report["volunteer_performance"][0].performance == 59
        assert report["category_breakdown"] == []

    def test_nothing_reachable(self, make_analytics):
        service, _ = make_analytics({}, online=False)

        report = service.organization_report()

        assert report["provenance"] == Provenance.SYNTHESIZED
        assert report["volunteer_performance"] == []
        assert report["overview"]["total_goals"] == 0


@pytest.mark.unit
class TestProgressHistory:
    """Test trends and monthly summaries computed from fetched ledgers."""

    def test_volunteer_trends(self, make_analytics, now):
        service, _ = make_analytics({
            ("GET", "/api/goals"): (200, GOALS),
            ("GET", "/api/progress-history"): history,
        })

        trends = service.volunteer_trends("v1", now=now)

        assert [w.week_label for w in trends.weekly] == ["2026-W41", "2026-W42"]
        assert trends.total_entries == 4
        assert trends.best_week.week_label == "2026-W41"

    def test_monthly_summary(self, make_analytics, now):
        service, _ = make_analytics({
            ("GET", "/api/goals"): (200, GOALS),
            ("GET", "/api/progress-history"): history,
        })

        summary = service.monthly_summary("v1", 2026, 10, now=now)

        assert summary.total_entries == 4
        assert summary.average_progress == 60
        assert [(c.category, c.entries) for c in summary.top_categories] == [("Environment", 2), ("Outreach", 2)]

    def test_without_goals(self, make_analytics, now):
        service, _ = make_analytics({}, online=False)

        assert service.volunteer_trends("v1", now=now) is None
        assert service.monthly_summary("v1", 2026, 10, now=now) is None
