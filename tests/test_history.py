"""
Unit tests for volunteer trends and monthly summaries
"""
from datetime import date, datetime, timedelta

import pandas as pd
import pytest

from goaltracker.analytics.history import (
    improvement_trend,
    monthly_summary,
    progress_distribution,
    volunteer_trends,
)
from goaltracker.config import AnalyticsPolicy
from goaltracker.exceptions import ValidationError
from goaltracker.ledger import ProgressLedger
from goaltracker.models import GoalStatus


@pytest.fixture
def october(make_goal, make_entry):
    """
    Three goals with entries around October 2026.

    W40: g1 5% Mon 28 Sep (September), g1 20% Thu 1 Oct, g3 10% Fri 2 Oct.
    W41: g2 45% Mon 5 Oct, g1 100% Thu 8 Oct.
    W42: g2 70% Tue 13 Oct.
    """
    goals = [
        make_goal("g1", GoalStatus.COMPLETED, 100, category="Outreach"),
        make_goal("g2", GoalStatus.IN_PROGRESS, 70, category="Environment"),
        make_goal("g3", GoalStatus.IN_PROGRESS, 10, category="  "),
    ]
    ledgers = {
        "g1": [
            make_entry("g1", 5, datetime(2026, 9, 28, 9, 0)),
            make_entry("g1", 20, datetime(2026, 10, 1, 9, 0)),
            make_entry("g1", 100, datetime(2026, 10, 8, 9, 0)),
        ],
        "g2": [
            make_entry("g2", 45, datetime(2026, 10, 5, 9, 0)),
            make_entry("g2", 70, datetime(2026, 10, 13, 9, 0)),
        ],
        "g3": [make_entry("g3", 10, datetime(2026, 10, 2, 9, 0))],
    }
    return goals, ledgers


@pytest.mark.unit
class TestImprovementTrend:
    """Test the four-week improvement rule."""

    @pytest.mark.parametrize("rates, expected", [
        ([10, 20, 30, 40], "improving"),
        ([60, 60, 40, 40], "declining"),
        ([50, 50, 45, 45], "stable"),
        ([50, 50, 55, 55], "stable"),
        ([0, 100, 0, 0, 100, 100], "improving"),
        ([0, 100, 100], "stable"),
        ([], "stable"),
    ])
    def test_rule(self, rates, expected):
        assert improvement_trend(rates) == expected

    def test_custom_band(self):
        assert improvement_trend([50, 50, 52, 52], band=1) == "improving"


@pytest.mark.unit
class TestVolunteerTrends:
    """Test week-by-week ledger trends."""

    def test_two_week_history(self, two_week_history, now):
        goals, ledgers = two_week_history

        trends = volunteer_trends(goals, ledgers, now=now)

        assert [w.week_label for w in trends.weekly] == ["2026-W41", "2026-W42"]
        first, second = trends.weekly
        assert first.week_start == date(2026, 10, 5)
        assert (first.total_entries, first.completed_entries) == (3, 1)
        assert first.average_progress == 60
        assert first.completion_rate == 33
        assert (second.total_entries, second.average_progress, second.completion_rate) == (1, 60, 0)
        assert trends.total_entries == 4
        assert trends.average_progress == 60
        assert trends.completion_rate == 25
        assert trends.best_week == first
        assert trends.worst_week == second
        assert trends.improvement_trend == "stable"

    def test_weeks_without_entries_omitted(self, october, now):
        goals, ledgers = october
        del ledgers["g1"][2]
        ledgers["g2"].pop(0)

        trends = volunteer_trends(goals, ledgers, now=now)

        assert [w.week_label for w in trends.weekly] == ["2026-W40", "2026-W42"]

    def test_best_week_first_on_ties(self, make_goal, make_entry, now):
        goals = [make_goal("g1"), make_goal("g2")]
        ledgers = {
            "g1": [make_entry("g1", 100, datetime(2026, 9, 29, 9, 0))],
            "g2": [make_entry("g2", 100, datetime(2026, 10, 6, 9, 0))],
        }

        trends = volunteer_trends(goals, ledgers, now=now)

        assert trends.best_week.week_label == "2026-W40"
        assert trends.worst_week.week_label == "2026-W40"

    def test_improving_over_four_weeks(self, make_goal, make_entry, now):
        goals = [make_goal("g1"), make_goal("g2")]
        ledgers = {
            "g1": [
                make_entry("g1", 20, datetime(2026, 9, 22, 9, 0)),
                make_entry("g1", 40, datetime(2026, 9, 29, 9, 0)),
                make_entry("g1", 100, datetime(2026, 10, 6, 9, 0)),
            ],
            "g2": [make_entry("g2", 100, datetime(2026, 10, 13, 9, 0))],
        }

        trends = volunteer_trends(goals, ledgers, now=now)

        assert [w.completion_rate for w in trends.weekly] == [0, 0, 100, 100]
        assert trends.improvement_trend == "improving"

    def test_window(self, make_goal, make_entry, now):
        goals = [make_goal("g1")]
        ledgers = {"g1": [
            make_entry("g1", 10, now - timedelta(days=90)),
            make_entry("g1", 30, now - timedelta(days=2)),
        ]}

        assert volunteer_trends(goals, ledgers, now=now).total_entries == 1

        wide = AnalyticsPolicy(trend_weeks=52)
        assert volunteer_trends(goals, ledgers, now=now, policy=wide).total_entries == 2

    def test_accepts_ledger_objects(self, two_week_history, now):
        goals, ledgers = two_week_history
        objects = [ProgressLedger(goal_id, entries) for goal_id, entries in ledgers.items()]

        assert volunteer_trends(goals, objects, now=now) == volunteer_trends(goals, ledgers, now=now)

    def test_empty(self, now):
        trends = volunteer_trends([], {}, now=now)

        assert trends.weekly == ()
        assert trends.total_entries == 0
        assert trends.best_week is None
        assert trends.improvement_trend == "stable"

    def test_future_entry_rejected(self, make_goal, make_entry, now):
        ledgers = {"g1": [make_entry("g1", 30, now + timedelta(hours=1))]}

        with pytest.raises(ValidationError):
            volunteer_trends([make_goal("g1")], ledgers, now=now)


@pytest.mark.unit
class TestMonthlySummary:
    """Test calendar-month summaries."""

    def test_october(self, october, now):
        goals, ledgers = october

        summary = monthly_summary(goals, ledgers, 2026, 10, now=now)

        assert summary.month_name == "October"
        assert summary.total_entries == 5
        assert summary.completed_entries == 1
        assert summary.average_progress == 49
        assert summary.completion_rate == 20
        assert summary.categories_worked == ("Environment", "Outreach", "Uncategorized")

    def test_weekly_breakdown_uses_month_entries_only(self, october, now):
        goals, ledgers = october

        weeks = monthly_summary(goals, ledgers, 2026, 10, now=now).weekly_breakdown

        assert [(w.week_label, w.total_entries, w.average_progress) for w in weeks] == [
            ("2026-W40", 2, 15),
            ("2026-W41", 2, 73),
            ("2026-W42", 1, 70),
        ]

    def test_top_categories(self, october, now):
        goals, ledgers = october

        top = monthly_summary(goals, ledgers, 2026, 10, now=now).top_categories

        assert [(c.category, c.entries, c.completion_rate) for c in top] == [
            ("Environment", 2, 0),
            ("Outreach", 2, 50),
            ("Uncategorized", 1, 0),
        ]

    def test_top_categories_limited_to_five(self, make_goal, make_entry, now):
        goals = [make_goal(f"g{i}", category=f"Cat {i}") for i in range(7)]
        ledgers = {g.id: [make_entry(g.id, 10, datetime(2026, 10, 2, 9, 0))] for g in goals}
        ledgers["g6"].append(make_entry("g6", 20, datetime(2026, 10, 3, 9, 0)))

        top = monthly_summary(goals, ledgers, 2026, 10, now=now).top_categories

        assert [c.category for c in top] == ["Cat 6", "Cat 0", "Cat 1", "Cat 2", "Cat 3"]

    def test_progress_distribution(self, october, now):
        goals, ledgers = october

        buckets = monthly_summary(goals, ledgers, 2026, 10, now=now).progress_distribution

        assert [(b.label, b.count, b.percentage) for b in buckets] == [
            ("0-20%", 2, 40),
            ("21-40%", 0, 0),
            ("41-60%", 1, 20),
            ("61-80%", 1, 20),
            ("81-100%", 1, 20),
        ]

    def test_distribution_boundaries(self):
        buckets = progress_distribution(pd.Series([0, 20, 21, 40, 41, 60, 61, 80, 81, 100]))

        assert [b.count for b in buckets] == [2, 2, 2, 2, 2]

    def test_empty_month(self, october, now):
        goals, ledgers = october

        summary = monthly_summary(goals, ledgers, 2026, 8, now=now)

        assert summary.month_name == "August"
        assert summary.total_entries == 0
        assert summary.average_progress == 0
        assert summary.weekly_breakdown == ()
        assert summary.top_categories == ()
        assert [b.count for b in summary.progress_distribution] == [0, 0, 0, 0, 0]

    def test_december_boundary(self, make_goal, make_entry):
        goals = [make_goal("g1")]
        ledgers = {"g1": [
            make_entry("g1", 30, datetime(2026, 12, 31, 23, 0)),
            make_entry("g1", 50, datetime(2027, 1, 1, 0, 0)),
        ]}

        summary = monthly_summary(goals, ledgers, 2026, 12, now=datetime(2027, 1, 2))

        assert summary.total_entries == 1
        assert summary.average_progress == 30

    def test_orphaned_entries_skipped(self, make_goal, make_entry, now):
        ledgers = {
            "g1": [make_entry("g1", 30, datetime(2026, 10, 2, 9, 0))],
            "gx": [make_entry("gx", 90, datetime(2026, 10, 2, 9, 0))],
        }

        summary = monthly_summary([make_goal("g1")], ledgers, 2026, 10, now=now)

        assert summary.total_entries == 1

    @pytest.mark.parametrize("month", [0, 13])
    def test_invalid_month(self, month, now):
        with pytest.raises(ValidationError) as exc_info:
            monthly_summary([], {}, 2026, month, now=now)
        assert exc_info.value.field == "month"
