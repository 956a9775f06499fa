"""
Unit tests for completion forecasting
"""
from datetime import date, timedelta

import pytest

from goaltracker.analytics.predictions import (
    assess_risk,
    forecast_completion,
    forecast_goals,
    progress_rate,
)
from goaltracker.models import GoalStatus


@pytest.mark.unit
class TestProgressRate:
    """Test progress-per-day estimation."""

    def test_rate(self, make_entry, now):
        entries = [make_entry("g1", 20, now - timedelta(days=4)), make_entry("g1", 40, now)]
        assert progress_rate(entries) == pytest.approx(5.0)

    def test_needs_two_entries(self, make_entry, now):
        assert progress_rate([]) is None
        assert progress_rate([make_entry("g1", 20, now)]) is None

    def test_same_timestamp(self, make_entry, now):
        assert progress_rate([make_entry("g1", 20, now), make_entry("g1", 40, now)]) is None


@pytest.mark.unit
class TestForecast:
    """Test completion forecasts."""

    def test_forecast(self, make_goal, make_entry, now):
        goal = make_goal("g1", GoalStatus.IN_PROGRESS, 40, due_date=now + timedelta(days=30))
        entries = [make_entry("g1", 20, now - timedelta(days=4)), make_entry("g1", 40, now)]

        forecast = forecast_completion(goal, entries, now=now)

        assert forecast.goal_id == "g1"
        assert forecast.progress_per_day == pytest.approx(5.0)
        assert forecast.predicted_date == date(2026, 10, 26)
        assert forecast.risk_level == "low"
        assert forecast.confidence == pytest.approx(0.5)

    def test_closed_goal_not_forecast(self, make_goal, make_entry, now):
        goal = make_goal("g1", GoalStatus.COMPLETED, 100)
        entries = [make_entry("g1", 20, now - timedelta(days=4)), make_entry("g1", 100, now)]

        assert forecast_completion(goal, entries, now=now) is None

    def test_stalled_goal_not_forecast(self, make_goal, make_entry, now):
        goal = make_goal("g1", GoalStatus.IN_PROGRESS, 40)
        entries = [make_entry("g1", 40, now - timedelta(days=4)), make_entry("g1", 40, now)]

        assert forecast_completion(goal, entries, now=now) is None

    def test_horizon_caps_forecast(self, make_goal, make_entry, now):
        goal = make_goal("g1", GoalStatus.IN_PROGRESS, 2)
        entries = [make_entry("g1", 1, now - timedelta(days=100)), make_entry("g1", 2, now)]

        forecast = forecast_completion(goal, entries, now=now, horizon_days=30)

        assert forecast.predicted_date == (now + timedelta(days=30)).date()

    @pytest.mark.parametrize("predicted_offset, expected", [(-1, "low"), (0, "low"), (5, "medium"), (8, "high")])
    def test_risk_levels(self, now, predicted_offset, expected):
        due = now + timedelta(days=10)
        predicted = due + timedelta(days=predicted_offset)

        assert assess_risk(predicted, due) == expected

    def test_no_due_date_is_low_risk(self, now):
        assert assess_risk(now + timedelta(days=400), None) == "low"

    def test_forecast_goals_sorted(self, make_goal, make_entry, now):
        goals = [
            make_goal("slow", GoalStatus.IN_PROGRESS, 20),
            make_goal("fast", GoalStatus.IN_PROGRESS, 60),
            make_goal("idle", GoalStatus.PENDING, 0),
        ]
        entries = {
            "slow": [make_entry("slow", 10, now - timedelta(days=10)), make_entry("slow", 20, now)],
            "fast": [make_entry("fast", 40, now - timedelta(days=2)), make_entry("fast", 60, now)],
        }

        forecasts = forecast_goals(goals, entries, now=now)

        assert [f.goal_id for f in forecasts] == ["fast", "slow"]
        assert forecasts[0].predicted_date < forecasts[1].predicted_date
