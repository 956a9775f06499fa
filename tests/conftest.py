"""
Pytest configuration and fixtures
"""
import sys
from datetime import datetime, timedelta
from pathlib import Path

import httpx
import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from goaltracker.models import Goal, GoalStatus, ProgressEntry  # noqa: E402

# Wednesday 14 October 2026, ISO week 2026-W42 (starts Monday 12 October)
NOW = datetime(2026, 10, 14, 12, 0)


@pytest.fixture
def now():
    """Fixed reference time."""
    return NOW


@pytest.fixture
def make_goal():
    """Factory for goals with sensible defaults."""
    def _make(
        goal_id="g1",
        status=GoalStatus.PENDING,
        progress=0,
        category="Community",
        owner_id="v1",
        due_date=NOW + timedelta(days=14),
        created_at=NOW - timedelta(days=30),
        updated_at=None,
        title=None,
    ):
        return Goal(
            id=goal_id,
            title=title or f"Goal {goal_id}",
            category=category,
            owner_id=owner_id,
            status=status,
            progress=progress,
            due_date=due_date,
            created_at=created_at,
            updated_at=updated_at or created_at,
        )
    return _make


@pytest.fixture
def make_entry():
    """Factory for progress entries."""
    counter = {"n": 0}

    def _make(goal_id, progress, created_at, entry_id=None, notes="update"):
        counter["n"] += 1
        return ProgressEntry(
            id=entry_id or f"e{counter['n']}",
            goal_id=goal_id,
            progress=progress,
            created_at=created_at,
            notes=notes,
        )
    return _make


@pytest.fixture
def goal_set(make_goal):
    """{completed, completed, in-progress, pending} with progress 100, 100, 40, 0."""
    return [
        make_goal("g1", GoalStatus.COMPLETED, 100),
        make_goal("g2", GoalStatus.COMPLETED, 100),
        make_goal("g3", GoalStatus.IN_PROGRESS, 40),
        make_goal("g4", GoalStatus.PENDING, 0),
    ]


@pytest.fixture
def two_week_history(make_goal, make_entry):
    """
    Two goals touched over weeks 41 and 42 of 2026.

    g1: 50% on Tue 6 Oct, completed Thu 8 Oct.
    g2: 30% on Wed 7 Oct, 60% on Tue 13 Oct (still in progress).
    """
    goals = [
        make_goal("g1", GoalStatus.COMPLETED, 100, updated_at=datetime(2026, 10, 8, 10, 0)),
        make_goal("g2", GoalStatus.IN_PROGRESS, 60, updated_at=datetime(2026, 10, 13, 9, 0)),
    ]
    ledgers = {
        "g1": [
            make_entry("g1", 50, datetime(2026, 10, 6, 10, 0)),
            make_entry("g1", 100, datetime(2026, 10, 8, 10, 0)),
        ],
        "g2": [
            make_entry("g2", 30, datetime(2026, 10, 7, 9, 0)),
            make_entry("g2", 60, datetime(2026, 10, 13, 9, 0)),
        ],
    }
    return goals, ledgers


@pytest.fixture
def mock_transport():
    """
    Build an httpx.MockTransport from a {(method, path): response} table.

    Values may be a Response, a (status, json) tuple, or a callable taking
    the request. Every request is recorded on transport.requests.
    """
    def _build(routes):
        requests = []

        def handler(request: httpx.Request):
            requests.append(request)
            route = routes.get((request.method, request.url.path))
            if route is None:
                return httpx.Response(404, json={"message": f"No route for {request.url.path}"})
            if callable(route):
                return route(request)
            if isinstance(route, httpx.Response):
                return route
            status, body = route
            return httpx.Response(status, json=body)

        transport = httpx.MockTransport(handler)
        transport.requests = requests
        return transport
    return _build
