"""
Configuration constants for goaltracker.
Centralized configuration for thresholds, scoring weights, and behavior.
"""

import os
from dataclasses import dataclass, fields
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()

# Progress bounds
PROGRESS_MIN = 0
PROGRESS_MAX = 100
START_BASELINE_PROGRESS = 10  # Progress shown when a pending goal is started

# Performance score weights (completion rate, average progress)
COMPLETION_WEIGHT = 0.7
PROGRESS_WEIGHT = 0.3

# Streaks & trends
STREAK_THRESHOLD = 0.0  # Week qualifies when completion rate is above this
TREND_WEEKS = 12  # Weeks shown in weekly trends (84 days)
IMPROVEMENT_BAND = 5  # Completion-rate points a trend must move to count as improving/declining

# Achievement thresholds
FIRST_GOAL_THRESHOLD = 1
GOAL_ACHIEVER_THRESHOLD = 5
GOAL_MASTER_THRESHOLD = 10
STREAK_ACHIEVEMENT_WEEKS = 4

# Dashboard summary
UPCOMING_DEADLINE_DAYS = 7
MAX_UPCOMING_DEADLINES = 5
UNCATEGORIZED = "Uncategorized"

# Monthly summary
TOP_CATEGORY_LIMIT = 5
PROGRESS_RANGES = [(0, 20), (21, 40), (41, 60), (61, 80), (81, 100)]

# Validation Rules
CLOCK_SKEW_TOLERANCE_SECONDS = 0  # Entries dated after "now" are rejected

# Fallback synthesis
FALLBACK_MIN_HORIZON_DAYS = 7
FALLBACK_MAX_HORIZON_DAYS = 90
FORECAST_HORIZON_DAYS = 365

# Organization analytics buckets (label, lower bound inclusive)
PERFORMANCE_BUCKETS = [
    ("High Performers (80-100%)", 80),
    ("Good Performers (60-79%)", 60),
    ("Average Performers (40-59%)", 40),
    ("Needs Improvement (0-39%)", 0),
]

# Backend API
API_BASE_URL = os.environ.get("GOALTRACKER_API_URL", "http://localhost:3000/api")
API_TIMEOUT_SECONDS = float(os.environ.get("GOALTRACKER_API_TIMEOUT", "10"))
API_TOKEN = os.environ.get("GOALTRACKER_API_TOKEN", "")

# Logging
LOG_LEVEL = os.environ.get("GOALTRACKER_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE = os.environ.get("GOALTRACKER_LOG_FILE", "")


@dataclass(frozen=True)
class AnalyticsPolicy:
    """
    Product-policy knobs for the aggregation engine.

    Passed explicitly into the analytics functions so they stay pure;
    defaults mirror the module constants above.
    """
    completion_weight: float = COMPLETION_WEIGHT
    progress_weight: float = PROGRESS_WEIGHT
    streak_threshold: float = STREAK_THRESHOLD
    trend_weeks: int = TREND_WEEKS
    start_baseline: int = START_BASELINE_PROGRESS
    clock_skew_tolerance_seconds: float = CLOCK_SKEW_TOLERANCE_SECONDS

    def __post_init__(self):
        if self.completion_weight < 0 or self.progress_weight < 0:
            raise ValueError("Score weights must be non-negative")
        if self.trend_weeks < 1:
            raise ValueError("trend_weeks must be at least 1")
        if not PROGRESS_MIN <= self.start_baseline <= PROGRESS_MAX:
            raise ValueError("start_baseline must be a valid progress value")

    @property
    def clock_skew_tolerance(self) -> timedelta:
        return timedelta(seconds=self.clock_skew_tolerance_seconds)


DEFAULT_POLICY = AnalyticsPolicy()


def load_policy(environ=None) -> AnalyticsPolicy:
    """
    Build an AnalyticsPolicy from GOALTRACKER_* environment variables.

    Example: GOALTRACKER_STREAK_THRESHOLD=50 only counts weeks with more
    than half of the touched goals completed.
    """
    environ = os.environ if environ is None else environ
    overrides = {}
    for f in fields(AnalyticsPolicy):
        raw = environ.get(f"GOALTRACKER_{f.name.upper()}")
        if raw is None or raw == "":
            continue
        overrides[f.name] = int(raw) if f.type in (int, "int") else float(raw)
    return AnalyticsPolicy(**overrides)
