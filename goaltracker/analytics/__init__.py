"""
Analytics subpackage: aggregation, streaks, predictions, history and fallback synthesis.
"""

from .aggregation import (
    compute_snapshot,
    summarize_goals,
    calculate_completion_rate,
    calculate_average_progress,
    calculate_performance_score,
    calculate_category_stats,
)

from .gamification import (
    check_achievements,
    merge_achievements,
    calculate_current_streak,
    calculate_longest_streak,
    ACHIEVEMENT_DEFINITIONS,
)

from .predictions import (
    forecast_completion,
    forecast_goals,
)

from .organization import (
    system_overview,
    volunteer_performance,
    performance_distribution,
    category_breakdown,
    volunteer_activity,
)

from .history import (
    volunteer_trends,
    monthly_summary,
    improvement_trend,
    progress_distribution,
)

from .fallback import synthesize_fallback

__all__ = [
    # Aggregation
    "compute_snapshot",
    "summarize_goals",
    "calculate_completion_rate",
    "calculate_average_progress",
    "calculate_performance_score",
    "calculate_category_stats",
    # Gamification
    "check_achievements",
    "merge_achievements",
    "calculate_current_streak",
    "calculate_longest_streak",
    "ACHIEVEMENT_DEFINITIONS",
    # Predictions
    "forecast_completion",
    "forecast_goals",
    # Organization
    "system_overview",
    "volunteer_performance",
    "performance_distribution",
    "category_breakdown",
    "volunteer_activity",
    # History
    "volunteer_trends",
    "monthly_summary",
    "improvement_trend",
    "progress_distribution",
    # Fallback
    "synthesize_fallback",
]
