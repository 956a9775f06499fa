"""
Services package - Backend access and analytics orchestration.
"""

from ..result import Ok, Result, Unavailable
from .http_client import ApiClient, ApiError
from .data_service import GoalDataService, get_data_service
from .analytics_service import AnalyticsService

__all__ = [
    'Ok',
    'Result',
    'Unavailable',
    'ApiClient',
    'ApiError',
    'GoalDataService',
    'get_data_service',
    'AnalyticsService',
]
