"""
Meal Planner - Database Client.
"""

from mealplanner.db.client import get_service_client

__all__ = [
    "get_service_client",
]
