"""
Meal Planner - Client-side job following.
"""

from mealplanner.client.http import HttpStatusFetcher
from mealplanner.client.poller import GenerationPoller, PollerSnapshot, PollerState, map_job_progress

__all__ = [
    "GenerationPoller",
    "HttpStatusFetcher",
    "PollerSnapshot",
    "PollerState",
    "map_job_progress",
]
