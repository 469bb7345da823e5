"""
Meal Planner - Generation pipeline.

Submission creates a pending job and launches the executor; the status
handler answers polling queries while the executor works.
"""

from mealplanner.generation.executor import GenerationExecutor
from mealplanner.generation.generator import MealGenerator, MockMealGenerator, OpenAIMealGenerator
from mealplanner.generation.launcher import JobLauncher, get_launcher
from mealplanner.generation.status import JobStatusHandler
from mealplanner.generation.submission import JobSubmissionHandler, build_group_snapshot

__all__ = [
    "GenerationExecutor",
    "JobLauncher",
    "JobStatusHandler",
    "JobSubmissionHandler",
    "MealGenerator",
    "MockMealGenerator",
    "OpenAIMealGenerator",
    "build_group_snapshot",
    "get_launcher",
]
