"""
Pytest configuration and fixtures for Meal Planner tests.
"""

import os
import pytest
from unittest.mock import MagicMock

# Set test environment before importing mealplanner modules
os.environ["MEALPLANNER_ENV"] = "development"
os.environ["JOB_STORE_BACKEND"] = "memory"
os.environ.pop("OPENAI_API_KEY", None)

from mealplanner.generation.generator import MockMealGenerator
from mealplanner.groups import InMemoryGroupSource
from mealplanner.jobs import InMemoryJobStore
from mealplanner.models import Group, MealDraft
from mealplanner.notifications import LoggingNotifier

USER_ID = "user-1"
OTHER_USER_ID = "user-2"


class FakeGenerator:
    """
    Scriptable generator.

    Defaults to the mock generator's output. Set `error` to make the call
    raise, `results` to return fixed meals, or `shortfall` to return that
    many fewer meals per group than requested.
    """

    def __init__(self):
        self.calls = []
        self.error: Exception | None = None
        self.results: dict[str, list[MealDraft]] | None = None
        self.shortfall = 0

    async def generate(self, request, *, job_id=None):
        self.calls.append(request)
        if self.error is not None:
            raise self.error
        if self.results is not None:
            return self.results
        meals = await MockMealGenerator().generate(request, job_id=job_id)
        if self.shortfall:
            meals = {name: drafts[: -self.shortfall] for name, drafts in meals.items()}
        return meals


class RecordingLauncher:
    """Launcher that records job ids instead of running them."""

    def __init__(self):
        self.launched = []

    def launch(self, job_id):
        self.launched.append(job_id)


@pytest.fixture
def mock_supabase():
    """Mock Supabase client for unit tests."""
    mock_client = MagicMock()

    # Mock table operations
    mock_table = MagicMock()
    mock_table.select.return_value = mock_table
    mock_table.insert.return_value = mock_table
    mock_table.update.return_value = mock_table
    mock_table.delete.return_value = mock_table
    mock_table.eq.return_value = mock_table
    mock_table.in_.return_value = mock_table
    mock_table.lte.return_value = mock_table
    mock_table.order.return_value = mock_table
    mock_table.maybe_single.return_value = mock_table
    mock_table.execute.return_value = MagicMock(data=[])

    mock_client.table.return_value = mock_table

    return mock_client


@pytest.fixture
def sample_groups():
    """Two groups for USER_ID and one belonging to someone else."""
    return [
        Group(
            id="group-family",
            user_id=USER_ID,
            name="Family",
            adults=2,
            teens=1,
            kids=2,
            toddlers=0,
            dietary_restrictions=[],
            notes="Likes pasta",
        ),
        Group(
            id="group-veg",
            user_id=USER_ID,
            name="Veggie Friends",
            adults=3,
            dietary_restrictions=["vegetarian"],
        ),
        Group(
            id="group-other",
            user_id=OTHER_USER_ID,
            name="Neighbours",
            adults=2,
        ),
    ]


@pytest.fixture
def group_source(sample_groups):
    return InMemoryGroupSource(sample_groups)


@pytest.fixture
def store():
    return InMemoryJobStore()


@pytest.fixture
def fake_generator():
    return FakeGenerator()


@pytest.fixture
def notifier():
    return LoggingNotifier()


@pytest.fixture
def launcher():
    return RecordingLauncher()


@pytest.fixture
def sample_plan():
    """A valid plan payload as the browser sends it."""
    return {
        "planName": "Week of Jan 5",
        "weekStart": "2026-01-05",
        "notes": "Quick weeknight dinners",
        "groupMeals": [
            {"groupId": "group-family", "mealCount": 3},
        ],
    }
