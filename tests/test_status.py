"""
Tests for the status query handler.
"""

import asyncio

import pytest

from mealplanner.errors import AuthRequired, InvalidRequest, NotFound, StoreError, StoreUnavailable
from mealplanner.generation import GenerationExecutor, JobStatusHandler, JobSubmissionHandler
from mealplanner.models import JobStatus

USER_ID = "user-1"
OTHER_USER_ID = "user-2"


class UnavailableStore:
    async def get_job(self, job_id):
        raise StoreError("connection refused")

    async def list_jobs(self, **kwargs):
        raise StoreError("connection refused")


@pytest.fixture
def status(store):
    return JobStatusHandler(store)


@pytest.fixture
def submit(store, group_source, launcher):
    """Submit a plan and return the job id (without running it)."""
    handler = JobSubmissionHandler(store, group_source, launcher)

    def _submit(payload, user_id=USER_ID):
        return asyncio.run(handler.submit(user_id, payload)).job_id

    return _submit


@pytest.fixture
def completed_job(store, submit, fake_generator, notifier, sample_plan):
    job_id = submit(sample_plan)
    asyncio.run(GenerationExecutor(store, fake_generator, notifier).run(job_id))
    return job_id


class TestQueryJobs:
    """Tests for job lookups."""

    def test_own_job(self, status, submit, sample_plan):
        job_id = submit(sample_plan)

        jobs = asyncio.run(status.query_jobs(USER_ID, job_id=job_id))

        assert [j.id for j in jobs] == [job_id]
        assert jobs[0].status == JobStatus.PENDING

    def test_other_users_job_is_not_found(self, status, submit, sample_plan):
        job_id = submit(sample_plan)
        with pytest.raises(NotFound):
            asyncio.run(status.query_jobs(OTHER_USER_ID, job_id=job_id))

    def test_missing_job_is_not_found(self, status):
        with pytest.raises(NotFound) as exc_info:
            asyncio.run(status.query_jobs(USER_ID, job_id="missing"))
        assert exc_info.value.message == "Job not found"

    def test_all_jobs_newest_first(self, status, submit, sample_plan):
        first = submit(sample_plan)
        second = submit(sample_plan)

        jobs = asyncio.run(status.query_jobs(USER_ID))

        assert [j.id for j in jobs] == [second, first]

    def test_status_filter(self, status, submit, completed_job, sample_plan):
        pending = submit(sample_plan)

        assert [j.id for j in asyncio.run(status.query_jobs(USER_ID, status="pending"))] == [pending]
        assert [j.id for j in asyncio.run(status.query_jobs(USER_ID, status="completed"))] == [completed_job]
        assert asyncio.run(status.query_jobs(USER_ID, job_id=pending, status="completed")) == []

    def test_invalid_status(self, status):
        with pytest.raises(InvalidRequest):
            asyncio.run(status.query_jobs(USER_ID, status="running"))

    def test_requires_user(self, status):
        with pytest.raises(AuthRequired):
            asyncio.run(status.query_jobs(None))

    def test_reads_are_idempotent(self, status, completed_job):
        first = asyncio.run(status.query_jobs(USER_ID, job_id=completed_job))
        second = asyncio.run(status.query_jobs(USER_ID, job_id=completed_job))
        assert first == second

    def test_store_failure_is_retryable(self):
        status = JobStatusHandler(UnavailableStore())
        with pytest.raises(StoreUnavailable) as exc_info:
            asyncio.run(status.query_jobs(USER_ID, job_id="job-1"))
        assert exc_info.value.retryable
        with pytest.raises(StoreUnavailable):
            asyncio.run(status.query_jobs(USER_ID))


class TestQueryPlanStatus:
    """Tests for plan-level status with meal summaries."""

    def test_requires_a_filter(self, status):
        with pytest.raises(InvalidRequest) as exc_info:
            asyncio.run(status.query_plan_status(USER_ID))
        assert exc_info.value.message == "Plan ID is required"

    def test_by_plan_name(self, status, completed_job):
        result = asyncio.run(status.query_plan_status(USER_ID, plan_name="Week of Jan 5"))

        assert [j.id for j in result.jobs] == [completed_job]
        assert len(result.meals) == 5
        assert all(m.job_id == completed_job for m in result.meals)
        assert all(m.group_name == "Family" and not m.selected for m in result.meals)

    def test_by_job_id(self, status, completed_job):
        result = asyncio.run(status.query_plan_status(USER_ID, job_id=completed_job))
        assert [j.id for j in result.jobs] == [completed_job]

    def test_pending_job_has_no_meals(self, status, submit, sample_plan):
        job_id = submit(sample_plan)
        result = asyncio.run(status.query_plan_status(USER_ID, job_id=job_id))
        assert result.meals == []

    def test_unknown_plan_is_empty(self, status):
        result = asyncio.run(status.query_plan_status(USER_ID, plan_name="Nope"))
        assert result.jobs == []
        assert result.meals == []

    def test_other_user_sees_nothing(self, status, completed_job):
        result = asyncio.run(status.query_plan_status(OTHER_USER_ID, plan_name="Week of Jan 5"))
        assert result.jobs == []


class TestMeals:
    """Tests for meal listing and selection."""

    def test_list_job_meals(self, status, completed_job):
        meals = asyncio.run(status.list_job_meals(USER_ID, completed_job))
        assert len(meals) == 5
        assert all(m.total_time == m.prep_time + m.cook_time for m in meals)

    def test_list_job_meals_checks_owner(self, status, completed_job):
        with pytest.raises(NotFound):
            asyncio.run(status.list_job_meals(OTHER_USER_ID, completed_job))

    def test_toggle_one_meal(self, status, completed_job):
        meal = asyncio.run(status.list_job_meals(USER_ID, completed_job))[0]

        updated = asyncio.run(status.set_meal_selection(USER_ID, completed_job, meal_id=meal.id, selected=True))

        assert updated == 1
        selected = asyncio.run(status.list_job_meals(USER_ID, completed_job, selected_only=True))
        assert [m.id for m in selected] == [meal.id]

    def test_exclusive_selection(self, status, completed_job):
        meals = asyncio.run(status.list_job_meals(USER_ID, completed_job))
        asyncio.run(status.set_meal_selection(USER_ID, completed_job, meal_id=meals[0].id, selected=True))

        wanted = [meals[1].id, meals[2].id]
        updated = asyncio.run(status.set_meal_selection(USER_ID, completed_job, meal_ids=wanted))

        assert updated == 5
        selected = asyncio.run(status.list_job_meals(USER_ID, completed_job, selected_only=True))
        assert sorted(m.id for m in selected) == sorted(wanted)

    def test_unknown_meal(self, status, completed_job):
        with pytest.raises(NotFound):
            asyncio.run(status.set_meal_selection(USER_ID, completed_job, meal_id="nope", selected=True))
        with pytest.raises(NotFound):
            asyncio.run(status.set_meal_selection(USER_ID, completed_job, meal_ids=["nope"]))

    def test_selection_needs_arguments(self, status, completed_job):
        with pytest.raises(InvalidRequest):
            asyncio.run(status.set_meal_selection(USER_ID, completed_job))

    def test_selection_checks_owner(self, status, completed_job):
        with pytest.raises(NotFound):
            asyncio.run(status.set_meal_selection(OTHER_USER_ID, completed_job, meal_ids=[]))
