"""
Status Query Handler.

Read-only lookups of a caller's jobs and the meals they produced, plus
the one post-generation write: toggling meal selection.

Jobs belonging to someone else are reported as NotFound, exactly like
jobs that don't exist.
"""

import logging
from contextlib import contextmanager

from mealplanner.errors import AuthRequired, InvalidRequest, NotFound, StoreError, StoreUnavailable
from mealplanner.jobs.store import JobStore
from mealplanner.models import GeneratedMeal, JobRecord, JobStatus, MealSummary, StatusResult

logger = logging.getLogger(__name__)


@contextmanager
def _store_errors(action: str):
    """Surface backend failures as a retryable StoreUnavailable."""
    try:
        yield
    except StoreError as e:
        logger.error(f"Store unavailable while trying to {action}: {e}")
        raise StoreUnavailable() from e


def _require_user(user_id: str | None) -> str:
    if not user_id:
        raise AuthRequired()
    return user_id


def _parse_status(status: str | None) -> str | None:
    if status is None:
        return None
    try:
        return JobStatus(status).value
    except ValueError:
        allowed = ", ".join(s.value for s in JobStatus)
        raise InvalidRequest(f"Invalid status {status!r}. Expected one of: {allowed}")


def summarize_meal(meal: GeneratedMeal) -> MealSummary:
    return MealSummary(
        id=meal.id,
        job_id=meal.job_id,
        group_name=meal.group_name,
        title=meal.title,
        selected=meal.selected,
    )


class JobStatusHandler:
    def __init__(self, store: JobStore):
        self.store = store

    async def get_owned_job(self, user_id: str | None, job_id: str) -> JobRecord:
        """Load a job the caller owns, or raise NotFound."""
        user_id = _require_user(user_id)
        with _store_errors(f"load job {job_id}"):
            job = await self.store.get_job(job_id)
        if job is None or job.user_id != user_id:
            raise NotFound("Job not found")
        return job

    async def query_jobs(
        self,
        user_id: str | None,
        *,
        job_id: str | None = None,
        status: str | None = None,
    ) -> list[JobRecord]:
        """The caller's jobs, newest first, optionally narrowed by id and status."""
        user_id = _require_user(user_id)
        status = _parse_status(status)

        if job_id:
            job = await self.get_owned_job(user_id, job_id)
            return [job] if status is None or job.status.value == status else []

        with _store_errors(f"list jobs for user {user_id}"):
            return await self.store.list_jobs(user_id=user_id, status=status)

    async def query_plan_status(
        self,
        user_id: str | None,
        *,
        plan_name: str | None = None,
        job_id: str | None = None,
        status: str | None = None,
    ) -> StatusResult:
        """Jobs for a plan (or one job) together with summaries of their meals."""
        user_id = _require_user(user_id)
        if not plan_name and not job_id:
            raise InvalidRequest("Plan ID is required")
        status = _parse_status(status)

        if job_id:
            jobs = await self.query_jobs(user_id, job_id=job_id, status=status)
            if plan_name:
                jobs = [j for j in jobs if j.plan_name == plan_name]
        else:
            with _store_errors(f"list jobs for plan {plan_name!r}"):
                jobs = await self.store.list_jobs(user_id=user_id, plan_name=plan_name, status=status)

        meals: list[MealSummary] = []
        if jobs:
            with _store_errors("list meals"):
                rows = await self.store.list_meals([j.id for j in jobs])
            meals = [summarize_meal(m) for m in rows]

        return StatusResult(jobs=jobs, meals=meals)

    async def list_job_meals(
        self,
        user_id: str | None,
        job_id: str,
        *,
        group_id: str | None = None,
        selected_only: bool = False,
    ) -> list[GeneratedMeal]:
        """Full meal rows for one of the caller's jobs."""
        job = await self.get_owned_job(user_id, job_id)
        with _store_errors(f"list meals for job {job_id}"):
            return await self.store.list_meals([job.id], group_id=group_id, selected_only=selected_only)

    async def set_meal_selection(
        self,
        user_id: str | None,
        job_id: str,
        *,
        meal_id: str | None = None,
        selected: bool | None = None,
        meal_ids: list[str] | None = None,
    ) -> int:
        """
        Change which meals are selected.

        Either toggle one meal (meal_id + selected), or pass meal_ids to make
        exactly those meals the selection for the job.

        Returns:
            Number of meals updated
        """
        job = await self.get_owned_job(user_id, job_id)

        with _store_errors(f"list meals for job {job_id}"):
            existing = {m.id for m in await self.store.list_meals([job.id])}

        if meal_ids is not None:
            unknown = [mid for mid in meal_ids if mid not in existing]
            if unknown:
                raise NotFound("Meal not found", details=unknown)
            wanted = set(meal_ids)
            selections = {mid: mid in wanted for mid in existing}
        elif meal_id is not None and selected is not None:
            if meal_id not in existing:
                raise NotFound("Meal not found")
            selections = {meal_id: selected}
        else:
            raise InvalidRequest("Provide mealId and selected, or mealIds")

        with _store_errors(f"update meal selection for job {job_id}"):
            updated = await self.store.update_meal_selection(job.id, selections)
        logger.info(f"Updated selection of {updated} meals for job {job_id}")
        return updated
