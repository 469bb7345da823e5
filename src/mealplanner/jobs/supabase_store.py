"""
Supabase-backed job store.

Tables: meal_generation_jobs, generated_meals (see migrations/).
The supabase client is synchronous, so every query runs in a worker
thread via asyncio.to_thread and never blocks the event loop.

Lifecycle updates are conditional: the UPDATE only matches rows that are
still non-terminal and whose progress is not ahead of the new value. If
nothing matched, the current row is re-read to report why.
"""

import asyncio
import logging
from typing import Any, Callable, TypeVar

from supabase import Client

from mealplanner.errors import StoreError
from mealplanner.jobs.store import ALLOWED_TRANSITIONS, IMMUTABLE_JOB_FIELDS, check_job_update
from mealplanner.models import GeneratedMeal, GroupRequest, JobRecord, JobStatus

logger = logging.getLogger(__name__)

JOBS_TABLE = "meal_generation_jobs"
MEALS_TABLE = "generated_meals"

NON_TERMINAL = [JobStatus.PENDING.value, JobStatus.PROCESSING.value]

T = TypeVar("T")


class SupabaseJobStore:
    """JobStore over a Supabase (PostgREST) client."""

    def __init__(self, client: Client):
        self.client = client

    async def _run(self, description: str, fn: Callable[[], T]) -> T:
        """Run a blocking query in a thread, converting failures to StoreError."""
        try:
            return await asyncio.to_thread(fn)
        except StoreError:
            raise
        except Exception as e:
            logger.error(f"Failed to {description}: {e}")
            raise StoreError(f"Failed to {description}") from e

    # =========================================================================
    # Jobs
    # =========================================================================

    async def create_job(
        self,
        *,
        user_id: str,
        plan_name: str,
        week_start: str,
        additional_notes: str | None,
        groups_data: list[GroupRequest],
    ) -> JobRecord:
        row = {
            "user_id": user_id,
            "plan_name": plan_name,
            "week_start": week_start,
            "additional_notes": additional_notes,
            "groups_data": [g.model_dump(mode="json") for g in groups_data],
            "status": JobStatus.PENDING.value,
            "progress": 0,
        }

        def insert() -> dict:
            result = self.client.table(JOBS_TABLE).insert(row).execute()
            if not result.data:
                raise StoreError(f"Insert into {JOBS_TABLE} returned no row")
            return result.data[0]

        data = await self._run(f"create job for user {user_id}", insert)
        return JobRecord.model_validate(data)

    async def get_job(self, job_id: str) -> JobRecord | None:
        def select() -> dict | None:
            result = (
                self.client.table(JOBS_TABLE)
                .select("*")
                .eq("id", job_id)
                .maybe_single()
                .execute()
            )
            if result is None:
                return None
            return result.data

        data = await self._run(f"get job {job_id}", select)
        return JobRecord.model_validate(data) if data else None

    async def update_job(self, job_id: str, fields: dict[str, Any]) -> JobRecord:
        frozen = IMMUTABLE_JOB_FIELDS & fields.keys()
        if frozen:
            raise StoreError(f"Cannot update immutable job fields: {', '.join(sorted(frozen))}")

        payload = {
            key: value.value if isinstance(value, JobStatus) else value
            for key, value in fields.items()
        }
        from_statuses = NON_TERMINAL
        if "status" in payload:
            target = JobStatus(payload["status"])
            from_statuses = [
                status.value for status, targets in ALLOWED_TRANSITIONS.items() if target in targets
            ]

        def update() -> list[dict]:
            query = (
                self.client.table(JOBS_TABLE)
                .update(payload)
                .eq("id", job_id)
                .in_("status", from_statuses)
            )
            if "progress" in payload:
                query = query.lte("progress", payload["progress"])
            return query.execute().data

        rows = await self._run(f"update job {job_id}", update)
        if rows:
            return JobRecord.model_validate(rows[0])

        # Nothing matched: find out whether the job is missing, terminal or ahead
        current = await self.get_job(job_id)
        if current is None:
            raise StoreError(f"Job {job_id} not found")
        check_job_update(current, fields)
        raise StoreError(f"Job {job_id} was not updated")

    async def list_jobs(
        self,
        *,
        user_id: str,
        job_id: str | None = None,
        plan_name: str | None = None,
        status: str | None = None,
    ) -> list[JobRecord]:
        def select() -> list[dict]:
            query = self.client.table(JOBS_TABLE).select("*").eq("user_id", user_id)
            if job_id:
                query = query.eq("id", job_id)
            if plan_name:
                query = query.eq("plan_name", plan_name)
            if status:
                query = query.eq("status", status)
            return query.order("created_at", desc=True).execute().data or []

        rows = await self._run(f"list jobs for user {user_id}", select)
        return [JobRecord.model_validate(row) for row in rows]

    # =========================================================================
    # Meals
    # =========================================================================

    async def insert_meals(self, job_id: str, meals: list[GeneratedMeal]) -> int:
        rows = [meal.model_dump(mode="json") for meal in meals]
        if any(row["job_id"] != job_id for row in rows):
            raise StoreError(f"Meals passed for job {job_id} reference another job")
        if not rows:
            return 0

        def insert() -> int:
            # Single statement: PostgREST inserts the whole batch or nothing
            result = self.client.table(MEALS_TABLE).insert(rows).execute()
            return len(result.data or [])

        try:
            return await self._run(f"insert {len(rows)} meals for job {job_id}", insert)
        except StoreError:
            await self._discard_meals(job_id)
            raise

    async def _discard_meals(self, job_id: str) -> None:
        """Best-effort cleanup so a failed job never has meals attached."""
        try:
            await asyncio.to_thread(
                lambda: self.client.table(MEALS_TABLE).delete().eq("job_id", job_id).execute()
            )
        except Exception as e:
            logger.error(f"Failed to clean up meals for job {job_id}: {e}")

    async def list_meals(
        self,
        job_ids: list[str],
        *,
        group_id: str | None = None,
        selected_only: bool = False,
    ) -> list[GeneratedMeal]:
        if not job_ids:
            return []

        def select() -> list[dict]:
            query = self.client.table(MEALS_TABLE).select("*").in_("job_id", job_ids)
            if group_id:
                query = query.eq("group_id", group_id)
            if selected_only:
                query = query.eq("selected", True)
            return query.order("created_at").execute().data or []

        rows = await self._run(f"list meals for jobs {job_ids}", select)
        return [GeneratedMeal.model_validate(row) for row in rows]

    async def update_meal_selection(self, job_id: str, selections: dict[str, bool]) -> int:
        by_value: dict[bool, list[str]] = {}
        for meal_id, selected in selections.items():
            by_value.setdefault(bool(selected), []).append(meal_id)

        def update() -> int:
            changed = 0
            for selected, meal_ids in by_value.items():
                result = (
                    self.client.table(MEALS_TABLE)
                    .update({"selected": selected})
                    .eq("job_id", job_id)
                    .in_("id", meal_ids)
                    .execute()
                )
                changed += len(result.data or [])
            return changed

        return await self._run(f"update meal selection for job {job_id}", update)
