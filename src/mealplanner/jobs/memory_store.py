"""
In-memory job store for local development.

Two process-wide maps: job id -> job row, and job id -> list of meal rows.
Callers always get deep copies, so nothing outside this module can
mutate stored state. Not safe across processes or instances.
"""

import copy
import itertools
import logging
import threading
import uuid
from typing import Any

from mealplanner.errors import StoreError, TerminalStateError
from mealplanner.jobs.store import check_job_update, utc_now
from mealplanner.models import GeneratedMeal, GroupRequest, JobRecord, JobStatus

logger = logging.getLogger(__name__)


class InMemoryJobStore:
    """JobStore backed by two dicts guarded by a lock."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._jobs: dict[str, dict[str, Any]] = {}
        self._meals: dict[str, list[dict[str, Any]]] = {}
        # Creation order, used to break created_at ties
        self._sequence = itertools.count()
        self._order: dict[str, int] = {}

    async def create_job(
        self,
        *,
        user_id: str,
        plan_name: str,
        week_start: str,
        additional_notes: str | None,
        groups_data: list[GroupRequest],
    ) -> JobRecord:
        record = JobRecord(
            id=str(uuid.uuid4()),
            user_id=user_id,
            plan_name=plan_name,
            week_start=week_start,
            additional_notes=additional_notes,
            groups_data=groups_data,
            status=JobStatus.PENDING,
            progress=0,
            created_at=utc_now(),
        )
        with self._lock:
            self._jobs[record.id] = record.model_dump(mode="json")
            self._order[record.id] = next(self._sequence)
        logger.debug(f"Created in-memory job {record.id}")
        return record.model_copy(deep=True)

    async def get_job(self, job_id: str) -> JobRecord | None:
        with self._lock:
            row = self._jobs.get(job_id)
            if row is None:
                return None
            return JobRecord.model_validate(copy.deepcopy(row))

    async def update_job(self, job_id: str, fields: dict[str, Any]) -> JobRecord:
        with self._lock:
            row = self._jobs.get(job_id)
            if row is None:
                raise StoreError(f"Job {job_id} not found")
            check_job_update(JobRecord.model_validate(row), fields)
            updated = JobRecord.model_validate({**copy.deepcopy(row), **copy.deepcopy(fields)})
            self._jobs[job_id] = updated.model_dump(mode="json")
            return updated

    async def list_jobs(
        self,
        *,
        user_id: str,
        job_id: str | None = None,
        plan_name: str | None = None,
        status: str | None = None,
    ) -> list[JobRecord]:
        with self._lock:
            rows = [
                row
                for row in self._jobs.values()
                if row["user_id"] == user_id
                and (job_id is None or row["id"] == job_id)
                and (plan_name is None or row["plan_name"] == plan_name)
                and (status is None or row["status"] == status)
            ]
            rows.sort(key=lambda r: (r["created_at"], self._order[r["id"]]), reverse=True)
            return [JobRecord.model_validate(copy.deepcopy(row)) for row in rows]

    async def insert_meals(self, job_id: str, meals: list[GeneratedMeal]) -> int:
        rows = [meal.model_dump(mode="json") for meal in meals]
        for row in rows:
            if row["job_id"] != job_id:
                raise StoreError(f"Meal {row['id']} does not belong to job {job_id}")

        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise StoreError(f"Job {job_id} not found")
            if job["status"] in (JobStatus.COMPLETED.value, JobStatus.FAILED.value):
                raise TerminalStateError(job_id, job["status"])
            self._meals.setdefault(job_id, []).extend(rows)
        return len(rows)

    async def list_meals(
        self,
        job_ids: list[str],
        *,
        group_id: str | None = None,
        selected_only: bool = False,
    ) -> list[GeneratedMeal]:
        with self._lock:
            rows = [
                row
                for jid in job_ids
                for row in self._meals.get(jid, [])
                if (group_id is None or row["group_id"] == group_id)
                and (not selected_only or row["selected"])
            ]
            return [GeneratedMeal.model_validate(copy.deepcopy(row)) for row in rows]

    async def update_meal_selection(self, job_id: str, selections: dict[str, bool]) -> int:
        changed = 0
        with self._lock:
            for row in self._meals.get(job_id, []):
                if row["id"] in selections:
                    row["selected"] = bool(selections[row["id"]])
                    changed += 1
        return changed

    def clear(self) -> None:
        """Drop every job and meal."""
        with self._lock:
            self._jobs.clear()
            self._meals.clear()
            self._order.clear()
