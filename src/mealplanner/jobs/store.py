"""
Job Record Store contract.

The executor and the handlers only ever talk to a JobStore. Two
implementations exist: SupabaseJobStore (durable, production) and
InMemoryJobStore (process-local, development only).

Both backends enforce the lifecycle rules through check_job_update():
a completed or failed job never changes again, and a running job's
progress never moves backwards.
"""

from datetime import UTC, datetime
from typing import Any, Protocol, runtime_checkable

from mealplanner.errors import ProgressRegressionError, StoreError, TerminalStateError
from mealplanner.models import GeneratedMeal, GroupRequest, JobRecord, JobStatus

# Set once at creation, never updated
IMMUTABLE_JOB_FIELDS = frozenset(
    {
        "id",
        "user_id",
        "plan_name",
        "week_start",
        "additional_notes",
        "groups_data",
        "created_at",
    }
)

ALLOWED_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.PENDING: {JobStatus.PENDING, JobStatus.PROCESSING, JobStatus.FAILED},
    JobStatus.PROCESSING: {JobStatus.PROCESSING, JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}


def utc_now() -> str:
    """Get current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


def check_job_update(current: JobRecord, fields: dict[str, Any]) -> None:
    """
    Reject updates that would break the job lifecycle.

    Raises:
        TerminalStateError: job is already completed or failed
        ProgressRegressionError: progress would decrease
        StoreError: an immutable field or an invalid status transition
    """
    if current.is_terminal:
        raise TerminalStateError(current.id, current.status.value)

    frozen = IMMUTABLE_JOB_FIELDS & fields.keys()
    if frozen:
        raise StoreError(f"Cannot update immutable job fields: {', '.join(sorted(frozen))}")

    if "status" in fields:
        new_status = JobStatus(fields["status"])
        if new_status not in ALLOWED_TRANSITIONS[current.status]:
            raise StoreError(
                f"Invalid transition for job {current.id}: "
                f"{current.status.value} -> {new_status.value}"
            )

    if "progress" in fields:
        progress = fields["progress"]
        if not 0 <= progress <= 100:
            raise StoreError(f"Progress out of range: {progress}")
        if progress < current.progress:
            raise ProgressRegressionError(current.id, current.progress, progress)


@runtime_checkable
class JobStore(Protocol):
    """
    Persistence for job records and the meals they produce.

    All methods raise StoreError (or a subclass) when the backend cannot
    complete the operation.
    """

    async def create_job(
        self,
        *,
        user_id: str,
        plan_name: str,
        week_start: str,
        additional_notes: str | None,
        groups_data: list[GroupRequest],
    ) -> JobRecord:
        """Create a job in status pending with progress 0. Assigns id and created_at."""
        ...

    async def get_job(self, job_id: str) -> JobRecord | None:
        """Get a job by id regardless of owner, or None."""
        ...

    async def update_job(self, job_id: str, fields: dict[str, Any]) -> JobRecord:
        """Point-update lifecycle fields. Returns the updated record."""
        ...

    async def list_jobs(
        self,
        *,
        user_id: str,
        job_id: str | None = None,
        plan_name: str | None = None,
        status: str | None = None,
    ) -> list[JobRecord]:
        """Jobs owned by user_id matching the filters, newest first."""
        ...

    async def insert_meals(self, job_id: str, meals: list[GeneratedMeal]) -> int:
        """
        Insert all meals for a job in one operation.

        Either every row is stored or none is. Returns the inserted count.
        """
        ...

    async def list_meals(
        self,
        job_ids: list[str],
        *,
        group_id: str | None = None,
        selected_only: bool = False,
    ) -> list[GeneratedMeal]:
        """Meals belonging to any of job_ids, in insertion order."""
        ...

    async def update_meal_selection(self, job_id: str, selections: dict[str, bool]) -> int:
        """Set `selected` on meals of one job. Returns how many rows changed."""
        ...
