"""
Generation Executor.

Runs one job through its lifecycle:

    pending -> processing (10, 30) -> generator call -> (80) save -> completed (100)
                                   \-> failed (any step)

The executor only talks to the JobStore contract, so it behaves the same
on the Supabase and in-memory backends. It does not retry: a failed job
is terminal and the user resubmits.
"""

import asyncio
import logging
import time
import uuid

from mealplanner.errors import GenerationFailed, MealPlannerError, StoreError
from mealplanner.generation.generator import MealGenerator
from mealplanner.jobs.store import JobStore, utc_now
from mealplanner.models import (
    GeneratedMeal,
    GenerationRequest,
    JobRecord,
    JobStatus,
    MealDraft,
)
from mealplanner.notifications import JOB_COMPLETED, JOB_FAILED, Notifier, send_notification
from mealplanner.validation import validate_meal_draft

logger = logging.getLogger(__name__)

# Progress checkpoints
STEP_PREPARING = (10, "Preparing request.")
STEP_GENERATING = (30, "Generating meals.")
STEP_SAVING = (80, "Saving generated meals.")
STEP_COMPLETED = (100, "Completed")

MAX_ERROR_MESSAGE_LENGTH = 500


def sanitize_error(error: BaseException) -> str:
    """User-facing message for a failure. Never empty."""
    if isinstance(error, MealPlannerError):
        message = error.message
    elif isinstance(error, StoreError):
        message = "Could not save generation progress. Please try again."
    elif isinstance(error, asyncio.CancelledError):
        message = "Meal generation was interrupted. Please try again."
    else:
        message = str(error).strip().splitlines()[0] if str(error).strip() else ""
    message = message or "Unknown error"
    return message[:MAX_ERROR_MESSAGE_LENGTH]


class GenerationExecutor:
    """Drives a single job from pending to a terminal state."""

    def __init__(
        self,
        store: JobStore,
        generator: MealGenerator,
        notifier: Notifier | None = None,
    ):
        self.store = store
        self.generator = generator
        self.notifier = notifier

    async def run(self, job_id: str) -> JobRecord | None:
        """
        Execute the job. Never raises for job-level failures.

        Returns:
            The final job record, or None if the job could not be loaded.
        """
        try:
            job = await self.store.get_job(job_id)
        except StoreError as e:
            logger.error(f"Could not load job {job_id}: {e}")
            return None
        if job is None:
            logger.error(f"Job {job_id} not found, nothing to execute")
            return None
        if job.status != JobStatus.PENDING:
            logger.warning(f"Job {job_id} is {job.status.value}, not executing again")
            return job

        started = time.monotonic()
        step = "start"
        api_calls = 0

        try:
            await self._checkpoint(job_id, STEP_PREPARING, status=JobStatus.PROCESSING, started_at=utc_now())
            logger.info(f"Job {job_id}: generating for {len(job.groups_data)} groups")

            step = "generate"
            await self._checkpoint(job_id, STEP_GENERATING)
            request = GenerationRequest(
                plan_name=job.plan_name,
                week_start=job.week_start,
                notes=job.additional_notes,
                groups=job.groups_data,
            )
            api_calls = 1
            results = await self.generator.generate(request, job_id=job_id)

            step = "validate"
            meals = self.build_meals(job, results)
            if not meals:
                raise GenerationFailed("No valid meals were generated")

            step = "save"
            await self._checkpoint(job_id, STEP_SAVING)
            inserted = await self.store.insert_meals(job_id, meals)

            step = "finalize"
            progress, label = STEP_COMPLETED
            final = await self.store.update_job(
                job_id,
                {
                    "status": JobStatus.COMPLETED,
                    "progress": progress,
                    "current_step": label,
                    "completed_at": utc_now(),
                    "total_meals_generated": inserted,
                    "api_calls_made": api_calls,
                    "generation_time_ms": self._elapsed_ms(started),
                },
            )
        except asyncio.CancelledError as e:
            logger.warning(f"Job {job_id} cancelled during {step}")
            await self._fail(job, e, step, started, api_calls)
            raise
        except Exception as e:
            logger.exception(f"Job {job_id} failed during {step}: {e}")
            return await self._fail(job, e, step, started, api_calls)

        logger.info(f"Job {job_id} completed: {inserted} meals in {final.generation_time_ms}ms")
        await send_notification(
            self.notifier,
            user_id=job.user_id,
            kind=JOB_COMPLETED,
            title="Meals Generated Successfully",
            message=f'Generated {inserted} meal options for "{job.plan_name}"',
            job_id=job_id,
        )
        return final

    async def _checkpoint(self, job_id: str, checkpoint: tuple[int, str], **fields) -> None:
        progress, label = checkpoint
        await self.store.update_job(job_id, {"progress": progress, "current_step": label, **fields})

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)

    def build_meals(self, job: JobRecord, results: dict[str, list[MealDraft]]) -> list[GeneratedMeal]:
        """
        Attach generator output to the job and its snapshot groups.

        Invalid drafts are dropped, and each group is capped at the number
        of meals its snapshot asked for.
        """
        snapshot = {g.group_name: g for g in job.groups_data}
        created_at = utc_now()
        meals = []

        for group_name, drafts in results.items():
            group = snapshot.get(group_name)
            if group is None:
                logger.warning(f"Job {job.id}: generator returned unknown group {group_name!r}")
            limit = group.meals_to_generate if group else len(drafts)

            kept = 0
            for draft in drafts:
                if kept >= limit:
                    break
                problems = validate_meal_draft(draft)
                if problems:
                    logger.warning(f"Job {job.id}: dropping meal {draft.title!r}: {'; '.join(problems)}")
                    continue
                meals.append(
                    GeneratedMeal(
                        **draft.model_dump(exclude={"total_time"}),
                        total_time=draft.prep_time + draft.cook_time,
                        id=str(uuid.uuid4()),
                        job_id=job.id,
                        group_id=group.group_id if group else group_name,
                        group_name=group_name,
                        selected=False,
                        created_at=created_at,
                    )
                )
                kept += 1

            if group and kept < group.meals_to_generate:
                logger.info(
                    f"Job {job.id}: group {group_name!r} got {kept} of {group.meals_to_generate} meals"
                )

        return meals

    async def _fail(
        self,
        job: JobRecord,
        error: BaseException,
        step: str,
        started: float,
        api_calls: int,
    ) -> JobRecord | None:
        message = sanitize_error(error)
        try:
            failed = await self.store.update_job(
                job.id,
                {
                    "status": JobStatus.FAILED,
                    "completed_at": utc_now(),
                    "error_message": message,
                    "error_details": {
                        "error": repr(error),
                        "type": type(error).__name__,
                        "step": step,
                    },
                    "api_calls_made": api_calls,
                    "generation_time_ms": self._elapsed_ms(started),
                },
            )
        except StoreError as e:
            logger.error(f"Failed to mark job {job.id} as failed: {e}")
            return None

        await send_notification(
            self.notifier,
            user_id=job.user_id,
            kind=JOB_FAILED,
            title="Meal Generation Failed",
            message=f'Failed to generate meals for "{job.plan_name}": {message}',
            job_id=job.id,
        )
        return failed
