"""
Job Submission Handler.

Validates a plan, snapshots the referenced groups, creates a pending job
and hands it to the launcher. Returns as soon as the job record exists;
generation happens in the background.
"""

import logging
from typing import Any

from mealplanner.config import EXTRA_MEALS
from mealplanner.errors import AuthRequired, NoGroupsAvailable, PlanNotGenerable
from mealplanner.generation.launcher import JobLauncher
from mealplanner.groups import GroupSource
from mealplanner.household import calculate_adult_equivalent
from mealplanner.jobs.store import JobStore
from mealplanner.models import Group, GroupRequest, JobStatus, PlanSubmission, SubmissionResult
from mealplanner.validation import parse_plan, validate_plan_for_generation

logger = logging.getLogger(__name__)

SUBMITTED_MESSAGE = "Meal generation started. You'll be notified when it's complete."


def build_group_snapshot(plan: PlanSubmission, groups: list[Group]) -> list[GroupRequest]:
    """Freeze each referenced group, in plan order, with the extra-meals buffer applied."""
    by_id = {g.id: g for g in groups}
    snapshot = []
    for gm in plan.group_meals:
        group = by_id[gm.group_id]
        demographics = group.demographics
        snapshot.append(
            GroupRequest(
                group_id=group.id,
                group_name=group.name,
                demographics=demographics,
                dietary_restrictions=list(group.dietary_restrictions),
                meals_to_generate=gm.meal_count + EXTRA_MEALS,
                group_notes=gm.notes or group.notes,
                adult_equivalent=calculate_adult_equivalent(demographics),
            )
        )
    return snapshot


class JobSubmissionHandler:
    def __init__(self, store: JobStore, groups: GroupSource, launcher: JobLauncher):
        self.store = store
        self.groups = groups
        self.launcher = launcher

    async def submit(self, user_id: str | None, payload: dict[str, Any]) -> SubmissionResult:
        """
        Accept a plan for generation.

        Raises:
            AuthRequired: no caller
            InvalidPlan: payload failed validation (details: field -> messages)
            NoGroupsAvailable: caller has no active groups
            PlanNotGenerable: plan references groups the caller doesn't have
            StoreError: the job record could not be created
        """
        if not user_id:
            raise AuthRequired()

        plan = parse_plan(payload)

        groups = await self.groups.list_active_groups(user_id)
        if not groups:
            raise NoGroupsAvailable()

        errors, warnings = validate_plan_for_generation(plan, groups)
        if errors:
            raise PlanNotGenerable("Plan cannot be generated", details=errors)
        for warning in warnings:
            logger.info(f"Plan {plan.plan_name!r} for user {user_id}: {warning}")

        snapshot = build_group_snapshot(plan, groups)
        job = await self.store.create_job(
            user_id=user_id,
            plan_name=plan.plan_name,
            week_start=plan.week_start,
            additional_notes=plan.notes,
            groups_data=snapshot,
        )
        logger.info(
            f"Created job {job.id} for user {user_id}: "
            f"{sum(g.meals_to_generate for g in snapshot)} meals across {len(snapshot)} groups"
        )

        try:
            self.launcher.launch(job.id)
        except Exception as e:
            # The record exists and can be inspected or resubmitted
            logger.error(f"Failed to launch generation for job {job.id}: {e}")

        return SubmissionResult(
            job_id=job.id,
            status=JobStatus.PENDING,
            message=SUBMITTED_MESSAGE,
            warnings=warnings,
        )
