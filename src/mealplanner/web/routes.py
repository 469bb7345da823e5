"""API endpoints for meal generation jobs."""

import logging
from contextlib import contextmanager
from typing import Any

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from mealplanner.errors import InternalError, MealPlannerError
from mealplanner.generation.launcher import get_launcher
from mealplanner.generation.status import JobStatusHandler
from mealplanner.generation.submission import JobSubmissionHandler
from mealplanner.groups import get_group_source
from mealplanner.jobs import get_job_store
from mealplanner.web.auth import AuthenticatedUser, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/meal-generation", tags=["meal-generation"])


# =============================================================================
# Dependencies
# =============================================================================


def get_submission_handler() -> JobSubmissionHandler:
    return JobSubmissionHandler(get_job_store(), get_group_source(), get_launcher())


def get_status_handler() -> JobStatusHandler:
    return JobStatusHandler(get_job_store())


@contextmanager
def _hide_internal_errors(action: str):
    """Let known errors through; anything else becomes a generic 500."""
    try:
        yield
    except MealPlannerError:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error while trying to {action}")
        raise InternalError() from e


# =============================================================================
# Request Models
# =============================================================================


class MealSelectionUpdate(BaseModel):
    """Toggle one meal, or replace the whole selection with meal_ids."""

    model_config = ConfigDict(populate_by_name=True)

    meal_id: str | None = Field(default=None, alias="mealId")
    selected: bool | None = None
    meal_ids: list[str] | None = Field(default=None, alias="mealIds")


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/jobs")
async def submit_job(
    payload: dict[str, Any] = Body(...),
    user: AuthenticatedUser = Depends(get_current_user),
    handler: JobSubmissionHandler = Depends(get_submission_handler),
):
    """Start background meal generation for a plan. Returns immediately."""
    with _hide_internal_errors("submit a generation job"):
        result = await handler.submit(user.id, payload)
    return {
        "jobId": result.job_id,
        "status": result.status.value,
        "message": result.message,
        "warnings": result.warnings,
    }


@router.get("/jobs")
async def list_jobs(
    job_id: str | None = Query(None, alias="jobId"),
    status: str | None = Query(None),
    user: AuthenticatedUser = Depends(get_current_user),
    handler: JobStatusHandler = Depends(get_status_handler),
):
    """The caller's jobs, newest first. Pollers pass jobId."""
    with _hide_internal_errors("list generation jobs"):
        jobs = await handler.query_jobs(user.id, job_id=job_id, status=status)
    return {"jobs": [job.model_dump(mode="json") for job in jobs]}


@router.get("/status")
async def plan_status(
    plan_id: str | None = Query(None, alias="planId"),
    job_id: str | None = Query(None, alias="jobId"),
    status: str | None = Query(None),
    user: AuthenticatedUser = Depends(get_current_user),
    handler: JobStatusHandler = Depends(get_status_handler),
):
    """Jobs for a plan with summaries of the meals they produced."""
    with _hide_internal_errors("query plan status"):
        result = await handler.query_plan_status(
            user.id, plan_name=plan_id, job_id=job_id, status=status
        )
    return {"success": True, "data": result.model_dump(mode="json")}


@router.get("/jobs/{job_id}/meals")
async def list_job_meals(
    job_id: str,
    group_id: str | None = Query(None, alias="groupId"),
    selected_only: bool = Query(False, alias="selectedOnly"),
    user: AuthenticatedUser = Depends(get_current_user),
    handler: JobStatusHandler = Depends(get_status_handler),
):
    """Full meal details for one job."""
    with _hide_internal_errors(f"list meals for job {job_id}"):
        meals = await handler.list_job_meals(
            user.id, job_id, group_id=group_id, selected_only=selected_only
        )
    return {
        "jobId": job_id,
        "meals": [meal.model_dump(mode="json") for meal in meals],
        "count": len(meals),
    }


@router.patch("/jobs/{job_id}/meals")
async def update_meal_selection(
    job_id: str,
    update: MealSelectionUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    handler: JobStatusHandler = Depends(get_status_handler),
):
    """Select or deselect generated meals."""
    with _hide_internal_errors(f"update meal selection for job {job_id}"):
        updated = await handler.set_meal_selection(
            user.id,
            job_id,
            meal_id=update.meal_id,
            selected=update.selected,
            meal_ids=update.meal_ids,
        )
    return {"jobId": job_id, "updated": updated}
