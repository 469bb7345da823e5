"""
Meal Planner - Data models.

Pydantic models shared by the store, the executor, the handlers and the
web layer. Rows are persisted as plain dicts (model_dump) and validated
back into these models on read.
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field


class JobStatus(str, Enum):
    """Lifecycle of a generation job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


INGREDIENT_CATEGORIES = (
    "protein",
    "vegetables",
    "fruits",
    "grains",
    "dairy",
    "oils_fats",
    "spices_herbs",
    "condiments",
    "pantry",
    "frozen",
    "canned",
    "other",
)

Difficulty = Literal["easy", "medium", "hard"]


# =============================================================================
# Groups and plans
# =============================================================================


class Demographics(BaseModel):
    adults: int = 0
    teens: int = 0
    kids: int = 0
    toddlers: int = 0


class Group(BaseModel):
    """A household profile owned by a user. Managed outside this service."""

    id: str
    user_id: str
    name: str
    adults: int = 0
    teens: int = 0
    kids: int = 0
    toddlers: int = 0
    dietary_restrictions: list[str] = Field(default_factory=list)
    notes: str | None = None
    status: str = "active"

    @property
    def demographics(self) -> Demographics:
        return Demographics(
            adults=self.adults, teens=self.teens, kids=self.kids, toddlers=self.toddlers
        )


class GroupMealRequest(BaseModel):
    """How many meals the user wants for one group."""

    group_id: str
    meal_count: int
    notes: str | None = None


class PlanSubmission(BaseModel):
    """Validated plan as accepted by the submission handler."""

    plan_name: str
    week_start: str
    notes: str | None = None
    group_meals: list[GroupMealRequest]


class GroupRequest(BaseModel):
    """
    Per-group generation input, frozen at submission time.

    Never re-derived from live group data: if the group is edited or
    deleted later, generation still uses this copy.
    """

    group_id: str
    group_name: str
    demographics: Demographics
    dietary_restrictions: list[str] = Field(default_factory=list)
    meals_to_generate: int
    group_notes: str | None = None
    adult_equivalent: float


class GenerationRequest(BaseModel):
    """The single combined request sent to the generator for one job."""

    plan_name: str
    week_start: str
    notes: str | None = None
    groups: list[GroupRequest]


# =============================================================================
# Jobs
# =============================================================================


class JobRecord(BaseModel):
    """One generation attempt. Identity fields never change after creation."""

    id: str
    user_id: str
    plan_name: str
    week_start: str
    additional_notes: str | None = None
    groups_data: list[GroupRequest] = Field(default_factory=list)

    status: JobStatus = JobStatus.PENDING
    progress: int = 0
    current_step: str | None = None
    error_message: str | None = None
    error_details: dict[str, Any] | None = None

    total_meals_generated: int = 0
    api_calls_made: int = 0
    generation_time_ms: int | None = None

    created_at: str
    started_at: str | None = None
    completed_at: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


# =============================================================================
# Meals
# =============================================================================


class Ingredient(BaseModel):
    name: str
    amount: float
    unit: str
    category: str = "other"
    notes: str | None = None


class MealDraft(BaseModel):
    """A meal as returned by the generator, before it is tied to a job."""

    title: str
    description: str = ""
    prep_time: int = 0
    cook_time: int = 0
    total_time: int | None = None
    servings: int = 4
    ingredients: list[Ingredient] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    dietary_info: list[str] = Field(default_factory=list)
    difficulty: Difficulty = "easy"


class GeneratedMeal(MealDraft):
    """A persisted meal. Only `selected` changes after the bulk insert."""

    id: str
    job_id: str
    group_id: str
    group_name: str
    total_time: int = 0
    selected: bool = False
    created_at: str


class MealSummary(BaseModel):
    """What status queries return per meal."""

    id: str
    job_id: str
    group_name: str
    title: str
    selected: bool = False


# =============================================================================
# Handler results
# =============================================================================


class SubmissionResult(BaseModel):
    job_id: str
    status: JobStatus = JobStatus.PENDING
    message: str
    warnings: list[str] = Field(default_factory=list)


class StatusResult(BaseModel):
    jobs: list[JobRecord] = Field(default_factory=list)
    meals: list[MealSummary] = Field(default_factory=list)
