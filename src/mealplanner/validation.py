"""
Validation for plans and generated meals.

validate_plan() checks the raw payload shape and returns a field -> messages
map. validate_plan_for_generation() cross-checks a structurally valid plan
against the caller's groups. validate_meal_draft() filters out unusable
generator output before it is persisted.
"""

from datetime import date, datetime
from typing import Any

from mealplanner.config import EXTRA_MEALS, MAX_MEALS_PER_GROUP
from mealplanner.errors import InvalidPlan
from mealplanner.household import validate_demographics
from mealplanner.models import INGREDIENT_CATEGORIES, Group, MealDraft, PlanSubmission

MAX_NAME_LENGTH = 100
MAX_NOTES_LENGTH = 500

HIGH_MEAL_COUNT = 7
HIGH_TOTAL_MEALS = 25

MIN_PREP_TIME = 5
MAX_PREP_TIME = 240
MIN_SERVINGS = 1
MAX_SERVINGS = 20

# Incoming payloads may use the browser's camelCase keys
_PLAN_KEYS = {
    "planName": "plan_name",
    "name": "plan_name",
    "weekStart": "week_start",
    "groupMeals": "group_meals",
    "additional_notes": "notes",
}
_GROUP_MEAL_KEYS = {
    "groupId": "group_id",
    "mealCount": "meal_count",
}


# =============================================================================
# Plans
# =============================================================================


def normalize_plan_payload(raw: dict[str, Any]) -> dict[str, Any]:
    """Map camelCase keys to snake_case and unwrap a {"planData": {...}} envelope."""
    if isinstance(raw.get("planData"), dict):
        raw = raw["planData"]

    data = {_PLAN_KEYS.get(key, key): value for key, value in raw.items()}
    group_meals = data.get("group_meals")
    if isinstance(group_meals, list):
        data["group_meals"] = [
            {_GROUP_MEAL_KEYS.get(key, key): value for key, value in gm.items()}
            if isinstance(gm, dict)
            else gm
            for gm in group_meals
        ]
    return data


def parse_week_start(value: str) -> date | None:
    """Parse an ISO date (or datetime). Returns None if unparseable."""
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        return None


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_plan(data: dict[str, Any]) -> dict[str, list[str]]:
    """
    Structurally validate a (normalized) plan payload.

    Returns:
        Map of field name to error messages. Empty when the plan is valid.
    """
    errors: dict[str, list[str]] = {}

    name = data.get("plan_name")
    if not isinstance(name, str) or not name.strip():
        errors["plan_name"] = ["Name is required"]
    elif len(name.strip()) > MAX_NAME_LENGTH:
        errors["plan_name"] = [f"Name must be {MAX_NAME_LENGTH} characters or less"]

    week_start = data.get("week_start")
    if not isinstance(week_start, str) or not week_start.strip():
        errors["week_start"] = ["Week start date is required"]
    elif parse_week_start(week_start.strip()) is None:
        errors["week_start"] = ["Week start must be a valid date"]

    group_meals = data.get("group_meals")
    max_requested = MAX_MEALS_PER_GROUP - EXTRA_MEALS
    if not isinstance(group_meals, list) or not group_meals:
        errors["group_meals"] = ["At least one group must be selected"]
    else:
        messages = []
        for index, gm in enumerate(group_meals):
            if not isinstance(gm, dict):
                messages.append(f"Entry {index} must be an object")
                continue
            group_id = gm.get("group_id")
            if not isinstance(group_id, str) or not group_id.strip():
                messages.append(f"Entry {index} needs a valid group id")
            meal_count = gm.get("meal_count")
            if not _is_int(meal_count) or not 1 <= meal_count <= max_requested:
                messages.append(f"Entry {index} meal count must be between 1 and {max_requested}")
            entry_notes = gm.get("notes")
            if entry_notes is not None:
                if not isinstance(entry_notes, str):
                    messages.append(f"Entry {index} notes must be a string")
                elif len(entry_notes) > MAX_NOTES_LENGTH:
                    messages.append(f"Entry {index} notes must be {MAX_NOTES_LENGTH} characters or less")
        if messages:
            errors["group_meals"] = messages

    notes = data.get("notes")
    if notes is not None:
        if not isinstance(notes, str):
            errors["notes"] = ["Notes must be a string"]
        elif len(notes) > MAX_NOTES_LENGTH:
            errors["notes"] = [f"Notes must be {MAX_NOTES_LENGTH} characters or less"]

    return errors


def parse_plan(raw: dict[str, Any]) -> PlanSubmission:
    """Normalize and validate a raw payload. Raises InvalidPlan with field errors."""
    data = normalize_plan_payload(raw)
    errors = validate_plan(data)
    if errors:
        raise InvalidPlan(errors)

    return PlanSubmission(
        plan_name=data["plan_name"].strip(),
        week_start=parse_week_start(data["week_start"].strip()).isoformat(),
        notes=data.get("notes") or None,
        group_meals=data["group_meals"],
    )


def validate_plan_for_generation(
    plan: PlanSubmission, groups: list[Group]
) -> tuple[list[str], list[str]]:
    """
    Cross-check plan group references against the caller's groups.

    Returns:
        (errors, warnings). Errors block generation, warnings are informational.
    """
    errors: list[str] = []
    warnings: list[str] = []

    known = {g.id for g in groups}
    missing = [gm.group_id for gm in plan.group_meals if gm.group_id not in known]
    if missing:
        errors.append(f"Groups not found: {', '.join(missing)}")

    seen: set[str] = set()
    duplicates = []
    for gm in plan.group_meals:
        if gm.group_id in seen and gm.group_id not in duplicates:
            duplicates.append(gm.group_id)
        seen.add(gm.group_id)
    if duplicates:
        errors.append(f"Groups listed more than once: {', '.join(duplicates)}")

    # Generated meals come back keyed by group name
    names = [g.name for g in groups if g.id in seen]
    shared = sorted({name for name in names if names.count(name) > 1})
    if shared:
        errors.append(f"Groups in a plan need distinct names: {', '.join(shared)}")

    for group in groups:
        if group.id in seen:
            for message in validate_demographics(group.demographics.model_dump()):
                errors.append(f"Group {group.name!r}: {message}")

    if any(gm.meal_count > HIGH_MEAL_COUNT for gm in plan.group_meals):
        warnings.append(
            f"Some groups have high meal counts (>{HIGH_MEAL_COUNT}). Generation may take longer."
        )

    if sum(gm.meal_count for gm in plan.group_meals) > HIGH_TOTAL_MEALS:
        warnings.append(
            "Large number of total meals requested. Consider splitting into multiple plans."
        )

    if any(g.dietary_restrictions for g in groups if g.id in seen):
        warnings.append("Some groups have dietary restrictions. They will be accommodated.")

    return errors, warnings


# =============================================================================
# Generated meals
# =============================================================================


def validate_meal_draft(meal: MealDraft) -> list[str]:
    """Return problems with a generated meal. Empty when it can be saved."""
    errors = []

    if not meal.title.strip():
        errors.append("title is required")
    if not MIN_PREP_TIME <= meal.prep_time <= MAX_PREP_TIME:
        errors.append(f"prep_time must be between {MIN_PREP_TIME} and {MAX_PREP_TIME}")
    if meal.cook_time < 0:
        errors.append("cook_time must not be negative")
    if not MIN_SERVINGS <= meal.servings <= MAX_SERVINGS:
        errors.append(f"servings must be between {MIN_SERVINGS} and {MAX_SERVINGS}")

    if not meal.ingredients:
        errors.append("at least one ingredient is required")
    for ingredient in meal.ingredients:
        if not ingredient.name.strip():
            errors.append("ingredient name is required")
        if ingredient.amount <= 0:
            errors.append(f"ingredient {ingredient.name!r} needs a positive amount")
        if ingredient.category not in INGREDIENT_CATEGORIES:
            errors.append(f"ingredient {ingredient.name!r} has unknown category {ingredient.category!r}")

    if not meal.instructions or any(not step.strip() for step in meal.instructions):
        errors.append("instructions must be non-empty steps")

    return errors
