"""
Prompt construction for the combined meal generation call.

One prompt covers every group in the plan; the model answers with one
entry per group name.
"""

from mealplanner.models import GenerationRequest, GroupRequest, INGREDIENT_CATEGORIES

SYSTEM_PROMPT = (
    "You are a meal planning assistant. Use decimal numbers (0.5, 0.25) not fractions. "
    "Generate EXACTLY the specified number of meals for each group, and use each "
    "group's name exactly as given."
)

DIETARY_RESTRICTION_PROMPTS = {
    "vegetarian": "No meat, poultry, or fish. Eggs and dairy are acceptable.",
    "vegan": "No animal products whatsoever including meat, dairy, eggs, honey.",
    "gluten-free": "No wheat, barley, rye, or other gluten-containing grains.",
    "dairy-free": "No milk, cheese, butter, yogurt, or other dairy products.",
    "nut-free": "No tree nuts or peanuts. Check all ingredients for nut contamination.",
    "low-sodium": "Use minimal salt and avoid high-sodium processed ingredients.",
    "diabetic-friendly": "Low sugar, complex carbohydrates, balanced nutrition.",
    "keto": "Very low carbohydrate, high fat, moderate protein.",
    "paleo": "No grains, legumes, dairy, or processed foods. Focus on whole foods.",
    "mediterranean": "Emphasize olive oil, fish, vegetables, whole grains, and legumes.",
}


def describe_restrictions(restrictions: list[str]) -> str:
    if not restrictions:
        return "No specific dietary restrictions."
    return " ".join(DIETARY_RESTRICTION_PROMPTS.get(r, r) for r in restrictions)


def _format_group(index: int, group: GroupRequest) -> str:
    d = group.demographics
    return (
        f'{index}. GROUP: "{group.group_name}"\n'
        f"   - Demographics: {d.adults} adults, {d.teens} teens, {d.kids} kids, "
        f"{d.toddlers} toddlers ({group.adult_equivalent} adult equivalents)\n"
        f"   - Dietary Requirements: {describe_restrictions(group.dietary_restrictions)}\n"
        f"   - Meals needed: {group.meals_to_generate}\n"
        f"   - Group notes: {group.group_notes or 'None specified'}\n"
        f"   - Scale ingredients for {group.adult_equivalent} adult equivalent servings\n"
    )


def build_user_prompt(request: GenerationRequest) -> str:
    """Build the user message for one job."""
    parts = [
        f'Generate meal options for meal plan "{request.plan_name}" '
        f"starting week of {request.week_start}.\n"
    ]
    if request.notes:
        parts.append(f"PLAN NOTES: {request.notes}\n")

    parts.append("GROUPS TO GENERATE FOR:")
    parts.extend(_format_group(i, group) for i, group in enumerate(request.groups, start=1))

    parts.append(
        "REQUIREMENTS:\n"
        "- Generate meals for ALL groups listed above\n"
        "- Each meal: title, description (max 10 words), prep_time, cook_time, servings, "
        "ingredients (max 5), instructions (max 2 steps), tags, dietary_info, difficulty\n"
        f"- Ingredient categories: {', '.join(INGREDIENT_CATEGORIES)}\n"
        "- Base servings: 4-6 people\n"
        "- Respect dietary restrictions"
    )
    return "\n".join(parts)
