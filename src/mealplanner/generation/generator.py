"""
Meal generators.

A MealGenerator turns one GenerationRequest into meals keyed by group
name. It is called exactly once per job.

- OpenAIMealGenerator: Instructor-wrapped AsyncOpenAI with a structured
  response model, so the output is validated before we see it.
- MockMealGenerator: deterministic meals for development without an
  API key.
"""

import asyncio
import logging
from typing import Protocol, runtime_checkable

import instructor
from openai import AsyncOpenAI
from pydantic import BaseModel, Field

from mealplanner.errors import GenerationFailed
from mealplanner.generation.prompts import SYSTEM_PROMPT, build_user_prompt
from mealplanner.models import GenerationRequest, Ingredient, MealDraft
from mealplanner.observability import log_prompt

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Request timed out - try reducing the number of meals or groups"


@runtime_checkable
class MealGenerator(Protocol):
    async def generate(
        self, request: GenerationRequest, *, job_id: str | None = None
    ) -> dict[str, list[MealDraft]]:
        """Return meals per group name. Raises on any failure."""
        ...


# =============================================================================
# Structured response
# =============================================================================


class GroupMeals(BaseModel):
    group_name: str = Field(description="Group name exactly as given in the prompt")
    meals: list[MealDraft]


class CombinedMealResponse(BaseModel):
    """Meals for every group in the plan."""

    groups: list[GroupMeals]

    def by_group(self) -> dict[str, list[MealDraft]]:
        result: dict[str, list[MealDraft]] = {}
        for group in self.groups:
            result.setdefault(group.group_name, []).extend(group.meals)
        return result


# =============================================================================
# OpenAI
# =============================================================================


class OpenAIMealGenerator:
    """Single structured call to the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gpt-4-turbo",
        temperature: float = 0.7,
        max_tokens: int = 4096,
        timeout: float = 180.0,
    ):
        # No transport retries: one job, one call
        openai_client = AsyncOpenAI(api_key=api_key, max_retries=0, timeout=timeout)
        self.client = instructor.from_openai(openai_client)
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    async def generate(
        self, request: GenerationRequest, *, job_id: str | None = None
    ) -> dict[str, list[MealDraft]]:
        user_prompt = build_user_prompt(request)

        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": user_prompt},
                    ],
                    response_model=CombinedMealResponse,
                    max_retries=1,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            log_prompt(
                job_id=job_id,
                model=self.model,
                system_prompt=SYSTEM_PROMPT,
                user_prompt=user_prompt,
                error=TIMEOUT_MESSAGE,
            )
            raise GenerationFailed(TIMEOUT_MESSAGE) from e
        except Exception as e:
            log_prompt(
                job_id=job_id,
                model=self.model,
                system_prompt=SYSTEM_PROMPT,
                user_prompt=user_prompt,
                error=str(e),
            )
            raise

        log_prompt(
            job_id=job_id,
            model=self.model,
            system_prompt=SYSTEM_PROMPT,
            user_prompt=user_prompt,
            response=response,
        )
        return response.by_group()


# =============================================================================
# Mock
# =============================================================================

_TITLES = {
    "vegetarian": [
        "Vegetable Pasta Primavera",
        "Quinoa Vegetable Bowl",
        "Cheese and Mushroom Risotto",
        "Vegetable Curry with Rice",
        "Caprese Salad with Bread",
        "Black Bean Tacos",
    ],
    "default": [
        "Grilled Chicken with Vegetables",
        "Beef Stir Fry",
        "Baked Salmon with Rice",
        "Turkey Chili",
        "Pork Tenderloin with Potatoes",
        "Chicken Fajitas",
    ],
}

_INSTRUCTIONS = [
    ["Prep all ingredients", "Cook until done and serve"],
    ["Preheat the oven", "Roast everything together"],
    ["Simmer in one pot", "Season to taste and serve"],
]


class MockMealGenerator:
    """Deterministic meals: exactly meals_to_generate per group."""

    def __init__(self, delay: float = 0.0):
        self.delay = delay

    async def generate(
        self, request: GenerationRequest, *, job_id: str | None = None
    ) -> dict[str, list[MealDraft]]:
        if self.delay:
            await asyncio.sleep(self.delay)

        result = {}
        for group in request.groups:
            vegetarian = bool({"vegetarian", "vegan"} & set(group.dietary_restrictions))
            result[group.group_name] = [
                self._meal(i, vegetarian, group.dietary_restrictions)
                for i in range(group.meals_to_generate)
            ]

        logger.info(f"Mock generator produced meals for {len(result)} groups (job {job_id})")
        return result

    @staticmethod
    def _meal(i: int, vegetarian: bool, restrictions: list[str]) -> MealDraft:
        titles = _TITLES["vegetarian" if vegetarian else "default"]
        title = titles[i % len(titles)]
        if i >= len(titles):
            title = f"{title} #{i // len(titles) + 1}"
        protein = "tofu" if vegetarian else "chicken breast"
        return MealDraft(
            title=title,
            description=f"Easy family meal option {i + 1}",
            prep_time=15 + i * 5,
            cook_time=20 + i * 10,
            servings=4,
            ingredients=[
                Ingredient(name=protein, amount=1.5, unit="lbs", category="protein"),
                Ingredient(name="mixed vegetables", amount=2, unit="cups", category="vegetables"),
                Ingredient(name="olive oil", amount=2, unit="tbsp", category="oils_fats"),
            ],
            instructions=_INSTRUCTIONS[i % len(_INSTRUCTIONS)],
            tags=["quick"] if i % 2 == 0 else ["family-friendly"],
            dietary_info=list(restrictions) or ["family-friendly"],
            difficulty=("easy", "medium", "hard")[i % 3],
        )


def get_generator() -> MealGenerator:
    """Build the generator selected by settings."""
    from mealplanner.config import settings

    if settings.use_mock_generator:
        logger.info("No OPENAI_API_KEY in development - using mock meal generator")
        return MockMealGenerator()
    if not settings.openai_api_key:
        raise RuntimeError("OPENAI_API_KEY is not configured")

    return OpenAIMealGenerator(
        settings.openai_api_key,
        model=settings.generation_model,
        temperature=settings.generation_temperature,
        max_tokens=settings.generation_max_tokens,
        timeout=settings.generation_timeout_seconds,
    )
