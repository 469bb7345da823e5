"""
Household sizing helpers.

Adult equivalent (AE) scales portions by who is actually eating:
    AE = adults * 1.0 + teens * 1.2 + kids * 0.7 + toddlers * 0.4
"""

from mealplanner.models import Demographics

AE_WEIGHTS = {
    "adults": 1.0,
    "teens": 1.2,
    "kids": 0.7,
    "toddlers": 0.4,
}


def calculate_adult_equivalent(demographics: Demographics) -> float:
    """Adult equivalent rounded to one decimal place."""
    total = sum(getattr(demographics, key) * weight for key, weight in AE_WEIGHTS.items())
    return round(total, 1)


def validate_demographics(demographics: dict) -> list[str]:
    """Return human-readable problems with a raw demographics mapping."""
    errors = []
    total = 0
    for key in AE_WEIGHTS:
        value = demographics.get(key, 0)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            errors.append(f"{key} must be a non-negative integer")
            continue
        total += value

    if not errors and total == 0:
        errors.append("Group must have at least one person")

    return errors
