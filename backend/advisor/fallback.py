"""
Nutrition Lookup Fallback
Deterministic, LLM-free route used when the AI lookup path fails.
"""

import logging

from advisor.models import FoodLookupResult
from advisor.parser import extract_nutrients, translate_nutrients


logger = logging.getLogger(__name__)


def select_food(foods: list[dict]) -> dict:
    """Always the first search result"""
    return foods[0]


def fallback_lookup(foods: list[dict]) -> FoodLookupResult:
    """Build a lookup result from search results alone, using the fixed tables"""
    food = select_food(foods)
    nutrients = translate_nutrients(extract_nutrients(food.get("foodNutrients", [])))
    logger.info(
        "Fallback lookup selected %r with %d translated nutrients",
        food.get("description", ""), len(nutrients)
    )
    return FoodLookupResult(
        food_name=food.get("description", ""),
        nutrients=nutrients,
        source="fallback"
    )
