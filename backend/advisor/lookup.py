"""
Food Nutrition Lookup
Searches USDA for a food, lets the LLM pick and translate, and falls back
to the deterministic tables whenever the LLM side fails.
"""

import logging
import re
from typing import Optional

from config import FOOD_CHOICE_CANDIDATES
from advisor.fallback import fallback_lookup
from advisor.llm import CompletionClient, LLMError
from advisor.models import FoodLookupResult
from advisor.parser import ParseError, extract_nutrients, parse_translated_nutrients
from advisor.prompts import FOOD_CHOICE_PROMPT, NUTRIENT_TRANSLATION_PROMPT
from advisor.usda import NutritionDatabaseError, USDAFoodData


logger = logging.getLogger(__name__)


# Small bilingual table applied before querying USDA
FOOD_NAME_MAP = {
    "牛奶": "milk",
    "面包": "bread",
    "米饭": "rice",
    "鸡蛋": "egg",
    "苹果": "apple",
}

LEADING_INTEGER = re.compile(r"^\s*(-?\d+)")


class FoodNotFoundError(Exception):
    """Raised when the nutrition database has no match for a food"""

    def __init__(self, food_name: str, query: str):
        self.food_name = food_name
        self.query = query
        super().__init__(f"未找到食物: {food_name} ({query})")


def translate_food_name(food_name: str) -> str:
    """English query for a food name, unchanged when not in the table"""
    food_name = food_name.strip()
    return FOOD_NAME_MAP.get(food_name, food_name)


def parse_food_choice(text: str, candidate_count: int) -> int:
    """Index the LLM picked among ``candidate_count`` candidates"""
    match = LEADING_INTEGER.match(text)
    if not match:
        raise ParseError(f"Invalid AI food choice: {text!r}")
    index = int(match.group(1))
    if index < 0 or index >= candidate_count:
        raise ParseError(f"AI food choice out of range: {index}")
    return index


def build_food_choice_prompt(food_name: str, candidates: list[dict]) -> str:
    lines = "\n".join(f"{i}. {food.get('description', '')}" for i, food in enumerate(candidates))
    return FOOD_CHOICE_PROMPT.format(
        food_name=food_name,
        candidates=lines,
        max_index=len(candidates) - 1
    )


def build_translation_prompt(nutrients: list[dict]) -> str:
    lines = "\n".join(f"{n['name']}: {n['amount']} {n['unit']}" for n in nutrients)
    return NUTRIENT_TRANSLATION_PROMPT.format(nutrients=lines)


async def _lookup_with_ai(
    food_name: str,
    foods: list[dict],
    database: USDAFoodData,
    completion_client: CompletionClient
) -> FoodLookupResult:
    candidates = foods[:FOOD_CHOICE_CANDIDATES]
    choice = await completion_client.complete(build_food_choice_prompt(food_name, candidates))
    chosen = candidates[parse_food_choice(choice, len(candidates))]

    detail = await database.get_food(chosen["fdcId"])
    nutrients = extract_nutrients(detail.get("foodNutrients", []))

    translated = await completion_client.complete(build_translation_prompt(nutrients))
    return FoodLookupResult(
        food_name=chosen.get("description", ""),
        nutrients=parse_translated_nutrients(translated),
        source="ai"
    )


async def lookup_food(
    food_name: str,
    database: USDAFoodData,
    completion_client: Optional[CompletionClient] = None
) -> FoodLookupResult:
    """
    Look up a food's nutrients.

    Search failures propagate (NutritionDatabaseError) and an empty search
    raises FoodNotFoundError. Anything that goes wrong after a successful
    search is answered by the deterministic fallback.
    """
    query = translate_food_name(food_name)
    logger.info("Food lookup for %r (query %r)", food_name, query)

    foods = await database.search_foods(query)
    if not foods:
        raise FoodNotFoundError(food_name, query)

    if completion_client is None:
        logger.warning("No completion client configured, using fallback translation")
        return fallback_lookup(foods)

    try:
        return await _lookup_with_ai(food_name, foods, database, completion_client)
    except (LLMError, ParseError, NutritionDatabaseError, KeyError) as e:
        logger.warning("AI lookup failed, using fallback translation: %s", e)
        return fallback_lookup(foods)
