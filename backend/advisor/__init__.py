"""
Nutrition Advisor Core Module
Rate-limited LLM client, response parsers and the feature flows built on them
"""

from advisor.rate_limiter import RateLimiter
from advisor.llm import (
    CompletionClient,
    LLMError,
    ConfigurationError,
    PromptTooLargeError,
    ProviderError,
    MalformedResponseError,
    CompletionTimeoutError,
)
from advisor.parser import (
    ParseError,
    parse_recipe,
    parse_tips,
    parse_translated_nutrients,
    translate_nutrients,
)
from advisor.fallback import fallback_lookup
from advisor.lookup import lookup_food, FoodNotFoundError
from advisor.usda import USDAFoodData, NutritionDatabaseError

__all__ = [
    "RateLimiter",
    "CompletionClient",
    "LLMError",
    "ConfigurationError",
    "PromptTooLargeError",
    "ProviderError",
    "MalformedResponseError",
    "CompletionTimeoutError",
    "ParseError",
    "parse_recipe",
    "parse_tips",
    "parse_translated_nutrients",
    "translate_nutrients",
    "fallback_lookup",
    "lookup_food",
    "FoodNotFoundError",
    "USDAFoodData",
    "NutritionDatabaseError",
]
