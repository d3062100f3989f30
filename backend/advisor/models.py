"""
Advisor Data Models
Value objects produced per request by the parsers and flows
"""

import math
from dataclasses import dataclass, field


@dataclass
class NutrientRecord:
    """A single nutrient amount, ready for display"""
    name: str
    amount: float
    unit: str

    def __post_init__(self):
        if not self.name or not self.unit:
            raise ValueError("Nutrient name and unit must not be empty")
        if isinstance(self.amount, bool) or not math.isfinite(self.amount):
            raise ValueError(f"Nutrient amount must be a finite number: {self.amount!r}")

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "amount": self.amount,
            "unit": self.unit
        }


@dataclass
class RecipeRecord:
    """Recipe segmented from LLM free text; empty fields mean unavailable"""
    title: str = ""
    ingredients: list[str] = field(default_factory=list)
    nutrition: str = ""
    description: str = ""

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "ingredients": self.ingredients,
            "nutrition": self.nutrition,
            "description": self.description
        }


@dataclass
class TipRecord:
    """One daily nutrition tip card"""
    title: str
    content: str
    emoji: str

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "content": self.content,
            "emoji": self.emoji
        }


@dataclass
class ChatMessage:
    """One entry of the nutritionist chat"""
    id: int
    content: str
    is_user: bool

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "isUser": self.is_user
        }


@dataclass
class FoodLookupResult:
    """Food description plus its translated nutrient list"""
    food_name: str
    nutrients: list[NutrientRecord]
    source: str = "ai"  # "ai" or "fallback"

    def to_dict(self) -> dict:
        return {
            "foodName": self.food_name,
            "nutrients": [n.to_dict() for n in self.nutrients],
            "source": self.source
        }
