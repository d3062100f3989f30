"""
LLM Response Parsers
Turns raw LLM text (or raw USDA nutrient lists) into structured records.

Keyword lists and their order are part of the behaviour: the first
matching keyword decides how a paragraph or line is classified.
"""

import json
import math
import re
from typing import Any, Optional

from advisor.models import NutrientRecord, RecipeRecord, TipRecord


class ParseError(Exception):
    """Raised when LLM text does not have the structure a caller requires"""
    pass


# Recipe paragraph keywords, in priority order
INGREDIENT_KEYWORDS = ["食材", "用料"]
NUTRITION_KEYWORDS = ["营养"]
STEP_KEYWORDS = ["步骤", "做法", "说明"]
TITLE_EXCLUDE_KEYWORDS = ["主要", "食材"]

PARAGRAPH_SPLIT = re.compile(r"\n[ \t]*\n")
LIST_MARKER = re.compile(r"^(?:\d+[\.\、]|[-*•])\s*")
NUTRITION_LABEL = re.compile(r"^营养[价值信息]*[：:]\s*")
STEP_LABEL = re.compile(r"^[烹饪制作]*[步骤做法说明]+[：:]\s*")

# Tip lines
BOLD_SPAN = re.compile(r"\*\*(.*?)\*\*")
BOLD_SPAN_WITH_COLON = re.compile(r"\*\*.*?\*\*[:：]?\s*")

EMOJI_MAP = {
    "谷物": "🌾",
    "全谷物": "🌾",
    "蔬菜": "🥬",
    "水果": "🍎",
    "维生素": "🥗",
    "蛋白质": "🥩",
    "水分": "💧",
    "营养": "🥗",
    "健康": "💪",
    "脂肪": "🥑",
    "饮食": "🍽️",
    "均衡": "⚖️",
    "早餐": "🍳",
    "午餐": "🍱",
    "晚餐": "🍲",
    "运动": "🏃‍♀️",
    "睡眠": "😴",
    "食物": "🍴",
    "豆制品": "🫘",
    "鱼": "🐟",
    "肉": "🥩",
    "蛋": "🥚",
    "奶制品": "🥛",
    "坚果": "🥜",
}
DEFAULT_EMOJI = "✨"

# USDA nutrient name -> display name
NUTRIENT_TRANSLATIONS = {
    "Energy": "热量",
    "Protein": "蛋白质",
    "Total lipid (fat)": "脂肪",
    "Carbohydrate, by difference": "碳水化合物",
    "Fiber, total dietary": "膳食纤维",
    "Total Sugars": "总糖",
    "Calcium, Ca": "钙",
    "Potassium, K": "钾",
    "Sodium, Na": "钠",
    "Vitamin A, IU": "维生素A",
    "Vitamin C, total ascorbic acid": "维生素C",
    "Vitamin D (D2 + D3), International Units": "维生素D",
    "Cholesterol": "胆固醇",
    "Fatty acids, total saturated": "饱和脂肪酸",
    "Iron, Fe": "铁",
    "Zinc, Zn": "锌",
    "Magnesium, Mg": "镁",
    "Phosphorus, P": "磷",
}

UNIT_TRANSLATIONS = {
    "G": "克",
    "MG": "毫克",
    "KCAL": "千卡",
    "IU": "国际单位",
    "UG": "微克",
}

NUTRIENT_ORDER = [
    "热量", "蛋白质", "脂肪", "碳水化合物", "膳食纤维",
    "总糖", "钙", "钾", "钠", "维生素A", "维生素C",
    "维生素D", "胆固醇", "饱和脂肪酸", "铁", "锌", "镁", "磷"
]

CODE_FENCE = re.compile(r"^```[\w-]*\s*\n?(.*?)\n?```$", re.DOTALL)


def _contains_any(text: str, keywords: list[str]) -> bool:
    return any(keyword in text for keyword in keywords)


# ============================================================================
# RECIPES
# ============================================================================

def parse_ingredient_lines(paragraph: str) -> list[str]:
    """Ingredient lines of a paragraph, without header and list markup"""
    ingredients = []
    for line in paragraph.split("\n"):
        line = line.strip()
        if not line or _contains_any(line, INGREDIENT_KEYWORDS):
            continue
        line = LIST_MARKER.sub("", line).strip()
        if line:
            ingredients.append(line)
    return ingredients


def parse_recipe(text: str) -> RecipeRecord:
    """Segment recipe free text into title, ingredients, nutrition and steps"""
    recipe = RecipeRecord()

    text = text.replace("\r\n", "\n")
    paragraphs = [p.strip() for p in PARAGRAPH_SPLIT.split(text)]

    for paragraph in filter(None, paragraphs):
        if _contains_any(paragraph, INGREDIENT_KEYWORDS):
            recipe.ingredients = parse_ingredient_lines(paragraph)
        elif _contains_any(paragraph, NUTRITION_KEYWORDS):
            recipe.nutrition = NUTRITION_LABEL.sub("", paragraph).strip()
        elif _contains_any(paragraph, STEP_KEYWORDS):
            recipe.description = STEP_LABEL.sub("", paragraph).strip()
        elif not recipe.title and not _contains_any(paragraph, TITLE_EXCLUDE_KEYWORDS):
            recipe.title = paragraph

    return recipe


# ============================================================================
# TIPS
# ============================================================================

def find_relevant_emoji(title: str, content: str) -> str:
    """First emoji whose keyword appears in the tip, in table order"""
    text = title + content
    for keyword, emoji in EMOJI_MAP.items():
        if keyword in text:
            return emoji
    return DEFAULT_EMOJI


def parse_tip_line(line: str) -> Optional[TipRecord]:
    match = BOLD_SPAN.search(line)
    if not match:
        return None
    title = match.group(1)
    content = BOLD_SPAN_WITH_COLON.sub("", line, count=1).strip()
    return TipRecord(title=title, content=content, emoji=find_relevant_emoji(title, content))


def parse_tips(text: str) -> list[TipRecord]:
    """One tip per line carrying a **bold** title; other lines are ignored"""
    tips = []
    for line in text.splitlines():
        if not line.strip():
            continue
        tip = parse_tip_line(line)
        if tip:
            tips.append(tip)
    return tips


# ============================================================================
# NUTRIENTS
# ============================================================================

def _strip_code_fence(text: str) -> str:
    text = text.strip()
    match = CODE_FENCE.match(text)
    return match.group(1).strip() if match else text


def _to_amount(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        amount = value
    elif isinstance(value, str):
        try:
            amount = float(value)
        except ValueError:
            return None
    else:
        return None
    return amount if math.isfinite(amount) else None


def parse_translated_nutrients(text: str) -> list[NutrientRecord]:
    """
    Parse the LLM's JSON translation of a nutrient list.

    Raises ParseError unless the reply is a JSON array of
    ``{"name", "amount", "unit"}`` objects; callers fall back to
    ``translate_nutrients`` in that case.
    """
    try:
        data = json.loads(_strip_code_fence(text))
    except (ValueError, RecursionError) as e:
        raise ParseError(f"Nutrient translation is not valid JSON: {e}")

    if not isinstance(data, list):
        raise ParseError("Nutrient translation is not a JSON array")

    nutrients = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise ParseError(f"Nutrient entry {index} is not an object")
        name = item.get("name")
        unit = item.get("unit")
        amount = _to_amount(item.get("amount"))
        if not isinstance(name, str) or not name.strip():
            raise ParseError(f"Nutrient entry {index} has no name")
        if not isinstance(unit, str) or not unit.strip():
            raise ParseError(f"Nutrient entry {index} has no unit")
        if amount is None:
            raise ParseError(f"Nutrient entry {index} has no finite amount")
        nutrients.append(NutrientRecord(name=name.strip(), amount=amount, unit=unit.strip()))

    return nutrients


def extract_nutrients(food_nutrients: list[dict]) -> list[dict]:
    """
    Flatten USDA nutrient entries to ``{"name", "amount", "unit"}``.

    Handles both the detail shape (``{"nutrient": {"name", "unitName"},
    "amount"}``) and the search shape (``{"nutrientName", "unitName",
    "value"}``). Entries without a name or a non-zero amount are skipped.
    """
    entries = []
    for item in food_nutrients or []:
        if not isinstance(item, dict):
            continue
        nutrient = item.get("nutrient")
        if isinstance(nutrient, dict):
            name = nutrient.get("name")
            unit = nutrient.get("unitName", "")
            amount = item.get("amount")
        else:
            name = item.get("nutrientName")
            unit = item.get("unitName", "")
            amount = item.get("value")

        amount = _to_amount(amount)
        if not name or not amount:
            continue
        entries.append({"name": name, "amount": amount, "unit": unit or ""})
    return entries


def _display_rank(name: str) -> int:
    try:
        return NUTRIENT_ORDER.index(name)
    except ValueError:
        return len(NUTRIENT_ORDER)


def translate_nutrients(entries: list[dict]) -> list[NutrientRecord]:
    """
    Translate nutrient entries with the fixed tables.

    Names without a translation are dropped; units without one are kept
    as they are. Results follow NUTRIENT_ORDER (stable).
    """
    nutrients = []
    for entry in entries:
        name = NUTRIENT_TRANSLATIONS.get(entry.get("name"))
        if not name:
            continue
        amount = _to_amount(entry.get("amount"))
        if amount is None:
            continue
        raw_unit = str(entry.get("unit") or "")
        unit = UNIT_TRANSLATIONS.get(raw_unit.upper(), raw_unit)
        if not unit:
            continue
        nutrients.append(NutrientRecord(name=name, amount=amount, unit=unit))

    return sorted(nutrients, key=lambda n: _display_rank(n.name))
