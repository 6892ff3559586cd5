"""
Synthetic, reproducible record attributes.

Nothing here touches the network or shared state: every value is a pure
function of the upstream id (and, for the diet class, of the name and
category text), so a rebuilt cache yields identical records.
"""
from __future__ import annotations

import math
from typing import Any

from .models import CatalogRecord, DietClass, Kind, Nutrition

_CALORIE_BASE = 300
_CALORIE_SPAN = 500
_CREATED_AT_EPOCH = 1_700_000_000_000

_VEGETARIAN_MARKERS = ("vegetarian", "vegan")
_MEAT_MARKERS = ("chicken", "beef", "lamb", "pork", "seafood")

# Share of calories and kcal per gram for each macro
_MACRO_SPLIT = {
    "protein": (0.25, 4),
    "carbs": (0.45, 4),
    "fat": (0.30, 9),
}


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _utf16_units(text: str) -> list[int]:
    data = text.encode("utf-16-le")
    return [int.from_bytes(data[i:i + 2], "little") for i in range(0, len(data), 2)]


def string_hash(text: str) -> int:
    """Rolling ``hash = code + ((hash << 5) - hash)`` over UTF-16 code units.

    The shift wraps to a signed 32-bit value while the subtraction does not,
    which keeps ids hashing to the same numbers the web client computes.
    """
    h = 0
    for code in _utf16_units(text):
        h = code + (_to_int32(_to_int32(h) << 5) - h)
    return h


def estimated_calories(item_id: str) -> int:
    """Deterministic calorie estimate in ``[300, 800)``."""
    return abs(string_hash(item_id)) % _CALORIE_SPAN + _CALORIE_BASE


def classify_diet(name: str | None, category: str | None) -> DietClass:
    name_lower = (name or "").lower()
    category_lower = (category or "").lower()
    text = f"{category_lower} {name_lower}"

    if any(marker in text for marker in _VEGETARIAN_MARKERS) or "veg" in name_lower:
        return DietClass.vegetarian
    if any(marker in text for marker in _MEAT_MARKERS):
        return DietClass.keto
    return DietClass.non_vegetarian


def enrich_record(item: dict[str, Any], kind: Kind) -> CatalogRecord:
    """Turn a normalised upstream listing item into a ``CatalogRecord``."""
    calories = estimated_calories(item["id"])
    if kind is Kind.drink:
        diet = DietClass.drink
    else:
        diet = classify_diet(item.get("name"), item.get("category"))

    return CatalogRecord(
        id=item["id"],
        kind=kind,
        name=item["name"],
        thumbnail_url=item.get("thumbnail_url") or "",
        category=item.get("category"),
        estimated_calories=calories,
        diet_class=diet,
        synthetic_created_at=_CREATED_AT_EPOCH + calories,
        popularity_score=calories % 1000,
    )


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def nutrition_for(item_id: str) -> Nutrition:
    calories = estimated_calories(item_id)
    grams = {
        macro: _round_half_up(calories * share / kcal_per_gram)
        for macro, (share, kcal_per_gram) in _MACRO_SPLIT.items()
    }
    return Nutrition(calories=calories, **grams)
