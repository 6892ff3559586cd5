from __future__ import annotations

import math
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Kind(str, Enum):
    meal = "meal"
    drink = "drink"


class DietClass(str, Enum):
    vegetarian = "vegetarian"
    keto = "keto"
    non_vegetarian = "non-vegetarian"
    drink = "drink"


class KindFilter(str, Enum):
    all = "all"
    meal = "meal"
    drink = "drink"


class SortKey(str, Enum):
    latest = "latest"
    calories_asc = "calories_asc"
    calories_desc = "calories_desc"
    popularity = "popularity"


_DIET_ALIASES: dict[str, DietClass] = {
    "vegetarian": DietClass.vegetarian,
    "veg": DietClass.vegetarian,
    "vegan": DietClass.vegetarian,
    "keto": DietClass.keto,
    "keto-like": DietClass.keto,
    "ketolike": DietClass.keto,
    "non-vegetarian": DietClass.non_vegetarian,
    "non-veg": DietClass.non_vegetarian,
    "nonveg": DietClass.non_vegetarian,
    "drink": DietClass.drink,
}


def _text(value: Any) -> str:
    if isinstance(value, Enum):
        value = value.value
    return str(value).strip().lower()


def _lenient_int(value: Any) -> int | None:
    """Parse a query-string number, returning ``None`` for anything malformed."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return int(number)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CatalogRecord(CamelModel):
    id: str = Field(..., min_length=1)
    kind: Kind
    name: str
    thumbnail_url: str = ""
    category: str | None = None
    estimated_calories: int = Field(..., ge=300, lt=800)
    diet_class: DietClass
    # Stable ordering key only, not a real creation time
    synthetic_created_at: int
    popularity_score: int = Field(..., ge=0, lt=1000)


class BrowseFilters(BaseModel):
    """Browse parameters. Construction never fails on bad query input."""

    kind: KindFilter = KindFilter.all
    diet: DietClass | None = None
    name_query: str | None = None
    min_calories: int | None = None
    max_calories: int | None = None
    sort: SortKey = SortKey.latest
    page: int = 1
    # None means the catalog default; the upper bound is applied per catalog
    page_size: int | None = None

    @field_validator("kind", mode="before")
    @classmethod
    def _kind_or_all(cls, value: Any) -> KindFilter:
        try:
            return KindFilter(_text(value))
        except ValueError:
            return KindFilter.all

    @field_validator("diet", mode="before")
    @classmethod
    def _known_diet(cls, value: Any) -> DietClass | None:
        if value is None:
            return None
        key = _text(value).replace("_", "-").replace(" ", "-")
        return _DIET_ALIASES.get(key)

    @field_validator("name_query", mode="before")
    @classmethod
    def _blank_is_none(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("min_calories", "max_calories", mode="before")
    @classmethod
    def _ignore_malformed(cls, value: Any) -> int | None:
        return _lenient_int(value)

    @field_validator("sort", mode="before")
    @classmethod
    def _sort_or_latest(cls, value: Any) -> SortKey:
        try:
            return SortKey(_text(value).replace("-", "_"))
        except ValueError:
            return SortKey.latest

    @field_validator("page", mode="before")
    @classmethod
    def _page_at_least_one(cls, value: Any) -> int:
        page = _lenient_int(value)
        return page if page is not None and page >= 1 else 1

    @field_validator("page_size", mode="before")
    @classmethod
    def _page_size_at_least_one(cls, value: Any) -> int | None:
        size = _lenient_int(value)
        return None if size is None else max(1, size)


class BrowseResponse(CamelModel):
    results: list[CatalogRecord]
    total: int
    page: int
    page_size: int
    total_pages: int


class SuggestedResponse(BaseModel):
    results: list[CatalogRecord]


class Nutrition(BaseModel):
    calories: int
    protein: int
    carbs: int
    fat: int


class NutritionResponse(BaseModel):
    nutrition: Nutrition


class Ingredient(BaseModel):
    name: str
    measure: str = ""


class IngredientsResponse(BaseModel):
    ingredients: list[Ingredient]


class RecipeDetails(CamelModel):
    id: str
    kind: Kind
    name: str
    thumbnail_url: str = ""
    category: str | None = None
    area: str | None = None
    instructions: str | None = None
    ingredients: list[Ingredient] = Field(default_factory=list)


class DetailsResponse(BaseModel):
    recipe: RecipeDetails


class CuratedItem(BaseModel):
    id: str
    name: str
    thumbnail: str
