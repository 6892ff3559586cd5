from __future__ import annotations

import logging
import math
from typing import Any

import numpy as np
import pandas as pd

from .cache import RECORD_COLUMNS, CatalogCache
from .enrichment import nutrition_for
from .errors import RecipeNotFound
from .models import (
    BrowseFilters,
    BrowseResponse,
    CatalogRecord,
    CuratedItem,
    Ingredient,
    Kind,
    KindFilter,
    Nutrition,
    RecipeDetails,
    SortKey,
)
from .upstream import UpstreamClient, extract_ingredients, to_details

logger = logging.getLogger(__name__)

# column, ascending
_SORT_COLUMNS: dict[SortKey, tuple[str, bool]] = {
    SortKey.latest: ("synthetic_created_at", False),
    SortKey.calories_asc: ("estimated_calories", True),
    SortKey.calories_desc: ("estimated_calories", False),
    SortKey.popularity: ("popularity_score", False),
}

_INT_COLUMNS = ("estimated_calories", "synthetic_created_at", "popularity_score")


def _frame_for(cache: CatalogCache, kind: Kind) -> pd.DataFrame:
    return cache.drinks if kind is Kind.drink else cache.meals


def _to_records(df: pd.DataFrame) -> list[CatalogRecord]:
    records: list[CatalogRecord] = []
    for row in df[RECORD_COLUMNS].to_dict("records"):
        for col in _INT_COLUMNS:
            row[col] = int(row[col])
        if pd.isna(row["category"]):
            row["category"] = None
        records.append(CatalogRecord(**row))
    return records


async def search_records(
    cache: CatalogCache, query: str | None, kind: Kind = Kind.meal,
) -> list[CatalogRecord]:
    """Case-insensitive substring match on name, in collection order."""
    needle = (query or "").strip().lower()
    if not needle:
        return []

    await cache.ensure_warm()
    df = _frame_for(cache, kind)
    mask = df["name_lower"].str.contains(needle, regex=False, na=False)
    return _to_records(df.loc[mask].head(cache.config.search_limit))


async def browse_records(cache: CatalogCache, filters: BrowseFilters) -> BrowseResponse:
    """
    Filter, sort and paginate the combined catalog.

    Steps:
    - Pick the collections selected by ``kind``.
    - Apply the name filter, the diet filter (meals only, drinks pass
      through) and the inclusive calorie bounds.
    - Sort by the requested key, then by id, then by kind.
    - Slice the requested page, sized and capped by the catalog config;
      pages past the end are empty.
    """
    await cache.ensure_warm()

    frames: list[pd.DataFrame] = []
    if filters.kind in (KindFilter.all, KindFilter.meal):
        frames.append(cache.meals)
    if filters.kind in (KindFilter.all, KindFilter.drink):
        frames.append(cache.drinks)
    df = pd.concat(frames, ignore_index=True)

    mask = pd.Series(True, index=df.index)

    if filters.name_query:
        needle = filters.name_query.lower()
        mask = mask & df["name_lower"].str.contains(needle, regex=False, na=False)

    if filters.diet is not None:
        mask = mask & (
            (df["kind"] != Kind.meal.value) | (df["diet_class"] == filters.diet.value)
        )

    if filters.min_calories is not None:
        mask = mask & (df["estimated_calories"] >= filters.min_calories)

    if filters.max_calories is not None:
        mask = mask & (df["estimated_calories"] <= filters.max_calories)

    column, ascending = _SORT_COLUMNS[filters.sort]
    matched = df.loc[mask].sort_values(
        by=[column, "id", "kind"],
        ascending=[ascending, True, True],
        kind="mergesort",
    )

    page_size = filters.page_size or cache.config.default_page_size
    page_size = min(page_size, cache.config.max_page_size)

    total = len(matched)
    start = (filters.page - 1) * page_size
    page = matched.iloc[start:start + page_size]

    return BrowseResponse(
        results=_to_records(page),
        total=total,
        page=filters.page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size),
    )


async def suggested_records(
    cache: CatalogCache, exclude_id: str | None, limit: int,
) -> list[CatalogRecord]:
    """Random sample across meals and drinks, never including ``exclude_id``."""
    await cache.ensure_warm()

    pool = pd.concat([cache.meals, cache.drinks], ignore_index=True)
    if exclude_id:
        pool = pool.loc[pool["id"] != exclude_id]

    size = min(limit, len(pool))
    if size <= 0:
        return []
    picks = np.random.default_rng().choice(len(pool), size=size, replace=False)
    return _to_records(pool.iloc[picks])


async def curated_records(cache: CatalogCache, kind: Kind) -> list[CuratedItem]:
    """Curated picks served from the cache, in configured order."""
    await cache.ensure_warm()

    if kind is Kind.drink:
        ids = cache.config.curated_drink_ids
    else:
        ids = cache.config.curated_meal_ids
    by_id = _frame_for(cache, kind).drop_duplicates("id").set_index("id")

    items: list[CuratedItem] = []
    for item_id in ids:
        if item_id not in by_id.index:
            logger.debug("Curated %s %s not in catalog, skipping", kind.value, item_id)
            continue
        row = by_id.loc[item_id]
        items.append(CuratedItem(id=item_id, name=row["name"], thumbnail=row["thumbnail_url"]))
    return items


async def _lookup_or_raise(
    upstream: UpstreamClient, item_id: str, kind: Kind,
) -> dict[str, Any]:
    raw = await upstream.lookup(kind, item_id)
    if raw is None:
        raise RecipeNotFound(f"No {kind.value} with id {item_id}")
    return raw


async def get_details(upstream: UpstreamClient, item_id: str, kind: Kind) -> RecipeDetails:
    raw = await _lookup_or_raise(upstream, item_id, kind)
    details = to_details(raw, kind)
    if details is None:
        raise RecipeNotFound(f"No {kind.value} with id {item_id}")
    return details


async def get_ingredients(
    upstream: UpstreamClient, item_id: str, kind: Kind,
) -> list[Ingredient]:
    raw = await _lookup_or_raise(upstream, item_id, kind)
    return extract_ingredients(raw, kind)


async def random_drink(upstream: UpstreamClient) -> list[dict[str, Any]]:
    raw = await upstream.random(Kind.drink)
    return [raw] if raw is not None else []


def nutrition(item_id: str) -> Nutrition:
    return nutrition_for(item_id)
