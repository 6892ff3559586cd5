from __future__ import annotations

import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from .analytics.aggregator import compute_analytics
from .analytics.store import get_events, record_event
from .catalog.cache import CatalogCache, warm_in_background
from .catalog.errors import RecipeNotFound, UpstreamUnavailable
from .catalog.models import (
    BrowseFilters,
    BrowseResponse,
    DetailsResponse,
    IngredientsResponse,
    Kind,
    NutritionResponse,
    SuggestedResponse,
)
from .catalog.queries import (
    browse_records,
    curated_records,
    get_details,
    get_ingredients,
    nutrition,
    random_drink,
    search_records,
    suggested_records,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Upstream-compatible keys for search results
_SEARCH_KEYS: dict[Kind, tuple[str, str, str, str]] = {
    Kind.meal: ("meals", "idMeal", "strMeal", "strMealThumb"),
    Kind.drink: ("drinks", "idDrink", "strDrink", "strDrinkThumb"),
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    catalog: CatalogCache = app.state.catalog
    task = None
    if catalog.config.warm_on_startup:
        logger.info("Pre-warming recipe catalog in the background")
        task = asyncio.create_task(warm_in_background(catalog))
    yield
    if task is not None and not task.done():
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
    await catalog.aclose()


app = FastAPI(title="Recipe Catalog API", version="1.0.0", lifespan=lifespan)
app.state.catalog = CatalogCache()


def get_catalog(request: Request) -> CatalogCache:
    return request.app.state.catalog


def _parse_kind(value: str | None) -> Kind:
    return Kind.drink if (value or "").strip().lower() == Kind.drink.value else Kind.meal


def _elapsed_ms(start_time: float) -> float:
    return round((time.time() - start_time) * 1000, 1)


@app.exception_handler(UpstreamUnavailable)
async def upstream_unavailable_handler(
    request: Request, exc: UpstreamUnavailable,
) -> JSONResponse:
    logger.warning("Upstream unavailable for %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"detail": "Recipe catalog is temporarily unavailable"},
    )


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


# ── Catalog endpoints ────────────────────────────────────────────────────


@app.get("/recipes/search")
async def search(
    q: str | None = None,
    type: str | None = None,
    catalog: CatalogCache = Depends(get_catalog),
) -> dict[str, list[dict[str, Any]]]:
    start_time = time.time()
    kind = _parse_kind(type)
    records = await search_records(catalog, q, kind)

    key, id_field, name_field, thumb_field = _SEARCH_KEYS[kind]
    items = [
        {
            id_field: r.id,
            name_field: r.name,
            thumb_field: r.thumbnail_url,
            "strCategory": r.category,
        }
        for r in records
    ]

    record_event("search", {
        "query": q,
        "kind": kind.value,
        "results_returned": len(items),
        "response_time_ms": _elapsed_ms(start_time),
    })
    return {key: items}


@app.get("/recipes/browse", response_model=BrowseResponse)
async def browse(
    type: str | None = None,
    diet: str | None = None,
    q: str | None = None,
    min_calories: str | None = Query(None, alias="minCalories"),
    max_calories: str | None = Query(None, alias="maxCalories"),
    sort: str | None = None,
    page: str | None = None,
    limit: str | None = None,
    catalog: CatalogCache = Depends(get_catalog),
) -> BrowseResponse:
    start_time = time.time()
    # Unknown or malformed values fall back to defaults instead of a 422
    raw: dict[str, Any] = {
        "kind": type,
        "diet": diet,
        "name_query": q,
        "min_calories": min_calories,
        "max_calories": max_calories,
        "sort": sort,
        "page": page,
        "page_size": limit,
    }
    filters = BrowseFilters(**{k: v for k, v in raw.items() if v is not None})
    response = await browse_records(catalog, filters)

    record_event("browse", {
        "kind": filters.kind.value,
        "diet": filters.diet.value if filters.diet else None,
        "name_query": filters.name_query,
        "min_calories": filters.min_calories,
        "max_calories": filters.max_calories,
        "sort": filters.sort.value,
        "page": filters.page,
        "page_size": response.page_size,
        "total": response.total,
        "results_returned": len(response.results),
        "response_time_ms": _elapsed_ms(start_time),
    })
    return response


@app.get("/recipes/suggested", response_model=SuggestedResponse)
async def suggested(
    exclude_id: str | None = Query(None, alias="excludeId"),
    limit: int = Query(4, ge=1, le=20),
    catalog: CatalogCache = Depends(get_catalog),
) -> SuggestedResponse:
    return SuggestedResponse(results=await suggested_records(catalog, exclude_id, limit))


@app.get("/recipes/curated")
async def curated_meals(catalog: CatalogCache = Depends(get_catalog)) -> dict:
    items = await curated_records(catalog, Kind.meal)
    return {"meals": [i.model_dump() for i in items]}


@app.get("/recipes/drinks/curated")
async def curated_drinks(catalog: CatalogCache = Depends(get_catalog)) -> dict:
    items = await curated_records(catalog, Kind.drink)
    return {"drinks": [i.model_dump() for i in items]}


@app.get("/recipes/drinks/random")
async def drinks_random(catalog: CatalogCache = Depends(get_catalog)) -> dict:
    return {"drinks": await random_drink(catalog.upstream)}


@app.get("/recipes/{item_id}/details", response_model=DetailsResponse)
async def details(
    item_id: str,
    type: str | None = None,
    catalog: CatalogCache = Depends(get_catalog),
) -> DetailsResponse:
    try:
        recipe = await get_details(catalog.upstream, item_id, _parse_kind(type))
    except RecipeNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return DetailsResponse(recipe=recipe)


@app.get("/recipes/{item_id}/ingredients", response_model=IngredientsResponse)
async def ingredients(
    item_id: str,
    type: str | None = None,
    catalog: CatalogCache = Depends(get_catalog),
) -> IngredientsResponse:
    try:
        items = await get_ingredients(catalog.upstream, item_id, _parse_kind(type))
    except RecipeNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return IngredientsResponse(ingredients=items)


@app.get("/recipes/{item_id}/nutrition", response_model=NutritionResponse)
def recipe_nutrition(item_id: str, type: str | None = None) -> NutritionResponse:
    # Computed from the id alone; ``type`` is accepted for client symmetry
    return NutritionResponse(nutrition=nutrition(item_id))


# ── Operational endpoints ────────────────────────────────────────────────


@app.get("/cache/stats")
def cache_stats(catalog: CatalogCache = Depends(get_catalog)) -> dict:
    return catalog.stats()


@app.get("/analytics")
def analytics() -> dict:
    return compute_analytics(get_events())
