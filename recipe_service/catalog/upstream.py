from __future__ import annotations

import logging
from typing import Any

import httpx

from .config import DEFAULT_CATALOG_CONFIG, CatalogConfig
from .errors import UpstreamUnavailable
from .models import Ingredient, Kind, RecipeDetails

logger = logging.getLogger(__name__)

# payload key, id field, name field, thumbnail field, ingredient slots
_SCHEMA: dict[Kind, tuple[str, str, str, str, int]] = {
    Kind.meal: ("meals", "idMeal", "strMeal", "strMealThumb", 20),
    Kind.drink: ("drinks", "idDrink", "strDrink", "strDrinkThumb", 15),
}


def _optional_text(value: Any) -> str | None:
    # Upstream fields are usually strings but occasionally numbers or null
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalise_item(
    raw: Any, kind: Kind, category: str | None = None,
) -> dict[str, Any] | None:
    """Flatten an upstream item to ``{id, name, thumbnail_url, category}``.

    Every field comes back as text (or ``None`` for the category). Returns
    ``None`` when the id or name is missing.
    """
    if not isinstance(raw, dict):
        return None
    _, id_field, name_field, thumb_field, _ = _SCHEMA[kind]
    item_id = _optional_text(raw.get(id_field))
    name = _optional_text(raw.get(name_field))
    if not item_id or not name:
        return None
    return {
        "id": item_id,
        "name": name,
        "thumbnail_url": _optional_text(raw.get(thumb_field)) or "",
        "category": _optional_text(category if category is not None else raw.get("strCategory")),
    }


def extract_ingredients(raw: dict[str, Any], kind: Kind) -> list[Ingredient]:
    slots = _SCHEMA[kind][4]
    ingredients: list[Ingredient] = []
    for i in range(1, slots + 1):
        name = _optional_text(raw.get(f"strIngredient{i}"))
        if name:
            measure = _optional_text(raw.get(f"strMeasure{i}")) or ""
            ingredients.append(Ingredient(name=name, measure=measure))
    return ingredients


def to_details(raw: dict[str, Any], kind: Kind) -> RecipeDetails | None:
    item = normalise_item(raw, kind)
    if item is None:
        return None
    return RecipeDetails(
        id=item["id"],
        kind=kind,
        name=item["name"],
        thumbnail_url=item["thumbnail_url"],
        category=item["category"],
        area=_optional_text(raw.get("strArea")),
        instructions=_optional_text(raw.get("strInstructions")),
        ingredients=extract_ingredients(raw, kind),
    )


class UpstreamClient:
    """Thin async client for the MealDB and CocktailDB JSON APIs.

    Every failure mode (transport error, timeout, non-2xx status, invalid
    JSON) surfaces as ``UpstreamUnavailable``.
    """

    def __init__(
        self,
        config: CatalogConfig = DEFAULT_CATALOG_CONFIG,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.config.upstream_timeout,
            transport=self._transport,
        )

    async def _get_json(
        self, kind: Kind, endpoint: str, params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        url = f"{self.config.base_url(kind.value)}/{endpoint}"
        logger.debug("GET %s %s", url, params or {})
        try:
            async with self._client() as client:
                resp = await client.get(url, params=params)
                resp.raise_for_status()
                payload = resp.json()
        except httpx.TimeoutException as exc:
            raise UpstreamUnavailable(f"Timed out calling {url}") from exc
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"Call to {url} failed: {exc}") from exc
        except ValueError as exc:
            raise UpstreamUnavailable(f"Invalid JSON from {url}") from exc

        if not isinstance(payload, dict):
            raise UpstreamUnavailable(f"Unexpected payload from {url}")
        return payload

    def _raw_items(self, payload: dict[str, Any], kind: Kind) -> list[Any]:
        # The APIs answer {"meals": null} when nothing matches
        items = payload.get(_SCHEMA[kind][0])
        return items if isinstance(items, list) else []

    async def list_category(self, kind: Kind, category: str) -> list[dict[str, Any]]:
        payload = await self._get_json(kind, "filter.php", {"c": category})
        items: list[dict[str, Any]] = []
        for raw in self._raw_items(payload, kind):
            item = normalise_item(raw, kind, category=category)
            if item is not None:
                items.append(item)
        logger.info("Listed %d %ss in category %s", len(items), kind.value, category)
        return items

    async def lookup(self, kind: Kind, item_id: str) -> dict[str, Any] | None:
        payload = await self._get_json(kind, "lookup.php", {"i": item_id})
        items = self._raw_items(payload, kind)
        return items[0] if items and isinstance(items[0], dict) else None

    async def random(self, kind: Kind) -> dict[str, Any] | None:
        payload = await self._get_json(kind, "random.php")
        items = self._raw_items(payload, kind)
        return items[0] if items and isinstance(items[0], dict) else None
