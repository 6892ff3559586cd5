from __future__ import annotations

import asyncio
from collections import Counter
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from recipe_service.analytics.store import clear_events
from recipe_service.app import app, get_catalog
from recipe_service.catalog.cache import CatalogCache
from recipe_service.catalog.config import DEFAULT_CATALOG_CONFIG
from recipe_service.catalog.upstream import UpstreamClient

MEALS_BY_CATEGORY: dict[str, list[tuple[str, str]]] = {
    "Beef": [("52874", "Beef and Mustard Pie"), ("52878", "Beef and Oyster pie")],
    "Chicken": [("52772", "Teriyaki Chicken Casserole"), ("52795", "Chicken Handi")],
    "Dessert": [("52768", "Apple Frangipan Tart")],
    "Pasta": [("52771", "Spicy Arrabiata Penne"), ("52844", "Lasagne")],
    "Vegan": [("52775", "Vegan Lasagna")],
    # 52771 is listed under Pasta too
    "Vegetarian": [("52807", "Baingan Bharta"), ("52771", "Spicy Arrabiata Penne")],
}

DRINK_NAMES = {"11000": "Mojito", "11007": "Margarita"}
DRINKS: list[tuple[str, str]] = [
    (str(11000 + i), DRINK_NAMES.get(str(11000 + i), f"House Cocktail {i:02d}"))
    for i in range(25)
]

MEAL_DETAILS: dict[str, dict[str, Any]] = {
    "52771": {
        "idMeal": "52771",
        "strMeal": "Spicy Arrabiata Penne",
        "strMealThumb": "https://img.example/52771.jpg",
        "strCategory": "Vegetarian",
        "strArea": "Italian",
        "strInstructions": "Bring a large pot of water to a boil.",
        "strIngredient1": "penne rigate",
        "strMeasure1": "1 pound",
        "strIngredient2": "olive oil",
        "strMeasure2": "1/4 cup",
        "strIngredient3": "garlic",
        "strMeasure3": "3 cloves",
        "strIngredient4": "",
        "strMeasure4": "",
        "strIngredient5": None,
        "strMeasure5": None,
    },
}

DRINK_DETAILS: dict[str, dict[str, Any]] = {
    "11007": {
        "idDrink": "11007",
        "strDrink": "Margarita",
        "strDrinkThumb": "https://img.example/11007.jpg",
        "strCategory": "Ordinary Drink",
        "strInstructions": "Rub the rim of the glass with the lime slice.",
        "strIngredient1": "Tequila",
        "strMeasure1": "1 1/2 oz ",
        "strIngredient2": "Triple sec",
        "strMeasure2": "1/2 oz ",
        "strIngredient3": "Lime juice",
        "strMeasure3": None,
    },
}


def _listing(items: list[tuple[str, str]], kind: str) -> list[dict[str, str]]:
    if kind == "drink":
        return [
            {"idDrink": i, "strDrink": n, "strDrinkThumb": f"https://img.example/{i}.jpg"}
            for i, n in items
        ]
    return [
        {"idMeal": i, "strMeal": n, "strMealThumb": f"https://img.example/{i}.jpg"}
        for i, n in items
    ]


class FakeUpstream:
    """In-process MealDB/CocktailDB double that counts calls and injects faults."""

    def __init__(self) -> None:
        self.calls: Counter[str] = Counter()
        self.fail_categories: set[str] = set()
        self.timeout_categories: set[str] = set()
        self.delay = 0.0

    def category_calls(self, category: str) -> int:
        return self.calls[f"filter:{category}"]

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    async def handler(self, request: httpx.Request) -> httpx.Response:
        kind = "drink" if "cocktaildb" in request.url.host else "meal"
        key = "drinks" if kind == "drink" else "meals"
        endpoint = request.url.path.rsplit("/", 1)[-1]

        if self.delay:
            await asyncio.sleep(self.delay)

        if endpoint == "filter.php":
            category = request.url.params["c"]
            self.calls[f"filter:{category}"] += 1
            if category in self.timeout_categories:
                raise httpx.ReadTimeout("upstream too slow", request=request)
            if category in self.fail_categories:
                return httpx.Response(500, json={"error": "boom"})
            if kind == "drink":
                items = DRINKS if category == DEFAULT_CATALOG_CONFIG.drink_category else []
            else:
                items = MEALS_BY_CATEGORY.get(category, [])
            return httpx.Response(200, json={key: _listing(items, kind) or None})

        if endpoint == "lookup.php":
            item_id = request.url.params["i"]
            self.calls[f"lookup:{item_id}"] += 1
            details = DRINK_DETAILS if kind == "drink" else MEAL_DETAILS
            found = details.get(item_id)
            return httpx.Response(200, json={key: [found] if found else None})

        if endpoint == "random.php":
            self.calls["random"] += 1
            return httpx.Response(200, json={key: [DRINK_DETAILS["11007"]]})

        return httpx.Response(404, text="not found")

    def client(self, config=DEFAULT_CATALOG_CONFIG) -> UpstreamClient:
        return UpstreamClient(config, transport=httpx.MockTransport(self.handler))


@pytest.fixture
def fake_upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def catalog(fake_upstream) -> CatalogCache:
    return CatalogCache(upstream=fake_upstream.client())


@pytest.fixture
def client(catalog):
    clear_events()
    app.dependency_overrides[get_catalog] = lambda: catalog
    yield TestClient(app)
    app.dependency_overrides.clear()
