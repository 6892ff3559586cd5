from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


def _env_list(name: str, default: str) -> tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class CatalogConfig:
    """
    Configuration for the upstream catalogs and the in-memory snapshot.
    """

    mealdb_base_url: str = os.getenv(
        "MEALDB_BASE_URL", "https://www.themealdb.com/api/json/v1/1"
    )
    cocktaildb_base_url: str = os.getenv(
        "COCKTAILDB_BASE_URL", "https://www.thecocktaildb.com/api/json/v1/1"
    )
    meal_categories: tuple[str, ...] = _env_list(
        "MEAL_CATEGORIES",
        "Beef,Breakfast,Chicken,Dessert,Lamb,Pasta,Pork,Seafood,Vegan,Vegetarian",
    )
    drink_category: str = os.getenv("DRINK_CATEGORY", "Cocktail")

    # Per upstream call, then for the whole warm-up
    upstream_timeout: float = float(os.getenv("UPSTREAM_TIMEOUT", "10"))
    warmup_timeout: float = float(os.getenv("WARMUP_TIMEOUT", "60"))
    warm_on_startup: bool = _env_flag("CATALOG_WARM_ON_STARTUP", True)

    search_limit: int = 20
    default_page_size: int = 9
    max_page_size: int = 100

    curated_meal_ids: tuple[str, ...] = (
        "52771",  # Arrabiata
        "52807",  # Butter Chicken
        "52805",  # Lamb Biryani
        "52820",  # Katsu Curry
        "52855",  # Pad Thai
        "52844",  # Lasagna
        "52795",  # Chicken Handi
        "53065",  # Sushi
        "52834",  # Tacos
        "52982",  # Carbonara
        "52819",  # Beef Fried Rice
        "52796",  # Teriyaki Chicken Casserole
    )
    curated_drink_ids: tuple[str, ...] = (
        "11000",  # Mojito
        "11007",  # Margarita
        "12776",  # Iced Coffee
        "17207",  # Pina Colada
        "178366",  # Long Island Iced Tea
        "12770",  # Strawberry Shake
    )

    def base_url(self, kind: str) -> str:
        return self.cocktaildb_base_url if kind == "drink" else self.mealdb_base_url


DEFAULT_CATALOG_CONFIG = CatalogConfig()
