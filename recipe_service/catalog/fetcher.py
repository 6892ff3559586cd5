from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable

from .config import DEFAULT_CATALOG_CONFIG, CatalogConfig
from .enrichment import enrich_record
from .models import CatalogRecord, Kind
from .upstream import UpstreamClient

logger = logging.getLogger(__name__)


def merge_listings(listings: Iterable[list[dict[str, Any]]]) -> list[dict[str, Any]]:
    """
    Merge per-category listings into one list keyed by upstream id.

    The first occurrence of an id wins; later duplicates are dropped. Callers
    pass listings in the configured category order, so which category a
    shared item is attributed to does not depend on network timing.
    """
    merged: dict[str, dict[str, Any]] = {}
    for items in listings:
        for item in items:
            merged.setdefault(item["id"], item)
    return list(merged.values())


async def fetch_meals(
    upstream: UpstreamClient,
    config: CatalogConfig = DEFAULT_CATALOG_CONFIG,
) -> list[CatalogRecord]:
    """
    Fetch and enrich the meal collection.

    Steps:
    - List every configured category concurrently.
    - Merge the listings, first occurrence wins.
    - Enrich each unique item into a ``CatalogRecord``.

    Any failing category call propagates; no partial catalog is returned.
    """
    listings = await asyncio.gather(
        *(upstream.list_category(Kind.meal, c) for c in config.meal_categories)
    )
    items = merge_listings(listings)
    duplicates = sum(len(listing) for listing in listings) - len(items)
    logger.info(
        "Fetched %d unique meals from %d categories (%d duplicates dropped)",
        len(items), len(config.meal_categories), duplicates,
    )
    return [enrich_record(item, Kind.meal) for item in items]


async def fetch_drinks(
    upstream: UpstreamClient,
    config: CatalogConfig = DEFAULT_CATALOG_CONFIG,
) -> list[CatalogRecord]:
    listing = await upstream.list_category(Kind.drink, config.drink_category)
    items = merge_listings([listing])
    logger.info("Fetched %d drinks from %s", len(items), config.drink_category)
    return [enrich_record(item, Kind.drink) for item in items]
