from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Any

import pandas as pd

from .config import DEFAULT_CATALOG_CONFIG, CatalogConfig
from .errors import UpstreamUnavailable
from .fetcher import fetch_drinks, fetch_meals
from .models import CatalogRecord
from .upstream import UpstreamClient

logger = logging.getLogger(__name__)

RECORD_COLUMNS: list[str] = [
    "id",
    "kind",
    "name",
    "thumbnail_url",
    "category",
    "estimated_calories",
    "diet_class",
    "synthetic_created_at",
    "popularity_score",
]


class CacheState(str, Enum):
    not_started = "not_started"
    warming = "warming"
    ready = "ready"


def build_frame(records: list[CatalogRecord]) -> pd.DataFrame:
    df = pd.DataFrame(
        [r.model_dump(mode="json") for r in records], columns=RECORD_COLUMNS,
    )
    df = df.astype({
        "estimated_calories": "int64",
        "synthetic_created_at": "int64",
        "popularity_score": "int64",
    })

    # Lowercase name for case-insensitive matching
    df["name_lower"] = df["name"].fillna("").str.lower()

    return df


class CatalogCache:
    """Process-wide snapshot of the meal and drink catalogs.

    Lifecycle is ``not_started -> warming -> ready``. The fetch and enrich
    pipeline runs inside a single shared task, so any number of concurrent
    cold-start callers trigger exactly one upstream fetch sequence. A failed
    warm-up returns to ``not_started`` and the next caller retries. Once
    ready, the frames are never mutated again.
    """

    def __init__(
        self,
        upstream: UpstreamClient | None = None,
        config: CatalogConfig = DEFAULT_CATALOG_CONFIG,
    ) -> None:
        self.config = config
        self.upstream = UpstreamClient(config) if upstream is None else upstream
        self._state = CacheState.not_started
        self._warm_task: asyncio.Task[None] | None = None
        self._meals = build_frame([])
        self._drinks = build_frame([])
        self.warm_attempts = 0
        self.warmed_at: float | None = None
        self.warm_duration_ms: float | None = None
        self.last_error: str | None = None

    @property
    def state(self) -> CacheState:
        return self._state

    @property
    def meals(self) -> pd.DataFrame:
        return self._meals

    @property
    def drinks(self) -> pd.DataFrame:
        return self._drinks

    async def ensure_warm(self) -> None:
        """Return once the snapshot is ready, warming it first if needed.

        Raises ``UpstreamUnavailable`` to every waiter when the warm-up fails.
        """
        if self._state is CacheState.ready:
            return
        if self._warm_task is None:
            self._state = CacheState.warming
            self._warm_task = asyncio.ensure_future(self._warm())
        # A cancelled request must not cancel the shared warm-up
        await asyncio.shield(self._warm_task)

    async def _build(self) -> tuple[pd.DataFrame, pd.DataFrame]:
        meals, drinks = await asyncio.gather(
            fetch_meals(self.upstream, self.config),
            fetch_drinks(self.upstream, self.config),
        )
        return build_frame(meals), build_frame(drinks)

    async def _warm(self) -> None:
        self.warm_attempts += 1
        start_time = time.time()
        logger.info("Warming recipe catalog (attempt %d)", self.warm_attempts)

        try:
            meals, drinks = await asyncio.wait_for(
                self._build(), timeout=self.config.warmup_timeout,
            )
        except asyncio.TimeoutError as exc:
            reason = f"Catalog warm-up exceeded {self.config.warmup_timeout}s"
            self._fail(reason)
            raise UpstreamUnavailable(reason) from exc
        except BaseException as exc:
            self._fail(str(exc) or type(exc).__name__)
            raise

        # Both frames are swapped in together, before readers see ``ready``
        self._meals = meals
        self._drinks = drinks
        self._state = CacheState.ready
        self.warmed_at = time.time()
        self.warm_duration_ms = round((self.warmed_at - start_time) * 1000, 1)
        self.last_error = None
        logger.info(
            "Recipe catalog ready: %d meals, %d drinks in %.1f ms",
            len(meals), len(drinks), self.warm_duration_ms,
        )

    def _fail(self, reason: str) -> None:
        self._state = CacheState.not_started
        self._warm_task = None
        self.last_error = reason
        logger.error("Recipe catalog warm-up failed: %s", reason)

    async def aclose(self) -> None:
        """Cancel an in-flight warm-up and wait for it to finish unwinding."""
        task = self._warm_task
        if task is None or task.done():
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        # A task cancelled before it first ran never reaches _fail
        if self._state is not CacheState.ready:
            self._state = CacheState.not_started
            self._warm_task = None
        logger.info("Cancelled in-flight recipe catalog warm-up")

    def stats(self) -> dict[str, Any]:
        return {
            "state": self._state.value,
            "meals": len(self._meals),
            "drinks": len(self._drinks),
            "warm_attempts": self.warm_attempts,
            "warmed_at": self.warmed_at,
            "warm_duration_ms": self.warm_duration_ms,
            "last_error": self.last_error,
        }


async def warm_in_background(cache: CatalogCache) -> None:
    """Startup hook: warm early, leave failures for the next request to retry."""
    try:
        await cache.ensure_warm()
    except UpstreamUnavailable:
        logger.warning(
            "Startup catalog warm-up failed; retrying on next request", exc_info=True,
        )
