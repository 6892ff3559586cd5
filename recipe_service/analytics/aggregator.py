from __future__ import annotations

from collections import Counter
from typing import Any


def _rate(count: int, total: int) -> float:
    return round(count / total * 100, 1) if total else 0.0


def compute_analytics(events: list[dict[str, Any]]) -> dict[str, Any]:
    searches = [e for e in events if e["type"] == "search"]
    browses = [e for e in events if e["type"] == "browse"]
    requests = searches + browses

    # Average response time
    times = [e["response_time_ms"] for e in requests if "response_time_ms" in e]
    avg_time = round(sum(times) / len(times), 1) if times else 0.0

    # Top search queries
    query_counter: Counter[str] = Counter()
    for s in searches:
        query = (s.get("query") or "").strip().lower()
        if query:
            query_counter[query] += 1
    top_queries = [{"name": n, "count": c} for n, c in query_counter.most_common(10)]

    # Empty result rate
    empty_searches = sum(1 for s in searches if s.get("results_returned", 0) == 0)

    # Browse filter usage rates
    filter_counts = {"name": 0, "diet": 0, "calories": 0}
    for b in browses:
        if b.get("name_query"):
            filter_counts["name"] += 1
        if b.get("diet"):
            filter_counts["diet"] += 1
        if b.get("min_calories") is not None or b.get("max_calories") is not None:
            filter_counts["calories"] += 1
    filter_usage = {k: _rate(v, len(browses)) for k, v in filter_counts.items()}

    sort_usage = dict(Counter(b.get("sort", "latest") for b in browses))

    kind_counter: Counter[str] = Counter()
    for e in requests:
        kind_counter[e.get("kind", "unknown")] += 1
    kind_usage = dict(kind_counter)

    return {
        "total_searches": len(searches),
        "total_browses": len(browses),
        "avg_response_time_ms": avg_time,
        "top_queries": top_queries,
        "empty_search_rate": _rate(empty_searches, len(searches)),
        "filter_usage": filter_usage,
        "sort_usage": sort_usage,
        "kind_usage": kind_usage,
    }
