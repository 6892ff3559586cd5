from __future__ import annotations

import os
import time
from collections import deque
from typing import Any

MAX_EVENTS = int(os.getenv("ANALYTICS_MAX_EVENTS", "10000"))

# In-process only; oldest events drop off once full
_events: deque[dict[str, Any]] = deque(maxlen=MAX_EVENTS)


def record_event(event_type: str, data: dict[str, Any]) -> None:
    _events.append({
        "type": event_type,
        "timestamp": time.time(),
        **data,
    })


def get_events(event_type: str | None = None) -> list[dict[str, Any]]:
    if event_type is None:
        return list(_events)
    return [e for e in _events if e["type"] == event_type]


def clear_events() -> None:
    _events.clear()
