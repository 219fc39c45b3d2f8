"""Event log — the store's recent history, bounded and thread-safe.

Events land here from two places: the event loop (changes, failures) and the
loader worker thread (loads, skips). The stats endpoint reads a summary.

Thread Safety:
    All methods are protected by a ``threading.Lock``.

"""

import threading
from collections import deque
from typing import Any

from quill._types import LoadTrigger
from quill.observability.events import (
    ChangeObserved,
    PostSkipped,
    ReloadFailed,
    StoreEvent,
    StoreLoaded,
)


def _location(event: StoreEvent) -> str:
    """The file or directory an event is about."""
    match event:
        case ChangeObserved(path=path) | PostSkipped(path=path):
            return path
        case StoreLoaded(directory=directory) | ReloadFailed(directory=directory):
            return directory
    return ""


class EventLog:
    """Ring buffer of store events.

    Args:
        max_events: Maximum number of events to retain; the oldest go first.

    """

    __slots__ = ("_events", "_lock", "_max_events")

    def __init__(self, max_events: int = 10_000) -> None:
        self._max_events = max_events
        self._events: deque[StoreEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def append(self, event: StoreEvent) -> None:
        with self._lock:
            self._events.append(event)

    def query(
        self,
        *,
        event_type: type | None = None,
        since_ns: int = 0,
        path: str | None = None,
        directory: str | None = None,
        trigger: LoadTrigger | None = None,
        limit: int = 100,
    ) -> list[StoreEvent]:
        """Return matching events, most recent first.

        Args:
            event_type: Only events of this type.
            since_ns: Only events at or after this monotonic timestamp.
            path: Only events about exactly this post file.
            directory: Only events about this directory or a file directly in it.
            trigger: Only loads with this trigger.
            limit: Maximum number of events to return.

        """
        with self._lock:
            events = list(self._events)

        results: list[StoreEvent] = []
        for event in reversed(events):
            if len(results) >= limit:
                break
            if event_type is not None and not isinstance(event, event_type):
                continue
            if event.timestamp_ns < since_ns:
                continue
            location = _location(event)
            if path is not None and location != path:
                continue
            if directory is not None and directory not in (location, location.rpartition("/")[0]):
                continue
            if trigger is not None and not (
                isinstance(event, StoreLoaded) and event.trigger == trigger
            ):
                continue
            results.append(event)
        return results

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def stats(self) -> dict[str, Any]:
        """Summary for the stats endpoint: counts by type and the latest load."""
        with self._lock:
            events = list(self._events)

        by_type: dict[str, int] = {}
        last_load: StoreLoaded | None = None
        for event in events:
            name = type(event).__name__
            by_type[name] = by_type.get(name, 0) + 1
            if isinstance(event, StoreLoaded):
                last_load = event

        return {
            "total": len(events),
            "max_events": self._max_events,
            "by_type": by_type,
            "last_load": None if last_load is None else {
                "posts": last_load.posts,
                "skipped": last_load.skipped,
                "load_ms": round(last_load.load_ms, 3),
                "trigger": last_load.trigger,
            },
        }
