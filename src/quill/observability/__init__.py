"""Store observability — a structured record of every reload cycle.

Events cover the whole cache lifecycle:
- **Watcher**: post files created, modified, deleted
- **Loader**: snapshots published, files skipped, loads that failed

All events are frozen dataclasses with nanosecond timestamps, safe for
concurrent production from the loader thread and the event loop.

Quick Start:
    >>> from quill.observability import EventCollector, EventLog
    >>> log = EventLog()
    >>> collector = EventCollector(log)
    >>> collector.record_failure("/srv/posts", "permission denied")
    >>> log.stats()["total"]
    1

"""

from quill.observability.collector import EventCollector
from quill.observability.events import (
    ChangeObserved,
    PostSkipped,
    ReloadFailed,
    StoreEvent,
    StoreLoaded,
    now_ns,
)
from quill.observability.log import EventLog

__all__ = [
    "ChangeObserved",
    "EventCollector",
    "EventLog",
    "PostSkipped",
    "ReloadFailed",
    "StoreEvent",
    "StoreLoaded",
    "now_ns",
]
