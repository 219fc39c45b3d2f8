"""Event collector — typed ``record_*`` helpers over an EventLog.

Thread Safety:
    The collector delegates to ``EventLog`` which is internally locked.
    Safe to call from the loader worker thread and the event loop.

"""

from __future__ import annotations

from typing import TYPE_CHECKING

from quill.observability.events import (
    ChangeObserved,
    PostSkipped,
    ReloadFailed,
    StoreLoaded,
    now_ns,
)
from quill.observability.log import EventLog

if TYPE_CHECKING:
    from quill._types import ChangeKind, LoadTrigger


class EventCollector:
    """Records store lifecycle events into an EventLog.

    Args:
        log: The EventLog to store events in (a fresh one if omitted).

    """

    __slots__ = ("_log",)

    def __init__(self, log: EventLog | None = None) -> None:
        self._log = log if log is not None else EventLog()

    @property
    def log(self) -> EventLog:
        """The underlying event log."""
        return self._log

    def record_change(self, path: str, kind: ChangeKind) -> None:
        """Record a change reported by the watcher."""
        self._log.append(ChangeObserved(path=path, kind=kind, timestamp_ns=now_ns()))

    def record_load(
        self,
        directory: str,
        *,
        posts: int,
        skipped: int = 0,
        load_ms: float = 0.0,
        trigger: LoadTrigger = "watch",
    ) -> None:
        """Record a published snapshot."""
        self._log.append(
            StoreLoaded(
                directory=directory,
                posts=posts,
                skipped=skipped,
                load_ms=load_ms,
                trigger=trigger,
                timestamp_ns=now_ns(),
            )
        )

    def record_skip(self, path: str, reason: str) -> None:
        """Record a post file left out of a snapshot."""
        self._log.append(PostSkipped(path=path, reason=reason, timestamp_ns=now_ns()))

    def record_failure(self, directory: str, error: str) -> None:
        """Record a load that failed and left the cache unchanged."""
        self._log.append(ReloadFailed(directory=directory, error=error, timestamp_ns=now_ns()))
