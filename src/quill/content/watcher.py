"""File watcher — reports changes to post files in the posts directory.

The watcher is a pure translation layer: every filesystem change watchfiles
reports for a post payload becomes one ``ChangeEvent``. Coalescing bursts is
the debouncer's job, not the watcher's.

Creations, modifications, deletions and renames all map onto the same
"something changed" signal. An unnecessary reload is cheap; a missed one
leaves the site stale.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from watchfiles import Change

from quill._errors import WatcherError
from quill.content.loader import is_post_file

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from quill._types import ChangeKind


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A post file change detected by the watcher.

    Attributes:
        path: Absolute path to the changed file.
        kind: Type of filesystem change.

    """

    path: Path
    kind: ChangeKind


# Mapping from watchfiles Change enum to our kind literals.
_CHANGE_KIND_MAP: dict[Change, ChangeKind] = {
    Change.added: "created",
    Change.modified: "modified",
    Change.deleted: "deleted",
}


def translate_change(change: Change, path_str: str, directory: Path) -> ChangeEvent | None:
    """Turn one raw watchfiles change into a ChangeEvent.

    Returns None for files that are not post payloads or that live outside
    the top level of ``directory``.

    """
    path = Path(path_str)
    if path.parent != directory:
        return None
    if not is_post_file(path):
        return None
    return ChangeEvent(path=path, kind=_CHANGE_KIND_MAP.get(change, "modified"))


class ContentWatcher:
    """Watches the posts directory with ``watchfiles.awatch``.

    Args:
        directory: Directory to watch (resolved to an absolute path).
        debounce_ms: watchfiles' own grouping window. Kept short; the
            ``ReloadDebouncer`` owns the real quiet-window policy.
        step_ms: watchfiles polling step while waiting for changes.

    """

    def __init__(self, directory: Path, *, debounce_ms: int = 50, step_ms: int = 25) -> None:
        self._directory = directory.resolve()
        self._debounce_ms = debounce_ms
        self._step_ms = step_ms
        self._stop_event = asyncio.Event()
        self._started = False
        self._running = False

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def max_latency(self) -> float:
        """Longest time (seconds) watchfiles holds a change before yielding it."""
        return max(self._debounce_ms, self._step_ms) / 1000

    @property
    def is_running(self) -> bool:
        """Whether ``changes()`` is currently iterating."""
        return self._running

    def start(self) -> None:
        """Check the directory can be watched and arm the watcher.

        Raises:
            WatcherError: If the directory is missing or not a directory.

        """
        if not self._directory.is_dir():
            msg = f"Cannot watch {self._directory}: not a directory"
            raise WatcherError(msg)
        self._stop_event.clear()
        self._started = True

    def stop(self) -> None:
        """Signal ``changes()`` to finish."""
        self._stop_event.set()
        self._started = False

    async def changes(self) -> AsyncIterator[ChangeEvent]:
        """Async iterator that yields ChangeEvent objects as they occur.

        Ends when ``stop()`` is called.

        Raises:
            WatcherError: If ``start()`` was not called, or if watchfiles
                fails to set up the underlying watch.

        """
        from watchfiles import awatch

        if not self._started:
            msg = "ContentWatcher.changes() called before start()"
            raise WatcherError(msg)

        self._running = True
        try:
            async for raw_changes in awatch(
                self._directory,
                stop_event=self._stop_event,
                debounce=self._debounce_ms,
                step=self._step_ms,
                recursive=False,
            ):
                for change_type, path_str in sorted(raw_changes, key=lambda c: c[1]):
                    event = translate_change(change_type, path_str, self._directory)
                    if event is not None:
                        yield event
        except OSError as exc:
            msg = f"Watching {self._directory} failed: {exc}"
            raise WatcherError(msg) from exc
        finally:
            self._running = False
