"""Content store — wires watcher, debouncer, loader and cache together.

Flow::

    ContentWatcher.changes() --> ReloadDebouncer.notify()
                                      |  (quiet window elapses)
                                      v
                    load_store() in a worker thread
                                      |  (success only)
                                      v
                            PostCache.publish()

The first load happens synchronously in ``start()`` so the cache is
populated before the first request is served. Later loads run through the
debouncer. A load that cannot read the directory leaves the published
snapshot untouched.

After a single isolated edit the cache is stale for at most
``staleness_bound`` plus one load: watchfiles groups raw notifications for
up to its own debounce window before the watcher sees them, then the
debouncer waits ``reload_delay`` of quiet.

Watch setup runs on the watcher task's first step, so ``start()`` raises
if it fails. A watcher that dies later is reported on stderr and in the
event log, and ``is_running`` turns False.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Self

from quill._errors import StoreError
from quill.content.cache import PostCache
from quill.content.debounce import ReloadDebouncer
from quill.content.loader import LoadResult, load_store
from quill.content.watcher import ContentWatcher
from quill.observability import EventCollector

if TYPE_CHECKING:
    from types import TracebackType

    from quill._types import LoadTrigger
    from quill.config import QuillConfig


class ContentStore:
    """A self-refreshing post cache for one posts directory.

    Args:
        directory: Posts directory to load and watch.
        reload_delay: Quiet window (seconds) before a watch-triggered reload.
        recent_count: Default size of ``cache.recent_posts()``.
        collector: Event collector (a fresh one if omitted).
        watcher: Watcher to use (a ``ContentWatcher`` on ``directory`` if omitted).

    """

    def __init__(
        self,
        directory: Path,
        *,
        reload_delay: float = 0.010,
        recent_count: int = 5,
        collector: EventCollector | None = None,
        watcher: ContentWatcher | None = None,
    ) -> None:
        self._directory = directory
        self._cache = PostCache(recent_count=recent_count)
        self._collector = collector if collector is not None else EventCollector()
        self._watcher = watcher if watcher is not None else ContentWatcher(directory)
        self._debouncer = ReloadDebouncer(self._reload_from_watch, delay=reload_delay)
        self._debounce_task: asyncio.Task[None] | None = None
        self._watch_task: asyncio.Task[None] | None = None

    @classmethod
    def from_config(cls, config: QuillConfig, collector: EventCollector | None = None) -> Self:
        """Build a store for ``config.posts_path``."""
        return cls(
            config.posts_path,
            reload_delay=config.reload_delay,
            recent_count=config.recent_posts,
            collector=collector,
        )

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def cache(self) -> PostCache:
        """The cache readers should query."""
        return self._cache

    @property
    def collector(self) -> EventCollector:
        return self._collector

    @property
    def debouncer(self) -> ReloadDebouncer:
        return self._debouncer

    @property
    def is_running(self) -> bool:
        """Whether both the watcher and the debouncer tasks are alive."""
        tasks = (self._watch_task, self._debounce_task)
        return all(task is not None and not task.done() for task in tasks)

    @property
    def staleness_bound(self) -> float:
        """Seconds from an isolated edit until its reload starts, at most."""
        return self._watcher.max_latency + self._debouncer.delay

    # ----- lifecycle -----

    async def start(self) -> None:
        """Load the directory (unless already loaded), then start watching it.

        Raises:
            WatcherError: If the directory cannot be watched.
            StoreError: If the initial load cannot read the directory.

        """
        if self.is_running:
            return
        await self._cancel_tasks()

        self._watcher.start()
        if self._cache.version == 0:
            self.load_now(trigger="startup")

        self._debounce_task = asyncio.create_task(self._debouncer.run(), name="quill-debouncer")
        watch_task = asyncio.create_task(self._pump_changes(), name="quill-watcher")
        watch_task.add_done_callback(self._on_watch_done)
        self._watch_task = watch_task

        # One step of the watch task runs the watchfiles setup.
        await asyncio.sleep(0)
        if watch_task.done() and not watch_task.cancelled():
            exc = watch_task.exception()
            if exc is not None:
                await self.stop()
                raise exc

    async def stop(self) -> None:
        """Stop watching and wait for the background tasks to finish."""
        self._watcher.stop()
        await self._cancel_tasks()

    async def _cancel_tasks(self) -> None:
        tasks = [t for t in (self._watch_task, self._debounce_task) if t is not None]
        self._watch_task = self._debounce_task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def _on_watch_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled() or task.exception() is None:
            return
        exc = task.exception()
        print(f"  Watcher stopped, posts will no longer refresh: {exc}", file=sys.stderr)
        self._collector.record_failure(str(self._directory), str(exc))

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()

    # ----- loading -----

    def load_now(self, trigger: LoadTrigger = "manual") -> LoadResult:
        """Load synchronously and publish the result.

        Raises:
            StoreError: If the directory cannot be read. Nothing is published.

        """
        try:
            result = load_store(self._directory)
        except StoreError as exc:
            self._report_failure(exc)
            raise
        self._publish(result, trigger)
        return result

    async def reload(self, trigger: LoadTrigger = "manual") -> bool:
        """Load in a worker thread and publish on success.

        Returns False (and keeps the current snapshot) when the directory
        cannot be read.

        """
        try:
            result = await asyncio.to_thread(load_store, self._directory)
        except StoreError as exc:
            self._report_failure(exc)
            return False
        self._publish(result, trigger)
        return True

    async def _reload_from_watch(self) -> None:
        await self.reload(trigger="watch")

    async def _pump_changes(self) -> None:
        """Forward watcher events to the debouncer."""
        async for event in self._watcher.changes():
            self._collector.record_change(str(event.path), event.kind)
            self._debouncer.notify(event)

    def _publish(self, result: LoadResult, trigger: LoadTrigger) -> None:
        for skip in result.skipped:
            print(f"  Skipped {skip.file_name}: {skip.reason}", file=sys.stderr)
            self._collector.record_skip(str(self._directory / skip.file_name), skip.reason)

        self._cache.publish(result.snapshot)

        count = len(result.snapshot)
        self._collector.record_load(
            str(self._directory),
            posts=count,
            skipped=len(result.skipped),
            load_ms=result.duration_ms,
            trigger=trigger,
        )
        if trigger != "startup":
            label = "post" if count == 1 else "posts"
            print(
                f"  Reloaded {count} {label} in {result.duration_ms:.0f}ms",
                file=sys.stderr,
            )

    def _report_failure(self, exc: StoreError) -> None:
        print(f"  Reload failed, keeping previous posts: {exc}", file=sys.stderr)
        self._collector.record_failure(str(self._directory), str(exc))
