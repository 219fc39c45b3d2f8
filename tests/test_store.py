"""Tests for quill.content.store — the self-refreshing post cache."""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path
from unittest.mock import patch

import pytest
from watchfiles import Change

from quill._errors import StoreError, WatcherError
from quill.config import QuillConfig
from quill.content.store import ContentStore
from quill.content.watcher import ChangeEvent, ContentWatcher
from quill.observability import (
    ChangeObserved,
    EventCollector,
    EventLog,
    PostSkipped,
    ReloadFailed,
    StoreLoaded,
)

from tests.conftest import FakeWatcher, at, wait_until, write_post


def _store(directory: Path, **kwargs: object) -> tuple[ContentStore, FakeWatcher]:
    watcher = FakeWatcher()
    store = ContentStore(directory, watcher=watcher, **kwargs)  # type: ignore[arg-type]
    return store, watcher


class TestStartup:
    """The first load happens before start() returns."""

    @pytest.mark.asyncio
    async def test_start_loads_synchronously(self, two_posts: Path) -> None:
        store, watcher = _store(two_posts)
        await store.start()
        try:
            assert watcher.started
            assert store.cache.version == 1
            assert [p.slug for p in store.cache.all_posts()] == ["second-post", "hello-world"]
            assert store.is_running
        finally:
            await store.stop()
        assert not store.is_running
        assert watcher.stopped

    @pytest.mark.asyncio
    async def test_startup_load_recorded(self, two_posts: Path) -> None:
        store, _ = _store(two_posts)
        async with store:
            loads = store.collector.log.query(event_type=StoreLoaded)
        assert len(loads) == 1
        assert loads[0].trigger == "startup"
        assert loads[0].posts == 2

    @pytest.mark.asyncio
    async def test_preloaded_cache_not_reloaded(self, two_posts: Path) -> None:
        store, _ = _store(two_posts)
        store.load_now(trigger="startup")
        async with store:
            assert store.cache.version == 1

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, two_posts: Path) -> None:
        store, _ = _store(two_posts)
        async with store:
            await store.start()
            assert store.cache.version == 1

    @pytest.mark.asyncio
    async def test_unreadable_directory_fails_start(self, tmp_path: Path) -> None:
        store, _ = _store(tmp_path / "missing")
        with pytest.raises(StoreError):
            await store.start()
        assert store.cache.version == 0
        assert store.collector.log.query(event_type=ReloadFailed)

    @pytest.mark.asyncio
    async def test_unwatchable_directory_fails_start(self, tmp_path: Path) -> None:
        store = ContentStore(tmp_path / "missing")
        with pytest.raises(WatcherError):
            await store.start()
        assert not store.is_running


class TestWatchReload:
    """Change events lead to a debounced reload."""

    @pytest.mark.asyncio
    async def test_change_published_after_delay(self, two_posts: Path) -> None:
        store, watcher = _store(two_posts, reload_delay=0.01)
        async with store:
            path = write_post(two_posts, "c.json", "Third Post", created=at(20))
            watcher.push(ChangeEvent(path=path, kind="created"))

            assert await wait_until(lambda: len(store.cache) == 3)
            assert store.cache.all_posts()[0].slug == "third-post"
            assert store.cache.version == 2

        loads = store.collector.log.query(event_type=StoreLoaded)
        assert loads[0].trigger == "watch"

    @pytest.mark.asyncio
    async def test_burst_of_changes_reloads_once(self, two_posts: Path) -> None:
        store, watcher = _store(two_posts, reload_delay=0.05)
        async with store:
            for i in range(5):
                path = write_post(two_posts, f"n{i}.json", f"New {i}", created=at(30 + i))
                watcher.push(ChangeEvent(path=path, kind="created"))
            assert await wait_until(lambda: len(store.cache) == 7)
            await asyncio.sleep(0.15)
            assert store.cache.version == 2
            assert store.debouncer.reload_count == 1

    @pytest.mark.asyncio
    async def test_changes_recorded(self, two_posts: Path) -> None:
        store, watcher = _store(two_posts)
        async with store:
            watcher.push(ChangeEvent(path=two_posts / "a.json", kind="modified"))
            assert await wait_until(lambda: store.cache.version == 2)
        changes = store.collector.log.query(event_type=ChangeObserved, path=str(two_posts / "a.json"))
        assert [e.kind for e in changes] == ["modified"]
        assert store.collector.log.query(trigger="watch")

    @pytest.mark.asyncio
    async def test_deleted_post_disappears(self, two_posts: Path) -> None:
        store, watcher = _store(two_posts)
        async with store:
            (two_posts / "a.json").unlink()
            watcher.push(ChangeEvent(path=two_posts / "a.json", kind="deleted"))
            assert await wait_until(lambda: store.cache.get_post("hello-world") is None)
            assert len(store.cache) == 1

    @pytest.mark.asyncio
    async def test_failed_reload_keeps_previous_snapshot(
        self, two_posts: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        store, watcher = _store(two_posts)
        async with store:
            before = store.cache.read()
            shutil.rmtree(two_posts)
            watcher.push(ChangeEvent(path=two_posts / "a.json", kind="deleted"))

            assert await wait_until(
                lambda: store.collector.log.query(event_type=ReloadFailed)
            )
            assert store.cache.read() is before
            assert store.cache.version == 1
            assert store.debouncer.state in ("idle", "loading")

        assert "Reload failed, keeping previous posts" in capsys.readouterr().err


class TestManualLoads:
    """load_now() and reload()."""

    @pytest.mark.asyncio
    async def test_reload_reports_success(self, two_posts: Path) -> None:
        store, _ = _store(two_posts)
        assert await store.reload() is True
        assert len(store.cache) == 2

    @pytest.mark.asyncio
    async def test_reload_reports_failure(self, tmp_path: Path) -> None:
        store, _ = _store(tmp_path / "missing")
        assert await store.reload() is False
        assert store.cache.version == 0

    def test_load_now_raises_and_keeps_cache(self, two_posts: Path) -> None:
        store, _ = _store(two_posts)
        store.load_now()
        shutil.rmtree(two_posts)
        with pytest.raises(StoreError):
            store.load_now()
        assert len(store.cache) == 2

    def test_skipped_files_logged(
        self, two_posts: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        (two_posts / "bad.json").write_text("{")
        store, _ = _store(two_posts)
        result = store.load_now()
        assert len(result.skipped) == 1
        skips = store.collector.log.query(event_type=PostSkipped)
        assert skips[0].path.endswith("bad.json")
        assert "Skipped bad.json" in capsys.readouterr().err

    def test_manual_load_printed(
        self, two_posts: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        store, _ = _store(two_posts)
        store.load_now()
        assert "Reloaded 2 posts" in capsys.readouterr().err

    def test_startup_load_quiet(
        self, two_posts: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        store, _ = _store(two_posts)
        store.load_now(trigger="startup")
        assert "Reloaded" not in capsys.readouterr().err


class TestFromConfig:
    def test_uses_config_values(self, site_root: Path) -> None:
        config = QuillConfig(root=site_root, reload_delay=0.2, recent_posts=1)
        collector = EventCollector(EventLog(max_events=10))
        store = ContentStore.from_config(config, collector)
        assert store.directory == config.posts_path
        assert store.debouncer.delay == 0.2
        assert store.collector is collector
        store.load_now()
        assert len(store.cache.recent_posts()) == 1


class TestRealWatcher:
    """End to end over the real filesystem watcher."""

    @pytest.mark.asyncio
    async def test_new_file_becomes_visible(self, two_posts: Path) -> None:
        store = ContentStore(two_posts, reload_delay=0.01)
        async with store:
            assert len(store.cache) == 2
            # Give the watcher a moment to arm before writing.
            await asyncio.sleep(0.2)
            write_post(two_posts, "c.json", "Third Post", created=at(20))
            assert await wait_until(lambda: len(store.cache) == 3, timeout=10.0)
        assert store.cache.get_post("third-post") is not None


class TestWatcherFailures:
    """Watch failures abort startup or are reported, never swallowed."""

    @pytest.mark.asyncio
    async def test_watch_setup_failure_aborts_start(
        self, two_posts: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        async def _failing_awatch(*args: object, **kwargs: object):  # noqa: ANN202
            msg = "inotify watch limit reached"
            raise OSError(msg)
            yield  # pragma: no cover

        store = ContentStore(two_posts)
        with patch("watchfiles.awatch", _failing_awatch):
            with pytest.raises(WatcherError, match="inotify watch limit"):
                await store.start()

        assert not store.is_running
        assert await wait_until(lambda: store.collector.log.query(event_type=ReloadFailed))
        assert "Watcher stopped" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_watcher_dying_later_is_reported(
        self, two_posts: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        directory = two_posts.resolve()

        async def _short_lived_awatch(*args: object, **kwargs: object):  # noqa: ANN202
            yield {(Change.modified, str(directory / "a.json"))}
            await asyncio.sleep(0.05)
            msg = "watch descriptor lost"
            raise OSError(msg)

        store = ContentStore(two_posts, reload_delay=0.01)
        with patch("watchfiles.awatch", _short_lived_awatch):
            await store.start()
            try:
                assert store.is_running
                assert await wait_until(lambda: not store.is_running)
            finally:
                await store.stop()

        failures = store.collector.log.query(event_type=ReloadFailed)
        assert "watch descriptor lost" in failures[0].error
        assert "Watcher stopped, posts will no longer refresh" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_restart_after_watcher_death(self, two_posts: Path) -> None:
        store, watcher = _store(two_posts)
        await store.start()
        watcher.stop()
        assert await wait_until(lambda: not store.is_running)

        await store.start()
        try:
            assert store.is_running
            assert store.cache.version == 1
        finally:
            await store.stop()


class TestStalenessBound:
    """The bound covers watchfiles' grouping plus the quiet window."""

    def test_default_watcher(self, posts_dir: Path) -> None:
        store = ContentStore(posts_dir, reload_delay=0.01)
        assert store.staleness_bound == pytest.approx(0.06)

    def test_custom_watcher(self, posts_dir: Path) -> None:
        watcher = ContentWatcher(posts_dir, debounce_ms=20, step_ms=25)
        store = ContentStore(posts_dir, reload_delay=0.1, watcher=watcher)
        assert store.staleness_bound == pytest.approx(0.125)

    def test_watcher_max_latency(self, posts_dir: Path) -> None:
        assert ContentWatcher(posts_dir).max_latency == pytest.approx(0.05)
