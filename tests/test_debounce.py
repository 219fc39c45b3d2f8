"""Tests for quill.content.debounce — coalescing change bursts into reloads."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from quill.content.debounce import ReloadDebouncer
from quill.content.watcher import ChangeEvent

from tests.conftest import wait_until

DELAY = 0.05


def _event(name: str = "a.json") -> ChangeEvent:
    return ChangeEvent(path=Path("/posts") / name, kind="modified")


class _Recorder:
    """Reload callback that records when it was called."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self) -> None:
        self.calls.append(asyncio.get_running_loop().time())


async def _start(debouncer: ReloadDebouncer) -> asyncio.Task[None]:
    task = asyncio.create_task(debouncer.run())
    await asyncio.sleep(0)
    return task


async def _stop(task: asyncio.Task[None]) -> None:
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)


class TestCoalescing:
    """Bursts within the quiet window produce a single reload."""

    @pytest.mark.asyncio
    async def test_burst_fires_once_after_last_event(self) -> None:
        recorder = _Recorder()
        debouncer = ReloadDebouncer(recorder, delay=DELAY)
        task = await _start(debouncer)
        loop = asyncio.get_running_loop()
        try:
            last_event = 0.0
            for _ in range(5):
                last_event = loop.time()
                debouncer.notify(_event())
                await asyncio.sleep(DELAY / 5)

            assert await wait_until(lambda: recorder.calls, timeout=1.0)
            await asyncio.sleep(DELAY * 3)
        finally:
            await _stop(task)

        assert len(recorder.calls) == 1
        assert recorder.calls[0] >= last_event + DELAY
        assert debouncer.reload_count == 1

    @pytest.mark.asyncio
    async def test_no_events_no_reload(self) -> None:
        recorder = _Recorder()
        debouncer = ReloadDebouncer(recorder, delay=DELAY)
        task = await _start(debouncer)
        try:
            await asyncio.sleep(DELAY * 3)
        finally:
            await _stop(task)
        assert recorder.calls == []
        assert debouncer.state == "idle"

    @pytest.mark.asyncio
    async def test_separate_bursts_fire_separately(self) -> None:
        recorder = _Recorder()
        debouncer = ReloadDebouncer(recorder, delay=DELAY)
        task = await _start(debouncer)
        try:
            debouncer.notify(_event())
            assert await wait_until(lambda: len(recorder.calls) == 1)
            debouncer.notify(_event("b.json"))
            assert await wait_until(lambda: len(recorder.calls) == 2)
        finally:
            await _stop(task)
        assert debouncer.reload_count == 2

    @pytest.mark.asyncio
    async def test_zero_delay(self) -> None:
        recorder = _Recorder()
        debouncer = ReloadDebouncer(recorder, delay=0)
        task = await _start(debouncer)
        try:
            debouncer.notify(_event())
            assert await wait_until(lambda: recorder.calls)
        finally:
            await _stop(task)


class TestStates:
    """idle -> pending -> loading -> idle."""

    @pytest.mark.asyncio
    async def test_pending_then_loading_then_idle(self) -> None:
        release = asyncio.Event()
        started = asyncio.Event()

        async def slow_reload() -> None:
            started.set()
            await release.wait()

        debouncer = ReloadDebouncer(slow_reload, delay=DELAY)
        assert debouncer.state == "idle"
        task = await _start(debouncer)
        try:
            debouncer.notify(_event())
            assert await wait_until(lambda: debouncer.state == "pending")

            await asyncio.wait_for(started.wait(), timeout=1.0)
            assert debouncer.state == "loading"

            release.set()
            assert await wait_until(lambda: debouncer.state == "idle")
        finally:
            await _stop(task)

    @pytest.mark.asyncio
    async def test_burst_during_load_gives_one_followup(self) -> None:
        release = asyncio.Event()
        calls = 0

        async def slow_reload() -> None:
            nonlocal calls
            calls += 1
            if calls == 1:
                await release.wait()

        debouncer = ReloadDebouncer(slow_reload, delay=DELAY)
        task = await _start(debouncer)
        try:
            debouncer.notify(_event())
            assert await wait_until(lambda: debouncer.state == "loading")

            for name in ("b.json", "c.json", "d.json"):
                debouncer.notify(_event(name))
            assert debouncer.queued == 3
            assert calls == 1

            release.set()
            assert await wait_until(lambda: calls == 2)
            await asyncio.sleep(DELAY * 3)
        finally:
            await _stop(task)

        assert calls == 2
        assert debouncer.reload_count == 2

    @pytest.mark.asyncio
    async def test_failed_reload_returns_to_idle(self, capsys: pytest.CaptureFixture[str]) -> None:
        async def broken_reload() -> None:
            msg = "disk on fire"
            raise RuntimeError(msg)

        debouncer = ReloadDebouncer(broken_reload, delay=0.01)
        task = await _start(debouncer)
        try:
            debouncer.notify(_event())
            debouncer.notify(_event())
            assert await wait_until(lambda: debouncer.reload_count == 1)
            assert await wait_until(lambda: debouncer.state == "idle")

            debouncer.notify(_event())
            assert await wait_until(lambda: debouncer.reload_count == 2)
        finally:
            await _stop(task)

        err = capsys.readouterr().err
        assert "Reload failed after 2 change(s): disk on fire" in err
