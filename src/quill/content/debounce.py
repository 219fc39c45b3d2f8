"""Reload debouncer — turns bursts of change events into one reload.

Saving a single file usually produces several raw notifications in quick
succession (truncate, write, metadata touch). The debouncer waits until the
stream has been quiet for ``delay`` seconds after the *last* event, then
fires the reload callback once.

State machine::

    idle    --event-->            pending (deadline = now + delay)
    pending --event-->            pending (deadline = now + delay)
    pending --deadline elapses--> loading (callback awaited)
    loading --callback returns--> idle    (success or failure)

While ``loading``, new events queue up untouched; once the callback returns
they start a fresh burst, so a burst arriving mid-load always produces
exactly one follow-up reload and never a concurrent one.
"""

from __future__ import annotations

import asyncio
import sys
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from quill._types import ReloadCallback
    from quill.content.watcher import ChangeEvent

type DebounceState = Literal["idle", "pending", "loading"]


class ReloadDebouncer:
    """Coalesces change events and invokes ``on_reload`` once per quiet window.

    Producers call ``notify()``; ``run()`` is the consumer and must be driven
    by a single task.

    Args:
        on_reload: Async callback that performs the reload.
        delay: Quiet window in seconds.

    """

    def __init__(self, on_reload: ReloadCallback, delay: float = 0.010) -> None:
        self._on_reload = on_reload
        self._delay = delay
        self._queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()
        self._state: DebounceState = "idle"
        self._burst_size = 0
        self._reload_count = 0

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def state(self) -> DebounceState:
        """Current state of the machine."""
        return self._state

    @property
    def reload_count(self) -> int:
        """Number of times the reload callback has been fired."""
        return self._reload_count

    @property
    def queued(self) -> int:
        """Events waiting to be consumed."""
        return self._queue.qsize()

    def notify(self, event: ChangeEvent) -> None:
        """Queue a change event. Safe to call from the event loop thread only."""
        self._queue.put_nowait(event)

    async def run(self) -> None:
        """Consume events forever. Cancel the task to stop."""
        loop = asyncio.get_running_loop()
        deadline: float | None = None

        while True:
            if deadline is None:
                await self._queue.get()
                self._burst_size = 1
                self._state = "pending"
                deadline = loop.time() + self._delay
                continue

            remaining = deadline - loop.time()
            if remaining > 0:
                try:
                    await asyncio.wait_for(self._queue.get(), timeout=remaining)
                except TimeoutError:
                    pass
                else:
                    # Another event inside the window pushes the deadline out.
                    self._burst_size += 1
                    deadline = loop.time() + self._delay
                    continue

            deadline = None
            await self._fire()

    async def _fire(self) -> None:
        self._state = "loading"
        self._reload_count += 1
        try:
            await self._on_reload()
        except Exception as exc:
            print(
                f"  Reload failed after {self._burst_size} change(s): {exc}",
                file=sys.stderr,
            )
        finally:
            self._burst_size = 0
            self._state = "idle"
