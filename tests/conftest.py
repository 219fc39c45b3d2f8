"""Shared test fixtures for quill."""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from quill.content.watcher import ChangeEvent

# Base creation time for generated posts.
T0 = datetime(2014, 3, 1, 9, 30, tzinfo=UTC)


def write_post(
    directory: Path,
    file_name: str,
    title: str,
    *,
    created: datetime | None = None,
    summary: str = "",
    body: str = "",
    **extra: Any,
) -> Path:
    """Write a post payload the way the on-disk store lays it out."""
    created = created or T0
    payload = {
        "Title": title,
        "Summary": summary,
        "Body": body,
        "Created": created.isoformat().replace("+00:00", "Z"),
        "Updated": created.isoformat().replace("+00:00", "Z"),
        **extra,
    }
    path = directory / file_name
    path.write_text(json.dumps(payload))
    return path


def at(minutes: int) -> datetime:
    """A creation time ``minutes`` after T0."""
    return T0 + timedelta(minutes=minutes)


@pytest.fixture
def posts_dir(tmp_path: Path) -> Path:
    """An empty posts directory."""
    directory = tmp_path / "posts"
    directory.mkdir()
    return directory


@pytest.fixture
def two_posts(posts_dir: Path) -> Path:
    """``a.json`` (Hello World, older) and ``b.json`` (Second Post, newer)."""
    write_post(posts_dir, "a.json", "Hello World", created=at(0), body="<p>hi</p>")
    write_post(posts_dir, "b.json", "Second Post", created=at(10))
    return posts_dir


@pytest.fixture
def site_root(tmp_path: Path) -> Path:
    """A site root with a posts/ directory holding two posts."""
    posts = tmp_path / "posts"
    posts.mkdir()
    write_post(posts, "a.json", "Hello World", created=at(0), body="<p>Hello from Quill</p>")
    write_post(posts, "b.json", "Second Post", created=at(10))
    return tmp_path


class FakeWatcher:
    """Stands in for ContentWatcher; tests push events by hand."""

    max_latency = 0.0

    def __init__(self) -> None:
        self._queue: asyncio.Queue[ChangeEvent | None] = asyncio.Queue()
        self.started = False
        self.stopped = False

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True
        self._queue.put_nowait(None)

    def push(self, event: ChangeEvent) -> None:
        self._queue.put_nowait(event)

    async def changes(self) -> AsyncIterator[ChangeEvent]:
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event


async def wait_until(predicate: Any, timeout: float = 2.0, step: float = 0.005) -> bool:
    """Poll ``predicate`` until it is true or ``timeout`` elapses."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(step)
    return bool(predicate())


# Minimal templates for serving tests: expressions only, no block tags.
SIMPLE_TEMPLATES: dict[str, str] = {
    "home.html": "<html><h1>{{ title }}</h1><p>{{ description }}</p></html>",
    "posts.html": "<html><h1>All of {{ title }}</h1></html>",
    "post.html": "<html><h1>{{ post.title }}</h1>{{ post.body }}</html>",
    "about.html": "<html><h1>About {{ title }}</h1></html>",
    "notfound.html": "<html><h1>{{ title }}</h1></html>",
}


def write_templates(root: Path) -> Path:
    """Write a complete user theme under ``root/templates``."""
    templates = root / "templates"
    templates.mkdir(exist_ok=True)
    for name, source in SIMPLE_TEMPLATES.items():
        (templates / name).write_text(source)
    return templates
