"""Store loader — builds an immutable snapshot from the posts directory.

Every load is a full rebuild: the directory is enumerated, each ``.json``
file is parsed, slug collisions are resolved, and the posts are ordered
most-recent first. A single bad file never fails the load; an unreadable
directory always does.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from quill._errors import PostParseError, StoreError
from quill.content.post import Post, parse_post

POST_SUFFIX = ".json"

# Appended to a colliding title until its slug is unique.
COLLISION_MARKER = "-"


def _empty_index() -> Mapping[str, Post]:
    return MappingProxyType({})


@dataclass(frozen=True, slots=True)
class Snapshot:
    """A point-in-time, immutable view of every loaded post.

    Attributes:
        posts: Posts ordered by ``created`` descending (ties by file name).
        index: Read-only slug -> post mapping.
        loaded_at_ns: Monotonic timestamp of the load that produced it.

    """

    posts: tuple[Post, ...] = ()
    index: Mapping[str, Post] = field(default_factory=_empty_index)
    loaded_at_ns: int = 0

    def get(self, slug: str) -> Post | None:
        """Return the post with this slug, or None."""
        return self.index.get(slug)

    def recent(self, n: int) -> tuple[Post, ...]:
        """Return at most ``n`` of the most recent posts."""
        return self.posts[: max(n, 0)]

    def slugs(self) -> tuple[str, ...]:
        """Slugs in presentation order."""
        return tuple(p.slug for p in self.posts)

    def __len__(self) -> int:
        return len(self.posts)

    def __iter__(self) -> Iterator[Post]:
        return iter(self.posts)


@dataclass(frozen=True, slots=True)
class SkippedFile:
    """A post file left out of a snapshot, with the reason why."""

    file_name: str
    reason: str


@dataclass(frozen=True, slots=True)
class LoadResult:
    """Outcome of one successful directory load."""

    snapshot: Snapshot
    skipped: tuple[SkippedFile, ...]
    duration_ms: float


def is_post_file(path: Path) -> bool:
    """Whether ``path`` names a post payload (by extension)."""
    return path.suffix == POST_SUFFIX


def load_store(directory: Path) -> LoadResult:
    """Load every post in ``directory`` into a fresh snapshot.

    Entries are processed in file-name order, so collision resolution and
    timestamp ties are deterministic for a given set of files.

    Raises:
        StoreError: If the directory cannot be enumerated. Callers must keep
            their previous snapshot in that case.

    """
    t0 = time.perf_counter()
    entries = _list_entries(directory)

    index: dict[str, Post] = {}
    skipped: list[SkippedFile] = []

    for entry in entries:
        try:
            raw = entry.read_bytes()
        except OSError as exc:
            skipped.append(SkippedFile(entry.name, f"unreadable: {exc.strerror or exc}"))
            continue
        try:
            post = parse_post(raw, file_name=entry.name)
        except PostParseError as exc:
            skipped.append(SkippedFile(entry.name, str(exc)))
            continue

        post = _resolve_collision(post, index)
        index[post.slug] = post

    ordered = _order(index.values())
    snapshot = Snapshot(
        posts=ordered,
        index=MappingProxyType(index),
        loaded_at_ns=time.monotonic_ns(),
    )
    return LoadResult(
        snapshot=snapshot,
        skipped=tuple(skipped),
        duration_ms=(time.perf_counter() - t0) * 1000,
    )


def _list_entries(directory: Path) -> list[Path]:
    """Return the post files in ``directory`` sorted by name."""
    try:
        children = list(directory.iterdir())
    except OSError as exc:
        msg = f"Cannot read the posts directory {directory}: {exc.strerror or exc}"
        raise StoreError(msg) from exc

    entries: list[Path] = []
    for child in children:
        if not is_post_file(child):
            continue
        try:
            if not child.is_file():
                continue
        except OSError:
            continue
        entries.append(child)
    entries.sort(key=lambda p: p.name)
    return entries


def _resolve_collision(post: Post, index: Mapping[str, Post]) -> Post:
    """Append the collision marker to the title until the slug is free."""
    while post.slug in index:
        post = post.with_title(post.title + COLLISION_MARKER)
    return post


def _order(posts: Iterable[Post]) -> tuple[Post, ...]:
    """Newest first; equal ``created`` values fall back to file-name order."""
    by_name = sorted(posts, key=lambda p: p.file_name)
    return tuple(sorted(by_name, key=lambda p: p.created, reverse=True))
