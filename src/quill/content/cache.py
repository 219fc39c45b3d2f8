"""Post cache — the current snapshot behind a single swappable reference.

Thread Safety:
    Readers take the current ``Snapshot`` reference and work with it; a
    snapshot is immutable, so a reader iterating it can never observe a
    concurrent publish. ``publish()`` swaps the reference under a
    ``threading.Lock`` that is held only for the assignment, never during a
    load.

"""

from __future__ import annotations

import threading

from quill._types import Slug
from quill.content.loader import Snapshot
from quill.content.post import Post


class PostCache:
    """Holds the published post snapshot.

    Args:
        recent_count: Default size of ``recent_posts()``.
        snapshot: Initial snapshot (empty if omitted).

    """

    __slots__ = ("_lock", "_recent_count", "_snapshot", "_version")

    def __init__(self, recent_count: int = 5, snapshot: Snapshot | None = None) -> None:
        self._recent_count = recent_count
        self._snapshot = snapshot if snapshot is not None else Snapshot()
        self._version = 0
        self._lock = threading.Lock()

    @property
    def version(self) -> int:
        """Number of snapshots published so far."""
        return self._version

    def read(self) -> Snapshot:
        """Return the current snapshot. Never waits on a load."""
        return self._snapshot

    def publish(self, snapshot: Snapshot) -> None:
        """Atomically replace the visible snapshot."""
        with self._lock:
            self._snapshot = snapshot
            self._version += 1

    # ----- convenience reads -----

    def all_posts(self) -> tuple[Post, ...]:
        """Every post, most recent first."""
        return self.read().posts

    def recent_posts(self, n: int | None = None) -> tuple[Post, ...]:
        """The ``n`` most recent posts (defaults to the configured count)."""
        return self.read().recent(self._recent_count if n is None else n)

    def get_post(self, slug: Slug) -> Post | None:
        """Look a post up by slug. Returns None when not found."""
        return self.read().get(slug)

    def __len__(self) -> int:
        return len(self.read())
