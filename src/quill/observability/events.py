"""Event model for store observability.

Defines event types for the watch -> debounce -> load -> publish cycle.

All events are frozen dataclasses with:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- Descriptive fields for the specific event type

Thread Safety:
    All events are frozen (immutable) and safe to share across threads.

"""

import time
from dataclasses import dataclass
from typing import Literal


# ---------------------------------------------------------------------------
# Watcher events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ChangeObserved:
    """The watcher reported a change to a post file.

    Attributes:
        path: Absolute path to the changed file.
        kind: Type of filesystem change.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    kind: Literal["created", "modified", "deleted"]
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Loader events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class StoreLoaded:
    """A load finished and its snapshot was published.

    Attributes:
        directory: Posts directory that was loaded.
        posts: Number of posts in the new snapshot.
        skipped: Number of post files that could not be parsed.
        load_ms: Time spent loading in milliseconds.
        trigger: What caused the load.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    directory: str
    posts: int
    skipped: int
    load_ms: float
    trigger: Literal["startup", "watch", "manual"]
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class PostSkipped:
    """A post file was left out of a snapshot.

    Attributes:
        path: Path of the skipped file.
        reason: Why it could not be loaded.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    reason: str
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ReloadFailed:
    """A load failed; the previous snapshot stayed published.

    Attributes:
        directory: Posts directory that could not be read.
        error: Error message.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    directory: str
    error: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

type StoreEvent = ChangeObserved | StoreLoaded | PostSkipped | ReloadFailed


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
