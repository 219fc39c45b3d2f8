"""Shared type definitions for quill."""

from collections.abc import Awaitable, Callable
from typing import Literal

# URL-safe lookup key derived from a post title
type Slug = str

# Filesystem change kinds reported by the watcher
type ChangeKind = Literal["created", "modified", "deleted"]

# What caused a store load
type LoadTrigger = Literal["startup", "watch", "manual"]

# Callback the debouncer fires once a burst has gone quiet
type ReloadCallback = Callable[[], Awaitable[object]]
