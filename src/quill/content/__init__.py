"""Content layer — JSON post files as a live, query-ready cache.

Handles post parsing, directory loading, file watching, reload debouncing,
and the snapshot cache readers query.
"""

from quill.content.cache import PostCache
from quill.content.debounce import ReloadDebouncer
from quill.content.loader import LoadResult, SkippedFile, Snapshot, load_store
from quill.content.post import Post, parse_post
from quill.content.store import ContentStore
from quill.content.watcher import ChangeEvent, ContentWatcher
from quill.content.writer import save_post

__all__ = [
    "ChangeEvent",
    "ContentStore",
    "ContentWatcher",
    "LoadResult",
    "Post",
    "PostCache",
    "ReloadDebouncer",
    "SkippedFile",
    "Snapshot",
    "load_store",
    "parse_post",
    "save_post",
]
