"""Quill — a small content server backed by a directory of JSON posts.

Posts are plain JSON files. Quill loads them into an immutable snapshot,
watches the directory, and republishes a fresh snapshot a short quiet window
after the last edit, so readers never wait on disk I/O and never see a
half-rebuilt collection.

Quick start::

    import quill

    quill.serve("my-site/")

Embedding the cache without the web layer::

    from quill import ContentStore

    async with ContentStore(Path("my-site/posts")) as store:
        for post in store.cache.recent_posts(5):
            print(post.title)

"""

# PEP 703: Declare this module as free-threading safe
_Py_mod_gil = 0

__version__ = "0.1.0"
__all__ = [
    "ContentStore",
    "Post",
    "PostCache",
    "QuillConfig",
    "__version__",
    "serve",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import quill`` fast while providing a clean top-level API.
    """
    if name == "QuillConfig":
        from quill.config import QuillConfig

        return QuillConfig

    if name == "ContentStore":
        from quill.content.store import ContentStore

        return ContentStore

    if name == "Post":
        from quill.content.post import Post

        return Post

    if name == "PostCache":
        from quill.content.cache import PostCache

        return PostCache

    if name == "serve":
        from quill.app import serve

        return serve

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
