"""Post writer — saves a post as a new JSON file in the posts directory.

Files are named after the post's creation time (``<unix seconds>.json``).
The write goes to a temporary file first and is renamed into place, so the
watcher never sees a half-written payload under a ``.json`` name.
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path

from quill._errors import ContentError
from quill.content.loader import POST_SUFFIX
from quill.content.post import ZERO_TIME, Post


def post_file_name(post: Post) -> str:
    """File name a post is saved under."""
    return f"{int(post.created.timestamp())}{POST_SUFFIX}"


def save_post(directory: Path, post: Post, *, now: datetime | None = None) -> Path:
    """Write ``post`` to ``directory`` and return the path written.

    ``created`` is stamped when the post has never been saved; ``updated``
    is always set to ``now``. Files are named by creation second, so a new
    post is refused when another post already owns that second. Re-saving a
    loaded post replaces its own file.

    Raises:
        ContentError: If the post serializes to nothing, collides with an
            existing post file, or cannot be written.

    """
    moment = now if now is not None else datetime.now(UTC)
    is_new = post.created == ZERO_TIME
    if is_new:
        post = replace(post, created=moment)
    post = replace(post, updated=moment)

    target = directory / post_file_name(post)
    if is_new and target.exists():
        msg = f"A post created in the same second already exists: {target}"
        raise ContentError(msg)
    post = replace(post, file_name=target.name)

    data = json.dumps(post.to_payload(), ensure_ascii=False).encode("utf-8")
    if not data:
        msg = "The post contains no content to write to disk"
        raise ContentError(msg)

    # Temp name without the post suffix so the loader ignores it.
    try:
        fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=".quill-", suffix=".tmp")
    except OSError as exc:
        msg = f"Unable to create post in {directory}: {exc}"
        raise ContentError(msg) from exc
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.replace(tmp_name, target)
    except OSError as exc:
        Path(tmp_name).unlink(missing_ok=True)
        msg = f"Unable to write post {target}: {exc}"
        raise ContentError(msg) from exc

    return target
