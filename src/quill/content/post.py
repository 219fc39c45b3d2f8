"""Post model — one stored piece of content.

A post is parsed from a single JSON file in the posts directory. The payload
format is shared with earlier Quill stores::

    {
      "Title": "Hello World",
      "Summary": "A first post",
      "Body": "<p>Hi</p>",
      "Created": "2013-11-02T10:04:05.123456789Z",
      "Updated": "2013-11-02T10:04:05.123456789Z"
    }

Keys are matched case-insensitively. ``FileName`` may appear in the payload
but is ignored on read; the loader always sets it from the actual file.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any
from urllib.parse import quote_plus

from quill._errors import PostParseError

# The zero time: what a missing timestamp decodes to.
ZERO_TIME = datetime(1, 1, 1, tzinfo=UTC)

_TEXT_FIELDS = ("title", "summary", "body")
_TIME_FIELDS = ("created", "updated")

# RFC 3339 with optional fractional seconds of any precision.
_RFC3339 = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<frac>\d+))?"
    r"(?P<tz>[Zz]|[+-]\d{2}:?\d{2})?$"
)


@dataclass(frozen=True, slots=True)
class Post:
    """A single post.

    Attributes:
        file_name: Name of the file the post was loaded from ("" if unsaved).
        created: When the post was first saved.
        updated: When the post was last written.
        title: Post title; the slug is derived from it.
        summary: Short teaser shown on listing pages.
        body: Markup inserted verbatim into rendered pages.

    """

    title: str
    summary: str = ""
    body: str = ""
    created: datetime = ZERO_TIME
    updated: datetime = ZERO_TIME
    file_name: str = ""

    @property
    def slug(self) -> str:
        """Lookup key and public address: lowercase title, spaces become ``-``."""
        return self.title.replace(" ", "-").lower()

    @property
    def safe_url(self) -> str:
        """The slug escaped for use as a URL path segment."""
        return quote_plus(self.slug)

    @property
    def href(self) -> str:
        """Site-relative URL of the post page."""
        return f"/posts/{self.safe_url}"

    def with_title(self, title: str) -> Post:
        """Return a copy with a different title (and therefore slug)."""
        return replace(self, title=title)

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the on-disk payload mapping."""
        return {
            "FileName": self.file_name,
            "Created": format_timestamp(self.created),
            "Updated": format_timestamp(self.updated),
            "Title": self.title,
            "Summary": self.summary,
            "Body": self.body,
        }


def parse_post(raw: bytes | str, file_name: str = "") -> Post:
    """Parse a JSON payload into a Post.

    Raises:
        PostParseError: If the payload is not valid JSON, not an object, has a
            non-string text field, or carries an unparseable timestamp.

    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        msg = f"invalid JSON: {exc}"
        raise PostParseError(msg) from exc
    if not isinstance(data, dict):
        msg = f"expected a JSON object, got {type(data).__name__}"
        raise PostParseError(msg)

    fields = {str(k).lower(): v for k, v in data.items()}
    values: dict[str, Any] = {}

    for name in _TEXT_FIELDS:
        value = fields.get(name)
        if value is None:
            value = ""
        if not isinstance(value, str):
            msg = f"field {name!r} must be a string, got {type(value).__name__}"
            raise PostParseError(msg)
        values[name] = value

    for name in _TIME_FIELDS:
        value = fields.get(name)
        values[name] = ZERO_TIME if value is None else parse_timestamp(value, name)

    return Post(file_name=file_name, **values)


def parse_timestamp(value: object, name: str = "timestamp") -> datetime:
    """Parse an RFC 3339 timestamp into an aware datetime.

    Fractional seconds beyond microsecond precision are truncated. Naive
    timestamps are taken as UTC.

    """
    if not isinstance(value, str):
        msg = f"field {name!r} must be an RFC 3339 string, got {type(value).__name__}"
        raise PostParseError(msg)

    match = _RFC3339.match(value.strip())
    if match is None:
        msg = f"field {name!r} is not an RFC 3339 timestamp: {value!r}"
        raise PostParseError(msg)

    text = match["base"].replace("t", "T").replace(" ", "T")
    if match["frac"]:
        text += "." + match["frac"][:6].ljust(6, "0")
    tz = match["tz"]
    if tz is None or tz in ("Z", "z"):
        text += "+00:00"
    elif ":" not in tz:
        text += f"{tz[:3]}:{tz[3:]}"
    else:
        text += tz

    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        msg = f"field {name!r} is out of range: {value!r}"
        raise PostParseError(msg) from exc


def format_timestamp(moment: datetime) -> str:
    """Format an aware datetime as RFC 3339 (``Z`` for UTC)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    text = moment.isoformat()
    if text.endswith("+00:00"):
        text = text[: -len("+00:00")] + "Z"
    return text
