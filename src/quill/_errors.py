"""Quill error hierarchy.

All quill-specific errors inherit from QuillError for easy catching.
"""


class QuillError(Exception):
    """Base error for all quill operations."""


class ConfigError(QuillError):
    """Invalid or missing configuration."""


class ContentError(QuillError):
    """Error in post handling (parsing, serializing, writing)."""


class PostParseError(ContentError):
    """A single post payload could not be parsed."""


class StoreError(ContentError):
    """The posts directory could not be enumerated."""


class WatcherError(QuillError):
    """The posts directory could not be watched for changes."""


class ServeError(QuillError):
    """Error wiring the HTTP serving layer."""
