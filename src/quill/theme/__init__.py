"""Quill theme loader — user templates and assets before the bundled theme.

A site can ship its own ``templates/`` directory; when it does, it replaces
the bundled default theme wholesale. Static assets fall back file by file:
user assets are mounted first, bundled assets second.

Thread Safety:
    All returned values are read-only paths.

"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from quill.config import QuillConfig

# Templates every theme must provide.
REQUIRED_TEMPLATES: tuple[str, ...] = (
    "home.html",
    "posts.html",
    "post.html",
    "about.html",
    "notfound.html",
)


def _bundled_theme_path() -> Path:
    """Return the absolute path to the bundled default theme."""
    return Path(__file__).parent / "default"


def bundled_template_dir() -> Path:
    return _bundled_theme_path() / "templates"


def get_template_dir(config: QuillConfig) -> Path:
    """Return the template directory to render from.

    The user directory wins only when it provides every required template,
    so a half-finished theme never breaks a page.

    """
    user_dir = config.templates_path
    if user_dir.is_dir() and all((user_dir / name).is_file() for name in REQUIRED_TEMPLATES):
        return user_dir
    return bundled_template_dir()


def get_asset_dirs(config: QuillConfig) -> list[Path]:
    """Return static asset directories in priority order.

    Returns:
        ``[user_assets_dir, bundled_default_assets]``

    """
    bundled = _bundled_theme_path() / "assets"
    user_dir = config.assets_path

    dirs: list[Path] = []
    if user_dir != bundled:
        dirs.append(user_dir)
    dirs.append(bundled)
    return dirs
