"""Startup banner — status output for ``quill serve``.

Prints a short banner with the post count, load timing, watched directory
and URL.  Detects ``NO_COLOR`` / ``TERM`` for safe fallback.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from quill.config import QuillConfig


# ---------------------------------------------------------------------------
# ANSI helpers: respect NO_COLOR (https://no-color.org)
# ---------------------------------------------------------------------------

def _supports_color() -> bool:
    """Return True if the terminal supports ANSI colors."""
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("TERM") == "dumb":
        return False
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


_COLOR = _supports_color()

_RESET = "\033[0m" if _COLOR else ""
_BOLD = "\033[1m" if _COLOR else ""
_DIM = "\033[2m" if _COLOR else ""
_CYAN = "\033[36m" if _COLOR else ""
_GREEN = "\033[32m" if _COLOR else ""
_YELLOW = "\033[33m" if _COLOR else ""


def _clickable_url(url: str) -> str:
    """Wrap *url* in an OSC 8 hyperlink escape if the terminal supports it."""
    if not _COLOR:
        return url
    return f"\033]8;;{url}\033\\{_BOLD}{_CYAN}{url}{_RESET}\033]8;;\033\\"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def print_banner(
    config: QuillConfig,
    post_count: int,
    *,
    load_ms: float = 0.0,
    warnings: list[str] | None = None,
) -> None:
    """Print the Quill startup banner to stderr.

    Args:
        config: Resolved QuillConfig.
        post_count: Number of posts in the initial snapshot.
        load_ms: Time spent on the initial load in milliseconds.
        warnings: Optional list of warning messages to display.

    """
    from quill import __version__

    header = f"  {_BOLD}Quill{_RESET} {_DIM}v{__version__}{_RESET}  {_GREEN}[serve]{_RESET}"

    lines: list[str] = [
        "",
        header,
        f"  {_DIM}{'─' * 43}{_RESET}",
    ]

    posts_label = "post" if post_count == 1 else "posts"
    timing = f" {_DIM}in {load_ms:.0f}ms{_RESET}" if load_ms > 0 else ""
    lines.append(f"  {_DIM}├─{_RESET} {post_count} {posts_label} loaded{timing}")
    lines.append(f"  {_DIM}├─{_RESET} posts: {_DIM}{config.posts_path}{_RESET}")
    lines.append(
        f"  {_DIM}├─{_RESET} reload after {config.reload_delay * 1000:.0f}ms of quiet"
    )
    if config.throttle_max > 0:
        lines.append(
            f"  {_DIM}└─{_RESET} throttle: {config.throttle_max} req / "
            f"{config.throttle_window:g}s per client"
        )
    else:
        lines.append(f"  {_DIM}└─{_RESET} throttle: off")

    url = f"http://{config.host}:{config.port}"
    lines.append("")
    lines.append(f"  {_clickable_url(url)}")
    lines.append("")
    lines.append(f"  {_DIM}Watching for changes...{_RESET}")

    if warnings:
        lines.append("")
        lines.extend(f"  {_YELLOW}!{_RESET} {w}" for w in warnings)

    lines.append("")

    print("\n".join(lines), file=sys.stderr)
