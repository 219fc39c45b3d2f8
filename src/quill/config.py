"""Quill configuration.

QuillConfig is the central configuration object, frozen after creation.
"""

from dataclasses import dataclass, field
from pathlib import Path

from quill._errors import ConfigError


@dataclass(frozen=True, slots=True)
class QuillConfig:
    """Configuration for a Quill content server.

    Attributes:
        root: Path to the site root directory (contains posts/, templates/, etc.).
              Always resolved to an absolute path on construction.
        host: Bind address for the server.
        port: Bind port for the server.
        posts_dir: Directory containing the JSON post files.
        templates_dir: Directory containing user templates (optional).
        assets_dir: Directory containing static assets served under ``/assets``.
        title: Site title shown on listing pages.
        description: Site description passed to every template.
        recent_posts: Number of posts shown on the home page.
        reload_delay: Quiet window in seconds the cache waits after the last
            filesystem change before reloading the posts directory.
        throttle_max: Requests allowed per client per window (0 disables throttling).
        throttle_window: Throttle window length in seconds.
        debug: Run the web app in debug mode.

    """

    root: Path = field(default_factory=Path.cwd)
    host: str = "127.0.0.1"
    port: int = 3000
    posts_dir: str = "posts"
    templates_dir: str = "templates"
    assets_dir: str = "assets"
    title: str = "Quill"
    description: str = ""
    recent_posts: int = 5
    reload_delay: float = 0.010
    throttle_max: int = 0
    throttle_window: float = 1.0
    debug: bool = False

    def __post_init__(self) -> None:
        # watchfiles reports absolute paths, so keep root absolute for
        # Path.relative_to() comparisons.
        if not self.root.is_absolute():
            object.__setattr__(self, "root", self.root.resolve())
        if self.recent_posts < 1:
            msg = f"recent_posts must be at least 1, got {self.recent_posts}"
            raise ConfigError(msg)
        if self.reload_delay < 0:
            msg = f"reload_delay must not be negative, got {self.reload_delay}"
            raise ConfigError(msg)
        if self.throttle_max < 0 or self.throttle_window <= 0:
            msg = "throttle_max must be >= 0 and throttle_window > 0"
            raise ConfigError(msg)

    @property
    def posts_path(self) -> Path:
        """Absolute path to the posts directory."""
        return self.root / self.posts_dir

    @property
    def templates_path(self) -> Path:
        """Absolute path to the user templates directory."""
        return self.root / self.templates_dir

    @property
    def assets_path(self) -> Path:
        """Absolute path to the user assets directory."""
        return self.root / self.assets_dir
