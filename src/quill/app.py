"""Quill application — the post cache served through Chirp.

``serve()`` is the primary entry point. It builds a ``ContentStore`` for the
posts directory, registers the blog routes on a Chirp app, and hooks the
store's start/stop into the app lifecycle so the watcher task lives inside
the server's event loop.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import TYPE_CHECKING

from quill._errors import ServeError
from quill.config import QuillConfig
from quill.config_loader import load_config
from quill.content.store import ContentStore
from quill.observability import EventCollector, EventLog

if TYPE_CHECKING:
    from chirp import App

    from quill.content.router import PostRouter


def _create_chirp_app(config: QuillConfig) -> App:
    """Create a Chirp App rendering from the resolved theme template dir."""
    from chirp import App, AppConfig

    from quill.theme import get_template_dir

    app_config = AppConfig(
        template_dir=get_template_dir(config),
        debug=config.debug,
        host=config.host,
        port=config.port,
    )
    return App(config=app_config)


def _wire_post_routes(
    app: App, store: ContentStore, config: QuillConfig
) -> PostRouter:
    """Register the blog routes and the stats endpoint.

    Raises:
        ServeError: If route registration fails.

    """
    from quill.content.router import PostRouter

    try:
        router = PostRouter(app, store.cache, config)
        router.register_routes()
        router.register_stats_endpoint(store.collector)
    except Exception as exc:
        msg = f"Failed to register post routes: {exc}"
        raise ServeError(msg) from exc
    return router


def _wire_throttle(app: App, config: QuillConfig) -> None:
    """Add the request throttle when ``throttle_max`` is set."""
    if config.throttle_max <= 0:
        return

    from quill.throttle import RateLimiter, throttle_middleware

    limiter = RateLimiter(config.throttle_max, config.throttle_window)
    app.add_middleware(throttle_middleware(limiter))


def _mount_static_files(app: App, config: QuillConfig) -> None:
    """Mount static file middleware under ``/assets`` with theme fallback."""
    from chirp.middleware import StaticFiles

    from quill.theme import get_asset_dirs

    for asset_dir in get_asset_dirs(config):
        if asset_dir.is_dir():
            app.add_middleware(StaticFiles(directory=asset_dir, prefix="/assets"))


def _wire_store_lifecycle(app: App, store: ContentStore) -> None:
    """Start the content store on app startup and stop it on shutdown.

    Startup performs the initial synchronous load before the server accepts
    requests; a watcher or directory failure aborts startup.

    """

    @app.on_startup
    async def _start_store() -> None:
        await store.start()

    @app.on_shutdown
    async def _stop_store() -> None:
        await store.stop()


def create_app(config: QuillConfig, store: ContentStore | None = None) -> tuple[App, ContentStore]:
    """Build the Chirp app and content store for ``config``.

    Returns the app and the store (the one passed in, or a new one).

    """
    if store is None:
        store = ContentStore.from_config(config, EventCollector(EventLog()))

    app = _create_chirp_app(config)
    _wire_throttle(app, config)
    _wire_post_routes(app, store, config)
    _mount_static_files(app, config)
    _wire_store_lifecycle(app, store)
    return app, store


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def serve(root: str | Path = ".", **kwargs: object) -> None:
    """Serve the posts under ``root`` until interrupted.

    Args:
        root: Path to the site root directory.
        **kwargs: Override QuillConfig fields.

    """
    from quill.banner import print_banner

    config = load_config(Path(root), **kwargs)
    t0 = time.perf_counter()

    app, store = create_app(config)

    # Load before the banner so it can report the post count; the startup
    # hook then only starts watching.
    post_count = len(store.load_now(trigger="startup").snapshot)

    load_ms = (time.perf_counter() - t0) * 1000
    print_banner(config, post_count, load_ms=load_ms)

    app.run(host=config.host, port=config.port)
