"""Post router — serves the post cache as Chirp routes.

Every handler reads from the ``PostCache`` at request time, so a reload
published by the content store is visible on the next request without any
route re-registration.

Routes::

    GET /               home page, most recent posts
    GET /posts          every post, newest first
    GET /posts/{slug}   one post (unknown slugs redirect to /notfound)

Post links are ``quote_plus``-escaped slugs. The server hands handlers the
decoded path, so a slug is looked up as routed; only a parameter that still
carries percent escapes is decoded, once, and never with ``+`` as a space.
    GET /about          about page
    GET /notfound       not-found page (404)
    GET /__quill/stats  event-log statistics (JSON)
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any
from urllib.parse import unquote

if TYPE_CHECKING:
    from chirp import App, Request

    from quill.config import QuillConfig
    from quill.content.cache import PostCache
    from quill.content.post import Post
    from quill.observability.collector import EventCollector


NOT_FOUND_PATH = "/notfound"
STATS_ENDPOINT = "/__quill/stats"


class PostRouter:
    """Registers the blog routes on a Chirp app.

    Args:
        app: Chirp App to register routes on (must not yet be frozen).
        cache: Cache the handlers read posts from.
        config: Site configuration (title, description).

    """

    def __init__(self, app: App, cache: PostCache, config: QuillConfig) -> None:
        self._app = app
        self._cache = cache
        self._config = config
        self._route_count = 0

    @property
    def route_count(self) -> int:
        """Number of routes registered so far."""
        return self._route_count

    def register_routes(self) -> None:
        """Register the page routes. Must be called before the app is frozen."""
        self._add("/", "quill:home", self._make_home_handler())
        self._add("/posts", "quill:posts", self._make_listing_handler("posts.html"))
        self._add("/posts/{slug:path}", "quill:post", self._make_post_handler())
        self._add("/about", "quill:about", self._make_listing_handler("about.html"))
        self._add(NOT_FOUND_PATH, "quill:notfound", self._make_not_found_handler())

    def register_stats_endpoint(self, collector: EventCollector) -> None:
        """Register the ``/__quill/stats`` JSON endpoint."""

        async def stats_handler(request: Request) -> Any:
            from chirp.http.response import Response

            snapshot = self._cache.read()
            payload = json.dumps(
                {
                    "posts": len(snapshot),
                    "snapshot_version": self._cache.version,
                    "event_log": collector.log.stats(),
                },
                indent=2,
            )
            return Response(body=payload, status=200, content_type="application/json")

        stats_handler.__name__ = "quill_stats"
        self._add(STATS_ENDPOINT, "quill:stats", stats_handler)

    def page_context(self, **extra: Any) -> dict[str, Any]:
        """Base template context shared by every page."""
        context: dict[str, Any] = {
            "title": self._config.title,
            "description": self._config.description,
            "posts": (),
            "post": None,
        }
        context.update(extra)
        return context

    def _add(self, path: str, name: str, handler: Any) -> None:
        self._app.route(path, name=name)(handler)
        self._route_count += 1

    def _make_home_handler(self) -> Any:
        cache = self._cache

        async def home_handler(request: Request) -> Any:
            from chirp import Template

            return Template("home.html", **self.page_context(posts=cache.recent_posts()))

        return home_handler

    def _make_listing_handler(self, template_name: str) -> Any:
        cache = self._cache

        async def listing_handler(request: Request) -> Any:
            from chirp import Template

            return Template(template_name, **self.page_context(posts=cache.all_posts()))

        listing_handler.__name__ = f"listing_{template_name.removesuffix('.html')}"
        return listing_handler

    def _make_post_handler(self) -> Any:
        cache = self._cache

        async def post_handler(request: Request, slug: str) -> Any:
            from chirp import Redirect, Template

            post = find_post(cache, slug)
            if post is None:
                return Redirect(NOT_FOUND_PATH)
            return Template("post.html", **self.page_context(title=post.title, post=post))

        return post_handler

    def _make_not_found_handler(self) -> Any:
        async def not_found_handler(request: Request) -> Any:
            from chirp import Template

            return Template("notfound.html", **self.page_context(title="Page Not Found")), 404

        return not_found_handler


def find_post(cache: PostCache, slug: str) -> Post | None:
    """Look a routed slug up, decoding it only if it is still escaped."""
    post = cache.get_post(slug)
    if post is None and "%" in slug:
        post = cache.get_post(unquote(slug))
    return post
