"""Quill CLI — quill serve / quill new / quill list.

Entry point for the ``quill`` command-line interface.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the quill CLI."""
    parser = argparse.ArgumentParser(
        prog="quill",
        description="Serve a directory of JSON posts, reloading as they change.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # quill serve
    serve_parser = subparsers.add_parser("serve", help="Run the content server")
    serve_parser.add_argument("root", nargs="?", default=".", help="Site root directory")
    serve_parser.add_argument("--host", default=None, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port")
    serve_parser.add_argument(
        "--debug", action="store_true", default=None, help="Enable debug mode",
    )

    # quill new
    new_parser = subparsers.add_parser("new", help="Write a new post")
    new_parser.add_argument("title", help="Post title")
    new_parser.add_argument("root", nargs="?", default=".", help="Site root directory")
    new_parser.add_argument("--summary", default="", help="Short summary")
    new_parser.add_argument("--body", default="", help="Post body (HTML)")

    # quill list
    list_parser = subparsers.add_parser("list", help="List the posts that would be served")
    list_parser.add_argument("root", nargs="?", default=".", help="Site root directory")

    return parser


def _get_version() -> str:
    """Get the package version."""
    from quill import __version__

    return __version__


def _new_post(root: str, title: str, summary: str, body: str) -> None:
    from quill.config_loader import load_config
    from quill.content.post import Post
    from quill.content.writer import save_post

    config = load_config(Path(root))
    path = save_post(config.posts_path, Post(title=title, summary=summary, body=body))
    print(f"  Wrote {path}", file=sys.stderr)


def _list_posts(root: str) -> None:
    from quill.config_loader import load_config
    from quill.content.loader import load_store

    config = load_config(Path(root))
    result = load_store(config.posts_path)
    for skip in result.skipped:
        print(f"  Skipped {skip.file_name}: {skip.reason}", file=sys.stderr)
    for post in result.snapshot:
        print(f"{post.created:%Y-%m-%d %H:%M}  {post.slug}  ({post.file_name})")


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    from quill._errors import QuillError

    try:
        if args.command == "serve":
            from quill.app import serve

            serve(root=args.root, host=args.host, port=args.port, debug=args.debug)
        elif args.command == "new":
            _new_post(args.root, args.title, args.summary, args.body)
        elif args.command == "list":
            _list_posts(args.root)
    except QuillError as exc:
        print(f"  Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
