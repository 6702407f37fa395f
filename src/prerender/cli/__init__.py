"""Prerender CLI — serve a built SPA or render a single page.

Entry point registered as ``prerender`` in ``pyproject.toml``::

    [project.scripts]
    prerender = "prerender.cli:main"
"""

import argparse
import sys


def _add_render_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("dist", help="Build output directory (contains index.html and assets/)")
    parser.add_argument("--host", default=None, help="Origin host of the rendered page")
    parser.add_argument("--port", type=int, default=None, help="Origin and bind port")
    parser.add_argument(
        "--entry",
        default=None,
        help="Bundle this source file with esbuild instead of using dist/assets/index-*.js",
    )
    parser.add_argument("--shell", default=None, help="HTML shell file (entry mode only)")
    parser.add_argument(
        "--no-cache-bundle",
        action="store_true",
        help="Rebuild the entry bundle on every render",
    )
    parser.add_argument("--timeout", type=float, default=None, help="Render timeout in seconds")
    parser.add_argument("--settle", type=int, default=None, help="Extra wait after readiness (ms)")
    parser.add_argument(
        "--block-external",
        action="store_true",
        help="Abort cross-origin requests made while rendering",
    )
    parser.add_argument("--log-level", default=None, help="debug, info, warning, error")
    parser.add_argument("--log-format", choices=("text", "json"), default=None)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``prerender`` command."""
    parser = argparse.ArgumentParser(
        prog="prerender",
        description="Prerender — server-side rendering for single-page applications.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- prerender serve --------------------------------------------------
    serve_parser = subparsers.add_parser("serve", help="Serve assets and rendered pages over HTTP")
    _add_render_options(serve_parser)

    # -- prerender render -------------------------------------------------
    render_parser = subparsers.add_parser("render", help="Render one page and print the HTML")
    _add_render_options(render_parser)
    render_parser.add_argument("path", nargs="?", default="/", help="Page path (default: /)")
    render_parser.add_argument("-o", "--output", default=None, help="Write HTML to a file")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "serve":
        from prerender.cli._serve import serve

        serve(args)
    elif args.command == "render":
        from prerender.cli._render import render_once

        render_once(args)
