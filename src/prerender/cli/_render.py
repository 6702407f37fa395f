"""``prerender render`` — render one page without starting a server."""

import argparse
import sys
from pathlib import Path

import anyio

from prerender._internal.logs import configure_logging
from prerender.app import PrerenderApp
from prerender.cli._config import config_from_args
from prerender.errors import PrerenderError


async def _render(app: PrerenderApp, path: str) -> str:
    async with app:
        return await app.render(path)


def render_once(args: argparse.Namespace) -> None:
    """Render ``args.path`` and write the HTML to stdout or ``args.output``.

    Unlike the server, failures are reported and exit non-zero.
    """
    config = config_from_args(args)
    configure_logging(config.log_level, config.log_format)

    try:
        html = anyio.run(_render, PrerenderApp(config), args.path)
    except PrerenderError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    if args.output:
        Path(args.output).write_text(html, encoding="utf-8")
    else:
        sys.stdout.write(html)
