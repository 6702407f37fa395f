"""``prerender serve`` — HTTP server for assets and rendered pages."""

import argparse
import sys

from prerender._internal.logs import configure_logging
from prerender.app import PrerenderApp
from prerender.cli._config import config_from_args
from prerender.errors import ConfigurationError


def serve(args: argparse.Namespace) -> None:
    config = config_from_args(args)
    configure_logging(config.log_level, config.log_format)

    try:
        config.validate()
        PrerenderApp(config).run()
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
