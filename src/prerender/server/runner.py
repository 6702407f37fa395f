"""Serve a PrerenderApp with the pounce ASGI server.

Single worker: the headless browser belongs to one event loop, and
renders interleave on that loop rather than running in parallel.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from prerender.errors import ConfigurationError

if TYPE_CHECKING:
    from prerender.app import PrerenderApp


def run_server(app: PrerenderApp, host: str, port: int) -> None:
    """Start a pounce server bound to *host*:*port* and block.

    Pounce's ``run()`` takes an import string, but we hold a live app
    object, so ``pounce.Server`` is used directly with the ASGI callable.
    """
    try:
        from pounce.config import ServerConfig
        from pounce.server import Server
    except ImportError:
        msg = (
            "prerender serve requires the 'pounce' ASGI server. "
            "Install with: pip install spa-prerender[server]"
        )
        raise ConfigurationError(msg) from None

    config = ServerConfig(
        host=host,
        port=port,
        workers=1,
        log_level=app.config.log_level,
        request_timeout=app.config.render_timeout + 5.0,
    )
    server = Server(config, app)
    server.run()
