"""Request dispatcher — maps a request path to a RenderResult.

Order of resolution:

1. Exact match in the asset store → 200 with the file's bytes.
2. Root or ``*.html`` → render pipeline → 200 HTML.
3. Anything else → 404 plain text.

Render failures never escape: they are logged and become a generic 500
with no internal detail in the body.
"""

import logging
import posixpath
from typing import Protocol
from urllib.parse import unquote

from prerender.assets import AssetStore
from prerender.errors import RenderTimeoutError
from prerender.http.result import RenderResult

logger = logging.getLogger("prerender.server")

NOT_FOUND_BODY = "Not Found"
RENDER_ERROR_BODY = "Internal error while rendering the page"


class Renderer(Protocol):
    async def render(self, path: str = "/") -> str: ...


def normalize_path(raw: str) -> str:
    """Percent-decode and normalize a request target to an absolute path.

    Query and fragment are dropped, dot segments and repeated slashes are
    collapsed, and ``..`` can never climb above the root. A trailing slash
    is kept, so ``/app.js/`` never names the file ``/app.js``.
    """
    path = raw.split("?", 1)[0].split("#", 1)[0]
    path = unquote(path)
    # normpath keeps a leading "//" pair on POSIX; the lstrip removes it.
    normalized = posixpath.normpath("/" + path.lstrip("/"))
    if path.endswith("/") and normalized != "/":
        normalized += "/"
    return normalized


def is_page_path(path: str) -> bool:
    """True for paths the render pipeline answers."""
    return path == "/" or path.lower().endswith(".html")


class Dispatcher:
    """Resolves paths against the asset store and the render pipeline."""

    __slots__ = ("_assets", "_renderer")

    def __init__(self, assets: AssetStore, renderer: Renderer) -> None:
        self._assets = assets
        self._renderer = renderer

    async def dispatch(self, raw_path: str) -> RenderResult:
        path = normalize_path(raw_path)
        logger.info("Request for %s", path)

        entry = self._assets.get(path)
        if entry is not None:
            return RenderResult(
                status_code=200,
                headers=(
                    ("Content-Type", entry.content_type),
                    ("Content-Length", str(len(entry.data))),
                ),
                body=entry.data,
            )

        if not is_page_path(path):
            return RenderResult.text(NOT_FOUND_BODY, status_code=404)

        try:
            html = await self._renderer.render(path)
        except RenderTimeoutError as exc:
            logger.error("render-timeout %s: %s", path, exc)
            return RenderResult.text(RENDER_ERROR_BODY, status_code=500)
        except Exception:
            logger.exception("Render failed for %s", path)
            return RenderResult.text(RENDER_ERROR_BODY, status_code=500)

        return RenderResult.html(html)
