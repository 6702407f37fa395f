"""PrerenderApp — the ASGI application and headless entry point.

Startup (ASGI lifespan, or ``async with app``) validates the config and
loads the asset store once; shutdown closes the headless browser. Between
the two, every request goes through the ``Dispatcher``.
"""

import logging

from prerender._internal.asgi import Receive, Scope, Send
from prerender.assets import AssetStore
from prerender.browser import BrowserManager
from prerender.config import RenderConfig
from prerender.dispatcher import Dispatcher
from prerender.document import BrowserDocuments, DocumentFactory
from prerender.http.result import RenderResult
from prerender.pipeline import RenderPipeline
from prerender.server.sender import send_result

logger = logging.getLogger("prerender.server")


class PrerenderApp:
    """Server-side renderer for a built single-page application.

    Usage::

        app = PrerenderApp(RenderConfig(dist_dir="dist", port=3000))
        app.run()

    Or headless::

        async with PrerenderApp(config) as app:
            html = await app.render("/")

    ``documents`` replaces the headless-browser document factory, which is
    how tests drive the pipeline without Chromium.
    """

    def __init__(
        self,
        config: RenderConfig | None = None,
        *,
        documents: DocumentFactory | None = None,
    ) -> None:
        self.config = config or RenderConfig()
        self._documents = documents
        self._browser: BrowserManager | None = None
        self._pipeline: RenderPipeline | None = None
        self._dispatcher: Dispatcher | None = None
        self.assets = AssetStore()

    # -- Lifecycle --

    @property
    def started(self) -> bool:
        return self._dispatcher is not None

    async def startup(self) -> None:
        """Validate config, load assets and wire the pipeline. Idempotent."""
        if self.started:
            return
        self.config.validate()
        self.assets = AssetStore.from_directory(self.config.dist_path)

        documents = self._documents
        if documents is None:
            self._browser = BrowserManager(args=self.config.browser_args)
            documents = BrowserDocuments(
                self._browser,
                base_url=self.config.base_url,
                assets=self.assets,
                block_external=self.config.block_external_requests,
            )

        self._pipeline = RenderPipeline.from_config(self.config, documents)
        self._dispatcher = Dispatcher(self.assets, self._pipeline)
        logger.info("Serving %s on %s", self.config.dist_path, self.config.base_url)

    async def shutdown(self) -> None:
        if self._browser is not None:
            await self._browser.aclose()
            self._browser = None
        self._pipeline = None
        self._dispatcher = None

    async def __aenter__(self) -> "PrerenderApp":
        await self.startup()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.shutdown()

    # -- Headless entry points --

    async def dispatch(self, path: str) -> RenderResult:
        """Resolve *path* to a RenderResult, as an HTTP GET would."""
        await self.startup()
        assert self._dispatcher is not None
        return await self._dispatcher.dispatch(path)

    async def render(self, path: str = "/") -> str:
        """Render *path* to HTML. Errors propagate, unlike ``dispatch``."""
        await self.startup()
        assert self._pipeline is not None
        return await self._pipeline.render(path)

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Serve over HTTP with pounce until interrupted."""
        from prerender.server.runner import run_server

        run_server(self, host or self.config.host, port or self.config.port)

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        if scope["type"] != "http":
            return

        method = scope["method"]
        if method not in ("GET", "HEAD"):
            result = RenderResult.text("Method Not Allowed", status_code=405).with_header(
                "Allow", "GET, HEAD"
            )
            await send_result(result, send)
            return

        raw_path = scope.get("raw_path")
        if raw_path:
            target = raw_path.decode("latin-1")
        else:
            # Servers may send an already-decoded path; re-encoding "%" keeps
            # normalize_path's single unquote from decoding it twice.
            target = scope["path"].replace("%", "%25")
        result = await self.dispatch(target)
        await send_result(result, send, head=method == "HEAD")

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol."""
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self.startup()
                except Exception as exc:
                    logger.exception("Startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                await self.shutdown()
                await send({"type": "lifespan.shutdown.complete"})
                return
