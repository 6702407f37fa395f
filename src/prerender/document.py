"""Synthetic documents: one browser context and page per render.

A ``SyntheticDocument`` is the arena a single render runs in. It is
created with the compatibility shims already attached, used once, and
closed; nothing in it is pooled or reused, so one request's script side
effects can never leak into another's.

Network access from inside the document goes through ``ResourcePolicy``:
the shell is served for the page itself, known assets are served from the
``AssetStore``, and same-origin scripts are not fetched so the bundle only
ever executes once, as the injected bootstrap.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any, Protocol
from urllib.parse import unquote, urljoin, urlsplit

import anyio
from playwright.async_api import BrowserContext, ConsoleMessage, Page, Request, Route

from prerender.assets import AssetStore
from prerender.browser import BrowserManager
from prerender.bundler import BootstrapScript
from prerender.polyfills import DEFAULT_SHIMS, Shim, install_polyfills, read_report

logger = logging.getLogger("prerender.render")

# In-page handles. Kept on window so later evaluate() calls can reach the
# exact nodes instead of matching serialized markup.
_BOOTSTRAP_NODE = "__prerenderBootstrap"
_BOOTSTRAP_DONE = "__prerenderBootstrapDone"
_APP_SCRIPT_NODE = "__prerenderAppScript"

_RUN_BOOTSTRAP_JS = f"""([code, type]) => new Promise((resolve) => {{
  let settled = false;
  const finish = (error) => {{
    if (settled) return;
    settled = true;
    window.removeEventListener("error", onError);
    delete window.{_BOOTSTRAP_DONE};
    resolve(error || null);
  }};
  const onError = (event) => {{
    finish(String(event.message || (event.error && event.error.message) || "script error"));
  }};
  window.addEventListener("error", onError);
  window.{_BOOTSTRAP_DONE} = () => finish(null);
  const script = document.createElement("script");
  script.type = type;
  script.textContent = code + "\\n;window.{_BOOTSTRAP_DONE} && window.{_BOOTSTRAP_DONE}();";
  script.addEventListener("error", () => finish("bootstrap failed to load its imports"));
  window.{_BOOTSTRAP_NODE} = script;
  (document.body || document.documentElement).appendChild(script);
}})"""

_WAIT_READY_JS = """(settleMs) => new Promise((resolve) => {
  const settle = () => setTimeout(resolve, settleMs);
  if (document.readyState !== "loading") {
    settle();
  } else {
    document.addEventListener("DOMContentLoaded", settle, { once: true });
  }
})"""

_DETACH_BOOTSTRAP_JS = f"""() => {{
  const bootstrap = window.{_BOOTSTRAP_NODE};
  if (bootstrap && bootstrap.parentNode) bootstrap.parentNode.removeChild(bootstrap);
  delete window.{_BOOTSTRAP_NODE};
  const appScript = document.querySelector("script");
  if (!appScript) return null;
  window.{_APP_SCRIPT_NODE} = appScript;
  return appScript.getAttribute("src");
}}"""

_REPLACE_APP_SCRIPT_JS = f"""(loaderCode) => {{
  const appScript = window.{_APP_SCRIPT_NODE};
  delete window.{_APP_SCRIPT_NODE};
  if (!appScript || !appScript.parentNode) return false;
  const loader = document.createElement("script");
  loader.textContent = loaderCode;
  appScript.parentNode.replaceChild(loader, appScript);
  return true;
}}"""


class SyntheticDocument:
    """A single-use document/window pair backed by a Playwright page."""

    __slots__ = ("_context", "_page", "path")

    def __init__(self, context: BrowserContext, page: Page, path: str) -> None:
        self._context = context
        self._page = page
        self.path = path

    async def run_bootstrap(self, bootstrap: BootstrapScript, script_type: str) -> str | None:
        """Append the bootstrap script to the body and wait for it to finish.

        Returns the message of an uncaught error raised while it ran, or
        ``None``. Application errors do not fail the render.
        """
        return await self._page.evaluate(_RUN_BOOTSTRAP_JS, [bootstrap.code, script_type])

    async def wait_until_ready(self, settle_ms: int = 0) -> None:
        """Return once the document is past the loading state."""
        await self._page.evaluate(_WAIT_READY_JS, settle_ms)

    async def detach_bootstrap(self) -> str | None:
        """Remove the injected bootstrap node and find the app's first script.

        Returns that script's ``src`` attribute, or ``None`` when there is
        no script or it has no source.
        """
        return await self._page.evaluate(_DETACH_BOOTSTRAP_JS)

    async def replace_app_script(self, loader_code: str) -> bool:
        """Swap the script found by ``detach_bootstrap`` for a loader."""
        return await self._page.evaluate(_REPLACE_APP_SCRIPT_JS, loader_code)

    async def serialize(self) -> str:
        return await self._page.content()


class DocumentFactory(Protocol):
    def open(self, path: str, shell: str) -> AbstractAsyncContextManager[SyntheticDocument]: ...


class ResourcePolicy:
    """Decides how each request made inside a synthetic document is answered."""

    __slots__ = ("_assets", "_block_external", "_origin", "_shell")

    def __init__(
        self,
        *,
        base_url: str,
        shell: str,
        assets: AssetStore,
        block_external: bool = False,
    ) -> None:
        parts = urlsplit(base_url)
        self._origin = (parts.scheme, parts.netloc)
        self._shell = shell
        self._assets = assets
        self._block_external = block_external

    async def __call__(self, route: Route, request: Request) -> None:
        parts = urlsplit(request.url)

        if (parts.scheme, parts.netloc) != self._origin:
            if self._block_external:
                await route.abort()
            else:
                await route.continue_()
            return

        if request.is_navigation_request():
            await route.fulfill(
                status=200,
                content_type="text/html; charset=utf-8",
                body=self._shell,
            )
            return

        if request.resource_type == "script":
            logger.debug("Not fetching script %s during render", parts.path)
            await route.abort()
            return

        entry = self._assets.get(unquote(parts.path) or "/")
        if entry is None:
            await route.fulfill(
                status=404,
                content_type="text/plain; charset=utf-8",
                body="Not Found",
            )
            return

        await route.fulfill(status=200, content_type=entry.content_type, body=entry.data)


class BrowserDocuments:
    """``DocumentFactory`` that opens synthetic documents in headless Chromium."""

    __slots__ = ("_assets", "_base_url", "_block_external", "_manager", "_shims")

    def __init__(
        self,
        manager: BrowserManager,
        *,
        base_url: str,
        assets: AssetStore,
        block_external: bool = False,
        shims: tuple[Shim, ...] = DEFAULT_SHIMS,
    ) -> None:
        self._manager = manager
        self._base_url = base_url
        self._assets = assets
        self._block_external = block_external
        self._shims = shims

    @asynccontextmanager
    async def open(self, path: str, shell: str) -> AsyncIterator[SyntheticDocument]:
        browser = await self._manager.get()
        context = await browser.new_context(base_url=self._base_url, java_script_enabled=True)
        try:
            await install_polyfills(context, self._shims)
            await context.route(
                "**/*",
                ResourcePolicy(
                    base_url=self._base_url,
                    shell=shell,
                    assets=self._assets,
                    block_external=self._block_external,
                ),
            )
            page = await context.new_page()
            page.on("console", _log_console)
            page.on("pageerror", _log_page_error)
            await page.goto(urljoin(self._base_url, path), wait_until="domcontentloaded")
            (await read_report(page)).log()
            yield SyntheticDocument(context, page, path)
        finally:
            with anyio.CancelScope(shield=True):
                await context.close()


def _log_console(message: ConsoleMessage) -> None:
    logger.debug("console.%s: %s", message.type, message.text)


def _log_page_error(error: Any) -> None:
    logger.warning("Uncaught error in page: %s", error)
