"""Render pipeline: shell + bundle in, crawlable HTML out.

For one logical page request:

1. Load the HTML shell (``dist/index.html`` or the inline template).
2. Resolve the bootstrap script (prebuilt bundle or bundler build).
3. Open a fresh synthetic document for the path, shims pre-attached.
4. Append the bootstrap to the body and let it run.
5. Wait for content-loaded readiness, bounded by ``render_timeout``.
6. Remove the bootstrap node, find the first script the app left behind,
   and swap it for a deferred loader when it has a ``src``.
7. Serialize.

Without a bundle the shell is returned untouched.
"""

import json
import logging
from pathlib import Path

import anyio

from prerender.bundler import (
    AssetBundleSource,
    BootstrapScript,
    BundleSource,
    EntryBundleSource,
    EsbuildBundler,
)
from prerender.config import INLINE_SHELL, RenderConfig
from prerender.document import DocumentFactory, SyntheticDocument
from prerender.errors import BundleError, PrerenderError, RenderTimeoutError

logger = logging.getLogger("prerender.render")


def loader_script(src: str) -> str:
    """Deferred client loader for the application script at *src*.

    Once the real browser has loaded the page, the server-rendered body is
    cleared and the application is started again as a module, exactly as a
    client-only load would.
    """
    # "</" must not appear literally inside a <script> element.
    quoted = json.dumps(src).replace("</", "<\\/")
    return f"""
window.addEventListener("DOMContentLoaded", function () {{
  var appScript = document.createElement("script");
  appScript.type = "module";
  appScript.src = {quoted};
  document.body.innerHTML = "";
  document.head.appendChild(appScript);
}});
"""


class ShellSource:
    """Reads the base HTML document a render starts from."""

    __slots__ = ("_path",)

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path) if path is not None else None

    def load(self) -> str:
        if self._path is None:
            return INLINE_SHELL
        try:
            return self._path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise PrerenderError(f"Shell file not found: {self._path}") from exc


class RenderPipeline:
    """Produces final HTML for a page path.

    Each ``render()`` call owns its synthetic document from open to close;
    concurrent renders share nothing but the read-only inputs.
    """

    __slots__ = (
        "_bootstrap_type",
        "_bundles",
        "_documents",
        "_fallback_to_shell",
        "_settle_ms",
        "_shell",
        "_timeout",
    )

    def __init__(
        self,
        *,
        documents: DocumentFactory,
        bundles: BundleSource,
        shell: ShellSource,
        render_timeout: float = 30.0,
        settle_ms: int = 0,
        bootstrap_type: str = "module",
        fallback_to_shell: bool = False,
    ) -> None:
        self._documents = documents
        self._bundles = bundles
        self._shell = shell
        self._timeout = render_timeout
        self._settle_ms = settle_ms
        self._bootstrap_type = bootstrap_type
        self._fallback_to_shell = fallback_to_shell

    @classmethod
    def from_config(cls, config: RenderConfig, documents: DocumentFactory) -> "RenderPipeline":
        """Wire the shell and bundle sources for *config*'s deployment mode."""
        bundles: BundleSource
        if config.entry is not None:
            shell = ShellSource(config.shell_path)
            bundles = EntryBundleSource(
                EsbuildBundler(config.bundler_binary),
                config.entry,
                cache=config.cache_bundle,
            )
        else:
            shell = ShellSource(config.shell_path or config.dist_path / "index.html")
            bundles = AssetBundleSource(config.assets_path, config.bundle_pattern)

        return cls(
            documents=documents,
            bundles=bundles,
            shell=shell,
            render_timeout=config.render_timeout,
            settle_ms=config.settle_ms,
            bootstrap_type=config.bootstrap_type,
            fallback_to_shell=config.fallback_to_shell,
        )

    async def render(self, path: str = "/") -> str:
        shell = self._shell.load()

        try:
            bootstrap = await self._bundles.load()
        except BundleError:
            if not self._fallback_to_shell:
                raise
            logger.exception("Bundle failed; serving static shell for %s", path)
            return shell

        if bootstrap is None:
            logger.info("No bundle available; serving static shell for %s", path)
            return shell

        try:
            with anyio.fail_after(self._timeout):
                async with self._documents.open(path, shell) as document:
                    await self._execute(document, bootstrap)
                    return await self._finalize(document)
        except TimeoutError as exc:
            raise RenderTimeoutError(path, self._timeout) from exc

    async def _execute(self, document: SyntheticDocument, bootstrap: BootstrapScript) -> None:
        logger.debug("Running bootstrap from %s for %s", bootstrap.origin, document.path)
        error = await document.run_bootstrap(bootstrap, self._bootstrap_type)
        if error is not None:
            logger.warning("Bootstrap raised while rendering %s: %s", document.path, error)
        await document.wait_until_ready(self._settle_ms)

    async def _finalize(self, document: SyntheticDocument) -> str:
        src = await document.detach_bootstrap()
        if src:
            logger.debug("App script found: %s", src)
            await document.replace_app_script(loader_script(src))
        return await document.serialize()
