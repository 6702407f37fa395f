"""Headless Chromium lifecycle.

One browser process per server, launched lazily on the first render and
closed at shutdown. The browser is the only shared piece: every render
gets its own context (see ``prerender.document``).
"""

import logging

import anyio
from playwright.async_api import Browser, Playwright, async_playwright

logger = logging.getLogger("prerender.render")


class BrowserManager:
    """Owns the Playwright driver and the Chromium instance.

    Usage::

        manager = BrowserManager(args=("--no-sandbox",))
        browser = await manager.get()
        ...
        await manager.aclose()
    """

    __slots__ = ("_args", "_browser", "_headless", "_lock", "_playwright")

    def __init__(self, *, args: tuple[str, ...] = (), headless: bool = True) -> None:
        self._args = args
        self._headless = headless
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._lock = anyio.Lock()

    @property
    def started(self) -> bool:
        return self._browser is not None

    async def get(self) -> Browser:
        """Return the running browser, launching it on first use."""
        if self._browser is not None and self._browser.is_connected():
            return self._browser

        async with self._lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser

            if self._playwright is None:
                self._playwright = await async_playwright().start()
            logger.info("Launching headless Chromium")
            self._browser = await self._playwright.chromium.launch(
                headless=self._headless,
                args=list(self._args),
            )
            return self._browser

    async def aclose(self) -> None:
        """Close the browser and stop the driver. Safe to call twice."""
        async with self._lock:
            if self._browser is not None:
                await self._browser.close()
                self._browser = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None
