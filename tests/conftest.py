"""Shared fixtures: build output directories and an in-memory document factory.

``FakeDocuments`` stands in for headless Chromium. A bootstrap's code is
looked up in ``programs`` and the matching Python callable plays the
application, mutating a ``FakeDocument`` the way the real bundle would
mutate the DOM.
"""

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from pathlib import Path

import anyio
import pytest

from prerender.browser import BrowserManager
from prerender.bundler import BootstrapScript

SHELL = "<!DOCTYPE html><html><head></head><body></body></html>"
BUNDLE_CODE = "/* app bundle */ mount();"


class FakeDocument:
    def __init__(
        self, path: str, shell: str, programs: dict[str, Callable[["FakeDocument"], None]]
    ) -> None:
        self.path = path
        self.shell = shell
        self.programs = programs
        self.body: list[str] = []
        self.scripts: list[str | None] = []
        self.bootstrap: str | None = None
        self.script_type: str | None = None
        self.loader: str | None = None
        self.ready_calls = 0
        self.hang = False
        self.closed = False

    async def run_bootstrap(self, bootstrap: BootstrapScript, script_type: str) -> str | None:
        self.script_type = script_type
        self.bootstrap = f'<script type="{script_type}">{bootstrap.code}</script>'
        program = self.programs.get(bootstrap.code)
        if program is None:
            return None
        try:
            program(self)
        except Exception as exc:
            return str(exc)
        return None

    async def wait_until_ready(self, settle_ms: int = 0) -> None:
        self.ready_calls += 1
        if self.hang:
            await anyio.sleep_forever()

    async def detach_bootstrap(self) -> str | None:
        self.bootstrap = None
        if not self.scripts:
            return None
        return self.scripts[0]

    async def replace_app_script(self, loader_code: str) -> bool:
        self.loader = loader_code
        return True

    async def serialize(self) -> str:
        scripts = []
        for index, src in enumerate(self.scripts):
            if index == 0 and self.loader is not None:
                scripts.append(f"<script>{self.loader}</script>")
            elif src is None:
                scripts.append("<script></script>")
            else:
                scripts.append(f'<script src="{src}" type="module"></script>')
        extra = self.bootstrap or ""
        content = "".join(self.body) + "".join(scripts) + extra
        return self.shell.replace("<body></body>", f"<body>{content}</body>")


class FakeDocuments:
    """DocumentFactory double recording every document it opens."""

    def __init__(self, programs: dict[str, Callable[[FakeDocument], None]] | None = None) -> None:
        self.programs = programs or {}
        self.opened: list[FakeDocument] = []
        self.hang = False

    @asynccontextmanager
    async def open(self, path: str, shell: str) -> AsyncIterator[FakeDocument]:
        document = FakeDocument(path, shell, self.programs)
        document.hang = self.hang
        self.opened.append(document)
        try:
            yield document
        finally:
            document.closed = True


def mount_app(document: FakeDocument) -> None:
    """Example app: one div, then its own module script."""
    document.body.append('<div id="app">hi</div>')
    document.scripts.append("/assets/app.js")


@pytest.fixture
def fake_documents() -> FakeDocuments:
    return FakeDocuments({BUNDLE_CODE: mount_app})


@pytest.fixture
def dist_dir(tmp_path: Path) -> Path:
    """A built SPA: shell, main bundle, a stylesheet and an image."""
    dist = tmp_path / "dist"
    assets = dist / "assets"
    assets.mkdir(parents=True)
    (dist / "index.html").write_text(SHELL)
    (assets / "index-3f2a1c.js").write_text(BUNDLE_CODE)
    (assets / "index-3f2a1c.css").write_text("body { margin: 0; }")
    (assets / "app.js").write_text("export const app = 1;")
    (dist / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n\x00\x01")
    return dist


@pytest.fixture
async def browser_manager() -> AsyncIterator[BrowserManager]:
    """A running headless Chromium, or skip when none can be launched."""
    manager = BrowserManager(args=("--no-sandbox", "--disable-dev-shm-usage"))
    try:
        await manager.get()
    except Exception as exc:
        await manager.aclose()
        pytest.skip(f"headless Chromium not available: {exc}")
    yield manager
    await manager.aclose()
