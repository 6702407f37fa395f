"""Bundler adapter and bootstrap sources.

The bundler is an external service: entry file in, one self-executing
browser script out. ``esbuild`` is driven as an async subprocess so a
build suspends the calling render instead of blocking the event loop.

Bootstrap sources decide which script the pipeline injects:

- ``AssetBundleSource`` finds a prebuilt main bundle under ``dist/assets``.
- ``EntryBundleSource`` builds an entry file through a ``Bundler``,
  optionally caching the result for the process lifetime.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import anyio

from prerender.errors import BundleError

logger = logging.getLogger("prerender.bundler")


@dataclass(frozen=True, slots=True)
class BootstrapScript:
    """Bundled application code for one render.

    ``origin`` names where the code came from (a file path), for logging.
    """

    code: str
    origin: str


class Bundler(Protocol):
    async def bundle(self, entry: Path) -> str: ...


class EsbuildBundler:
    """Bundle an entry point into a single IIFE with esbuild.

    All dependencies are inlined, no source map is emitted and the target
    is a browser global scope.
    """

    __slots__ = ("_binary", "_extra_args")

    def __init__(self, binary: str = "esbuild", extra_args: tuple[str, ...] = ()) -> None:
        self._binary = binary
        self._extra_args = extra_args

    def command(self, entry: Path) -> list[str]:
        return [
            self._binary,
            str(entry),
            "--bundle",
            "--format=iife",
            "--platform=browser",
            "--log-level=error",
            *self._extra_args,
        ]

    async def bundle(self, entry: Path) -> str:
        logger.debug("Bundling %s", entry)
        try:
            result = await anyio.run_process(self.command(entry), check=False)
        except OSError as exc:
            raise BundleError(str(entry), f"cannot run {self._binary}: {exc}") from exc

        if result.returncode != 0:
            diagnostic = result.stderr.decode("utf-8", errors="replace").strip()
            raise BundleError(str(entry), diagnostic or f"exit status {result.returncode}")

        return result.stdout.decode("utf-8")


class BundleSource(Protocol):
    async def load(self) -> BootstrapScript | None: ...


class AssetBundleSource:
    """Locate the built main bundle by file name under the assets directory.

    Scanned on every render so a rebuild is picked up without a restart.
    Returns ``None`` when the directory or a matching file is absent.
    """

    __slots__ = ("_assets_dir", "_pattern")

    def __init__(
        self,
        assets_dir: str | Path,
        pattern: str = r"^index-.*\.js$",
    ) -> None:
        self._assets_dir = Path(assets_dir)
        self._pattern = re.compile(pattern)

    def find(self) -> Path | None:
        if not self._assets_dir.is_dir():
            return None
        for candidate in sorted(self._assets_dir.iterdir()):
            if candidate.is_file() and self._pattern.match(candidate.name):
                return candidate
        return None

    async def load(self) -> BootstrapScript | None:
        found = self.find()
        if found is None:
            logger.info("No bundle matching %s in %s", self._pattern.pattern, self._assets_dir)
            return None
        logger.debug("Bundle file found: %s", found.name)
        return BootstrapScript(
            code=found.read_text(encoding="utf-8"),
            origin=str(found),
        )


class EntryBundleSource:
    """Build a known entry source file through a ``Bundler``.

    With ``cache=True`` the entry is treated as immutable for the process
    lifetime: the first successful build is reused and never invalidated.
    Failures are not cached.
    """

    __slots__ = ("_bundler", "_cache", "_cached", "_entry", "_lock")

    def __init__(self, bundler: Bundler, entry: str | Path, *, cache: bool = False) -> None:
        self._bundler = bundler
        self._entry = Path(entry)
        self._cache = cache
        self._cached: BootstrapScript | None = None
        self._lock = anyio.Lock()

    async def load(self) -> BootstrapScript:
        if not self._cache:
            return await self._build()

        async with self._lock:
            if self._cached is None:
                self._cached = await self._build()
            return self._cached

    async def _build(self) -> BootstrapScript:
        code = await self._bundler.bundle(self._entry)
        return BootstrapScript(code=code, origin=str(self._entry))

