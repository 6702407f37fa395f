"""Renderer configuration.

RenderConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

import re
from dataclasses import dataclass
from pathlib import Path

from prerender.errors import ConfigurationError

INLINE_SHELL = (
    "<!DOCTYPE html>"
    '<html><head><meta charset="utf-8"></head><body></body></html>'
)


@dataclass(frozen=True, slots=True)
class RenderConfig:
    """Renderer configuration. Immutable after creation.

    Two deployment modes share one config:

    - *dist mode* (``entry is None``): the shell is ``{dist_dir}/index.html``
      and the bundle is the built asset matching ``bundle_pattern``.
    - *entry mode* (``entry`` set): the shell is ``shell_path`` or the inline
      template, and the bundle is built from ``entry`` by the bundler.

    Override what you need::

        config = RenderConfig(dist_dir="dist", port=3000)
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 3000

    # Build output
    dist_dir: str | Path = "dist"
    assets_subdir: str = "assets"
    bundle_pattern: str = r"^index-.*\.js$"

    # Entry mode
    entry: str | Path | None = None
    shell_path: str | Path | None = None
    bundler_binary: str = "esbuild"
    cache_bundle: bool = True
    fallback_to_shell: bool = False  # Serve the bare shell when bundling fails

    # Rendering
    bootstrap_type: str = "module"
    render_timeout: float = 30.0
    settle_ms: int = 0
    block_external_requests: bool = False
    browser_args: tuple[str, ...] = (
        "--disable-gpu",
        "--no-sandbox",
        "--disable-dev-shm-usage",
    )

    # Logging
    log_level: str = "info"
    log_format: str = "text"

    @property
    def base_url(self) -> str:
        """Origin the synthetic window pretends to be served from."""
        return f"http://{self.host}:{self.port}/"

    @property
    def dist_path(self) -> Path:
        return Path(self.dist_dir).resolve()

    @property
    def assets_path(self) -> Path:
        return self.dist_path / self.assets_subdir

    def validate(self) -> None:
        """Raise ``ConfigurationError`` for settings that cannot work.

        Called once at startup, never on the request path.
        """
        if self.render_timeout <= 0:
            raise ConfigurationError("render_timeout must be positive")
        if self.settle_ms < 0:
            raise ConfigurationError("settle_ms must not be negative")
        if not 0 < self.port < 65536:
            raise ConfigurationError(f"Invalid port: {self.port}")
        if self.log_format not in ("text", "json"):
            raise ConfigurationError(
                f"log_format must be 'text' or 'json', got {self.log_format!r}"
            )
        try:
            re.compile(self.bundle_pattern)
        except re.error as exc:
            raise ConfigurationError(f"Invalid bundle_pattern: {exc}") from exc
        if self.entry is not None and not Path(self.entry).is_file():
            raise ConfigurationError(f"Entry file not found: {self.entry}")
        if self.shell_path is not None and not Path(self.shell_path).is_file():
            raise ConfigurationError(f"Shell file not found: {self.shell_path}")
