"""Prerender exception hierarchy.

Shared across the asset store, bundler, render pipeline and dispatcher so
every module raises and catches the same types.
"""

from dataclasses import dataclass


class PrerenderError(Exception):
    """Base for all prerender-specific errors."""


class ConfigurationError(PrerenderError):
    """Raised when renderer configuration is invalid.

    Typically raised by ``RenderConfig.validate()`` at startup.
    """


@dataclass(frozen=True, slots=True)
class AssetMissingError(PrerenderError):
    """A requested static path is not in the asset store.

    Only raised by ``AssetStore.require()``. The dispatcher uses the
    non-raising lookup and treats absence as the 404 branch.
    """

    path: str

    def __str__(self) -> str:
        return f"Asset not found: {self.path}"


@dataclass(frozen=True, slots=True)
class BundleError(PrerenderError):
    """The bundler failed to compile an entry point.

    Fatal for the current render only.
    """

    entry: str
    diagnostic: str = ""

    def __str__(self) -> str:
        if self.diagnostic:
            return f"Failed to bundle {self.entry}: {self.diagnostic}"
        return f"Failed to bundle {self.entry}"


@dataclass(frozen=True, slots=True)
class RenderTimeoutError(PrerenderError):
    """The synthetic document never signalled readiness in time."""

    path: str
    timeout: float

    def __str__(self) -> str:
        return f"Render of {self.path} did not become ready within {self.timeout:g}s"
