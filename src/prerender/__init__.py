"""Prerender — server-side rendering for single-page applications.

Executes an application's bundled client code inside a synthetic browser
document, serializes the result into crawlable HTML, and rewrites the
application's script into a deferred loader so the browser starts the app
fresh after first paint.

Basic usage::

    from prerender import PrerenderApp, RenderConfig

    app = PrerenderApp(RenderConfig(dist_dir="dist", port=3000))
    app.run()

Headless::

    async with PrerenderApp(RenderConfig(dist_dir="dist")) as app:
        html = await app.render("/")
"""

__version__ = "0.1.0"
__all__ = [
    "AssetMissingError",
    "AssetStore",
    "BundleError",
    "ConfigurationError",
    "Dispatcher",
    "PrerenderApp",
    "PrerenderError",
    "RenderConfig",
    "RenderPipeline",
    "RenderResult",
    "RenderTimeoutError",
    "install_polyfills",
]


# Public name -> defining module
_LAZY_IMPORTS: dict[str, str] = {
    "AssetMissingError": "prerender.errors",
    "AssetStore": "prerender.assets",
    "BundleError": "prerender.errors",
    "ConfigurationError": "prerender.errors",
    "Dispatcher": "prerender.dispatcher",
    "PrerenderApp": "prerender.app",
    "PrerenderError": "prerender.errors",
    "RenderConfig": "prerender.config",
    "RenderPipeline": "prerender.pipeline",
    "RenderResult": "prerender.http.result",
    "RenderTimeoutError": "prerender.errors",
    "install_polyfills": "prerender.polyfills",
}


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import prerender`` from loading Playwright until it is needed.
    """
    module_name = _LAZY_IMPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module 'prerender' has no attribute {name!r}")

    import importlib

    return getattr(importlib.import_module(module_name), name)
