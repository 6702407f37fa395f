"""Extension to Content-Type lookup for served assets.

A small closed table rather than ``mimetypes``: the result must not depend
on the host's mime database. Text types carry ``charset=utf-8``.
"""

from pathlib import PurePosixPath

DEFAULT_CONTENT_TYPE = "application/octet-stream"

_CONTENT_TYPES: dict[str, str] = {
    ".js": "text/javascript; charset=utf-8",
    ".mjs": "text/javascript; charset=utf-8",
    ".css": "text/css; charset=utf-8",
    ".html": "text/html; charset=utf-8",
    ".svg": "image/svg+xml; charset=utf-8",
    ".json": "application/json; charset=utf-8",
    ".map": "application/json; charset=utf-8",
    ".wasm": "application/wasm",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
}


def content_type_for(path: str) -> str:
    """Content-Type for *path* by extension, case-insensitive."""
    suffix = PurePosixPath(path).suffix.lower()
    return _CONTENT_TYPES.get(suffix, DEFAULT_CONTENT_TYPE)
