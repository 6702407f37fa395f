"""Static asset store.

Built once at startup by walking the build output directory, read-only
afterwards. Request handlers only get lookups; there is no mutation API,
so concurrent reads need no locking.
"""

import logging
import os
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from prerender.errors import AssetMissingError
from prerender.http.mime import content_type_for

logger = logging.getLogger("prerender.assets")


@dataclass(frozen=True, slots=True)
class AssetEntry:
    """One cached file, keyed by its absolute URL path (leading slash)."""

    path: str
    data: bytes

    @property
    def content_type(self) -> str:
        return content_type_for(self.path)


class AssetStore:
    """Immutable ``url path -> AssetEntry`` mapping.

    Usage::

        store = AssetStore.from_directory("dist")
        entry = store.get("/assets/app.js")
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[str, AssetEntry] | None = None) -> None:
        self._entries: Mapping[str, AssetEntry] = MappingProxyType(dict(entries or {}))

    @classmethod
    def from_directory(cls, directory: str | Path) -> "AssetStore":
        """Walk *directory* recursively and load every regular file.

        Symlinks resolving outside the directory are skipped. A missing
        directory yields an empty store.
        """
        root = Path(directory).resolve()
        if not root.is_dir():
            logger.warning("Asset directory %s does not exist; serving no assets", root)
            return cls()

        entries: dict[str, AssetEntry] = {}
        for dirpath, _dirnames, filenames in os.walk(root):
            for name in filenames:
                link_path = Path(dirpath) / name
                file_path = link_path.resolve()
                if not file_path.is_relative_to(root) or not file_path.is_file():
                    continue
                # Keyed by the walked path, not the link target.
                url_path = "/" + link_path.relative_to(root).as_posix()
                entries[url_path] = AssetEntry(path=url_path, data=file_path.read_bytes())

        logger.info("Loaded %d asset(s) from %s", len(entries), root)
        return cls(entries)

    def get(self, path: str) -> AssetEntry | None:
        """Exact-path lookup. Never raises."""
        return self._entries.get(path)

    def require(self, path: str) -> AssetEntry:
        """Exact-path lookup that raises ``AssetMissingError``."""
        entry = self._entries.get(path)
        if entry is None:
            raise AssetMissingError(path)
        return entry

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
