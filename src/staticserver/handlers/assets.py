"""
=============================================================================
ASSET STORES
=============================================================================

The static handler never touches the filesystem directly. It asks an
AssetStore, a read-only collection of files addressed by clean relative
POSIX paths:

    ""                  the root directory
    "index.html"        a file at the root
    "css"               a directory
    "css/site.css"      a file inside it

    ┌──────────────────────┬──────────────────────────────────────────────┐
    │ DirectoryAssetStore  │ files under a directory on disk              │
    │ MemoryAssetStore     │ a dict of path → bytes (tests, embedding)    │
    │ bundled_assets()     │ the site shipped inside this package         │
    └──────────────────────┴──────────────────────────────────────────────┘

Paths handed to a store are already cleaned by the handler. Stores still
refuse anything that would resolve outside their root.

=============================================================================
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Asset:
    """A file read from a store."""

    path: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]


class AssetStore(ABC):
    """Read-only collection of files and directories."""

    @abstractmethod
    def open(self, path: str) -> Optional[Asset]:
        """The file at ``path``, or None if there is no such file."""

    @abstractmethod
    def is_dir(self, path: str) -> bool:
        """Whether ``path`` names a directory."""

    @abstractmethod
    def list_dir(self, path: str) -> Optional[List[str]]:
        """
        Sorted entry names of a directory, subdirectories suffixed with
        "/". None if ``path`` is not a directory.
        """


class DirectoryAssetStore(AssetStore):
    """
    Serves files from a directory on disk.

        store = DirectoryAssetStore("/var/www/site")
        store.open("index.html")

    Every lookup resolves the full path (following ".." and symlinks) and
    checks it is still inside the root.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()
        if not self.root.is_dir():
            raise ValueError(f"Asset root directory does not exist: {root}")

    def _resolve(self, path: str) -> Optional[Path]:
        full_path = (self.root / path.lstrip("/")).resolve()
        try:
            full_path.relative_to(self.root)
        except ValueError:
            logger.warning(f"Path escapes asset root: {path!r}")
            return None
        return full_path

    def open(self, path: str) -> Optional[Asset]:
        full_path = self._resolve(path)
        if full_path is None or not full_path.is_file():
            return None
        return Asset(path=path, data=full_path.read_bytes())

    def is_dir(self, path: str) -> bool:
        full_path = self._resolve(path)
        return full_path is not None and full_path.is_dir()

    def list_dir(self, path: str) -> Optional[List[str]]:
        full_path = self._resolve(path)
        if full_path is None or not full_path.is_dir():
            return None
        return sorted(
            entry.name + "/" if entry.is_dir() else entry.name
            for entry in full_path.iterdir()
        )

    def __repr__(self) -> str:
        return f"DirectoryAssetStore({str(self.root)!r})"


class MemoryAssetStore(AssetStore):
    """
    In-memory asset collection.

        store = MemoryAssetStore({
            "index.html": b"<html></html>",
            "css/site.css": b"body {}",
        })

    Directories exist implicitly: "css" is a directory because a file
    lives under it.
    """

    def __init__(self, files: Dict[str, bytes]):
        self._files = {name.strip("/"): bytes(data) for name, data in files.items()}

    def open(self, path: str) -> Optional[Asset]:
        path = path.strip("/")
        data = self._files.get(path)
        if data is None:
            return None
        return Asset(path=path, data=data)

    def is_dir(self, path: str) -> bool:
        path = path.strip("/")
        if not path:
            return True
        prefix = path + "/"
        return any(name.startswith(prefix) for name in self._files)

    def list_dir(self, path: str) -> Optional[List[str]]:
        path = path.strip("/")
        if not self.is_dir(path):
            return None

        prefix = path + "/" if path else ""
        entries = set()
        for name in self._files:
            if not name.startswith(prefix):
                continue
            head, sep, _ = name[len(prefix):].partition("/")
            entries.add(head + "/" if sep else head)
        return sorted(entries)


def bundled_assets() -> DirectoryAssetStore:
    """The default site, shipped in the package's ``static/`` directory."""
    return DirectoryAssetStore(Path(__file__).resolve().parent.parent / "static")
