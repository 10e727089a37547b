"""
Vault host: the document store the task cache indexes.

The cache depends only on VaultInterface. FileVault implements it over a
directory of markdown files; documents are addressed by their POSIX path
relative to the vault root (e.g. ``projects/home.md``).

Notifications (fired by the watcher through ``trigger``):
    changed(path)             content of a document changed
    create(path)              a document appeared
    delete(path)              a document disappeared
    rename(new_path, old_path)
    resolved()                metadata for the whole vault is up to date
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterator, List, Optional, Set

from events.emitter import EventEmitter, EventRef, Handler
from parsers.metadata_parser import FileMetadata, parse_metadata

log = logging.getLogger(__name__)

CHANGED = "changed"
CREATE = "create"
DELETE = "delete"
RENAME = "rename"
RESOLVED = "resolved"

MARKDOWN_SUFFIX = ".md"


class VaultInterface(ABC):
    """
    Read accessors and notification registry the task cache consumes.

    Implementations may be backed by a filesystem, an editor's document
    model, or an in-memory fixture.
    """

    def __init__(self) -> None:
        self._emitter = EventEmitter()

    @abstractmethod
    def get_markdown_files(self) -> List[str]:
        """Return the paths of every known document."""

    @abstractmethod
    def get_file_metadata(self, path: str) -> Optional[FileMetadata]:
        """Return structural metadata for a document, or None if unavailable."""

    @abstractmethod
    def read(self, path: str) -> str:
        """Return the current text of a document. May raise OSError or UnicodeDecodeError."""

    def on(self, name: str, handler: Handler) -> EventRef:
        return self._emitter.on(name, handler)

    def offref(self, ref: EventRef) -> None:
        self._emitter.offref(ref)

    def trigger(self, name: str, *args: Any) -> None:
        self._emitter.trigger(name, *args)


class FileVault(VaultInterface):
    """Markdown files under a root directory, skipping excluded directory names."""

    def __init__(self, root: Path, exclude_dirs: Optional[Set[str]] = None) -> None:
        super().__init__()
        self._root = root
        self._exclude_dirs = exclude_dirs or set()

    @property
    def root(self) -> Path:
        return self._root

    @property
    def exclude_dirs(self) -> Set[str]:
        return self._exclude_dirs

    def absolute(self, path: str) -> Path:
        return self._root / path

    def relative(self, path: Path) -> str:
        return path.relative_to(self._root).as_posix()

    def walk_markdown_files(self) -> Iterator[Path]:
        """Yield every markdown file under the root, respecting exclusions."""
        for path in self._root.rglob(f"*{MARKDOWN_SUFFIX}"):
            try:
                rel = path.relative_to(self._root)
            except ValueError:
                continue
            if any(part in self._exclude_dirs for part in rel.parts[:-1]):
                continue
            if path.is_file():
                yield path

    def get_markdown_files(self) -> List[str]:
        return sorted(self.relative(p) for p in self.walk_markdown_files())

    def get_file_metadata(self, path: str) -> Optional[FileMetadata]:
        try:
            content = self.read(path)
        except (OSError, UnicodeDecodeError):
            log.debug("No metadata for unreadable file %s", path)
            return None
        return parse_metadata(content)

    def read(self, path: str) -> str:
        return self.absolute(path).read_text(encoding="utf-8")
