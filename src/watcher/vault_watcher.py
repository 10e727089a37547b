"""
Vault file system watcher, polling-based.

Volume mounts do not always forward filesystem events, so the vault is
walked every POLL_INTERVAL seconds and compared with the previous walk:

1. New files become ``create``, files with a newer mtime become ``changed``
2. Files that disappeared become ``delete``
3. A deleted and a created file with the same content hash in one cycle
   become a single ``rename(new_path, old_path)``
4. ``resolved`` fires after the initial snapshot and after every cycle
"""

import hashlib
import logging
import os
import threading
from typing import Dict, List, Optional

from vault import file_vault
from vault.file_vault import FileVault

log = logging.getLogger(__name__)

# Default polling interval in seconds (configurable via POLL_INTERVAL env var)
_DEFAULT_POLL_INTERVAL = 5.0


def compute_file_hash(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()[:16]


class VaultWatcher:
    """
    Polling-based vault watcher.

    Turns filesystem differences between poll cycles into vault
    notifications, which the task cache consumes.

    Usage:
        watcher = VaultWatcher(vault)
        watcher.start()
        ...
        watcher.stop()
    """

    def __init__(self, vault: FileVault, poll_interval: Optional[float] = None) -> None:
        self._vault = vault
        self._poll_interval = poll_interval or float(
            os.environ.get("POLL_INTERVAL", _DEFAULT_POLL_INTERVAL)
        )
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        # Relative path -> mtime / content hash, as of the last cycle
        self._known_files: Dict[str, float] = {}
        self._hashes: Dict[str, str] = {}

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    def start(self) -> None:
        """Take the initial snapshot, announce it and start the poll thread."""
        log.info("Starting vault watcher (polling every %.1fs)", self._poll_interval)
        self.seed()
        self._thread = threading.Thread(target=self._poll_loop, daemon=True, name="vault-watcher")
        self._thread.start()

    def stop(self) -> None:
        log.info("Stopping vault watcher")
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=self._poll_interval + 2)
            self._thread = None

    def seed(self) -> None:
        """Record the current vault state and trigger ``resolved``."""
        self._known_files = self._snapshot_files()
        self._hashes = {}
        for path in self._known_files:
            digest = self._hash(path)
            if digest is not None:
                self._hashes[path] = digest
        self._vault.trigger(file_vault.RESOLVED)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _poll_loop(self) -> None:
        while not self._stop_event.is_set():
            self._stop_event.wait(self._poll_interval)
            if self._stop_event.is_set():
                break
            try:
                self._check_for_changes()
            except Exception:
                log.exception("Error during poll cycle")

    def _check_for_changes(self) -> None:
        """Single poll cycle: compare current state vs known state."""
        current_files = self._snapshot_files()

        created = sorted(p for p in current_files if p not in self._known_files)
        deleted = sorted(p for p in self._known_files if p not in current_files)
        modified = sorted(
            p for p, mtime in current_files.items()
            if p in self._known_files and mtime > self._known_files[p]
        )

        # Hash of deleted content -> old path, for pairing with creations
        deleted_by_hash: Dict[str, str] = {}
        unpaired: List[str] = []
        for path in deleted:
            digest = self._hashes.pop(path, None)
            if digest is None or digest in deleted_by_hash:
                unpaired.append(path)
            else:
                deleted_by_hash[digest] = path

        for path in created:
            digest = self._hash(path)
            if digest is not None:
                self._hashes[path] = digest
            old_path = deleted_by_hash.pop(digest, None) if digest is not None else None
            if old_path is not None:
                log.debug("Renamed file: %s -> %s", old_path, path)
                self._vault.trigger(file_vault.RENAME, path, old_path)
            else:
                log.debug("New file detected: %s", path)
                self._vault.trigger(file_vault.CREATE, path)

        for path in modified:
            digest = self._hash(path)
            if digest is not None:
                self._hashes[path] = digest
            log.debug("Modified file: %s", path)
            self._vault.trigger(file_vault.CHANGED, path)

        for path in sorted(unpaired + list(deleted_by_hash.values())):
            log.debug("Deleted file: %s", path)
            self._vault.trigger(file_vault.DELETE, path)

        self._known_files = current_files
        self._vault.trigger(file_vault.RESOLVED)

    def _snapshot_files(self) -> Dict[str, float]:
        """Walk the vault and return {relative path: mtime} for every document."""
        snapshot: Dict[str, float] = {}
        try:
            for path in self._vault.walk_markdown_files():
                try:
                    snapshot[self._vault.relative(path)] = path.stat().st_mtime
                except OSError:
                    continue
        except OSError:
            log.exception("Error walking vault for markdown files")
        return snapshot

    def _hash(self, path: str) -> Optional[str]:
        try:
            return compute_file_hash(self._vault.absolute(path).read_bytes())
        except OSError:
            return None
