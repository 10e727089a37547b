"""
Thread-safe incremental task index.

Design:
    Shared index   — Tuple[TaskBlock, ...]   (immutable snapshot, replaced wholesale)
    Published copy — CacheUpdate             (last snapshot sent to subscribers)

All mutations run inside _lock (threading.RLock). Vault notifications never
mutate directly: they put an operation on _update_queue and a single worker
thread drains it, so overlapping notifications apply in arrival order. The
index is republished to subscribers at the end of every mutation, while the
lock is still held.

Lifecycle: Cold → Initializing → Warm. The first ``resolved`` notification
after construction triggers the one full vault load; later ones are ignored
because they fire on every change.
"""

import logging
import queue
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, Tuple

from events.emitter import EventRef
from events.events import CacheUpdate, CacheUpdateHandler, Events
from models.task import Task, TaskBlock
from parsers.metadata_parser import SECTION_HEADING, SECTION_LIST, FileMetadata, Section
from parsers.task_parser import parse_task_line
from vault import file_vault
from vault.file_vault import VaultInterface

log = logging.getLogger(__name__)

HEADER_RE = re.compile(r"^#+ +(.*?)\s*$")

# Worker threads used to read and parse documents during a full load.
LOAD_WORKERS = 8
STOP_TIMEOUT = 5.0


class State(str, Enum):
    COLD = "Cold"
    INITIALIZING = "Initializing"
    WARM = "Warm"


# ---------------------------------------------------------------------------
# Document → TaskBlocks
# ---------------------------------------------------------------------------

def _get_section(line: int, sections: Sequence[Section]) -> Optional[Section]:
    """First list section whose range contains ``line``."""
    for section in sections:
        if section.type == SECTION_LIST and section.contains(line):
            return section
    return None


def _get_preceding_header(
    line: int, sections: Sequence[Section], file_lines: List[str]
) -> Optional[str]:
    """Text of the last heading at or above ``line``, or None."""
    preceding: Optional[Section] = None
    for section in sections:
        if section.type != SECTION_HEADING:
            continue
        if section.start_line > line:
            break
        preceding = section

    if preceding is None or preceding.start_line >= len(file_lines):
        return None

    m = HEADER_RE.match(file_lines[preceding.start_line])
    return m.group(1) if m else None


def parse_task_blocks(path: str, metadata: FileMetadata, file_lines: List[str]) -> List[TaskBlock]:
    """
    Group a document's checklist items into TaskBlocks.

    A block starts at every root-level item except the first one of a
    section (which may still collect children); nested items of any depth
    join the block being accumulated. Items outside every list section are
    dropped. Only non-empty blocks are returned.
    """
    blocks: List[TaskBlock] = []
    accumulated: List[Task] = []

    def flush() -> None:
        if accumulated:
            blocks.append(TaskBlock(tuple(accumulated)))
            accumulated.clear()

    current_section: Optional[Section] = None
    section_index = 0
    current_id = 0
    first = True

    for item in metadata.list_items:
        if not item.is_task:
            continue

        if current_section is None or current_section.end_line < item.line:
            # Past the current section: blocks never span sections.
            flush()
            current_section = _get_section(item.line, metadata.sections)
            current_id = 0
            section_index = 0
            first = True

        if current_section is None:
            continue

        line = file_lines[item.line] if item.line < len(file_lines) else ""
        task = parse_task_line(
            line,
            path=path,
            section_start=current_section.start_line,
            section_index=section_index,
            preceding_header=_get_preceding_header(item.line, metadata.sections, file_lines),
            id=current_id,
            parent=item.parent,
        )

        if task is not None:
            section_index += 1
            if not task.has_parent and not first:
                flush()
            accumulated.append(task)

        first = False
        current_id += 1

    flush()
    return blocks


def _matches_path(block: TaskBlock, path: str) -> bool:
    # All tasks in a block share a path; empty blocks match nothing.
    return bool(block.tasks) and block.tasks[0].path == path


# ---------------------------------------------------------------------------
# TaskCache
# ---------------------------------------------------------------------------

class TaskCache:
    """
    Owner of the shared TaskBlock index.

    Construct it with a vault and an event bus; it subscribes immediately.
    Call start_worker() to process notifications on a background thread.
    Without a worker, notifications are processed inline on the thread that
    delivers them (still inside the exclusive region).
    """

    def __init__(self, vault: VaultInterface, events: Events) -> None:
        self._vault = vault
        self._events = events
        self._lock = threading.RLock()
        self._state = State.COLD
        self._task_blocks: Tuple[TaskBlock, ...] = ()
        self._published = CacheUpdate(task_blocks=(), state=State.COLD)
        self._last_full_load: Optional[datetime] = None

        self._loaded_after_first_resolve = False
        self._resolve_lock = threading.Lock()

        self._update_queue: "queue.Queue[Optional[Tuple[Callable[..., None], tuple]]]" = queue.Queue()
        self._worker_thread: Optional[threading.Thread] = None
        self._queue_lock = threading.Lock()
        self._accepting = False

        self._vault_refs: List[EventRef] = []
        self._events_refs: List[EventRef] = []
        self._subscribe_to_vault()
        self._subscribe_to_events()

    def unload(self) -> None:
        """Detach from the vault and the bus, and stop the worker."""
        for ref in self._vault_refs:
            self._vault.offref(ref)
        for ref in self._events_refs:
            self._events.off(ref)
        self._vault_refs.clear()
        self._events_refs.clear()
        self.stop_worker()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get_tasks(self) -> Tuple[TaskBlock, ...]:
        return self._task_blocks

    def get_state(self) -> State:
        return self._state

    def status(self) -> dict:
        with self._lock:
            blocks = self._task_blocks
            return {
                "state": self._state.value,
                "task_blocks": len(blocks),
                "tasks": sum(len(b) for b in blocks),
                "files_indexed": len({b.path for b in blocks}),
                "last_full_load": self._last_full_load.isoformat() if self._last_full_load else None,
                "worker_running": self._worker_thread is not None and self._worker_thread.is_alive(),
                "pending_updates": self._update_queue.qsize(),
            }

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def _subscribe_to_vault(self) -> None:
        self._vault_refs.append(self._vault.on(file_vault.RESOLVED, self._on_resolved))
        self._vault_refs.append(
            self._vault.on(file_vault.CHANGED, lambda path: self._enqueue(self.index_file, path))
        )
        self._vault_refs.append(
            self._vault.on(file_vault.CREATE, lambda path: self._enqueue(self.index_file, path))
        )
        self._vault_refs.append(
            self._vault.on(file_vault.DELETE, lambda path: self._enqueue(self.delete_file, path))
        )
        self._vault_refs.append(
            self._vault.on(
                file_vault.RENAME,
                lambda new_path, old_path: self._enqueue(self.rename_file, old_path, new_path),
            )
        )

    def _subscribe_to_events(self) -> None:
        self._events_refs.append(self._events.on_request_cache_update(self._on_request_cache_update))

    def _on_resolved(self) -> None:
        # Resolved fires on every change; only the first one loads the vault.
        with self._resolve_lock:
            if self._loaded_after_first_resolve:
                return
            self._loaded_after_first_resolve = True
        self._enqueue(self.load_vault)

    def _on_request_cache_update(self, handler: CacheUpdateHandler) -> None:
        handler(self._published)

    def _notify_subscribers(self) -> None:
        """Publish the current snapshot. Caller must hold _lock."""
        self._published = CacheUpdate(task_blocks=self._task_blocks, state=self._state)
        self._events.trigger_cache_update(self._published)

    # ------------------------------------------------------------------
    # Background worker
    # ------------------------------------------------------------------

    def start_worker(self) -> None:
        """Start the background queue-drain worker thread (daemon)."""
        if self._worker_thread is not None and self._worker_thread.is_alive():
            return
        with self._queue_lock:
            self._accepting = True
        self._worker_thread = threading.Thread(
            target=self._worker_loop, daemon=True, name="task-cache-worker"
        )
        self._worker_thread.start()

    def stop_worker(self) -> None:
        """Signal the worker thread to stop and wait for it.

        A worker still busy after STOP_TIMEOUT keeps running until it reaches
        the sentinel; it then applies whatever is still queued before exiting.
        """
        if self._worker_thread is None:
            return
        with self._queue_lock:
            if self._accepting:
                self._update_queue.put(None)  # sentinel
        self._worker_thread.join(timeout=STOP_TIMEOUT)
        if self._worker_thread.is_alive():
            log.warning("Task cache worker still busy after %.1fs; it will stop once the queue drains", STOP_TIMEOUT)
            return
        self._worker_thread = None

    def wait_until_idle(self) -> None:
        """Block until every queued notification has been applied."""
        self._update_queue.join()

    def _enqueue(self, operation: Callable[..., None], *args: Any) -> None:
        with self._queue_lock:
            if self._accepting:
                self._update_queue.put((operation, args))
                return
        self._run(operation, args)

    def _worker_loop(self) -> None:
        """Drain the update queue, applying operations in arrival order."""
        while True:
            item = self._update_queue.get()
            try:
                if item is None:  # sentinel → stop
                    self._drain_remaining()
                    break
                operation, args = item
                self._run(operation, args)
            finally:
                self._update_queue.task_done()

    def _drain_remaining(self) -> None:
        """Stop accepting work, then apply what was queued behind the sentinel."""
        with self._queue_lock:
            self._accepting = False
        while True:
            try:
                item = self._update_queue.get_nowait()
            except queue.Empty:
                return
            try:
                if item is not None:
                    operation, args = item
                    self._run(operation, args)
            finally:
                self._update_queue.task_done()

    def _run(self, operation: Callable[..., None], args: tuple) -> None:
        try:
            operation(*args)
        except Exception:
            log.exception("Cache update %s%r failed", operation.__name__, args)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def load_vault(self) -> None:
        """
        Re-index every document in the vault.

        Documents are read and parsed concurrently while the lock is held;
        the index is rebuilt in document order and published once.
        """
        with self._lock:
            if self._state == State.COLD:
                self._state = State.INITIALIZING

            paths = self._vault.get_markdown_files()
            log.info("Loading vault: %d documents", len(paths))

            with ThreadPoolExecutor(max_workers=LOAD_WORKERS, thread_name_prefix="task-cache-load") as pool:
                parsed = list(pool.map(self._parse_file, paths))

            self._task_blocks = tuple(block for file_blocks in parsed for block in file_blocks)
            self._state = State.WARM
            self._last_full_load = datetime.now()
            log.info(
                "Vault loaded: %d task blocks, %d tasks",
                len(self._task_blocks),
                sum(len(b) for b in self._task_blocks),
            )
            self._notify_subscribers()

    def index_file(self, path: str) -> None:
        """Replace every block of ``path`` with freshly parsed ones and publish."""
        with self._lock:
            file_blocks = self._parse_file(path)
            kept = [b for b in self._task_blocks if not _matches_path(b, path)]
            self._task_blocks = tuple(kept + file_blocks)
            log.debug("Indexed %s: %d task blocks", path, len(file_blocks))
            self._notify_subscribers()

    def delete_file(self, path: str) -> None:
        with self._lock:
            self._task_blocks = tuple(b for b in self._task_blocks if not _matches_path(b, path))
            log.debug("Removed %s from index", path)
            self._notify_subscribers()

    def rename_file(self, old_path: str, new_path: str) -> None:
        """Move every block of ``old_path`` to ``new_path``; grouping is unchanged."""
        with self._lock:
            self._task_blocks = tuple(
                b.with_path(new_path) if _matches_path(b, old_path) else b
                for b in self._task_blocks
            )
            log.debug("Renamed %s -> %s in index", old_path, new_path)
            self._notify_subscribers()

    def _parse_file(self, path: str) -> List[TaskBlock]:
        """Read one document into TaskBlocks; unreadable documents have none."""
        metadata = self._vault.get_file_metadata(path)
        if metadata is None:
            return []
        try:
            content = self._vault.read(path)
        except (OSError, UnicodeDecodeError):
            log.warning("Could not read %s; indexing it as empty", path)
            return []
        return parse_task_blocks(path, metadata, content.split("\n"))
