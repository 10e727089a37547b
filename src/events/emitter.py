"""
Minimal thread-safe publish/subscribe registry.

Handlers are called synchronously, in subscription order, on the thread
that triggers the event. A failing handler is logged and does not stop
delivery to the others.
"""

import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Tuple

log = logging.getLogger(__name__)

Handler = Callable[..., Any]


@dataclass(frozen=True)
class EventRef:
    """Handle returned by ``on``; pass it to ``offref`` to unsubscribe."""

    name: str
    ref_id: int


class EventEmitter:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: Dict[str, List[Tuple[EventRef, Handler]]] = {}
        self._ids = itertools.count(1)

    def on(self, name: str, handler: Handler) -> EventRef:
        with self._lock:
            ref = EventRef(name=name, ref_id=next(self._ids))
            self._handlers.setdefault(name, []).append((ref, handler))
            return ref

    def offref(self, ref: EventRef) -> None:
        with self._lock:
            handlers = self._handlers.get(ref.name, [])
            self._handlers[ref.name] = [(r, h) for r, h in handlers if r != ref]

    def trigger(self, name: str, *args: Any) -> None:
        with self._lock:
            handlers = [h for _, h in self._handlers.get(name, [])]
        for handler in handlers:
            try:
                handler(*args)
            except Exception:
                log.exception("Handler for %r failed", name)

    def handler_count(self, name: str) -> int:
        with self._lock:
            return len(self._handlers.get(name, []))
