"""
Typed notification bus between the task cache and its consumers.

Two messages exist:
    cache-update          — the cache pushes the full TaskBlock list and state
    request-cache-update  — a consumer asks for an immediate replay; the
                            cache answers by calling the supplied function
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional, Tuple

from events.emitter import EventEmitter, EventRef
from models.task import TaskBlock

if TYPE_CHECKING:
    from cache.task_cache import State

CACHE_UPDATE = "tasks-vault:cache-update"
REQUEST_CACHE_UPDATE = "tasks-vault:request-cache-update"


@dataclass(frozen=True)
class CacheUpdate:
    task_blocks: Tuple[TaskBlock, ...]
    state: "State"


CacheUpdateHandler = Callable[[CacheUpdate], None]


class Events:
    def __init__(self, emitter: Optional[EventEmitter] = None) -> None:
        self._emitter = emitter or EventEmitter()

    def on_cache_update(self, handler: CacheUpdateHandler) -> EventRef:
        return self._emitter.on(CACHE_UPDATE, handler)

    def trigger_cache_update(self, cache_data: CacheUpdate) -> None:
        self._emitter.trigger(CACHE_UPDATE, cache_data)

    def on_request_cache_update(
        self, handler: Callable[[CacheUpdateHandler], None]
    ) -> EventRef:
        return self._emitter.on(REQUEST_CACHE_UPDATE, handler)

    def trigger_request_cache_update(self, fn: CacheUpdateHandler) -> None:
        self._emitter.trigger(REQUEST_CACHE_UPDATE, fn)

    def off(self, ref: EventRef) -> None:
        self._emitter.offref(ref)
