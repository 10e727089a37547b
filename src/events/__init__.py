from .emitter import EventEmitter, EventRef
from .events import CacheUpdate, Events

__all__ = ["EventEmitter", "EventRef", "CacheUpdate", "Events"]
