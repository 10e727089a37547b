"""
Process-wide settings.

The only setting the core consults is the global filter: a token (for
example ``#task``) that marks a checklist line as a managed task. When it is
empty, every checklist line is a task.
"""

import logging
import os
import threading
from dataclasses import dataclass, replace

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    global_filter: str = ""


_lock = threading.Lock()
_settings = Settings()


def get_settings() -> Settings:
    return _settings


def update_settings(**changes) -> Settings:
    """Replace individual settings fields and return the new Settings."""
    global _settings
    with _lock:
        _settings = replace(_settings, **changes)
        return _settings


def settings_from_env() -> Settings:
    """Load settings from GLOBAL_FILTER and make them current."""
    global_filter = os.environ.get("GLOBAL_FILTER", "").strip()
    if global_filter:
        log.info("Global filter: %s", global_filter)
    return update_settings(global_filter=global_filter)
