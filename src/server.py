"""
Tasks vault MCP server entry point.

Startup sequence:
1. Read VAULT_ROOT, EXCLUDE_DIRS and GLOBAL_FILTER from environment
2. Wire FileVault, the event bus and the TaskCache together
3. Start cache background worker thread
4. Start VaultWatcher daemon thread (its first snapshot triggers the full load)
5. Register MCP tools
6. Start REST API server in background thread (if API_ENABLED)
7. Run MCP server (stdio transport)
"""

import logging
import os
import sys
import threading
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from cache.task_cache import TaskCache
from events.events import Events
from settings import settings_from_env
from tools import register_query_tools
from vault.file_vault import FileVault
from watcher.vault_watcher import VaultWatcher

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    stream=sys.stderr,
)
log = logging.getLogger(__name__)


def _parse_exclude_dirs(raw: str) -> set[str]:
    """Parse a comma-separated list of directory names to exclude."""
    return {part.strip() for part in raw.split(",") if part.strip()}


def _start_api_server(cache, port: int) -> None:
    """Run the FastAPI/uvicorn server in a daemon thread."""
    import uvicorn

    from api.app import create_app

    app = create_app(cache)
    log.info("Starting REST API on port %d", port)
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="warning")


def main() -> None:
    vault_root_env = os.environ.get("VAULT_ROOT", "")
    if not vault_root_env:
        log.error("VAULT_ROOT environment variable is not set")
        sys.exit(1)

    vault_root = Path(vault_root_env)
    if not vault_root.is_dir():
        log.error("VAULT_ROOT does not exist or is not a directory: %s", vault_root)
        sys.exit(1)

    exclude_raw = os.environ.get("EXCLUDE_DIRS", ".git,.obsidian,node_modules,.trash")
    exclude_dirs = _parse_exclude_dirs(exclude_raw)

    log.info("Vault root: %s", vault_root)
    log.info("Excluded dirs: %s", exclude_dirs)
    settings_from_env()

    vault = FileVault(vault_root, exclude_dirs)
    events = Events()
    cache = TaskCache(vault, events)

    # Start background worker that drains the update queue
    cache.start_worker()

    # The watcher's initial snapshot fires "resolved", which loads the vault
    watcher = VaultWatcher(vault)
    log.info("Loading vault...")
    watcher.start()
    cache.wait_until_idle()
    log.info("Vault load complete")

    # Start REST API in a daemon thread
    api_enabled = os.environ.get("API_ENABLED", "true").lower() in ("true", "1", "yes")
    if api_enabled:
        api_port = int(os.environ.get("API_PORT", "9400"))
        api_thread = threading.Thread(
            target=_start_api_server, args=(cache, api_port), daemon=True
        )
        api_thread.start()

    mcp = FastMCP("tasks-vault")
    register_query_tools(mcp, cache)

    log.info("Starting tasks-vault server")
    try:
        mcp.run(transport="stdio")
    finally:
        watcher.stop()
        cache.unload()


if __name__ == "__main__":
    main()
