"""
Tests for watcher/vault_watcher.py.

Poll cycles are driven directly through _check_for_changes() so the tests
do not depend on thread timing; one test exercises the real poll thread.
"""

import os
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from cache.task_cache import State, TaskCache
from events.events import Events
from vault.file_vault import FileVault
from watcher.vault_watcher import VaultWatcher

NOTIFICATIONS = ("changed", "create", "delete", "rename", "resolved")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _record(vault: FileVault) -> list:
    seen = []
    for name in NOTIFICATIONS:
        vault.on(name, lambda *args, _name=name: seen.append((_name,) + args))
    return seen


def _touch_later(path: Path) -> None:
    """Push the mtime forward so the change is visible regardless of clock resolution."""
    st = path.stat()
    os.utime(path, (st.st_atime + 10, st.st_mtime + 10))


@pytest.fixture
def vault_root(tmp_path):
    root = tmp_path / "vault"
    root.mkdir()
    (root / "home.md").write_text("- [ ] paint fence\n", encoding="utf-8")
    (root / "work.md").write_text("- [ ] send report\n", encoding="utf-8")
    return root


@pytest.fixture
def setup(vault_root):
    vault = FileVault(vault_root, {".trash"})
    seen = _record(vault)
    watcher = VaultWatcher(vault, poll_interval=0.05)
    watcher.seed()
    seen.clear()
    return vault, watcher, seen


# ---------------------------------------------------------------------------
# Poll cycles
# ---------------------------------------------------------------------------

class TestPollCycle:
    def test_seed_triggers_resolved(self, vault_root):
        vault = FileVault(vault_root)
        seen = _record(vault)
        VaultWatcher(vault, poll_interval=1).seed()
        assert seen == [("resolved",)]

    def test_no_changes(self, setup):
        vault, watcher, seen = setup
        watcher._check_for_changes()
        assert seen == [("resolved",)]

    def test_create(self, setup):
        vault, watcher, seen = setup
        (vault.root / "notes").mkdir()
        (vault.root / "notes" / "new.md").write_text("- [ ] new\n", encoding="utf-8")
        watcher._check_for_changes()
        assert seen == [("create", "notes/new.md"), ("resolved",)]

    def test_modify(self, setup):
        vault, watcher, seen = setup
        path = vault.root / "home.md"
        path.write_text("- [ ] paint fence twice\n", encoding="utf-8")
        _touch_later(path)
        watcher._check_for_changes()
        assert seen == [("changed", "home.md"), ("resolved",)]

    def test_delete(self, setup):
        vault, watcher, seen = setup
        (vault.root / "work.md").unlink()
        watcher._check_for_changes()
        assert seen == [("delete", "work.md"), ("resolved",)]

    def test_rename_with_same_content(self, setup):
        vault, watcher, seen = setup
        (vault.root / "work.md").rename(vault.root / "office.md")
        watcher._check_for_changes()
        assert seen == [("rename", "office.md", "work.md"), ("resolved",)]

    def test_move_with_new_content_is_delete_and_create(self, setup):
        vault, watcher, seen = setup
        (vault.root / "work.md").unlink()
        (vault.root / "office.md").write_text("- [ ] something else\n", encoding="utf-8")
        watcher._check_for_changes()
        assert seen == [("create", "office.md"), ("delete", "work.md"), ("resolved",)]

    def test_excluded_dirs_ignored(self, setup):
        vault, watcher, seen = setup
        (vault.root / ".trash").mkdir()
        (vault.root / ".trash" / "old.md").write_text("- [ ] gone\n", encoding="utf-8")
        (vault.root / "readme.txt").write_text("not markdown\n", encoding="utf-8")
        watcher._check_for_changes()
        assert seen == [("resolved",)]


# ---------------------------------------------------------------------------
# With the task cache
# ---------------------------------------------------------------------------

class TestWithCache:
    def test_watcher_drives_cache(self, vault_root):
        vault = FileVault(vault_root)
        cache = TaskCache(vault, Events())
        watcher = VaultWatcher(vault, poll_interval=1)

        watcher.seed()
        assert cache.get_state() == State.WARM
        assert {b.path for b in cache.get_tasks()} == {"home.md", "work.md"}

        (vault_root / "work.md").rename(vault_root / "office.md")
        (vault_root / "home.md").unlink()
        watcher._check_for_changes()

        blocks = cache.get_tasks()
        assert [b.path for b in blocks] == ["office.md"]
        assert blocks[0].tasks[0].description == "send report"

    def test_poll_thread(self, vault_root):
        vault = FileVault(vault_root)
        seen = _record(vault)
        watcher = VaultWatcher(vault, poll_interval=0.05)
        watcher.start()
        try:
            (vault_root / "new.md").write_text("- [ ] new\n", encoding="utf-8")
            deadline = time.monotonic() + 5
            while ("create", "new.md") not in seen and time.monotonic() < deadline:
                time.sleep(0.02)
        finally:
            watcher.stop()
        assert ("create", "new.md") in seen
        assert seen[0] == ("resolved",)


class TestConfig:
    def test_poll_interval_from_env(self, vault_root, monkeypatch):
        monkeypatch.setenv("POLL_INTERVAL", "2.5")
        assert VaultWatcher(FileVault(vault_root)).poll_interval == 2.5

    def test_explicit_poll_interval_wins(self, vault_root, monkeypatch):
        monkeypatch.setenv("POLL_INTERVAL", "2.5")
        assert VaultWatcher(FileVault(vault_root), poll_interval=0.5).poll_interval == 0.5
