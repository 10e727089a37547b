"""Tests for settings.py."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from settings import Settings, get_settings, settings_from_env, update_settings


@pytest.fixture(autouse=True)
def _reset_settings():
    update_settings(global_filter="")
    yield
    update_settings(global_filter="")


def test_default():
    assert get_settings() == Settings(global_filter="")


def test_update_replaces_current():
    updated = update_settings(global_filter="#todo")
    assert updated.global_filter == "#todo"
    assert get_settings() is updated


def test_from_env(monkeypatch):
    monkeypatch.setenv("GLOBAL_FILTER", "  #task ")
    assert settings_from_env().global_filter == "#task"
    assert get_settings().global_filter == "#task"


def test_from_env_unset(monkeypatch):
    monkeypatch.delenv("GLOBAL_FILTER", raising=False)
    update_settings(global_filter="#old")
    assert settings_from_env().global_filter == ""
