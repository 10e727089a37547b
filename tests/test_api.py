"""
Tests for the REST API routes.

Uses FastAPI TestClient against a real TaskCache with a temp vault.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from cache.task_cache import TaskCache
from events.events import Events
from vault.file_vault import FileVault


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_vault(tmp_path: Path) -> Path:
    vault = tmp_path / "vault"
    vault.mkdir()
    (vault / "TASKS.md").write_text(
        "### Open\n"
        "- [ ] Buy groceries 📅 2026-02-28\n"
        "- [ ] Call dentist 🔼\n"
        "\n"
        "### Done\n"
        "- [x] File taxes ✅ 2026-01-15\n",
        encoding="utf-8",
    )
    return vault


@pytest.fixture
def client(tmp_path):
    vault = FileVault(_make_vault(tmp_path))
    cache = TaskCache(vault, Events())
    vault.trigger("resolved")
    return TestClient(create_app(cache))


# ---------------------------------------------------------------------------
# POST /api/query
# ---------------------------------------------------------------------------

class TestQueryRoute:
    def test_query(self, client):
        resp = client.post("/api/query", json={"query": "not done\nsort by description"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["error"] is None
        assert [b["tasks"][0]["description"] for b in data["task_blocks"]] == [
            "Buy groceries",
            "Call dentist",
        ]

    def test_heading_filter(self, client):
        resp = client.post("/api/query", json={"query": "heading includes done"})
        data = resp.json()
        assert [b["tasks"][0]["description"] for b in data["task_blocks"]] == ["File taxes"]

    def test_empty_query_returns_everything(self, client):
        resp = client.post("/api/query", json={"query": ""})
        assert resp.json()["count"] == 3

    def test_parse_error_is_400(self, client):
        resp = client.post("/api/query", json={"query": "show me everything"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "do not understand query"

    def test_missing_body_is_422(self, client):
        resp = client.post("/api/query", json={})
        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# GET /api/cache/status
# ---------------------------------------------------------------------------

class TestCacheStatusRoute:
    def test_status(self, client):
        resp = client.get("/api/cache/status")
        assert resp.status_code == 200
        data = resp.json()
        assert data["state"] == "Warm"
        assert data["task_blocks"] == 3

    def test_docs_mounted_under_api(self, client):
        assert client.get("/api/openapi.json").status_code == 200
