import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)


@pytest.fixture(autouse=True)
def _fresh_stores(monkeypatch):
    """Give every test empty in-memory stores and a predictable environment."""
    from src.sheets.infrastructure.kv_store import InMemoryKVStore, set_kv_store
    from src.sheets.infrastructure.sheet_store import InMemorySheetStore, set_sheet_store

    kv = InMemoryKVStore()
    set_kv_store(kv)
    set_sheet_store(InMemorySheetStore())
    monkeypatch.setenv("OPENROUTER_API_KEY", "test-key")
    monkeypatch.setenv("APP_URL", "http://app.test")
    monkeypatch.setenv("GITHUB_CLIENT_ID", "client-123")
    monkeypatch.setenv("GITHUB_CLIENT_SECRET", "secret-456")
    monkeypatch.delenv("SHEETS_REQUIRE_URL", raising=False)
    yield kv
    set_kv_store(None)
    set_sheet_store(None)
