from src.sheets.domain.errors import StoreUnavailableError
from src.sheets.infrastructure.kv_store import InMemoryKVStore
from src.sheets.services.context_loader import context_namespaces, load_context


class _FlakyStore(InMemoryKVStore):
    def get(self, key):
        if key.endswith("broken.md"):
            raise StoreUnavailableError("kv timeout")
        return super().get(key)


def test_blocks_follow_input_order_and_misses_are_skipped():
    store = InMemoryKVStore()
    store.put("file:b.md", "B content")
    store.put("file:a.md", "A content")

    blocks = load_context(["b.md", "missing.md", "a.md"], store)

    assert [b.origin for b in blocks] == ["b.md", "a.md"]
    assert blocks[0].render() == "\n\n---\nFile: b.md\n---\nB content\n"


def test_user_namespace_is_searched_after_rules():
    store = InMemoryKVStore()
    store.put("file:shared.md", "shared rules")
    store.put("context:7:shared.md", "user copy")
    store.put("context:7:mine.md", "only mine")

    blocks = load_context(["shared.md", "mine.md"], store, context_namespaces("7"))

    assert [b.text for b in blocks] == ["shared rules", "only mine"]


def test_store_outage_becomes_inline_error_block():
    store = _FlakyStore()
    store.put("file:ok.md", "fine")

    blocks = load_context(["broken.md", "ok.md"], store)

    assert blocks[0].status == "error"
    assert "kv timeout" in blocks[0].text
    assert blocks[1].text == "fine"
