from src.sheets.infrastructure.sheet_store import InMemorySheetStore


def test_create_assigns_id_and_timestamps():
    store = InMemorySheetStore()
    sheet = store.create("u1", "Title", "# Body", {"k": "v"})

    assert len(sheet.id) == 32
    assert sheet.created_at == sheet.updated_at
    assert store.get(sheet.id).content == "# Body"


def test_returned_sheets_are_copies():
    store = InMemorySheetStore()
    sheet = store.create("u1", "Title", "c", {"k": "v"})
    fetched = store.get(sheet.id)
    fetched.metadata["k"] = "changed"
    assert store.get(sheet.id).metadata == {"k": "v"}


def test_list_newest_first_with_limit():
    store = InMemorySheetStore()
    ids = [store.create("u1", f"s{i}", "c").id for i in range(3)]
    store.create("u2", "other", "c")

    listed = [s.id for s in store.list_for_user("u1")]
    assert listed == list(reversed(ids))
    assert len(store.list_for_user("u1", limit=2)) == 2
    assert store.list_for_user("nobody") == []
