from fastapi.testclient import TestClient

from src.sheets.api.main import app


client = TestClient(app)


def _upload(name, content, path=None):
    data = {"path": path} if path is not None else {}
    return client.post("/api/rules", files={"file": (name, content.encode("utf-8"), "text/markdown")}, data=data)


def test_upload_read_and_delete_round_trip():
    r = _upload("b.txt", "hello rules", path="a/b.txt")
    assert r.status_code == 200
    assert r.json() == {"success": True, "path": "a/b.txt"}

    got = client.get("/api/rules/a%2Fb.txt")
    assert got.status_code == 200
    assert got.text == "hello rules"
    assert got.headers["content-type"].startswith("text/plain")

    assert client.delete("/api/rules/a/b.txt").json() == {"success": True}
    missing = client.get("/api/rules/a/b.txt")
    assert missing.status_code == 404
    assert missing.json() == {"error": "File not found"}


def test_upload_without_path_uses_filename():
    r = _upload("readme.md", "# hi")
    assert r.json()["path"] == "readme.md"
    assert client.get("/api/rules/readme.md").text == "# hi"


def test_upload_requires_a_file():
    r = client.post("/api/rules", data={"path": "x.md"})
    assert r.status_code == 400


def test_tree_nests_directories():
    _upload("python.md", "py", path="lang/python.md")
    _upload("go.md", "go", path="lang/go.md")
    _upload("top.md", "t")

    tree = client.get("/api/rules").json()

    assert tree["name"] == "root"
    names = {c["name"]: c for c in tree["children"]}
    assert names["top.md"]["type"] == "file"
    lang = names["lang"]
    assert lang["type"] == "directory"
    assert sorted(c["path"] for c in lang["children"]) == ["lang/go.md", "lang/python.md"]
    assert all(c["size"] == 2 for c in lang["children"])


def test_empty_tree():
    assert client.get("/api/rules").json() == {"name": "root", "type": "directory", "children": []}


def test_autocomplete_is_case_insensitive_and_capped():
    _upload("README.md", "r", path="docs/README.md")
    _upload("reader.py", "r", path="src/reader.py")
    _upload("other.md", "o")
    for i in range(12):
        _upload(f"r{i}.md", "x", path=f"bulk/read{i}.md")

    hits = client.get("/api/autocomplete", params={"q": "READ"}).json()

    assert len(hits) == 10
    assert all("read" in h.lower() for h in hits)
    assert client.get("/api/autocomplete", params={"q": "other"}).json() == ["other.md"]
