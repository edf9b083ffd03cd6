from src.sheets.services.rule_tree import build_file_tree


def test_nested_paths_share_directories():
    tree = build_file_tree(
        [
            {"path": "a/b/c.md", "size": 1, "modified": "t1"},
            {"path": "a/d.md", "size": 2, "modified": "t2"},
            {"path": "e.md", "size": 3, "modified": "t3"},
        ]
    )

    [a, e] = tree["children"]
    assert a["name"] == "a" and a["type"] == "directory"
    assert [c["name"] for c in a["children"]] == ["b", "d.md"]
    assert a["children"][0]["children"][0] == {
        "name": "c.md",
        "type": "file",
        "path": "a/b/c.md",
        "size": 1,
        "modified": "t1",
    }
    assert e["path"] == "e.md"


def test_blank_paths_are_ignored():
    assert build_file_tree([{"path": ""}, {"path": "/"}])["children"] == []
