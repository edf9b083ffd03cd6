from __future__ import annotations

from typing import Any, Dict, Iterable, List


def build_file_tree(files: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Nest flat ``{path, size, modified}`` records into a directory tree.

    Directories are created on first sight; children keep listing order.
    """
    tree: Dict[str, Any] = {"name": "root", "type": "directory", "children": []}
    for record in files:
        path = str(record.get("path", ""))
        parts = [p for p in path.split("/") if p]
        if not parts:
            continue
        current = tree
        for part in parts[:-1]:
            children: List[Dict[str, Any]] = current["children"]
            directory = next(
                (c for c in children if c["name"] == part and c["type"] == "directory"),
                None,
            )
            if directory is None:
                directory = {"name": part, "type": "directory", "children": []}
                children.append(directory)
            current = directory
        current["children"].append(
            {
                "name": parts[-1],
                "type": "file",
                "path": path,
                "size": record.get("size", 0),
                "modified": record.get("modified"),
            }
        )
    return tree
