"""
Helpers for flat path -> value storage.

Both adapters store one value per path. Reading a prefix assembles the
descendants into nested dicts.
"""
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple


def assemble_tree(prefix: str, rows: Iterable[Tuple[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Build a nested dict from `(path, value)` rows below `prefix`.

    >>> assemble_tree("a", [("a/b/c", 1), ("a/d", 2)])
    {'b': {'c': 1}, 'd': 2}
    """
    root: Dict[str, Any] = {}
    offset = len(prefix) + 1
    found = False

    for path, value in rows:
        segments = path[offset:].split("/")
        node = root
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = node[segment] = {}
            node = child
        node[segments[-1]] = value
        found = True

    return root if found else None


def merge_fields(current: Any, fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Shallow merge; None deletes the key."""
    merged = dict(current) if isinstance(current, Mapping) else {}
    for key, value in fields.items():
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = value
    return merged
