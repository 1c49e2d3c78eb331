"""Logical store paths and navigation of JSON-shaped documents.

Paths are ``/``-joined segments, e.g. ``rooms/Ab3xZ/gameList/0/roundList/0``.
A numeric segment indexes into a list.
"""
from typing import Any

ROOMS = "rooms"


def join_path(*segments: Any) -> str:
    """Build a path, rejecting empty segments and segments containing ``/``."""
    parts = []
    for segment in segments:
        text = str(segment)
        if not text or "/" in text:
            raise ValueError(f"Invalid path segment: {segment!r}")
        parts.append(text)
    return "/".join(parts)


def split_path(path: str) -> list[str]:
    segments = [s for s in path.strip("/").split("/") if s]
    if not segments:
        raise ValueError("Empty store path")
    return segments


def room_path(room_id: str, *rest: Any) -> str:
    return join_path(ROOMS, room_id, *rest)


def game_path(room_id: str, game_index: int, *rest: Any) -> str:
    return room_path(room_id, "gameList", game_index, *rest)


def overlaps(a: list[str], b: list[str]) -> bool:
    """True when one path is an ancestor of (or equal to) the other."""
    shortest = min(len(a), len(b))
    return a[:shortest] == b[:shortest]


def _child(node: Any, segment: str) -> Any:
    if isinstance(node, dict):
        return node.get(segment)
    if isinstance(node, list):
        if not segment.isdigit():
            return None
        index = int(segment)
        return node[index] if index < len(node) else None
    return None


def resolve(node: Any, segments: list[str]) -> Any:
    """Return the value at ``segments`` below ``node`` or None."""
    for segment in segments:
        node = _child(node, segment)
        if node is None:
            return None
    return node


def _put(container: Any, segment: str, value: Any) -> None:
    if isinstance(container, dict):
        container[segment] = value
        return
    if isinstance(container, list):
        if not segment.isdigit():
            raise KeyError(f"List index expected, got {segment!r}")
        index = int(segment)
        if index < len(container):
            container[index] = value
        elif index == len(container):
            container.append(value)
        else:
            raise IndexError(f"Index {index} beyond end of list of {len(container)}")
        return
    raise TypeError(f"Cannot write below a {type(container).__name__}")


def assign(root: dict, segments: list[str], value: Any) -> None:
    """Write ``value`` at ``segments`` below ``root``, creating missing maps."""
    node: Any = root
    for segment in segments[:-1]:
        child = _child(node, segment)
        if child is None:
            child = {}
            _put(node, segment, child)
        node = child
    _put(node, segments[-1], value)


def remove(root: dict, segments: list[str]) -> bool:
    parent = resolve(root, segments[:-1])
    last = segments[-1]
    if isinstance(parent, dict) and last in parent:
        del parent[last]
        return True
    if isinstance(parent, list) and last.isdigit() and int(last) < len(parent):
        del parent[int(last)]
        return True
    return False
