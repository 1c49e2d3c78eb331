"""In-memory shared store.

This is the default backend: every room lives in one nested dict owned by the
process. Values are deep-copied on the way in and out so callers never share
mutable state with the store.
"""

import copy
import threading
from typing import Any

from rps_room.storage.backend import ChangeCallback, Unsubscribe
from rps_room.storage.paths import assign, remove, resolve, split_path
from rps_room.storage.subscriptions import SubscriptionRegistry


class InMemoryStore:
    """Dict-based store for a single process.

    Subscribers are called synchronously after each write, outside the
    store's internal lock, so a callback may read the store again.
    """

    def __init__(self) -> None:
        self._root: dict[str, Any] = {}
        self._lock = threading.RLock()
        self._subscriptions = SubscriptionRegistry()

    def get(self, path: str) -> Any:
        with self._lock:
            return copy.deepcopy(resolve(self._root, split_path(path)))

    def exists(self, path: str) -> bool:
        with self._lock:
            return resolve(self._root, split_path(path)) is not None

    def set(self, path: str, value: Any) -> None:
        if value is None:
            self.delete(path)
            return
        segments = split_path(path)
        with self._lock:
            assign(self._root, segments, copy.deepcopy(value))
        self._subscriptions.dispatch(segments, self.get)

    def append(self, path: str, value: Any) -> int:
        segments = split_path(path)
        with self._lock:
            node = resolve(self._root, segments)
            if node is None:
                node = []
                assign(self._root, segments, node)
            if not isinstance(node, list):
                raise TypeError(f"Cannot append to non-list at {path}")
            node.append(copy.deepcopy(value))
            index = len(node) - 1
        self._subscriptions.dispatch(segments + [str(index)], self.get)
        return index

    def delete(self, path: str) -> bool:
        segments = split_path(path)
        with self._lock:
            removed = remove(self._root, segments)
        if removed:
            self._subscriptions.dispatch(segments, self.get)
        return removed

    def subscribe(self, path: str, callback: ChangeCallback) -> Unsubscribe:
        return self._subscriptions.add(path, callback)

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        """Nothing to release."""
