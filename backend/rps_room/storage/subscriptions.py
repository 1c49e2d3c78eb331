"""Subscriber bookkeeping shared by the store backends."""
import itertools
import logging
import threading
from typing import Any, Callable

from rps_room.storage.backend import ChangeCallback, Unsubscribe
from rps_room.storage.paths import overlaps, split_path

logger = logging.getLogger(__name__)


class SubscriptionRegistry:
    """Tracks path subscriptions and fans change notifications out to them."""

    def __init__(self) -> None:
        self._subscribers: dict[int, tuple[str, list[str], ChangeCallback]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def add(self, path: str, callback: ChangeCallback) -> Unsubscribe:
        segments = split_path(path)
        with self._lock:
            sub_id = next(self._ids)
            self._subscribers[sub_id] = (path, segments, callback)

        def _unsubscribe() -> None:
            with self._lock:
                self._subscribers.pop(sub_id, None)

        return _unsubscribe

    def dispatch(self, changed: list[str], read: Callable[[str], Any]) -> None:
        """Notify every subscriber whose path overlaps the changed path."""
        with self._lock:
            targets = [
                (path, callback)
                for path, segments, callback in self._subscribers.values()
                if overlaps(segments, changed)
            ]
        for path, callback in targets:
            try:
                callback(path, read(path))
            except Exception as e:
                logger.warning("Store subscriber for %s failed: %s", path, e)
