"""Shared store protocol.

Defines the interface every store backend implements. Services only depend on
this protocol, so the in-memory and Redis backends are interchangeable.
"""

from typing import Any, Callable, Protocol

ChangeCallback = Callable[[str, Any], None]
Unsubscribe = Callable[[], None]


class SharedStore(Protocol):
    """Key-path addressed, subscribe-capable mutable store.

    Implementations:
    - InMemoryStore: nested dict in this process (default)
    - RedisStore: one JSON document per room, shared by every instance

    There are no multi-path transactions and no compare-and-swap; callers
    serialize room transitions with a room lock instead.
    """

    def get(self, path: str) -> Any:
        """Return an independent copy of the value at path, or None."""
        ...

    def exists(self, path: str) -> bool:
        """Check whether a value exists at path."""
        ...

    def set(self, path: str, value: Any) -> None:
        """Overwrite the value at path. Setting None deletes it."""
        ...

    def append(self, path: str, value: Any) -> int:
        """Append to the list at path and return the new index."""
        ...

    def delete(self, path: str) -> bool:
        """Delete the value at path. Returns True if it existed."""
        ...

    def subscribe(self, path: str, callback: ChangeCallback) -> Unsubscribe:
        """Call ``callback(path, value)`` after any write at, above or below path."""
        ...

    def ping(self) -> bool:
        """Health check."""
        ...

    def close(self) -> None:
        """Release connections and background listeners."""
        ...
