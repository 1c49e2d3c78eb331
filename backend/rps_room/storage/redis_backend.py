"""Redis-backed shared store.

Each room is one JSON document at ``{prefix}rooms:{roomId}``. Writes run as a
WATCH/MULTI transaction on that document, then publish the changed path on
``{prefix}changes`` so subscribers on other instances see the update.
"""

import json
import logging
import uuid
from typing import Any, Optional

import redis

from rps_room.core.exceptions import StoreUnavailableError
from rps_room.storage.backend import ChangeCallback, Unsubscribe
from rps_room.storage.paths import assign, join_path, remove, resolve, split_path
from rps_room.storage.subscriptions import SubscriptionRegistry

logger = logging.getLogger(__name__)

_DEFAULT_KEY_PREFIX = "rps:"


class RedisStore:
    """Store backed by Redis, shared across server instances.

    The first two path segments (``rooms/{roomId}``) select the Redis key; the
    rest of the path addresses a node inside that room's document.
    """

    def __init__(self, redis_url: str, key_prefix: str = _DEFAULT_KEY_PREFIX):
        self._client = redis.Redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        self._key_prefix = key_prefix
        self._channel = f"{key_prefix}changes"
        self._instance_id = str(uuid.uuid4())[:8]
        self._subscriptions = SubscriptionRegistry()
        self._listener = None

    @property
    def client(self):
        return self._client

    def _doc_key(self, segments: list[str]) -> str:
        if len(segments) < 2:
            raise ValueError(f"Path too short for a document write: {'/'.join(segments)}")
        return f"{self._key_prefix}{segments[0]}:{segments[1]}"

    @staticmethod
    def _decode(raw: Optional[str]) -> Any:
        return json.loads(raw) if raw else None

    # ------------------------------------------------------------------ reads

    def get(self, path: str) -> Any:
        segments = split_path(path)
        try:
            if len(segments) == 1:
                return self._get_collection(segments[0])
            raw = self._client.get(self._doc_key(segments))
        except redis.RedisError as e:
            logger.error("Redis read failed for %s: %s", path, e)
            raise StoreUnavailableError() from e
        return resolve(self._decode(raw), segments[2:])

    def _get_collection(self, name: str) -> Optional[dict]:
        prefix = f"{self._key_prefix}{name}:"
        documents = {}
        for key in self._client.keys(f"{prefix}*"):
            value = self._decode(self._client.get(key))
            if value is not None:
                documents[key[len(prefix):]] = value
        return documents or None

    def exists(self, path: str) -> bool:
        return self.get(path) is not None

    # ----------------------------------------------------------------- writes

    def _mutate(self, segments: list[str], change) -> Any:
        """Apply ``change(document, inner_segments)`` to one room document.

        ``change`` returns ``(new_document, result)``; a None document deletes
        the key.
        """
        key = self._doc_key(segments)
        inner = segments[2:]

        def _apply(pipe):
            document = self._decode(pipe.get(key))
            document, result = change(document, inner)
            pipe.multi()
            if document is None:
                pipe.delete(key)
            else:
                pipe.set(key, json.dumps(document, ensure_ascii=False, separators=(",", ":")))
            return result

        try:
            return self._client.transaction(_apply, key, value_from_callable=True)
        except redis.RedisError as e:
            logger.error("Redis write failed for %s: %s", "/".join(segments), e)
            raise StoreUnavailableError() from e

    def set(self, path: str, value: Any) -> None:
        if value is None:
            self.delete(path)
            return
        segments = split_path(path)

        def _set(document, inner):
            if not inner:
                return value, None
            document = document if isinstance(document, dict) else {}
            assign(document, inner, value)
            return document, None

        self._mutate(segments, _set)
        self._changed(segments)

    def append(self, path: str, value: Any) -> int:
        segments = split_path(path)

        def _append(document, inner):
            if not inner:
                raise TypeError(f"Cannot append to a room document at {path}")
            document = document if isinstance(document, dict) else {}
            node = resolve(document, inner)
            if node is None:
                node = []
                assign(document, inner, node)
            if not isinstance(node, list):
                raise TypeError(f"Cannot append to non-list at {path}")
            node.append(value)
            return document, len(node) - 1

        index = self._mutate(segments, _append)
        self._changed(segments + [str(index)])
        return index

    def delete(self, path: str) -> bool:
        segments = split_path(path)

        def _delete(document, inner):
            if document is None:
                return None, False
            if not inner:
                return None, True
            removed = remove(document, inner)
            return document, removed

        removed = self._mutate(segments, _delete)
        if removed:
            self._changed(segments)
        return removed

    # ---------------------------------------------------------- notification

    def subscribe(self, path: str, callback: ChangeCallback) -> Unsubscribe:
        return self._subscriptions.add(path, callback)

    def _changed(self, segments: list[str]) -> None:
        self._subscriptions.dispatch(segments, self.get)
        try:
            payload = json.dumps(
                {"path": join_path(*segments), "source": self._instance_id},
                separators=(",", ":"),
            )
            self._client.publish(self._channel, payload)
        except redis.RedisError as e:
            logger.warning("Failed to publish change for %s: %s", "/".join(segments), e)

    def _handle_message(self, message: dict) -> None:
        """Dispatch a change published by another instance."""
        try:
            payload = json.loads(message.get("data") or "{}")
        except (TypeError, ValueError) as e:
            logger.warning("Ignoring malformed change message: %s", e)
            return
        if payload.get("source") == self._instance_id or not payload.get("path"):
            return
        logger.debug("Change on %s from instance %s", payload["path"], payload.get("source"))
        self._subscriptions.dispatch(split_path(payload["path"]), self.get)

    def start_listener(self) -> None:
        """Listen for changes made by other instances on a background thread."""
        if self._listener is not None:
            return
        pubsub = self._client.pubsub(ignore_subscribe_messages=True)
        pubsub.subscribe(**{self._channel: self._handle_message})
        self._listener = pubsub.run_in_thread(sleep_time=0.1, daemon=True)
        logger.info("Store change listener started (instance=%s)", self._instance_id)

    # ----------------------------------------------------------------- admin

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False

    def close(self) -> None:
        if self._listener is not None:
            self._listener.stop()
            self._listener = None
        try:
            self._client.close()
        except redis.RedisError as e:
            logger.warning("Error closing Redis client: %s", e)
