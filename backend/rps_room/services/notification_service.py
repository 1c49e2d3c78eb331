"""
NotificationDispatcher.

Responsibilities:
- Build system chat entries (type, gameId, optional private recipient)
- Append entries to rooms/{roomId}/chatList
- post_once: skip the append when an equivalent entry is already in the log,
  so repeated evaluation of the same game state never double-posts
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from rps_room.core.clock import Clock, now_ms
from rps_room.i18n import t
from rps_room.schemas import ChatFrom, ChatMessage, ChatType, Participant
from rps_room.storage.backend import SharedStore
from rps_room.storage.paths import room_path

logger = logging.getLogger(__name__)

ChatPredicate = Callable[[dict[str, Any]], bool]


def same_event(entry: ChatMessage) -> ChatPredicate:
    """Match stored entries with the same gameId, type, message and recipient."""
    expected = entry.to_document()
    recipient = (expected.get("to") or {}).get("identity")

    def _matches(existing: dict[str, Any]) -> bool:
        if not isinstance(existing, dict):
            return False
        return (
            existing.get("gameId") == expected.get("gameId")
            and existing.get("type") == expected["type"]
            and existing.get("message") == expected["message"]
            and (existing.get("to") or {}).get("identity") == recipient
        )

    return _matches


class NotificationDispatcher:
    """Appends chat entries to a room's append-only message log."""

    def __init__(self, store: SharedStore, clock: Clock = now_ms, language: str = "en") -> None:
        self._store = store
        self._clock = clock
        self._language = language

    @property
    def language(self) -> str:
        return self._language

    def system_entry(
        self,
        chat_type: ChatType,
        message: str,
        *,
        game_id: Optional[str] = None,
        to: Optional[Participant] = None,
        description: Optional[str] = None,
        user_identity: Optional[str] = None,
    ) -> ChatMessage:
        return ChatMessage(
            type=chat_type,
            from_=ChatFrom.SYSTEM,
            name=t("game.system_name", self._language),
            message=message,
            created_at=self._clock(),
            to=to,
            description=description,
            user_identity=user_identity,
            game_id=game_id,
        )

    def user_entry(self, user: Participant, message: str) -> ChatMessage:
        return ChatMessage(
            type=ChatType.TEXT,
            from_=ChatFrom.USER,
            name=user.name,
            message=message,
            created_at=self._clock(),
            user_identity=user.identity,
        )

    def post(self, room_id: str, entry: ChatMessage) -> int:
        """Append entry and return its index in chatList."""
        index = self._store.append(room_path(room_id, "chatList"), entry.to_document())
        logger.debug("Posted %s entry #%d to room %s", entry.type.value, index, room_id)
        return index

    def post_once(
        self,
        room_id: str,
        entry: ChatMessage,
        predicate: Optional[ChatPredicate] = None,
    ) -> Optional[int]:
        """Append entry unless an existing entry matches ``predicate``.

        Returns the new index, or None when an equivalent entry already exists.
        """
        predicate = predicate or same_event(entry)
        chat_list = self._store.get(room_path(room_id, "chatList")) or []
        if any(predicate(existing) for existing in chat_list):
            logger.debug(
                "Skipped duplicate %s entry in room %s",
                entry.type.value,
                room_id,
                extra={"game_id": entry.game_id, "room_id": room_id} if entry.game_id else None,
            )
            return None
        return self.post(room_id, entry)
