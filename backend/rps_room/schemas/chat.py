"""Chat log entries."""
from typing import Optional

from pydantic import Field

from .base import DocumentModel
from .enums import ChatFrom, ChatType
from .game import Participant


class ChatMessage(DocumentModel):
    """One entry of rooms/{roomId}/chatList. Immutable once appended."""
    type: ChatType
    from_: ChatFrom = Field(alias="from")
    name: str
    message: str
    created_at: int
    to: Optional[Participant] = None
    description: Optional[str] = None
    user_identity: Optional[str] = None
    game_id: Optional[str] = None
