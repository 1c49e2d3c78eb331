"""Room and user documents."""
from typing import Optional

from pydantic import Field

from .base import DocumentModel
from .chat import ChatMessage
from .game import Game


class User(DocumentModel):
    """A participant identity inside one room."""
    identity: str
    name: str
    online: bool = True


class Room(DocumentModel):
    """Document stored at rooms/{roomId}."""
    room_id: str
    invite_code: str
    created_at: int
    online_count: int = 0
    user_list: list[User] = Field(default_factory=list)
    chat_list: list[ChatMessage] = Field(default_factory=list)
    game_list: list[Game] = Field(default_factory=list)

    def find_user(self, identity: str) -> Optional[User]:
        for user in self.user_list:
            if user.identity == identity:
                return user
        return None

    def find_game(self, game_id: str) -> Optional[Game]:
        for game in self.game_list:
            if game.game_id == game_id:
                return game
        return None
