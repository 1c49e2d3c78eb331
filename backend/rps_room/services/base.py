"""Store access shared by the room and game services."""
import logging
from typing import Optional

from rps_room.core.clock import Clock, now_ms
from rps_room.core.config import Settings
from rps_room.core.exceptions import GameNotFoundError, RoomNotFoundError
from rps_room.schemas import Game, Room
from rps_room.services.notification_service import NotificationDispatcher
from rps_room.storage.backend import SharedStore
from rps_room.storage.paths import game_path, room_path

logger = logging.getLogger(__name__)


class RoomService:
    """Base for services that read and write one room at a time.

    Every write happens while holding the room's lock from ``locks``.
    """

    def __init__(
        self,
        store: SharedStore,
        locks,
        dispatcher: NotificationDispatcher,
        settings: Settings,
        clock: Clock = now_ms,
    ) -> None:
        self.store = store
        self.locks = locks
        self.dispatcher = dispatcher
        self.settings = settings
        self.clock = clock

    @property
    def language(self) -> str:
        return self.dispatcher.language

    def room_lock(self, room_id: str):
        return self.locks.get_lock(room_id)

    def load_room(self, room_id: str) -> Room:
        document = self.store.get(room_path(room_id))
        if not document:
            raise RoomNotFoundError(room_id)
        return Room.model_validate(document)

    def load_games(self, room_id: str) -> list[Game]:
        if not self.store.exists(room_path(room_id)):
            raise RoomNotFoundError(room_id)
        return [Game.model_validate(doc) for doc in self.store.get(room_path(room_id, "gameList")) or []]

    def load_game(self, room_id: str, game_id: str) -> tuple[int, Game]:
        """Return the game and its index in gameList."""
        for index, game in enumerate(self.load_games(room_id)):
            if game.game_id == game_id:
                return index, game
        raise GameNotFoundError(game_id)

    def save_game(self, room_id: str, index: int, game: Game) -> None:
        self.store.set(game_path(room_id, index), game.to_document())

    def find_game(self, room_id: str, game_id: str) -> Optional[Game]:
        try:
            return self.load_game(room_id, game_id)[1]
        except GameNotFoundError:
            return None
