"""Enums shared by store documents and the API."""
from enum import Enum


class GameStatus(str, Enum):
    """Game status enum. Transitions only move forward."""
    WAITING = "waiting"
    PLAYING = "playing"
    END = "end"


class GameType(str, Enum):
    """Game type enum."""
    PAPER_SCISSORS_STONE_SHOOT = "paperScissorsStoneShoot"


class RpsAction(str, Enum):
    """Choices available in a round."""
    PAPER = "paper"
    SCISSORS = "scissors"
    STONE = "stone"
    SURRENDER = "surrender"


ACTION_TEXT: dict[RpsAction, str] = {
    RpsAction.PAPER: "Paper 🖐️",
    RpsAction.SCISSORS: "Scissors ✌️",
    RpsAction.STONE: "Stone ✊",
    RpsAction.SURRENDER: "Surrender and lose half 😜",
}


class ChatFrom(str, Enum):
    """Chat message origin."""
    SYSTEM = "system"
    USER = "user"


class ChatType(str, Enum):
    """Chat message type."""
    TEXT = "text"
    GAME = "game"
    GAME_JOIN = "gameJoin"
    GAME_START = "gameStart"
    GAME_END = "gameEnd"
    GAME_BROADCAST = "gameBroadcast"
    GAME_NOTIFICATION = "gameNotification"


class Decision(str, Enum):
    """Round resolution decision kinds."""
    END_NO_SURVIVORS = "end_no_survivors"
    END_SOLE_SURVIVOR = "end_sole_survivor"
    END_NO_CHOICE = "end_no_choice"
    END_SINGLE_CHOICE = "end_single_choice"
    END_ALL_SURRENDERED = "end_all_surrendered"
    WINNER = "winner"
    TIE = "tie"

    @property
    def ends_game(self) -> bool:
        return self.value.startswith("end_") or self is Decision.WINNER
