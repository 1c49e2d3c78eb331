"""Pydantic schemas for store documents, outcomes and sessions."""
from .chat import ChatMessage
from .enums import ACTION_TEXT, ChatFrom, ChatType, Decision, GameStatus, GameType, RpsAction
from .game import Applicant, Game, Participant, Round, RoundEntry
from .outcome import Outcome
from .requests import CreateRoomRequest, JoinRoomRequest, SendMessageRequest, SubmitActionRequest
from .room import Room, User
from .session import SessionContext

__all__ = [
    "ACTION_TEXT",
    "Applicant",
    "ChatFrom",
    "ChatMessage",
    "ChatType",
    "CreateRoomRequest",
    "Decision",
    "Game",
    "GameStatus",
    "GameType",
    "JoinRoomRequest",
    "Outcome",
    "Participant",
    "Room",
    "Round",
    "RoundEntry",
    "RpsAction",
    "SendMessageRequest",
    "SessionContext",
    "SubmitActionRequest",
    "User",
]
