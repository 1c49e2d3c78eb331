"""Pytest configuration and fixtures for backend tests."""
import os

import pytest

# Set test environment before importing the app
os.environ["DEBUG"] = "true"
os.environ["STORE_BACKEND"] = "memory"

from rps_room.core.config import Settings
from rps_room.schemas import SessionContext
from rps_room.services import build_services
from rps_room.storage.locks import LocalLockManager
from rps_room.storage.memory import InMemoryStore

# Fixed epoch ms all test clocks start from
START_MS = 1_700_000_000_000


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: int = START_MS):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> int:
        self.now += int(seconds * 1000)
        return self.now


def make_settings(**overrides) -> Settings:
    values = dict(
        GAME_START_TIME_SECOND=60,
        GAME_PREPARATION_TIME_SECOND=120,
        GAME_CONSIDER_TIME_SECOND=20,
        POLL_INTERVAL_SECOND=5,
        STORE_BACKEND="memory",
        LANGUAGE="en",
        LOCK_ACQUIRE_TIMEOUT_SECOND=1,
    )
    values.update(overrides)
    return Settings(**values)


def session(name: str) -> SessionContext:
    return SessionContext(identity=f"id-{name.lower()}", name=name)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def services(settings, store, clock):
    return build_services(settings, store=store, locks=LocalLockManager(acquire_timeout=1), clock=clock)


async def create_room_with(services, host: SessionContext, *members: SessionContext) -> str:
    """Create a room hosted by ``host`` and join ``members``; returns the room id."""
    outcome = await services.rooms.create_room(host.name, host.identity)
    assert outcome.ok, outcome
    room_id = outcome.data["roomId"]
    for member in members:
        joined = await services.rooms.join_room(room_id, member)
        assert joined.ok, joined
    return room_id


async def playing_game(services, clock, host: SessionContext, *players: SessionContext):
    """Room plus a started game with ``host`` and ``players`` applied; returns (room_id, game_id)."""
    room_id = await create_room_with(services, host, *players)
    hosted = await services.lifecycle.host_game(room_id, host)
    assert hosted.ok, hosted
    game_id = hosted.data["game"]["gameId"]
    for player in players:
        applied = await services.lifecycle.apply_to_game(room_id, game_id, player)
        assert applied.ok, applied
    clock.advance(services.lifecycle.settings.GAME_START_TIME_SECOND)
    started = await services.lifecycle.start_game(room_id, game_id)
    assert started.ok, started
    return room_id, game_id


def chat_messages(store, room_id: str, chat_type: str = None) -> list[dict]:
    chat = store.get(f"rooms/{room_id}/chatList") or []
    return [c for c in chat if chat_type is None or c["type"] == chat_type]
