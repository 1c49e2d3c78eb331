"""Room and game services wired against one store."""
from dataclasses import dataclass
from typing import Optional

from rps_room.core.clock import Clock, now_ms
from rps_room.core.config import Settings
from rps_room.services.game_lifecycle import GameLifecycleController
from rps_room.services.game_poller import GamePoller, GameScheduler
from rps_room.services.notification_service import NotificationDispatcher
from rps_room.services.room_manager import RoomManager
from rps_room.services.round_resolution import RoundResolutionEngine
from rps_room.storage import create_lock_manager, create_store
from rps_room.storage.backend import SharedStore

__all__ = [
    "GameLifecycleController",
    "GamePoller",
    "GameScheduler",
    "NotificationDispatcher",
    "RoomManager",
    "RoundResolutionEngine",
    "Services",
    "build_services",
]


@dataclass
class Services:
    store: SharedStore
    dispatcher: NotificationDispatcher
    rooms: RoomManager
    lifecycle: GameLifecycleController
    engine: RoundResolutionEngine
    poller: GamePoller
    scheduler: GameScheduler


def build_services(
    settings: Settings,
    store: Optional[SharedStore] = None,
    locks=None,
    clock: Clock = now_ms,
) -> Services:
    """Create every service sharing one store, lock manager and clock."""
    store = store if store is not None else create_store(settings)
    locks = locks if locks is not None else create_lock_manager(store, settings)
    dispatcher = NotificationDispatcher(store, clock=clock, language=settings.LANGUAGE)

    common = dict(store=store, locks=locks, dispatcher=dispatcher, settings=settings, clock=clock)
    rooms = RoomManager(**common)
    lifecycle = GameLifecycleController(**common)
    engine = RoundResolutionEngine(**common, lifecycle=lifecycle)
    poller = GamePoller(lifecycle, engine)
    return Services(
        store=store,
        dispatcher=dispatcher,
        rooms=rooms,
        lifecycle=lifecycle,
        engine=engine,
        poller=poller,
        scheduler=GameScheduler(poller),
    )
