"""Game evaluation loops.

GamePoller runs one evaluation pass over a room's games: expire stale waiting
games, start games whose start delay elapsed, resolve rounds whose consider
window closed. GameScheduler owns one asyncio task per active game that sleeps
until the game's next deadline and then asks the poller to evaluate it.
"""
import asyncio
import logging
from typing import Optional

from rps_room.core.exceptions import AppException, outcome_boundary
from rps_room.schemas import Game, GameStatus, SessionContext
from rps_room.services.game_lifecycle import GameLifecycleController
from rps_room.services.round_resolution import RoundResolutionEngine
from rps_room.storage.paths import ROOMS

logger = logging.getLogger(__name__)


class GamePoller:
    """Evaluates games on demand or on a fixed interval."""

    def __init__(self, lifecycle: GameLifecycleController, engine: RoundResolutionEngine) -> None:
        self.lifecycle = lifecycle
        self.engine = engine
        self._task: Optional[asyncio.Task] = None

    @property
    def settings(self):
        return self.lifecycle.settings

    def next_deadline(self, game: Game) -> Optional[int]:
        """Epoch ms of the next moment evaluating ``game`` can change it."""
        if game.status == GameStatus.END:
            return None
        now = self.lifecycle.clock()
        if game.status == GameStatus.WAITING:
            if self.lifecycle.is_startable(game) or self.lifecycle.is_expirable(game):
                return now
            start_at = game.created_at + self.settings.start_delay_ms
            if start_at > now:
                return start_at
            # Waiting for a second applicant, or for the preparation window to close
            expire_at = game.created_at + self.settings.preparation_ms + 1
            return min(expire_at, now + int(self.settings.POLL_INTERVAL_SECOND * 1000))
        current = game.current_round()
        if current is None:
            return now
        return current.created_at + self.settings.consider_ms + 1

    async def evaluate_game(
        self,
        room_id: str,
        game_id: str,
        session: Optional[SessionContext] = None,
    ) -> Optional[str]:
        """Advance one game if one of its deadlines passed.

        Returns a short description of the transition, or None when nothing
        changed. With a session only that session's own games are started.
        """
        game = self.lifecycle.find_game(room_id, game_id)
        if game is None:
            return None

        if game.status == GameStatus.WAITING:
            if self.lifecycle.is_expirable(game):
                outcome = await self.lifecycle.expire_game(room_id, game_id)
                return "expired" if outcome.ok else None
            if self.lifecycle.is_startable(game):
                if session is not None and session.identity != game.host.identity:
                    return None
                outcome = await self.lifecycle.start_game(room_id, game_id, session)
                return "started" if outcome.ok else None
            return None

        if game.status == GameStatus.PLAYING and self.engine.round_expired(game):
            outcome = await self.engine.resolve(room_id, game_id)
            if outcome.ok and outcome.data.get("decision"):
                return outcome.data["decision"]
        return None

    @outcome_boundary
    async def evaluate_room(self, room_id: str, session: Optional[SessionContext] = None) -> dict:
        """One pass over every active game of a room."""
        transitions = []
        for game in self.lifecycle.load_games(room_id):
            if not game.is_active():
                continue
            result = await self.evaluate_game(room_id, game.game_id, session)
            if result:
                transitions.append({"gameId": game.game_id, "transition": result})
        return {"roomId": room_id, "transitions": transitions}

    def start(self, room_id: str, session: Optional[SessionContext] = None) -> None:
        """Evaluate ``room_id`` every POLL_INTERVAL_SECOND until stop()."""
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._loop(room_id, session), name=f"poller:{room_id}")

    async def _loop(self, room_id: str, session: Optional[SessionContext]) -> None:
        while True:
            outcome = await self.evaluate_room(room_id, session)
            if outcome.failed:
                logger.warning("Poll of room %s failed: %s", room_id, outcome.code)
            await asyncio.sleep(self.settings.POLL_INTERVAL_SECOND)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None


class GameScheduler:
    """One asyncio task per active game, finished once the game ends."""

    def __init__(self, poller: GamePoller) -> None:
        self.poller = poller
        self._tasks: dict[tuple[str, str], asyncio.Task] = {}

    @property
    def active_count(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    def is_scheduled(self, room_id: str, game_id: str) -> bool:
        task = self._tasks.get((room_id, game_id))
        return task is not None and not task.done()

    def schedule(self, room_id: str, game_id: str) -> bool:
        """Start the game's task unless it already runs."""
        key = (room_id, game_id)
        if self.is_scheduled(room_id, game_id):
            return False
        task = asyncio.create_task(self._run(room_id, game_id), name=f"game:{room_id}/{game_id}")
        self._tasks[key] = task

        def _forget(done: asyncio.Task) -> None:
            if self._tasks.get(key) is done:
                del self._tasks[key]

        task.add_done_callback(_forget)
        return True

    def resume_all(self) -> int:
        """Schedule every active game found in the store."""
        rooms = self.poller.lifecycle.store.get(ROOMS) or {}
        scheduled = 0
        for room_id, room in rooms.items():
            for game in room.get("gameList") or []:
                if game.get("status") != GameStatus.END.value and self.schedule(room_id, game["gameId"]):
                    scheduled += 1
        if scheduled:
            logger.info("Resumed %d active game(s)", scheduled)
        return scheduled

    async def _run(self, room_id: str, game_id: str) -> None:
        log_extra = {"game_id": game_id, "room_id": room_id}
        interval = self.poller.settings.POLL_INTERVAL_SECOND
        idle = False
        logger.debug("Scheduler task started for game %s", game_id, extra=log_extra)
        while True:
            try:
                game = self.poller.lifecycle.find_game(room_id, game_id)
                if game is None or not game.is_active():
                    break
                deadline = self.poller.next_deadline(game)
                delay = max(deadline - self.poller.lifecycle.clock(), 0) / 1000
                if idle:
                    delay = max(delay, interval)
                await asyncio.sleep(delay)
                idle = await self.poller.evaluate_game(room_id, game_id) is None
            except AppException as e:
                # Room vanished or store unavailable
                logger.warning("Scheduler for game %s: %s", game_id, e.message, extra=log_extra)
                if e.code == "ROOM_NOT_FOUND":
                    break
                idle = True
                await asyncio.sleep(interval)
            except Exception:
                logger.error("Scheduler for game %s failed", game_id, exc_info=True, extra=log_extra)
                idle = True
                await asyncio.sleep(interval)
        logger.info("Scheduler finished for game %s", game_id, extra=log_extra)

    def cancel(self, room_id: str, game_id: str) -> None:
        task = self._tasks.pop((room_id, game_id), None)
        if task is not None:
            task.cancel()

    async def shutdown(self) -> None:
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
