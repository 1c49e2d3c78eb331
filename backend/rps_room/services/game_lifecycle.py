"""Game lifecycle - hosting, applying, starting, expiring and action submission.

Status only moves forward: waiting -> playing -> end.
Every method runs under the room lock and re-reads the game before deciding.
"""
import logging
from typing import Optional

from rps_room.core.exceptions import (
    AlreadyAppliedError,
    AlreadySubmittedError,
    GameEndedError,
    GameExpiredError,
    GameInProgressError,
    GameNotReadyError,
    GameNotStartedError,
    InvalidInputError,
    NotHostError,
    NotInGameError,
    NotInRoomError,
    outcome_boundary,
)
from rps_room.core.identity import generate_random_code
from rps_room.i18n import t
from rps_room.schemas import (
    Applicant,
    ChatType,
    Game,
    GameStatus,
    Participant,
    Round,
    RoundEntry,
    RpsAction,
    SessionContext,
)
from rps_room.services.base import RoomService
from rps_room.storage.paths import game_path, room_path

logger = logging.getLogger(__name__)

GAME_ID_LENGTH = 6
MIN_PLAYERS = 2


class GameLifecycleController(RoomService):
    """Owns every status transition of a room's games."""

    # ------------------------------------------------------------ time rules

    def in_preparation(self, game: Game) -> bool:
        """True while the game still accepts applicants."""
        return self.clock() - game.created_at <= self.settings.preparation_ms

    def start_delay_elapsed(self, game: Game) -> bool:
        return self.clock() - game.created_at >= self.settings.start_delay_ms

    def is_expirable(self, game: Game) -> bool:
        return (
            game.status == GameStatus.WAITING
            and not self.in_preparation(game)
            and len(game.apply_user_list) < MIN_PLAYERS
        )

    def is_startable(self, game: Game) -> bool:
        return (
            game.status == GameStatus.WAITING
            and self.start_delay_elapsed(game)
            and len(game.survivors()) >= MIN_PLAYERS
        )

    # ------------------------------------------------------------- hosting

    @outcome_boundary
    async def host_game(self, room_id: str, session: SessionContext) -> dict:
        async with self.room_lock(room_id):
            room = self.load_room(room_id)
            if room.find_user(session.identity) is None:
                raise NotInRoomError(room_id)

            for index, game in enumerate(room.game_list):
                if self.is_expirable(game):
                    self._expire(room_id, index, game)
            # At most one waiting or playing game per room
            for game in room.game_list:
                if game.is_active():
                    raise GameInProgressError(game.game_id)

            game = self._create(room_id, session.as_participant(), room.game_list)
        return {"game": game.to_document()}

    @outcome_boundary
    async def create_game(self, room_id: str, host: Participant) -> dict:
        async with self.room_lock(room_id):
            games = self.load_games(room_id)
            game = self._create(room_id, host, games)
        return {"game": game.to_document()}

    def _create(self, room_id: str, host: Participant, existing: list[Game]) -> Game:
        taken = {g.game_id for g in existing}
        game_id = generate_random_code(GAME_ID_LENGTH)
        while game_id in taken:
            game_id = generate_random_code(GAME_ID_LENGTH)

        game = Game(
            game_id=game_id,
            created_at=self.clock(),
            host=host,
            apply_user_list=[Applicant(identity=host.identity, name=host.name)],
        )
        self.store.append(room_path(room_id, "gameList"), game.to_document())
        self.dispatcher.post(
            room_id,
            self.dispatcher.system_entry(
                ChatType.GAME,
                t("game.invitation", self.language, name=host.name),
                game_id=game_id,
                user_identity=host.identity,
            ),
        )
        logger.info(
            "Game %s created by %s", game_id, host.name,
            extra={"game_id": game_id, "room_id": room_id},
        )
        return game

    # ------------------------------------------------------------ applying

    @outcome_boundary
    async def apply_to_game(self, room_id: str, game_id: str, session: SessionContext) -> dict:
        async with self.room_lock(room_id):
            index, game = self.load_game(room_id, game_id)
            if game.status == GameStatus.END:
                raise GameEndedError(game_id)
            if game.status == GameStatus.PLAYING:
                raise GameInProgressError(game_id)
            if not self.in_preparation(game):
                raise GameExpiredError(game_id)
            if game.find_applicant(session.identity) is not None:
                raise AlreadyAppliedError(game_id)

            applicant = Applicant(identity=session.identity, name=session.name)
            self.store.append(game_path(room_id, index, "applyUserList"), applicant.to_document())
            self.dispatcher.post(
                room_id,
                self.dispatcher.system_entry(
                    ChatType.GAME_JOIN,
                    t("game.joined", self.language, name=session.name),
                    game_id=game_id,
                    user_identity=session.identity,
                ),
            )
        logger.info(
            "%s joined game %s (%d applicants)", session.name, game_id, len(game.apply_user_list) + 1,
            extra={"game_id": game_id, "room_id": room_id},
        )
        return {"gameId": game_id, "applicants": len(game.apply_user_list) + 1}

    # ------------------------------------------------------------ starting

    @outcome_boundary
    async def start_game(
        self,
        room_id: str,
        game_id: str,
        session: Optional[SessionContext] = None,
    ) -> dict:
        """Promote a waiting game to playing.

        ``session=None`` is the room authority (scheduler). A participant
        session may only start games it hosts.
        """
        async with self.room_lock(room_id):
            index, game = self.load_game(room_id, game_id)
            if session is not None and session.identity != game.host.identity:
                raise NotHostError(game_id)
            if game.status != GameStatus.WAITING:
                raise GameNotReadyError(game_id, f"status is {game.status.value}")
            if not self.start_delay_elapsed(game):
                raise GameNotReadyError(game_id, "start delay has not elapsed")
            if len(game.survivors()) < MIN_PLAYERS:
                raise GameNotReadyError(game_id, "not enough players")

            game.status = GameStatus.PLAYING
            game.round = 1
            game.round_list = [Round(round=1, created_at=self.clock())]
            self.save_game(room_id, index, game)

            self.dispatcher.post_once(
                room_id,
                self.dispatcher.system_entry(
                    ChatType.GAME_START,
                    t("game.begin", self.language, game_id=game_id),
                    game_id=game_id,
                ),
            )
            self.prompt_survivors(room_id, game)

        logger.info(
            "Game %s started with %d players", game_id, len(game.apply_user_list),
            extra={"game_id": game_id, "room_id": room_id},
        )
        return {"gameId": game_id, "round": game.round, "status": game.status.value}

    @outcome_boundary
    async def prompt_round(self, room_id: str, game_id: str) -> dict:
        async with self.room_lock(room_id):
            _, game = self.load_game(room_id, game_id)
            if game.status == GameStatus.END:
                raise GameEndedError(game_id)
            if game.status == GameStatus.WAITING:
                raise GameNotStartedError(game_id)
            posted = self.prompt_survivors(room_id, game)
        return {"gameId": game_id, "round": game.round, "posted": posted}

    def prompt_survivors(self, room_id: str, game: Game) -> int:
        """Post the private choose-now prompt for the current round to each survivor.

        The caller holds the room lock. Returns how many prompts were new.
        """
        survivors = game.survivors()
        message = t(
            "game.round_prompt",
            self.language,
            game_id=game.game_id,
            round=game.round,
            seconds=self.settings.GAME_CONSIDER_TIME_SECOND,
            host=game.host.name,
        )
        description = t(
            "game.round_prompt_description",
            self.language,
            names=", ".join(a.name for a in game.apply_user_list),
            survivors=len(survivors),
            applicants=len(game.apply_user_list),
        )
        posted = 0
        for applicant in survivors:
            entry = self.dispatcher.system_entry(
                ChatType.GAME_BROADCAST,
                message,
                game_id=game.game_id,
                to=Participant(identity=applicant.identity, name=applicant.name),
                description=description,
            )
            if self.dispatcher.post_once(room_id, entry) is not None:
                posted += 1
        return posted

    # ------------------------------------------------------------ expiring

    @outcome_boundary
    async def expire_game(self, room_id: str, game_id: str) -> dict:
        async with self.room_lock(room_id):
            index, game = self.load_game(room_id, game_id)
            if not self.is_expirable(game):
                raise GameNotReadyError(game_id, "game is not expirable")
            self._expire(room_id, index, game)
        return {"gameId": game_id, "status": game.status.value}

    def _expire(self, room_id: str, index: int, game: Game) -> None:
        game.status = GameStatus.END
        game.winner = None
        self.save_game(room_id, index, game)
        self.dispatcher.post_once(
            room_id,
            self.dispatcher.system_entry(
                ChatType.GAME_END,
                t("game.expired", self.language, game_id=game.game_id),
                game_id=game.game_id,
            ),
        )
        logger.info(
            "Game %s expired with %d applicant(s)", game.game_id, len(game.apply_user_list),
            extra={"game_id": game.game_id, "room_id": room_id},
        )

    # ---------------------------------------------------------- submitting

    @outcome_boundary
    async def submit_action(
        self,
        room_id: str,
        game_id: str,
        session: SessionContext,
        action: RpsAction,
    ) -> dict:
        try:
            action = RpsAction(action)
        except ValueError:
            raise InvalidInputError("action", f"Unknown action: {action}") from None
        async with self.room_lock(room_id):
            index, game = self.load_game(room_id, game_id)
            if game.status == GameStatus.END:
                raise GameEndedError(game_id)
            current = game.current_round()
            if game.status == GameStatus.WAITING or current is None:
                raise GameNotStartedError(game_id)
            if self.clock() - current.created_at > self.settings.consider_ms:
                raise GameExpiredError(game_id, "This round is over, wait for the next one.")

            applicant = game.find_applicant(session.identity)
            if applicant is None:
                raise NotInGameError(game_id)
            if applicant.fallen:
                raise NotInGameError(game_id, "You have been eliminated from the game.")
            if session.identity in current.round_detail:
                raise AlreadySubmittedError(game_id, current.round)

            round_index = game.round_list.index(current)
            entry = RoundEntry.build(session.as_participant(), action)
            self.store.set(
                game_path(room_id, index, "roundList", round_index, "roundDetail", session.identity),
                entry.to_document(),
            )

        logger.info(
            "%s submitted for round %d of game %s", session.name, current.round, game_id,
            extra={"game_id": game_id, "room_id": room_id},
        )
        return {"gameId": game_id, "round": current.round, "action": action.value}
