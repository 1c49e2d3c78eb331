"""Round resolution - decides what happens when a round's consider window closes.

``resolve_round`` is a pure function over the applicants and the round's
submissions. ``RoundResolutionEngine`` loads the game, applies the decision to
the store and announces it in the chat log.

Decision table, first match wins:

1. At most one survivor before the round -> end, survivor (or nobody) wins.
2. No submissions -> end, nobody wins.
3. One submission -> end, the submitter wins.
4. Two or more submissions. Surrenders are eliminated in every case, then
   over the distinct non-surrender actions:
   - none -> end, nobody wins
   - one or three -> tie, new round
   - two -> the beaten action loses; one holder of the winning action wins,
     several holders tie and play a new round
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from rps_room.core.exceptions import GameNotStartedError, outcome_boundary
from rps_room.i18n import t
from rps_room.schemas import (
    Applicant,
    ChatType,
    Decision,
    Game,
    GameStatus,
    Participant,
    Round,
    RoundEntry,
    RpsAction,
)
from rps_room.services.base import RoomService

logger = logging.getLogger(__name__)

# Each action beats exactly one other action
BEATS: dict[RpsAction, RpsAction] = {
    RpsAction.STONE: RpsAction.SCISSORS,
    RpsAction.SCISSORS: RpsAction.PAPER,
    RpsAction.PAPER: RpsAction.STONE,
}


def winning_action(a: RpsAction, b: RpsAction) -> RpsAction:
    """Return whichever of two distinct playable actions wins."""
    if a == b or a not in BEATS or b not in BEATS:
        raise ValueError(f"No winner between {a.value} and {b.value}")
    return a if BEATS[a] == b else b


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one round."""
    decision: Decision
    winner: Optional[Participant] = None
    # Identities eliminated by surrendering this round
    fallen: tuple[str, ...] = ()
    # Submissions in submission order
    entries: tuple[RoundEntry, ...] = ()
    winning_action: Optional[RpsAction] = None
    distinct_actions: tuple[RpsAction, ...] = field(default=())


def _distinct(actions: Iterable[RpsAction]) -> tuple[RpsAction, ...]:
    seen: list[RpsAction] = []
    for action in actions:
        if action not in seen:
            seen.append(action)
    return tuple(seen)


def resolve_round(
    applicants: list[Applicant],
    round_detail: Optional[dict[str, RoundEntry]],
) -> Resolution:
    survivors = [a for a in applicants if not a.fallen]
    if len(survivors) <= 1:
        if survivors:
            sole = Participant(identity=survivors[0].identity, name=survivors[0].name)
            return Resolution(Decision.END_SOLE_SURVIVOR, winner=sole)
        return Resolution(Decision.END_NO_SURVIVORS)

    entries = tuple((round_detail or {}).values())
    if not entries:
        return Resolution(Decision.END_NO_CHOICE)
    if len(entries) == 1:
        return Resolution(Decision.END_SINGLE_CHOICE, winner=entries[0].user, entries=entries)

    fallen = tuple(e.user.identity for e in entries if e.action == RpsAction.SURRENDER)
    actions = _distinct(e.action for e in entries if e.action != RpsAction.SURRENDER)

    if not actions:
        return Resolution(Decision.END_ALL_SURRENDERED, fallen=fallen, entries=entries)

    if len(actions) != 2:
        return Resolution(Decision.TIE, fallen=fallen, entries=entries, distinct_actions=actions)

    winning = winning_action(*actions)
    holders = [e for e in entries if e.action == winning]
    if len(holders) == 1:
        return Resolution(
            Decision.WINNER,
            winner=holders[0].user,
            fallen=fallen,
            entries=entries,
            winning_action=winning,
            distinct_actions=actions,
        )
    # Losers of a sub-round are not eliminated, only surrender eliminates
    return Resolution(
        Decision.TIE,
        fallen=fallen,
        entries=entries,
        winning_action=winning,
        distinct_actions=actions,
    )


class RoundResolutionEngine(RoomService):
    """Applies ``resolve_round`` to a stored game once its round has expired."""

    def __init__(self, *args, lifecycle=None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        # GameLifecycleController, used to prompt survivors of a new round
        self.lifecycle = lifecycle

    def round_expired(self, game: Game) -> bool:
        current = game.current_round()
        if current is None:
            return True
        return self.clock() - current.created_at > self.settings.consider_ms

    @outcome_boundary
    async def resolve(self, room_id: str, game_id: str, force: bool = False) -> dict:
        async with self.room_lock(room_id):
            index, game = self.load_game(room_id, game_id)

            if game.status == GameStatus.END:
                return {"gameId": game_id, "decision": None, "status": game.status.value}
            if game.status == GameStatus.WAITING:
                raise GameNotStartedError(game_id)
            if not force and not self.round_expired(game):
                return {"gameId": game_id, "decision": None, "status": game.status.value, "round": game.round}

            current = game.current_round()
            resolution = resolve_round(game.apply_user_list, current.round_detail if current else None)
            self._apply(room_id, index, game, resolution)

        return {
            "gameId": game_id,
            "decision": resolution.decision.value,
            "status": game.status.value,
            "round": game.round,
            "winner": game.winner.to_document() if game.winner else None,
            "fallen": list(resolution.fallen),
        }

    def summary(self, resolution: Resolution) -> str:
        return ", ".join(
            t("game.choice", self.language, name=e.user.name, action_text=e.action_text)
            for e in resolution.entries
        )

    def _apply(self, room_id: str, index: int, game: Game, resolution: Resolution) -> None:
        log_extra = {"game_id": game.game_id, "room_id": room_id}

        for identity in resolution.fallen:
            applicant = game.find_applicant(identity)
            if applicant is not None and not applicant.fallen:
                applicant.fallen = True
                logger.info("%s surrendered and is out", applicant.name, extra=log_extra)

        if resolution.decision.ends_game:
            game.status = GameStatus.END
            game.winner = resolution.winner
            self.save_game(room_id, index, game)
            logger.info(
                "Game %s ended (%s), winner: %s",
                game.game_id,
                resolution.decision.value,
                game.winner.name if game.winner else "nobody",
                extra=log_extra,
            )
            self.dispatcher.post_once(
                room_id,
                self.dispatcher.system_entry(
                    ChatType.GAME_END, self._end_message(game, resolution), game_id=game.game_id
                ),
            )
            return

        game.round += 1
        game.round_list.append(Round(round=game.round, created_at=self.clock()))
        self.save_game(room_id, index, game)
        logger.info(
            "Game %s tied on %s, starting round %d",
            game.game_id,
            "/".join(a.value for a in resolution.distinct_actions),
            game.round,
            extra=log_extra,
        )
        self.dispatcher.post_once(
            room_id,
            self.dispatcher.system_entry(
                ChatType.GAME_NOTIFICATION,
                t(
                    "game.next_round",
                    self.language,
                    game_id=game.game_id,
                    round=game.round,
                    summary=self.summary(resolution),
                ),
                game_id=game.game_id,
            ),
        )
        if self.lifecycle is not None:
            self.lifecycle.prompt_survivors(room_id, game)

    def _end_message(self, game: Game, resolution: Resolution) -> str:
        decision = resolution.decision
        if decision == Decision.WINNER:
            return t(
                "game.end_winner",
                self.language,
                game_id=game.game_id,
                summary=self.summary(resolution),
                winner=resolution.winner.name,
            )
        if decision == Decision.END_SOLE_SURVIVOR:
            return t("game.end_sole_survivor", self.language, game_id=game.game_id, winner=resolution.winner.name)
        if decision == Decision.END_NO_SURVIVORS:
            return t("game.end_no_survivors", self.language, game_id=game.game_id)
        if decision == Decision.END_SINGLE_CHOICE:
            return t("game.end_single_choice", self.language, game_id=game.game_id)
        # No playable action was chosen
        return t("game.end_no_choice", self.language, game_id=game.game_id)
