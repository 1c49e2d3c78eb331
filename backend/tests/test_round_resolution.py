"""Tests for round resolution: the pure decision table and the engine."""
import itertools

import pytest

from rps_room.schemas import Applicant, Decision, Participant, RoundEntry, RpsAction
from rps_room.services.round_resolution import BEATS, resolve_round, winning_action

from conftest import chat_messages, create_room_with, playing_game, session

PLAYABLE = [RpsAction.STONE, RpsAction.PAPER, RpsAction.SCISSORS]


def applicants(*names, fallen=()):
    return [Applicant(identity=f"id-{n}", name=n, fallen=n in fallen) for n in names]


def detail(**choices):
    """Round detail in keyword order, e.g. detail(ann=RpsAction.STONE)."""
    return {
        f"id-{name}": RoundEntry.build(Participant(identity=f"id-{name}", name=name), action)
        for name, action in choices.items()
    }


class TestBeatsRelation:
    def test_fixed_relation(self):
        assert winning_action(RpsAction.STONE, RpsAction.SCISSORS) == RpsAction.STONE
        assert winning_action(RpsAction.SCISSORS, RpsAction.PAPER) == RpsAction.SCISSORS
        assert winning_action(RpsAction.PAPER, RpsAction.STONE) == RpsAction.PAPER

    @pytest.mark.parametrize("a,b", list(itertools.permutations(PLAYABLE, 2)))
    def test_antisymmetric(self, a, b):
        assert winning_action(a, b) == winning_action(b, a)
        assert winning_action(a, b) in (a, b)

    def test_every_action_beats_exactly_one(self):
        assert sorted(BEATS.values()) == sorted(BEATS.keys())
        assert all(BEATS[a] != a for a in BEATS)

    @pytest.mark.parametrize("a,b", [
        (RpsAction.STONE, RpsAction.STONE),
        (RpsAction.STONE, RpsAction.SURRENDER),
    ])
    def test_no_winner_for_invalid_pairs(self, a, b):
        with pytest.raises(ValueError):
            winning_action(a, b)


class TestResolveRound:
    def test_sole_survivor_wins_before_processing(self):
        result = resolve_round(
            applicants("ann", "bob", fallen=("bob",)),
            detail(ann=RpsAction.STONE, bob=RpsAction.PAPER),
        )
        assert result.decision == Decision.END_SOLE_SURVIVOR
        assert result.winner.identity == "id-ann"

    def test_no_survivors(self):
        result = resolve_round(applicants("ann", "bob", fallen=("ann", "bob")), {})
        assert result.decision == Decision.END_NO_SURVIVORS
        assert result.winner is None

    def test_no_submissions(self):
        result = resolve_round(applicants("ann", "bob"), {})
        assert result.decision == Decision.END_NO_CHOICE
        assert result.winner is None

    def test_missing_round_detail(self):
        assert resolve_round(applicants("ann", "bob"), None).decision == Decision.END_NO_CHOICE

    def test_single_submission_wins(self):
        result = resolve_round(applicants("ann", "bob"), detail(ann=RpsAction.SCISSORS))
        assert result.decision == Decision.END_SINGLE_CHOICE
        assert result.winner.name == "ann"

    def test_everyone_surrendered(self):
        result = resolve_round(
            applicants("ann", "bob"),
            detail(ann=RpsAction.SURRENDER, bob=RpsAction.SURRENDER),
        )
        assert result.decision == Decision.END_ALL_SURRENDERED
        assert result.winner is None
        assert set(result.fallen) == {"id-ann", "id-bob"}

    def test_unanimous_is_tie(self):
        result = resolve_round(applicants("ann", "bob"), detail(ann=RpsAction.PAPER, bob=RpsAction.PAPER))
        assert result.decision == Decision.TIE

    def test_scenario_a_two_winners_tie(self):
        result = resolve_round(
            applicants("ann", "bob", "cat"),
            detail(ann=RpsAction.STONE, bob=RpsAction.STONE, cat=RpsAction.SCISSORS),
        )
        assert result.decision == Decision.TIE
        assert result.winning_action == RpsAction.STONE
        assert result.fallen == ()

    def test_scenario_b_paper_beats_stone(self):
        result = resolve_round(applicants("ann", "bob"), detail(ann=RpsAction.PAPER, bob=RpsAction.STONE))
        assert result.decision == Decision.WINNER
        assert result.winner.name == "ann"

    def test_scenario_c_three_way_tie(self):
        result = resolve_round(
            applicants("ann", "bob", "cat"),
            detail(ann=RpsAction.STONE, bob=RpsAction.PAPER, cat=RpsAction.SCISSORS),
        )
        assert result.decision == Decision.TIE
        assert result.fallen == ()

    def test_scenario_d_single_submitter(self):
        result = resolve_round(applicants("ann", "bob"), detail(bob=RpsAction.STONE))
        assert result.decision == Decision.END_SINGLE_CHOICE
        assert result.winner.name == "bob"

    def test_scenario_e_surrender_eliminated_and_winner(self):
        result = resolve_round(
            applicants("ann", "bob", "cat"),
            detail(ann=RpsAction.SURRENDER, bob=RpsAction.STONE, cat=RpsAction.PAPER),
        )
        assert result.fallen == ("id-ann",)
        assert result.decision == Decision.WINNER
        assert result.winner.name == "cat"

    def test_surrender_eliminates_in_tie(self):
        result = resolve_round(
            applicants("ann", "bob", "cat"),
            detail(ann=RpsAction.SURRENDER, bob=RpsAction.STONE, cat=RpsAction.STONE),
        )
        assert result.decision == Decision.TIE
        assert result.fallen == ("id-ann",)

    @pytest.mark.parametrize("choices", [
        (RpsAction.STONE, RpsAction.SCISSORS, RpsAction.SCISSORS),
        (RpsAction.PAPER, RpsAction.PAPER, RpsAction.SCISSORS, RpsAction.SCISSORS),
        (RpsAction.STONE, RpsAction.PAPER, RpsAction.SCISSORS, RpsAction.STONE),
    ])
    def test_deterministic_and_order_independent(self, choices):
        names = [f"p{i}" for i in range(len(choices))]
        forward = resolve_round(applicants(*names), detail(**dict(zip(names, choices))))
        backward = resolve_round(
            applicants(*names), detail(**dict(reversed(list(zip(names, choices)))))
        )
        again = resolve_round(applicants(*names), detail(**dict(zip(names, choices))))
        assert forward.decision == backward.decision == again.decision
        assert forward.winner == backward.winner == again.winner


ANN, BOB, CAT = session("Ann"), session("Bob"), session("Cat")


class TestRoundResolutionEngine:
    async def _submit(self, services, room_id, game_id, **choices):
        for player, action in choices.items():
            outcome = await services.lifecycle.submit_action(room_id, game_id, session(player), action)
            assert outcome.ok, outcome

    def _game(self, store, room_id):
        return store.get(f"rooms/{room_id}/gameList/0")

    @pytest.mark.asyncio
    async def test_round_not_expired_is_noop(self, services, clock, store):
        room_id, game_id = await playing_game(services, clock, ANN, BOB)
        outcome = await services.engine.resolve(room_id, game_id)
        assert outcome.ok
        assert outcome.data["decision"] is None
        assert self._game(store, room_id)["status"] == "playing"

    @pytest.mark.asyncio
    async def test_scenario_b_game_ends_with_winner(self, services, clock, store):
        room_id, game_id = await playing_game(services, clock, ANN, BOB)
        await self._submit(services, room_id, game_id, Ann=RpsAction.PAPER, Bob=RpsAction.STONE)
        clock.advance(21)

        outcome = await services.engine.resolve(room_id, game_id)

        assert outcome.data["decision"] == "winner"
        game = self._game(store, room_id)
        assert game["status"] == "end"
        assert game["winner"] == {"identity": "id-ann", "name": "Ann"}
        end = chat_messages(store, room_id, "gameEnd")
        assert end[-1]["message"] == (
            f'The game "{game_id}" end now, this round result: '
            "Ann choose Paper 🖐️, Bob choose Stone ✊, Ann win!"
        )

    @pytest.mark.asyncio
    async def test_scenario_a_tie_opens_next_round(self, services, clock, store):
        room_id, game_id = await playing_game(services, clock, ANN, BOB, CAT)
        await self._submit(
            services, room_id, game_id,
            Ann=RpsAction.STONE, Bob=RpsAction.STONE, Cat=RpsAction.SCISSORS,
        )
        clock.advance(21)

        outcome = await services.engine.resolve(room_id, game_id)

        assert outcome.data["decision"] == "tie"
        game = self._game(store, room_id)
        assert game["status"] == "playing"
        assert game["round"] == 2
        assert [r["round"] for r in game["roundList"]] == [1, 2]
        assert game["roundList"][1]["roundDetail"] == {}
        assert not any(a["fallen"] for a in game["applyUserList"])
        note = chat_messages(store, room_id, "gameNotification")[-1]
        assert note["message"].startswith(f'The game "{game_id}" go to next round 2, this round result: ')
        prompts = [
            m for m in chat_messages(store, room_id, "gameBroadcast")
            if "start round 2" in m["message"]
        ]
        assert {m["to"]["identity"] for m in prompts} == {"id-ann", "id-bob", "id-cat"}

    @pytest.mark.asyncio
    async def test_scenario_e_surrender_then_paper_wins(self, services, clock, store):
        room_id, game_id = await playing_game(services, clock, ANN, BOB, CAT)
        await self._submit(
            services, room_id, game_id,
            Ann=RpsAction.SURRENDER, Bob=RpsAction.STONE, Cat=RpsAction.PAPER,
        )
        clock.advance(21)

        await services.engine.resolve(room_id, game_id)

        game = self._game(store, room_id)
        assert game["status"] == "end"
        assert game["winner"]["name"] == "Cat"
        ann = next(a for a in game["applyUserList"] if a["identity"] == "id-ann")
        assert ann["fallen"] is True

    @pytest.mark.asyncio
    async def test_surrender_persists_through_tie_and_prompts_survivors_only(self, services, clock, store):
        room_id, game_id = await playing_game(services, clock, ANN, BOB, CAT)
        await self._submit(
            services, room_id, game_id,
            Ann=RpsAction.SURRENDER, Bob=RpsAction.STONE, Cat=RpsAction.STONE,
        )
        clock.advance(21)

        await services.engine.resolve(room_id, game_id)

        game = self._game(store, room_id)
        assert game["round"] == 2
        assert [a["fallen"] for a in game["applyUserList"]] == [True, False, False]
        round_two = [
            m["to"]["identity"] for m in chat_messages(store, room_id, "gameBroadcast")
            if "start round 2" in m["message"]
        ]
        assert sorted(round_two) == ["id-bob", "id-cat"]

    @pytest.mark.asyncio
    async def test_no_choice_ends_without_winner(self, services, clock, store):
        room_id, game_id = await playing_game(services, clock, ANN, BOB)
        clock.advance(21)
        await services.engine.resolve(room_id, game_id)
        game = self._game(store, room_id)
        assert game["status"] == "end"
        assert "winner" not in game or game["winner"] is None
        assert chat_messages(store, room_id, "gameEnd")[-1]["message"] == (
            f'The game "{game_id}" end now, because no one choose.'
        )

    @pytest.mark.asyncio
    async def test_resolving_twice_posts_once(self, services, clock, store):
        room_id, game_id = await playing_game(services, clock, ANN, BOB)
        await self._submit(services, room_id, game_id, Ann=RpsAction.PAPER, Bob=RpsAction.STONE)
        clock.advance(21)

        await services.engine.resolve(room_id, game_id)
        before = len(chat_messages(store, room_id))
        second = await services.engine.resolve(room_id, game_id)

        assert second.ok and second.data["decision"] is None
        assert len(chat_messages(store, room_id)) == before

    @pytest.mark.asyncio
    async def test_round_numbers_increase_by_one(self, services, clock, store):
        room_id, game_id = await playing_game(services, clock, ANN, BOB)
        for expected_round in (2, 3, 4):
            await self._submit(services, room_id, game_id, Ann=RpsAction.STONE, Bob=RpsAction.STONE)
            clock.advance(21)
            outcome = await services.engine.resolve(room_id, game_id)
            assert outcome.data["round"] == expected_round
        rounds = [r["round"] for r in self._game(store, room_id)["roundList"]]
        assert rounds == [1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_force_resolves_open_round(self, services, clock, store):
        room_id, game_id = await playing_game(services, clock, ANN, BOB)
        await self._submit(services, room_id, game_id, Ann=RpsAction.SCISSORS, Bob=RpsAction.PAPER)
        outcome = await services.engine.resolve(room_id, game_id, force=True)
        assert outcome.data["winner"]["name"] == "Ann"

    @pytest.mark.asyncio
    async def test_waiting_game_rejected(self, services, clock, store):
        room_id = await create_room_with(services, ANN)
        hosted = await services.lifecycle.host_game(room_id, ANN)
        outcome = await services.engine.resolve(room_id, hosted.data["game"]["gameId"])
        assert outcome.code == "GAME_NOT_STARTED"

    @pytest.mark.asyncio
    async def test_unknown_game(self, services, clock):
        room_id, _ = await playing_game(services, clock, ANN, BOB)
        outcome = await services.engine.resolve(room_id, "nope00")
        assert outcome.code == "GAME_NOT_FOUND"
        assert outcome.http_status == 404
