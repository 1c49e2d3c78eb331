"""Tests for GamePoller evaluation and GameScheduler tasks."""
import asyncio
import logging
from unittest.mock import patch

import pytest

from rps_room.schemas import Game
from rps_room.services import build_services
from rps_room.storage.locks import LocalLockManager

from conftest import START_MS, chat_messages, create_room_with, make_settings, playing_game, session

ANN, BOB = session("Ann"), session("Bob")


async def waiting_game(services, *applicants):
    host = applicants[0]
    room_id = await create_room_with(services, host, *applicants[1:])
    hosted = await services.lifecycle.host_game(room_id, host)
    game_id = hosted.data["game"]["gameId"]
    for player in applicants[1:]:
        await services.lifecycle.apply_to_game(room_id, game_id, player)
    return room_id, game_id


def load(services, room_id, game_id) -> Game:
    return services.lifecycle.find_game(room_id, game_id)


async def wait_until_unscheduled(scheduler, room_id, game_id, timeout=1.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while scheduler.is_scheduled(room_id, game_id):
        assert loop.time() < deadline, "scheduler task did not finish"
        await asyncio.sleep(0.01)


class TestNextDeadline:
    @pytest.mark.asyncio
    async def test_fresh_waiting_game_waits_for_start_delay(self, services):
        room_id, game_id = await waiting_game(services, ANN, BOB)
        deadline = services.poller.next_deadline(load(services, room_id, game_id))
        assert deadline == START_MS + 60_000

    @pytest.mark.asyncio
    async def test_startable_game_is_due_now(self, services, clock):
        room_id, game_id = await waiting_game(services, ANN, BOB)
        clock.advance(90)
        assert services.poller.next_deadline(load(services, room_id, game_id)) == clock.now

    @pytest.mark.asyncio
    async def test_lonely_game_polls_until_expiry(self, services, clock):
        room_id, game_id = await waiting_game(services, ANN)
        clock.advance(61)
        assert services.poller.next_deadline(load(services, room_id, game_id)) == clock.now + 5_000
        clock.advance(58)
        assert services.poller.next_deadline(load(services, room_id, game_id)) == START_MS + 120_001

    @pytest.mark.asyncio
    async def test_playing_game_waits_for_round_end(self, services, clock):
        room_id, game_id = await playing_game(services, clock, ANN, BOB)
        round_start = clock.now
        assert services.poller.next_deadline(load(services, room_id, game_id)) == round_start + 20_001

    @pytest.mark.asyncio
    async def test_ended_game_has_no_deadline(self, services, clock):
        room_id, game_id = await waiting_game(services, ANN)
        clock.advance(121)
        await services.lifecycle.expire_game(room_id, game_id)
        assert services.poller.next_deadline(load(services, room_id, game_id)) is None


class TestEvaluateRoom:
    @pytest.mark.asyncio
    async def test_nothing_due(self, services):
        room_id, _ = await waiting_game(services, ANN, BOB)
        outcome = await services.poller.evaluate_room(room_id)
        assert outcome.data == {"roomId": room_id, "transitions": []}

    @pytest.mark.asyncio
    async def test_starts_due_game(self, services, clock):
        room_id, game_id = await waiting_game(services, ANN, BOB)
        clock.advance(60)
        outcome = await services.poller.evaluate_room(room_id)
        assert outcome.data["transitions"] == [{"gameId": game_id, "transition": "started"}]

    @pytest.mark.asyncio
    async def test_only_host_session_starts(self, services, clock):
        room_id, game_id = await waiting_game(services, ANN, BOB)
        clock.advance(60)

        by_guest = await services.poller.evaluate_room(room_id, BOB)
        by_host = await services.poller.evaluate_room(room_id, ANN)

        assert by_guest.data["transitions"] == []
        assert by_host.data["transitions"] == [{"gameId": game_id, "transition": "started"}]

    @pytest.mark.asyncio
    async def test_expires_lonely_game(self, services, clock):
        room_id, game_id = await waiting_game(services, ANN)
        clock.advance(121)
        outcome = await services.poller.evaluate_room(room_id)
        assert outcome.data["transitions"] == [{"gameId": game_id, "transition": "expired"}]

    @pytest.mark.asyncio
    async def test_resolves_expired_round(self, services, clock):
        room_id, game_id = await playing_game(services, clock, ANN, BOB)
        clock.advance(21)
        outcome = await services.poller.evaluate_room(room_id)
        assert outcome.data["transitions"] == [{"gameId": game_id, "transition": "end_no_choice"}]

    @pytest.mark.asyncio
    async def test_repeated_passes_post_once(self, services, store, clock):
        room_id, _ = await waiting_game(services, ANN)
        clock.advance(121)
        for _ in range(3):
            await services.poller.evaluate_room(room_id)
        assert len(chat_messages(store, room_id, "gameEnd")) == 1

    @pytest.mark.asyncio
    async def test_missing_room(self, services):
        outcome = await services.poller.evaluate_room("nope0")
        assert outcome.code == "ROOM_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_background_loop(self, services, clock):
        room_id, game_id = await waiting_game(services, ANN, BOB)
        clock.advance(60)

        services.poller.start(room_id)
        await asyncio.sleep(0.05)
        await services.poller.stop()

        assert load(services, room_id, game_id).status.value == "playing"


class TestGameScheduler:
    @pytest.mark.asyncio
    async def test_schedule_once(self, services):
        room_id, game_id = await waiting_game(services, ANN, BOB)
        scheduler = services.scheduler

        assert scheduler.schedule(room_id, game_id) is True
        assert scheduler.schedule(room_id, game_id) is False
        assert scheduler.is_scheduled(room_id, game_id)
        assert scheduler.active_count == 1

        await scheduler.shutdown()
        assert scheduler.active_count == 0

    @pytest.mark.asyncio
    async def test_drives_game_to_end(self, services, store, clock):
        room_id, game_id = await playing_game(services, clock, ANN, BOB)
        clock.advance(21)

        services.scheduler.schedule(room_id, game_id)
        await wait_until_unscheduled(services.scheduler, room_id, game_id)

        assert load(services, room_id, game_id).status.value == "end"
        assert len(chat_messages(store, room_id, "gameEnd")) == 1

    @pytest.mark.asyncio
    async def test_finishes_when_room_missing(self, services):
        services.scheduler.schedule("nope0", "nope00")
        await wait_until_unscheduled(services.scheduler, "nope0", "nope00")

    @pytest.mark.asyncio
    async def test_cancel(self, services):
        room_id, game_id = await waiting_game(services, ANN, BOB)
        services.scheduler.schedule(room_id, game_id)
        services.scheduler.cancel(room_id, game_id)
        assert not services.scheduler.is_scheduled(room_id, game_id)
        await services.scheduler.shutdown()

    @pytest.mark.asyncio
    async def test_resume_all_skips_ended_games(self, services, clock):
        active_room, active_game = await waiting_game(services, ANN, BOB)
        ended_room, ended_game = await waiting_game(services, BOB)
        clock.advance(121)
        await services.lifecycle.expire_game(ended_room, ended_game)

        assert services.scheduler.resume_all() == 1
        assert services.scheduler.is_scheduled(active_room, active_game)
        assert not services.scheduler.is_scheduled(ended_room, ended_game)
        await services.scheduler.shutdown()

    @pytest.mark.asyncio
    async def test_unexpected_error_is_logged_and_retried(self, store, clock, caplog):
        services = build_services(
            make_settings(POLL_INTERVAL_SECOND=0.01),
            store=store,
            locks=LocalLockManager(acquire_timeout=1),
            clock=clock,
        )
        failing = patch.object(
            services.lifecycle, "find_game", side_effect=[RuntimeError("store exploded"), None]
        )

        with failing as find_game, caplog.at_level(logging.ERROR, logger="rps_room.services.game_poller"):
            services.scheduler.schedule("r1", "g1")
            await wait_until_unscheduled(services.scheduler, "r1", "g1")

        assert find_game.call_count == 2
        assert "Scheduler for game g1 failed" in caplog.text
        assert "store exploded" in caplog.text
