"""Game API endpoints - hosting, joining, starting and submitting actions."""
import logging
from typing import Dict, List

from fastapi import APIRouter, Depends, status

from rps_room.api.dependencies import get_services, get_session, render
from rps_room.core.exceptions import GameNotFoundError
from rps_room.schemas import SessionContext, SubmitActionRequest
from rps_room.services import Services
from rps_room.services.log_manager import get_game_logs

router = APIRouter(prefix="/rooms/{room_id}/games", tags=["games"])
logger = logging.getLogger(__name__)


@router.post("")
async def host_game(
    room_id: str,
    session: SessionContext = Depends(get_session),
    services: Services = Depends(get_services),
):
    """
    Host a new game in the room and schedule its lifecycle.
    POST /api/rooms/{room_id}/games
    """
    outcome = await services.lifecycle.host_game(room_id, session)
    if outcome.ok:
        services.scheduler.schedule(room_id, outcome.data["game"]["gameId"])
    return render(outcome, status.HTTP_201_CREATED)


@router.post("/{game_id}/apply")
async def apply_to_game(
    room_id: str,
    game_id: str,
    session: SessionContext = Depends(get_session),
    services: Services = Depends(get_services),
):
    return render(await services.lifecycle.apply_to_game(room_id, game_id, session))


@router.post("/{game_id}/start")
async def start_game(
    room_id: str,
    game_id: str,
    session: SessionContext = Depends(get_session),
    services: Services = Depends(get_services),
):
    """Host-triggered start; fails with GAME_NOT_READY until the start delay elapsed."""
    outcome = await services.lifecycle.start_game(room_id, game_id, session)
    if outcome.ok:
        services.scheduler.schedule(room_id, game_id)
    return render(outcome)


@router.post("/{game_id}/actions")
async def submit_action(
    room_id: str,
    game_id: str,
    request: SubmitActionRequest,
    session: SessionContext = Depends(get_session),
    services: Services = Depends(get_services),
):
    return render(await services.lifecycle.submit_action(room_id, game_id, session, request.action))


@router.get("/{game_id}/logs")
def get_logs(
    room_id: str,
    game_id: str,
    limit: int = 100,
    services: Services = Depends(get_services),
) -> Dict[str, List[Dict]]:
    """
    Recent game logs, newest first.
    GET /api/rooms/{room_id}/games/{game_id}/logs?limit=100
    """
    if services.lifecycle.find_game(room_id, game_id) is None:
        raise GameNotFoundError(game_id)
    return {"logs": get_game_logs(room_id, game_id, limit)}
