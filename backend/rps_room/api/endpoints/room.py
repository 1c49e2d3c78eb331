"""Room API endpoints - creation, membership and chat."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, status

from rps_room.api.dependencies import (
    get_identity,
    get_optional_session,
    get_services,
    get_session,
    render,
)
from rps_room.schemas import CreateRoomRequest, JoinRoomRequest, SendMessageRequest, SessionContext
from rps_room.services import Services

router = APIRouter(prefix="/rooms", tags=["rooms"])
logger = logging.getLogger(__name__)


@router.post("")
async def create_room(request: CreateRoomRequest, services: Services = Depends(get_services)):
    """
    Create a room with the caller as its first member.
    POST /api/rooms {name, identity?}

    Returns roomId (also the invite code) and the caller's identity.
    """
    outcome = await services.rooms.create_room(request.name, request.identity)
    return render(outcome, status.HTTP_201_CREATED)


@router.get("/{room_id}")
async def get_room(room_id: str, services: Services = Depends(get_services)):
    return render(await services.rooms.get_room(room_id))


@router.post("/{room_id}/join")
async def join_room(
    room_id: str,
    request: JoinRoomRequest,
    identity: str = Depends(get_identity),
    services: Services = Depends(get_services),
):
    """Join or rejoin a room under ``name``. Rejected when another online member uses it."""
    session = SessionContext(identity=identity, name=request.name)
    return render(await services.rooms.join_room(room_id, session))


@router.post("/{room_id}/leave")
async def leave_room(
    room_id: str,
    session: SessionContext = Depends(get_session),
    services: Services = Depends(get_services),
):
    return render(await services.rooms.leave_room(room_id, session))


@router.post("/{room_id}/messages")
async def send_message(
    room_id: str,
    request: SendMessageRequest,
    session: SessionContext = Depends(get_session),
    services: Services = Depends(get_services),
):
    return render(await services.rooms.send_message(room_id, session, request.text))


@router.post("/{room_id}/evaluate")
async def evaluate_room(
    room_id: str,
    session: Optional[SessionContext] = Depends(get_optional_session),
    services: Services = Depends(get_services),
):
    """
    Run one evaluation pass over the room's active games.
    POST /api/rooms/{room_id}/evaluate

    With session headers only the caller's own games are auto-started.
    """
    return render(await services.poller.evaluate_room(room_id, session))
