"""API router aggregation."""
from fastapi import APIRouter

from rps_room.api.endpoints import game, room, websocket

api_router = APIRouter(prefix="/api")
api_router.include_router(room.router)
api_router.include_router(game.router)
api_router.include_router(websocket.router)
