"""WebSocket endpoint streaming room changes."""
import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from rps_room.storage.paths import room_path

logger = logging.getLogger(__name__)

router = APIRouter()

# Pending updates per connection; the oldest is dropped when full
_QUEUE_SIZE = 100


@router.websocket("/ws/rooms/{room_id}")
async def room_websocket(websocket: WebSocket, room_id: str):
    """
    Push the room document whenever anything under rooms/{room_id} changes.

    Message format:
    {
        "type": "connected" | "room_update" | "pong",
        "data": { ... room document ... }
    }
    """
    services = websocket.app.state.services
    store = services.store
    room = store.get(room_path(room_id))
    if room is None:
        await websocket.close(code=4004, reason="Room not found")
        return

    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue(maxsize=_QUEUE_SIZE)

    def _offer(message: dict) -> None:
        if queue.full():
            queue.get_nowait()
        queue.put_nowait(message)

    def _on_change(path: str, value) -> None:
        # May run on the Redis listener thread
        if value is not None:
            loop.call_soon_threadsafe(_offer, {"type": "room_update", "data": value})

    unsubscribe = store.subscribe(room_path(room_id), _on_change)
    _offer({"type": "connected", "data": room})

    async def _forward() -> None:
        while True:
            message = await queue.get()
            await websocket.send_json(message)

    forward_task = asyncio.create_task(_forward())
    try:
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                _offer({"type": "pong", "data": {}})
    except WebSocketDisconnect:
        logger.info("WebSocket for room %s disconnected", room_id)
    finally:
        unsubscribe()
        forward_task.cancel()
