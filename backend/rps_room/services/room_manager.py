"""Room session service - room creation, membership and online bookkeeping."""
import logging
from typing import Optional

from rps_room.core.exceptions import (
    InvalidInputError,
    NameTakenError,
    NotInRoomError,
    outcome_boundary,
)
from rps_room.core.identity import generate_identity, generate_room_code
from rps_room.i18n import t
from rps_room.schemas import ChatType, Room, SessionContext, User
from rps_room.services.base import RoomService
from rps_room.storage.paths import room_path

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 500
MAX_NAME_LENGTH = 20
# Room codes are five characters, collisions are retried
_MAX_ROOM_CODE_ATTEMPTS = 20


class RoomManager(RoomService):
    """Creates rooms and tracks who is in them.

    A user is never removed from userList; leaving only marks them offline.
    onlineCount is always recomputed from userList after a membership write.
    """

    @outcome_boundary
    async def create_room(self, name: str, identity: Optional[str] = None) -> dict:
        name = (name or "").strip()
        if not name or len(name) > MAX_NAME_LENGTH:
            raise InvalidInputError("name", f"Name must be 1-{MAX_NAME_LENGTH} characters.")
        session = SessionContext(identity=identity or generate_identity(name), name=name)

        for _ in range(_MAX_ROOM_CODE_ATTEMPTS):
            room_id = generate_room_code(session.name)
            async with self.room_lock(room_id):
                if self.store.exists(room_path(room_id)):
                    logger.debug("Room code %s already taken, retrying", room_id)
                    continue
                created = self.dispatcher.system_entry(
                    ChatType.TEXT, t("room.created", self.language, name=session.name)
                )
                room = Room(
                    room_id=room_id,
                    invite_code=room_id,
                    created_at=self.clock(),
                    online_count=1,
                    user_list=[User(identity=session.identity, name=session.name)],
                    chat_list=[created],
                )
                self.store.set(room_path(room_id), room.to_document())
            logger.info("Room created: %s by %s", room_id, session.name)
            return {"roomId": room_id, "inviteCode": room_id, "identity": session.identity}

        raise RuntimeError("Could not allocate a free room code")

    @outcome_boundary
    async def join_room(self, room_id: str, session: SessionContext) -> dict:
        async with self.room_lock(room_id):
            room = self.load_room(room_id)
            for other in room.user_list:
                if other.identity != session.identity and other.name == session.name and other.online:
                    raise NameTakenError(session.name)

            user_list_path = room_path(room_id, "userList")
            index = next(
                (i for i, user in enumerate(room.user_list) if user.identity == session.identity),
                None,
            )
            if index is None:
                self.store.append(user_list_path, User(identity=session.identity, name=session.name).to_document())
                rejoined, renamed = False, False
            else:
                renamed = room.user_list[index].name != session.name
                rejoined = True
                self.store.set(
                    room_path(room_id, "userList", index),
                    User(identity=session.identity, name=session.name, online=True).to_document(),
                )

            # Plain rejoin under the same name stays silent
            if not rejoined or renamed:
                self.dispatcher.post(
                    room_id,
                    self.dispatcher.system_entry(
                        ChatType.TEXT,
                        t("room.joined", self.language, name=session.name),
                        user_identity=session.identity,
                    ),
                )
            self._write_online_count(room_id)

        logger.info("%s %s room %s", session.name, "rejoined" if rejoined else "joined", room_id)
        return {"roomId": room_id, "rejoined": rejoined, "renamed": renamed}

    @outcome_boundary
    async def leave_room(self, room_id: str, session: SessionContext) -> dict:
        async with self.room_lock(room_id):
            room = self.load_room(room_id)
            index = next(
                (i for i, user in enumerate(room.user_list) if user.identity == session.identity),
                None,
            )
            if index is None or not room.user_list[index].online:
                return {"roomId": room_id, "left": False}

            user = room.user_list[index]
            self.store.set(room_path(room_id, "userList", index, "online"), False)
            self._write_online_count(room_id)
            self.dispatcher.post(
                room_id,
                self.dispatcher.system_entry(
                    ChatType.TEXT,
                    t("room.left", self.language, name=user.name),
                    user_identity=session.identity,
                ),
            )

        logger.info("%s left room %s", user.name, room_id)
        return {"roomId": room_id, "left": True}

    @outcome_boundary
    async def send_message(self, room_id: str, session: SessionContext, text: str) -> dict:
        text = (text or "").strip()
        if not text or len(text) > MAX_MESSAGE_LENGTH:
            raise InvalidInputError("text", f"Message must be 1-{MAX_MESSAGE_LENGTH} characters.")

        async with self.room_lock(room_id):
            room = self.load_room(room_id)
            if room.find_user(session.identity) is None:
                raise NotInRoomError(room_id)
            index = self.dispatcher.post(room_id, self.dispatcher.user_entry(session.as_participant(), text))
        return {"index": index}

    @outcome_boundary
    async def get_room(self, room_id: str) -> dict:
        return {"room": self.load_room(room_id).to_document()}

    @outcome_boundary
    async def refresh_online_count(self, room_id: str) -> dict:
        async with self.room_lock(room_id):
            self.load_room(room_id)
            count = self._write_online_count(room_id)
        return {"onlineCount": count}

    def _write_online_count(self, room_id: str) -> int:
        users = self.store.get(room_path(room_id, "userList")) or []
        count = sum(1 for user in users if user.get("online"))
        self.store.set(room_path(room_id, "onlineCount"), count)
        return count
