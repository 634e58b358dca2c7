import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

from connection import Connection
from id_generator import UserIdGenerator, generate_user_id
from logging_config import get_logger
from schemas.messages import ExistingParticipants, ParticipantEntry, UserJoined, UserLeft

logger = get_logger(__name__)


@dataclass
class Participant:
    user_id: str
    name: str
    connection: Connection


class RoomRegistry:
    """In-memory map of room ID -> {user ID -> Participant}.

    Every read and mutation happens under a single lock. Sends made while
    holding it are queue puts on the target connection, so no operation
    waits on another client.
    """

    def __init__(self, id_generator: UserIdGenerator = generate_user_id):
        self.rooms: Dict[str, Dict[str, Participant]] = {}
        self.id_generator = id_generator
        self._lock = threading.Lock()
        logger.info("Initializing in-memory RoomRegistry")

    def join(self, room_id: str, name: str, connection: Connection) -> Optional[str]:
        """Add a participant to ``room_id`` and return its new User ID.

        Returns None without side effects when ``room_id`` or ``name`` is
        empty. The joiner receives the participants present before it was
        inserted; everyone else then receives ``user-joined``.
        """
        if not room_id or not name:
            logger.debug(f"Ignoring join with room_id={room_id!r}, name={name!r}")
            return None

        with self._lock:
            user_id = self._new_user_id(name)

            room = self.rooms.get(room_id)
            if room is None:
                room = {}
                self.rooms[room_id] = room
                logger.info(f"Created room {room_id}")

            snapshot = ExistingParticipants(
                participants=[ParticipantEntry(userId=p.user_id, name=p.name) for p in room.values()],
                myUserId=user_id,
            )
            connection.send(snapshot.model_dump())

            room[user_id] = Participant(user_id=user_id, name=name, connection=connection)
            logger.info(f"{name} ({user_id}) joined room {room_id} ({len(room)} participants)")

            self._broadcast_locked(room_id, user_id, UserJoined(userId=user_id, name=name).model_dump())
            return user_id

    def forward(self, room_id: str, target_user_id: str, message: dict) -> bool:
        """Deliver ``message`` to ``target_user_id`` inside ``room_id`` only.

        Missing targets and closed connections are dropped silently.
        """
        with self._lock:
            room = self.rooms.get(room_id)
            if room is None:
                return False
            target = room.get(target_user_id)
            if target is None or not target.connection.is_open():
                logger.debug(f"Dropping {message.get('type')} for {target_user_id!r} in room {room_id}: target unavailable")
                return False
            delivered = target.connection.send(message)
            logger.debug(f"Forwarded {message.get('type')} to {target_user_id} in room {room_id}")
            return delivered

    def leave(self, room_id: str, user_id: str) -> bool:
        if not room_id or not user_id:
            return False

        with self._lock:
            room = self.rooms.get(room_id)
            if room is None or user_id not in room:
                return False

            del room[user_id]
            logger.info(f"{user_id} left room {room_id}")

            self._broadcast_locked(room_id, user_id, UserLeft(userId=user_id).model_dump())

            if not room:
                del self.rooms[room_id]
                logger.info(f"Room {room_id} is empty, removed")
            return True

    def broadcast_to_room(self, room_id: str, exclude_user_id: Optional[str], message: dict) -> int:
        with self._lock:
            return self._broadcast_locked(room_id, exclude_user_id, message)

    def get_room(self, room_id: str) -> Optional[List[Participant]]:
        with self._lock:
            room = self.rooms.get(room_id)
            if room is None:
                return None
            return list(room.values())

    def get_participant(self, room_id: str, user_id: str) -> Optional[Participant]:
        with self._lock:
            return self.rooms.get(room_id, {}).get(user_id)

    def list_rooms(self) -> Dict[str, int]:
        with self._lock:
            return {room_id: len(room) for room_id, room in self.rooms.items()}

    def _broadcast_locked(self, room_id: str, exclude_user_id: Optional[str], message: dict) -> int:
        room = self.rooms.get(room_id)
        if not room:
            return 0
        delivered = 0
        for user_id, participant in room.items():
            if user_id == exclude_user_id or not participant.connection.is_open():
                continue
            if participant.connection.send(message):
                delivered += 1
        logger.debug(f"Broadcast {message.get('type')} to {delivered} participants in room {room_id}")
        return delivered

    def _new_user_id(self, name: str) -> str:
        user_id = self.id_generator(name)
        while any(user_id in room for room in self.rooms.values()):
            logger.debug(f"Generated user id {user_id} already in use, regenerating")
            user_id = self.id_generator(name)
        return user_id
