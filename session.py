import json
from typing import Optional

from pydantic import BaseModel, ValidationError

from connection import Connection
from logging_config import get_logger
from registry import RoomRegistry
from schemas.messages import (
    AnswerMessage,
    CandidateMessage,
    ForwardedAnswer,
    ForwardedCandidate,
    ForwardedOffer,
    JoinMessage,
    OfferMessage,
)

logger = get_logger(__name__)

PAYLOAD_FIELDS = ("offer", "answer", "candidate")


def _payload(message: BaseModel, field: str) -> dict:
    if field not in message.model_fields_set:
        return {}
    return {field: getattr(message, field)}


class SignalingSession:
    """Protocol state for one client connection.

    Holds the (room, user) pair the connection joined as. All shared state
    lives in the registry.
    """

    def __init__(self, registry: RoomRegistry, connection: Connection, connection_id: Optional[str] = None):
        self.registry = registry
        self.connection = connection
        self.connection_id = connection_id or getattr(connection, "connection_id", None)
        self.room_id: Optional[str] = None
        self.user_id: Optional[str] = None
        self.closed = False

        self._handlers = {
            "join": self._on_join,
            "offer": self._on_offer,
            "answer": self._on_answer,
            "candidate": self._on_candidate,
            "leave": self._on_leave,
        }

    @property
    def joined(self) -> bool:
        return self.room_id is not None and self.user_id is not None

    def handle_text(self, raw: str):
        """Decode one text frame and dispatch it by its ``type`` tag."""
        try:
            data = json.loads(raw)
        except (ValueError, RecursionError, TypeError) as e:
            logger.warning(f"Invalid JSON from connection {self.connection_id}: {e}")
            return
        if not isinstance(data, dict):
            logger.warning(f"Discarding non-object envelope from connection {self.connection_id}")
            return

        message_type = data.get("type")
        handler = self._handlers.get(message_type) if isinstance(message_type, str) else None
        if handler is None:
            logger.debug(f"Ignoring message type {message_type!r} from connection {self.connection_id}")
            return

        try:
            handler(data)
        except ValidationError as e:
            logger.warning(f"Malformed {message_type} message from connection {self.connection_id}: {e.error_count()} error(s)")

    def join(self, room_id: Optional[str], name: Optional[str]) -> Optional[str]:
        if self.joined:
            logger.info(f"Connection {self.connection_id} already in room {self.room_id} as {self.user_id}, ignoring join")
            return None
        user_id = self.registry.join(room_id, name, self.connection)
        if user_id is not None:
            self.room_id = room_id
            self.user_id = user_id
        return user_id

    def forward(self, target_user_id: Optional[str], message: BaseModel) -> bool:
        if not self.joined:
            return False
        data = message.model_dump()
        for field in PAYLOAD_FIELDS:
            # a payload the client left out is omitted, not sent as null
            if field in data and field not in message.model_fields_set:
                del data[field]
        return self.registry.forward(self.room_id, target_user_id, data)

    def leave(self) -> bool:
        left = False
        if self.joined:
            left = self.registry.leave(self.room_id, self.user_id)
        self.room_id = None
        self.user_id = None
        return left

    def close(self):
        """Release the session's membership. Only the first call has effect."""
        if self.closed:
            return
        self.closed = True
        self.leave()
        logger.debug(f"Session closed for connection {self.connection_id}")

    def _on_join(self, data: dict):
        message = JoinMessage.model_validate(data)
        self.join(message.roomId, message.name)

    def _on_offer(self, data: dict):
        message = OfferMessage.model_validate(data)
        if not self.joined:
            return
        sender = self.registry.get_participant(self.room_id, self.user_id)
        self.forward(message.targetUserId, ForwardedOffer(
            senderUserId=self.user_id,
            senderName=sender.name if sender else None,
            **_payload(message, "offer"),
        ))

    def _on_answer(self, data: dict):
        message = AnswerMessage.model_validate(data)
        if not self.joined:
            return
        self.forward(message.targetUserId, ForwardedAnswer(senderUserId=self.user_id, **_payload(message, "answer")))

    def _on_candidate(self, data: dict):
        message = CandidateMessage.model_validate(data)
        if not self.joined:
            return
        self.forward(message.targetUserId, ForwardedCandidate(senderUserId=self.user_id, **_payload(message, "candidate")))

    def _on_leave(self, data: dict):
        self.leave()
