from pydantic import BaseModel
from typing import Any, Literal, Optional


# Client -> server

class JoinMessage(BaseModel):
    roomId: Optional[str] = None
    name: Optional[str] = None

class OfferMessage(BaseModel):
    targetUserId: Optional[str] = None
    offer: Any = None

class AnswerMessage(BaseModel):
    targetUserId: Optional[str] = None
    answer: Any = None

class CandidateMessage(BaseModel):
    targetUserId: Optional[str] = None
    candidate: Any = None


# Server -> client

class ParticipantEntry(BaseModel):
    userId: str
    name: str

class ExistingParticipants(BaseModel):
    type: Literal["existing-participants"] = "existing-participants"
    participants: list[ParticipantEntry]
    myUserId: str

class UserJoined(BaseModel):
    type: Literal["user-joined"] = "user-joined"
    userId: str
    name: str

class UserLeft(BaseModel):
    type: Literal["user-left"] = "user-left"
    userId: str

class ForwardedOffer(BaseModel):
    type: Literal["offer"] = "offer"
    senderUserId: str
    senderName: Optional[str] = None
    offer: Any = None

class ForwardedAnswer(BaseModel):
    type: Literal["answer"] = "answer"
    senderUserId: str
    answer: Any = None

class ForwardedCandidate(BaseModel):
    type: Literal["candidate"] = "candidate"
    senderUserId: str
    candidate: Any = None
