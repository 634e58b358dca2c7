from pydantic import BaseModel


class ParticipantInfo(BaseModel):
    user_id: str
    name: str

class RoomSummary(BaseModel):
    room_id: str
    participants_count: int

class RoomListResponse(BaseModel):
    rooms_count: int
    rooms: list[RoomSummary]

class RoomDetailsResponse(BaseModel):
    room_id: str
    participants_count: int
    participants: list[ParticipantInfo]
