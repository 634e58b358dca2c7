from fastapi import APIRouter, HTTPException, Request
from schemas.rooms import ParticipantInfo, RoomDetailsResponse, RoomListResponse, RoomSummary
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


@rooms_router.get("", response_model=RoomListResponse)
async def list_rooms(request: Request):
    registry = request.app.state.registry
    rooms = registry.list_rooms()
    logger.debug(f"Room list request from {request.client.host if request.client else 'unknown'}: {len(rooms)} rooms")
    return RoomListResponse(
        rooms_count=len(rooms),
        rooms=[RoomSummary(room_id=room_id, participants_count=count) for room_id, count in rooms.items()],
    )


@rooms_router.get("/{room_id}", response_model=RoomDetailsResponse)
async def get_room_details(room_id: str, request: Request):
    """
    Get the current membership of a room.

    Returns:
    - room_id: Room identifier as supplied by the joining clients
    - participants_count: Number of joined participants
    - participants: user_id and display name of each participant
    """
    registry = request.app.state.registry
    participants = registry.get_room(room_id)
    if participants is None:
        logger.info(f"Room details failed: Room {room_id} not found")
        raise HTTPException(status_code=404, detail="Room not found")

    return RoomDetailsResponse(
        room_id=room_id,
        participants_count=len(participants),
        participants=[ParticipantInfo(user_id=p.user_id, name=p.name) for p in participants],
    )
