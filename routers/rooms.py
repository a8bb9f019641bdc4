"""
Router: Rooms
Odpowiedzialność: Publiczne informacje o pokojach relay (REST)
"""
from fastapi import APIRouter, HTTPException, status
from typing import List

from models import RoomInfo
from routers.websocket_router import relay
from utils.helpers import normalize_room_code

router = APIRouter()

@router.get("", response_model=List[RoomInfo])
async def list_rooms():
    """Lista pokoi relay w tym procesie"""
    return [room.to_public() for room in relay.rooms.values() if room.seats]

@router.get("/{room_code}", response_model=RoomInfo)
async def get_room(room_code: str):
    """
    Informacje o pokoju (bez kart i sekretów)

    Raises:
        HTTPException: 404 jeśli pokój nie istnieje
    """
    room = relay.rooms.get(normalize_room_code(room_code))
    if room is None or not room.seats:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Pokój nie istnieje"
        )
    return room.to_public()
