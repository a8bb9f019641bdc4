"""
Router: Peer
Odpowiedzialność: Hosty peer uruchomione w tym procesie + ich łącza WebSocket
"""
from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, status
from typing import Dict
import json

from models import PeerHostRequest, PeerHostResponse
from services.coordinator import TuteError
from services.peer_coordinator import PeerHost
from services.peer_transport import WebSocketPeerLink
from utils.helpers import normalize_room_code

# ============================================
# REJESTR HOSTÓW
# ============================================

# Słownik: room_code -> PeerHost
peer_hosts: Dict[str, PeerHost] = {}

# ============================================
# ROUTER
# ============================================

router = APIRouter()

@router.post("/api/peer/host", response_model=PeerHostResponse)
async def create_peer_host(request: PeerHostRequest):
    """
    Utwórz hosta peer (pokój, w którym ten proces jest autorytatywnym hostem)

    Raises:
        HTTPException: 409 jeśli kod jest już zajęty
    """
    code = normalize_room_code(request.roomCode)
    if code and code in peer_hosts:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Host o tym kodzie już istnieje"
        )

    host = PeerHost()
    try:
        room_code, player_id, secret = await host.open(request.playerName, code or None)
    except TuteError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)

    peer_hosts[room_code] = host
    return PeerHostResponse(
        roomCode=room_code,
        playerId=player_id,
        playerSecret=secret,
        peerUrl=f"/peer/{room_code}/{player_id}",
    )

@router.websocket("/peer/{room_code}/{peer_id}")
async def peer_endpoint(websocket: WebSocket, room_code: str, peer_id: str):
    """
    Łącze peera do hosta. Pierwsza wiadomość peera to player_joined.
    """
    host = peer_hosts.get(normalize_room_code(room_code))
    if host is None:
        await websocket.close(code=4404)
        return

    await websocket.accept()
    link = WebSocketPeerLink(peer_id, websocket)
    host.attach(link)
    print(f"✅ [Peer {host.room_code}] Łącze {peer_id} otwarte")

    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                print(f"❌ [Peer] Błąd parsowania JSON od {peer_id}")
                continue
            await host.handle_message(peer_id, message, link=link)

    except WebSocketDisconnect:
        pass
    except Exception as e:
        print(f"❌ [Peer] WebSocket error: {e}")
    finally:
        await host.detach(peer_id, link)
        print(f"👋 [Peer {host.room_code}] Łącze {peer_id} zamknięte")
        # Pusty pokój znika razem z hostem
        if host.room is None and peer_hosts.get(host.room_code) is host:
            del peer_hosts[host.room_code]
