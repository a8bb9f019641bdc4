"""
Router: WebSocket
Odpowiedzialność: Real-time communication dla pokoi relay (/party/{room_code})
"""
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from typing import Dict, List, Optional
from dataclasses import dataclass

from models import (
    parse_client_message, CreateRoomMessage, JoinRoomMessage, LeaveRoomMessage,
    StartGameMessage, PlayCardMessage, DeclareCanteMessage, SkipCanteMessage,
    ReconnectMessage, PingMessage
)
from services.coordinator import TuteError, NOT_IN_ROOM, PARSE_ERROR, UNKNOWN_MESSAGE
from services.relay_coordinator import RelayCoordinator
from utils.helpers import normalize_room_code

# ============================================
# CONNECTION MANAGER
# ============================================

class ConnectionManager:
    """
    Zarządza połączeniami WebSocket.
    Dla prostoty: bez Redis Pub/Sub (dla single-server).
    """

    def __init__(self):
        # Słownik: room_code -> lista WebSocket
        self.active_connections: Dict[str, List[WebSocket]] = {}
        # Słownik: WebSocket -> room_code
        self.connection_info: Dict[WebSocket, str] = {}

    async def connect(self, websocket: WebSocket, room_code: str):
        """
        Akceptuj i zarejestruj połączenie

        Args:
            websocket: WebSocket connection
            room_code: Kod pokoju z adresu
        """
        await websocket.accept()

        if room_code not in self.active_connections:
            self.active_connections[room_code] = []

        self.active_connections[room_code].append(websocket)
        self.connection_info[websocket] = room_code
        print(f"✅ WebSocket: nowe połączenie z pokojem {room_code}")

    def disconnect(self, websocket: WebSocket):
        """Usuń połączenie"""
        if websocket in self.connection_info:
            room_code = self.connection_info[websocket]

            if room_code in self.active_connections:
                if websocket in self.active_connections[room_code]:
                    self.active_connections[room_code].remove(websocket)

                # Usuń room_code jeśli puste
                if not self.active_connections[room_code]:
                    del self.active_connections[room_code]

            del self.connection_info[websocket]
            print(f"👋 WebSocket: połączenie z pokojem {room_code} zamknięte")

    async def send_personal_message(self, message: dict, websocket: WebSocket) -> bool:
        """
        Wyślij wiadomość do konkretnego połączenia

        Returns:
            bool: False jeśli wysłanie się nie udało (połączenie jest usuwane)
        """
        return await self._safe_send(websocket, message)

    async def _safe_send(self, websocket: WebSocket, message: dict) -> bool:
        """Bezpieczne wysyłanie (złap błędy)"""
        try:
            await websocket.send_json(message)
            return True
        except Exception as e:
            print(f"❌ Błąd wysyłania: {e}")
            # Usuń złe połączenie
            self.disconnect(websocket)
            return False

    def get_connections_count(self, room_code: str) -> int:
        return len(self.active_connections.get(room_code, []))

    def get_all_rooms(self) -> List[str]:
        return list(self.active_connections.keys())

# Singleton manager
manager = ConnectionManager()

# Singleton koordynator (Redis podpinany w main.py, jeśli PERSIST_ROOMS)
relay = RelayCoordinator(manager)

# ============================================
# OBSŁUGA WIADOMOŚCI
# ============================================

@dataclass
class ConnectionBinding:
    """Do którego miejsca przypięte jest połączenie"""
    room_code: str
    player_id: Optional[str] = None

    def bind(self, room_code: str, player_id: str):
        self.room_code = room_code
        self.player_id = player_id


async def handle_client_message(websocket: WebSocket, binding: ConnectionBinding, raw,
                                coordinator: Optional[RelayCoordinator] = None):
    """
    Obsłuż jedną wiadomość klienta. Błędy trafiają tylko do nadawcy.

    Args:
        websocket: Połączenie nadawcy
        binding: Przypięcie połączenia do miejsca
        raw: Tekst JSON albo dict
        coordinator: Koordynator (domyślnie singleton relay)
    """
    coordinator = coordinator or relay
    connections = coordinator.connections

    try:
        message = parse_client_message(raw)
    except ValueError as e:
        print(f"❌ [Relay] Błąd parsowania wiadomości: {e}")
        await connections.send_personal_message(TuteError(PARSE_ERROR).to_message(), websocket)
        return

    try:
        if isinstance(message, PingMessage):
            await connections.send_personal_message({'type': 'PONG'}, websocket)

        elif isinstance(message, CreateRoomMessage):
            code, player_id, _ = await coordinator.create_room(
                message.playerName, binding.room_code, connection=websocket
            )
            binding.bind(code, player_id)

        elif isinstance(message, JoinRoomMessage):
            code = normalize_room_code(message.roomCode) or binding.room_code
            player_id, _, _ = await coordinator.join_room(code, message.playerName, connection=websocket)
            binding.bind(code, player_id)

        elif isinstance(message, ReconnectMessage):
            await coordinator.reconnect(
                binding.room_code, message.playerId, message.playerSecret, connection=websocket
            )
            binding.bind(binding.room_code, message.playerId)

        else:
            if binding.player_id is None:
                raise TuteError(NOT_IN_ROOM)

            if isinstance(message, LeaveRoomMessage):
                await coordinator.leave_room(binding.room_code, binding.player_id)
                binding.player_id = None
            elif isinstance(message, StartGameMessage):
                await coordinator.start_game(binding.room_code, binding.player_id)
            elif isinstance(message, PlayCardMessage):
                await coordinator.play_card(binding.room_code, binding.player_id, message.cardId)
            elif isinstance(message, DeclareCanteMessage):
                await coordinator.declare(binding.room_code, binding.player_id, message.canteType, message.suit)
            elif isinstance(message, SkipCanteMessage):
                await coordinator.skip_declare(binding.room_code, binding.player_id)
            else:
                raise TuteError(UNKNOWN_MESSAGE)

    except TuteError as e:
        print(f"⚠️ [Relay {binding.room_code}] {message.type} odrzucone: {e.code}")
        await connections.send_personal_message(e.to_message(), websocket)

# ============================================
# ROUTER
# ============================================

router = APIRouter()

@router.websocket("/party/{room_code}")
async def party_endpoint(websocket: WebSocket, room_code: str):
    """
    WebSocket endpoint pokoju relay

    Args:
        websocket: WebSocket connection
        room_code: Kod pokoju
    """
    room_code = normalize_room_code(room_code)
    await manager.connect(websocket, room_code)
    binding = ConnectionBinding(room_code=room_code)

    try:
        while True:
            data = await websocket.receive_text()
            await handle_client_message(websocket, binding, data)

    except WebSocketDisconnect:
        pass
    except Exception as e:
        print(f"❌ WebSocket error: {e}")
    finally:
        manager.disconnect(websocket)
        if binding.player_id:
            # Miejsce zostaje - gracz może wrócić przez RECONNECT
            await relay.disconnect(binding.room_code, binding.player_id, connection=websocket)

@router.get("/api/connections")
async def websocket_stats():
    """
    Statystyki WebSocket (ile połączeń w każdym pokoju)
    """
    rooms = manager.get_all_rooms()
    return {
        'total_rooms': len(rooms),
        'rooms': {code: {'connections': manager.get_connections_count(code)} for code in rooms},
    }
