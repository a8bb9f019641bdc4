"""
Pydantic models dla API
Odpowiedzialność: Schematy wiadomości WebSocket (klient -> serwer) i odpowiedzi REST
"""
import json
from pydantic import BaseModel, Field, TypeAdapter
from typing import Optional, List, Dict, Any, Union, Literal, Annotated

# ============================================
# WIADOMOŚCI KLIENTA (relay)
# ============================================

class CreateRoomMessage(BaseModel):
    """Utwórz pokój o kodzie z adresu połączenia"""
    type: Literal['CREATE_ROOM']
    playerName: str = Field(min_length=1, max_length=40)

class JoinRoomMessage(BaseModel):
    """Dołącz do pokoju (brak kodu = kod z adresu połączenia)"""
    type: Literal['JOIN_ROOM']
    playerName: str = Field(min_length=1, max_length=40)
    roomCode: Optional[str] = None

class LeaveRoomMessage(BaseModel):
    type: Literal['LEAVE_ROOM']

class StartGameMessage(BaseModel):
    type: Literal['START_GAME']

class PlayCardMessage(BaseModel):
    type: Literal['PLAY_CARD']
    cardId: str

class DeclareCanteMessage(BaseModel):
    """Zaśpiewaj 20/40 w kolorze albo tute (bez koloru)"""
    type: Literal['DECLARE_CANTE']
    canteType: Literal['20', '40', 'tute']
    suit: Optional[Literal['oros', 'copas', 'espadas', 'bastos']] = None

class SkipCanteMessage(BaseModel):
    type: Literal['SKIP_CANTE']

class ReconnectMessage(BaseModel):
    type: Literal['RECONNECT']
    playerId: str
    playerSecret: str

class PingMessage(BaseModel):
    type: Literal['PING']

ClientMessage = Annotated[
    Union[
        CreateRoomMessage, JoinRoomMessage, LeaveRoomMessage, StartGameMessage,
        PlayCardMessage, DeclareCanteMessage, SkipCanteMessage, ReconnectMessage,
        PingMessage,
    ],
    Field(discriminator='type'),
]

_client_message_adapter = TypeAdapter(ClientMessage)

def parse_client_message(raw: Union[str, bytes, dict]) -> BaseModel:
    """
    Parsuj wiadomość klienta

    Args:
        raw: Tekst JSON albo już zdekodowany dict

    Returns:
        BaseModel: Jedna z klas *Message

    Raises:
        ValueError: Niepoprawny JSON, nieznany typ albo brakujące pola
            (pydantic.ValidationError dziedziczy po ValueError)
    """
    data = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
    if not isinstance(data, dict):
        raise ValueError("Wiadomość musi być obiektem JSON")
    return _client_message_adapter.validate_python(data)

# ============================================
# WIADOMOŚCI PEER
# ============================================

PEER_MESSAGE_TYPES = (
    'game_state', 'player_action', 'player_joined', 'player_left',
    'start_game', 'sync_request', 'ping', 'pong',
)

class PeerMessage(BaseModel):
    """Koperta wiadomości między peerami"""
    type: Literal[
        'game_state', 'player_action', 'player_joined', 'player_left',
        'start_game', 'sync_request', 'ping', 'pong',
    ]
    sender: str = Field(alias='from')
    timestamp: float
    data: Optional[Dict[str, Any]] = None

    model_config = {'populate_by_name': True}

# ============================================
# REST
# ============================================

class PlayerInfo(BaseModel):
    id: str
    name: str
    position: int
    team: int
    connectionStatus: str
    isHost: bool
    isBot: bool = False

class RoomInfo(BaseModel):
    """Publiczne informacje o pokoju"""
    roomCode: str
    status: str
    hostId: Optional[str] = None
    players: List[PlayerInfo]
    maxPlayers: int
    createdAt: float

class PeerHostRequest(BaseModel):
    """Request do utworzenia hosta peer w tym procesie"""
    playerName: str = Field(min_length=1, max_length=40)
    roomCode: Optional[str] = None

class PeerHostResponse(BaseModel):
    roomCode: str
    playerId: str
    playerSecret: str
    peerUrl: str

class HealthResponse(BaseModel):
    status: str
    rooms: int
    peerRooms: int
    persistence: bool
