"""
Service: Session Coordinator
Odpowiedzialność: Wspólny kontrakt sesji Tute dla wszystkich wariantów
- Pokój: miejsca, host, silnik, lock i timery
- Operacje: utwórz/dołącz/opuść/start/zagraj/cante/pomiń/reconnect/disconnect
- Projekcja stanu dla konkretnego gracza (bez cudzych kart)
- Opóźnione rozstrzyganie lewy i przejście do kolejnej rundy

Warianty (relay, peer, lokalny) dostarczają tylko transport (_send)
i ewentualne haki (_after_mutation, _on_deal, ...).
"""
import asyncio
import secrets
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Any, Dict, List

from config import settings
from engines.tute_engine import TuteEngine
from partia_tute import (
    FazaGry, BLAD_BRAK_GRY, BLAD_NIE_TWOJA_TURA, BLAD_LEWA_ZAMYKANA,
    BLAD_NIEZNANA_KARTA, BLAD_NIEDOZWOLONY_RUCH, BLAD_CANTE
)
from silnik_tute import LICZBA_GRACZY, druzyna_gracza
from services.timer_service import RoomTimers
from utils.helpers import (
    generate_room_code, generate_player_id, generate_secret,
    normalize_room_code, clean_player_name
)

# ============================================
# KODY BŁĘDÓW
# ============================================

ROOM_EXISTS = 'ROOM_EXISTS'
ROOM_NOT_FOUND = 'ROOM_NOT_FOUND'
ROOM_FULL = 'ROOM_FULL'
GAME_IN_PROGRESS = 'GAME_IN_PROGRESS'
NOT_HOST = 'NOT_HOST'
NOT_ENOUGH_PLAYERS = 'NOT_ENOUGH_PLAYERS'
NOT_IN_ROOM = 'NOT_IN_ROOM'
RECONNECT_FAILED = 'RECONNECT_FAILED'
PARSE_ERROR = 'PARSE_ERROR'
UNKNOWN_MESSAGE = 'UNKNOWN_MESSAGE'

ERROR_MESSAGES = {
    ROOM_EXISTS: "Pokój o tym kodzie już istnieje",
    ROOM_NOT_FOUND: "Pokój nie istnieje",
    ROOM_FULL: "Pokój jest pełny",
    GAME_IN_PROGRESS: "Gra już trwa",
    NOT_HOST: "Tylko host może rozpocząć grę",
    NOT_ENOUGH_PLAYERS: f"Do gry potrzeba {LICZBA_GRACZY} graczy",
    NOT_IN_ROOM: "Nie jesteś w tym pokoju",
    RECONNECT_FAILED: "Nie udało się wrócić do gry",
    PARSE_ERROR: "Nieprawidłowa wiadomość",
    UNKNOWN_MESSAGE: "Nieznany typ wiadomości",
    BLAD_BRAK_GRY: "Gra nie trwa",
    BLAD_NIE_TWOJA_TURA: "To nie twoja tura",
    BLAD_LEWA_ZAMYKANA: "Lewa jest właśnie zamykana",
    BLAD_NIEZNANA_KARTA: "Nie masz tej karty",
    BLAD_NIEDOZWOLONY_RUCH: "Ta karta łamie zasady (kolor / przebicie / atut)",
    BLAD_CANTE: "Nie możesz teraz zaśpiewać tego cante",
}


class TuteError(Exception):
    """Błąd operacji sesji - zawsze z kodem wysyłanym do klienta"""

    def __init__(self, code: str, message: Optional[str] = None):
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, code)
        super().__init__(self.message)

    def to_message(self) -> dict:
        return {'type': 'ERROR', 'code': self.code, 'message': self.message}


# ============================================
# POKÓJ I MIEJSCA
# ============================================

@dataclass
class SeatRecord:
    """Miejsce przy stole. `connection` to uchwyt transportu (None = rozłączony)."""
    player_id: str
    name: str
    position: int
    secret: str
    connection: Any = None
    is_bot: bool = False
    bot_level: Optional[str] = None

    @property
    def team(self) -> int:
        return druzyna_gracza(self.position)

    @property
    def connected(self) -> bool:
        return self.is_bot or self.connection is not None

    def to_public(self, host_id: Optional[str]) -> dict:
        return {
            'id': self.player_id,
            'name': self.name,
            'position': self.position,
            'team': self.team,
            'connectionStatus': 'connected' if self.connected else 'disconnected',
            'isHost': self.player_id == host_id,
            'isBot': self.is_bot,
        }

    def to_snapshot(self) -> dict:
        return {
            'playerId': self.player_id,
            'name': self.name,
            'position': self.position,
            'secret': self.secret,
            'isBot': self.is_bot,
            'botLevel': self.bot_level,
        }


@dataclass
class Room:
    code: str
    host_id: Optional[str] = None
    seats: List[SeatRecord] = field(default_factory=list)
    engine: Optional[TuteEngine] = None
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    timers: Optional[RoomTimers] = field(default=None, repr=False)

    def __post_init__(self):
        if self.timers is None:
            self.timers = RoomTimers(self.code)

    def seat_by_id(self, player_id: Optional[str]) -> Optional[SeatRecord]:
        for seat in self.seats:
            if seat.player_id == player_id:
                return seat
        return None

    def seat_at(self, position: int) -> Optional[SeatRecord]:
        for seat in self.seats:
            if seat.position == position:
                return seat
        return None

    def free_position(self) -> Optional[int]:
        """Najniższa wolna pozycja przy stole"""
        taken = {seat.position for seat in self.seats}
        for position in range(LICZBA_GRACZY):
            if position not in taken:
                return position
        return None

    def is_full(self) -> bool:
        return len(self.seats) >= LICZBA_GRACZY

    def game_running(self) -> bool:
        return self.engine is not None and not self.engine.is_terminal()

    def player_ids(self) -> list[str]:
        return [seat.player_id for seat in sorted(self.seats, key=lambda s: s.position)]

    @property
    def status(self) -> str:
        if self.engine is None:
            return FazaGry.OCZEKIWANIE.value
        return self.engine.partia.faza.value

    def touch(self):
        self.last_activity = time.time()

    def to_public(self) -> dict:
        return {
            'roomCode': self.code,
            'status': self.status,
            'hostId': self.host_id,
            'players': [s.to_public(self.host_id) for s in sorted(self.seats, key=lambda s: s.position)],
            'maxPlayers': LICZBA_GRACZY,
            'createdAt': self.created_at,
        }

    def to_snapshot(self) -> dict:
        """Opis pokoju do zapisu w JSON (silnik zapisywany osobno)"""
        return {
            'code': self.code,
            'hostId': self.host_id,
            'createdAt': self.created_at,
            'lastActivity': self.last_activity,
            'seats': [seat.to_snapshot() for seat in self.seats],
        }

    @classmethod
    def from_snapshot(cls, data: dict, engine: Optional[TuteEngine] = None) -> 'Room':
        # Po restarcie nikt nie jest połączony
        seats = [
            SeatRecord(
                player_id=s['playerId'],
                name=s['name'],
                position=s['position'],
                secret=s['secret'],
                is_bot=s.get('isBot', False),
                bot_level=s.get('botLevel'),
            )
            for s in data.get('seats', [])
        ]
        return cls(
            code=data['code'],
            host_id=data.get('hostId'),
            seats=seats,
            engine=engine,
            created_at=data.get('createdAt', time.time()),
            last_activity=data.get('lastActivity', time.time()),
        )


# ============================================
# PROJEKCJA STANU
# ============================================

def project(room: Room, player_id: Optional[str]) -> dict:
    """
    Stan pokoju z perspektywy gracza.

    Zawiera rękę tylko tego gracza; u pozostałych wyłącznie liczbę kart.
    Działa także przed startem gry (faza 'waiting').
    """
    if room.engine is not None:
        state = room.engine.get_state_for_player(player_id)
    else:
        seat = room.seat_by_id(player_id)
        state = {
            'phase': FazaGry.OCZEKIWANIE.value,
            'handSizes': {},
            'trumpSuit': None,
            'trumpCard': None,
            'currentTrick': [],
            'currentPlayerId': None,
            'dealerId': None,
            'trickPending': False,
            'trickWinnerId': None,
            'lastTrickWinner': None,
            'teamTricks': [0, 0],
            'canteWindow': None,
            'scores': [
                {'team': team, 'roundPoints': 0, 'roundsWon': 0, 'cantes': []}
                for team in (0, 1)
            ],
            'roundNumber': 0,
            'targetRounds': None,
            'lastAnnouncement': None,
            'lastRound': None,
            'winner': None,
            'myId': player_id,
            'myPosition': seat.position if seat else None,
            'myTeam': seat.team if seat else None,
            'myHand': [],
            'isMyTurn': False,
            'validCards': [],
            'canDeclare': False,
            'availableCantes': [],
        }

    hand_sizes = state.get('handSizes', {})
    players = []
    for seat in sorted(room.seats, key=lambda s: s.position):
        public = seat.to_public(room.host_id)
        public['cardCount'] = hand_sizes.get(seat.player_id, 0)
        players.append(public)

    names = {seat.player_id: seat.name for seat in room.seats}
    announcement = state.get('lastAnnouncement')
    if announcement:
        announcement = dict(announcement, playerName=names.get(announcement['playerId']))

    state.update({
        'roomCode': room.code,
        'hostId': room.host_id,
        'players': players,
        'lastAnnouncement': announcement,
    })
    return state


# ============================================
# KONTRAKT
# ============================================

class SessionCoordinator(ABC):
    """
    Kontrakt sesji Tute wspólny dla relay, peer i gry lokalnej.
    Każda operacja na pokoju jest atomowa względem innych operacji na tym pokoju.
    """

    @abstractmethod
    async def create_room(self, display_name: str, room_code: Optional[str] = None,
                          connection: Any = None) -> tuple[str, str, str]:
        """Zwraca (room_code, player_id, player_secret)"""

    @abstractmethod
    async def join_room(self, room_code: str, display_name: str, connection: Any = None,
                        player_id: Optional[str] = None) -> tuple[str, str, int]:
        """Zwraca (player_id, player_secret, position)"""

    @abstractmethod
    async def leave_room(self, room_code: str, player_id: str) -> None: ...

    @abstractmethod
    async def start_game(self, room_code: str, player_id: str) -> None: ...

    @abstractmethod
    async def play_card(self, room_code: str, player_id: str, card_id: str) -> None: ...

    @abstractmethod
    async def declare(self, room_code: str, player_id: str, cante_type: str,
                      suit: Optional[str] = None) -> None: ...

    @abstractmethod
    async def skip_declare(self, room_code: str, player_id: str) -> None: ...

    @abstractmethod
    async def reconnect(self, room_code: str, player_id: str, player_secret: str,
                        connection: Any = None) -> dict:
        """Zwraca aktualny widok gracza"""

    @abstractmethod
    async def disconnect(self, room_code: str, player_id: str, connection: Any = None) -> None: ...


class BaseCoordinator(SessionCoordinator):
    """
    Wspólna implementacja kontraktu.
    Podklasy implementują `_send` (doręczenie jednej wiadomości do jednego miejsca).
    """

    label = "Session"

    def __init__(self, trick_delay: Optional[float] = None, target_rounds: Optional[int] = None,
                 engine_settings: Optional[dict] = None):
        self.rooms: Dict[str, Room] = {}
        self.trick_delay = settings.TRICK_RESOLUTION_DELAY if trick_delay is None else trick_delay
        self.target_rounds = target_rounds or settings.TARGET_ROUNDS
        # Np. {'rng': random.Random(7)} dla powtarzalnych rozdań w testach
        self.engine_settings = engine_settings or {}

    # ============================================
    # TRANSPORT (haki podklas)
    # ============================================

    @abstractmethod
    async def _send(self, room: Room, seat: SeatRecord, message: dict) -> None:
        """Doręcz wiadomość do jednego miejsca"""

    async def _broadcast(self, room: Room, message: dict, exclude: Optional[str] = None):
        for seat in room.seats:
            if seat.player_id != exclude and seat.connection is not None:
                await self._send(room, seat, message)

    def state_message(self, room: Room, seat: SeatRecord) -> dict:
        if room.engine is None:
            return dict(room.to_public(), type='ROOM_STATE', canStart=self._can_start(room))
        return {'type': 'GAME_STATE', 'state': project(room, seat.player_id)}

    async def _push_state(self, room: Room):
        """Każde podłączone miejsce dostaje swoją projekcję"""
        for seat in room.seats:
            if seat.connection is not None:
                await self._send(room, seat, self.state_message(room, seat))

    async def _send_snapshot(self, room: Room, seat: SeatRecord):
        """Pełny stan dla gracza, który wrócił"""
        if room.engine is not None:
            await self._send(room, seat, {'type': 'GAME_STATE', 'state': project(room, seat.player_id)})
        else:
            await self._send(room, seat, {
                'type': 'ROOM_JOINED',
                'room': room.to_public(),
                'playerId': seat.player_id,
                'playerSecret': seat.secret,
                'position': seat.position,
            })

    async def _after_mutation(self, room: Room):
        """Wywoływane pod lockiem po każdej udanej zmianie stanu pokoju"""
        room.touch()

    async def _on_deal(self, room: Room):
        """Wywoływane po rozdaniu kart (start gry i każda nowa runda)"""

    async def _on_card_played(self, room: Room, seat: SeatRecord):
        """Wywoływane po zagraniu karty przez miejsce"""

    async def _on_room_discarded(self, room: Room):
        """Wywoływane po usunięciu pokoju"""

    # ============================================
    # POMOCNICZE
    # ============================================

    def get_room(self, room_code: str) -> Room:
        room = self.rooms.get(normalize_room_code(room_code))
        if room is None:
            raise TuteError(ROOM_NOT_FOUND)
        return room

    def _unique_code(self) -> str:
        while True:
            code = generate_room_code()
            if code not in self.rooms:
                return code

    def _require_seat(self, room: Room, player_id: str) -> SeatRecord:
        seat = room.seat_by_id(player_id)
        if seat is None:
            raise TuteError(NOT_IN_ROOM)
        return seat

    def _require_engine(self, room: Room) -> TuteEngine:
        if room.engine is None:
            raise TuteError(BLAD_BRAK_GRY)
        return room.engine

    def _can_start(self, room: Room) -> bool:
        return len(room.seats) == LICZBA_GRACZY and not room.game_running()

    def _add_seat(self, room: Room, display_name: str, connection: Any = None,
                  player_id: Optional[str] = None, is_bot: bool = False,
                  bot_level: Optional[str] = None) -> SeatRecord:
        seat = SeatRecord(
            player_id=player_id or generate_player_id(),
            name=clean_player_name(display_name),
            position=room.free_position(),
            secret=generate_secret(),
            connection=connection,
            is_bot=is_bot,
            bot_level=bot_level,
        )
        room.seats.append(seat)
        return seat

    def _build_engine(self, room: Room) -> TuteEngine:
        engine_settings = {'cel_rund': self.target_rounds}
        engine_settings.update(self.engine_settings)
        return TuteEngine(room.player_ids(), engine_settings)

    def _is_current(self, room: Room) -> bool:
        return self.rooms.get(room.code) is room

    async def _flush_events(self, room: Room):
        """Zdarzenia silnika idą do wszystkich podłączonych miejsc"""
        if room.engine is None:
            return
        for message in room.engine.drain_events():
            await self._broadcast(room, message)

    async def _advance_round(self, room: Room):
        """Po zakończonej rundzie (i nie zakończonej partii) rozdaj następną"""
        engine = room.engine
        if engine is None or engine.partia.faza != FazaGry.KONIEC_RUNDY:
            return
        engine.perform_action(engine.player_ids[0], {'typ': 'nastepna_runda'})
        await self._flush_events(room)
        await self._on_deal(room)
        print(f"🎴 [{self.label} {room.code}] Runda {engine.partia.numer_rundy} rozdana")

    def _schedule_trick_resolution(self, room: Room):
        room.timers.schedule('trick', self.trick_delay, lambda: self._resolve_trick(room.code))

    async def _resolve_trick(self, room_code: str):
        room = self.rooms.get(room_code)
        if room is None:
            return
        async with room.lock:
            engine = room.engine
            if engine is None or not engine.partia.lewa_do_zamkniecia:
                return
            engine.perform_action(engine.player_ids[0], {'typ': 'finalizuj_lewe'})
            await self._flush_events(room)
            await self._advance_round(room)
            await self._push_state(room)
            await self._after_mutation(room)

    async def _discard_room(self, room: Room):
        room.timers.cancel_all()
        if self._is_current(room):
            del self.rooms[room.code]
        await self._on_room_discarded(room)
        print(f"🧹 [{self.label}] Pokój {room.code} usunięty")

    async def discard_room(self, room_code: str) -> bool:
        """Usuń pokój (np. przez sprzątanie nieaktywnych pokoi)"""
        room = self.rooms.get(normalize_room_code(room_code))
        if room is None:
            return False
        async with room.lock:
            await self._discard_room(room)
        return True

    def idle_rooms(self, max_idle_seconds: float) -> list[str]:
        """Kody pokoi bez podłączonego człowieka i bez aktywności dłużej niż `max_idle_seconds`"""
        now = time.time()
        return [
            code for code, room in self.rooms.items()
            if not any(s.connection is not None and not s.is_bot for s in room.seats)
            and now - room.last_activity > max_idle_seconds
        ]

    async def _mark_disconnected(self, room: Room, seat: SeatRecord):
        seat.connection = None
        await self._broadcast(room, {'type': 'PLAYER_DISCONNECTED', 'playerId': seat.player_id})
        await self._push_state(room)
        print(f"⚠️ [{self.label} {room.code}] {seat.name} rozłączony")

    def view(self, room_code: str, player_id: str) -> dict:
        """Aktualny widok gracza (bez wysyłania czegokolwiek)"""
        return project(self.get_room(room_code), player_id)

    # ============================================
    # OPERACJE POKOJU
    # ============================================

    async def create_room(self, display_name: str, room_code: Optional[str] = None,
                          connection: Any = None) -> tuple[str, str, str]:
        code = normalize_room_code(room_code) or self._unique_code()
        existing = self.rooms.get(code)
        if existing is not None and existing.seats:
            raise TuteError(ROOM_EXISTS)

        room = Room(code=code)
        self.rooms[code] = room
        async with room.lock:
            seat = self._add_seat(room, display_name, connection)
            room.host_id = seat.player_id
            await self._send(room, seat, {
                'type': 'ROOM_CREATED',
                'roomCode': code,
                'playerId': seat.player_id,
                'playerSecret': seat.secret,
                'position': seat.position,
            })
            await self._push_state(room)
            await self._after_mutation(room)

        print(f"✅ [{self.label}] Pokój {code} utworzony przez {seat.name}")
        return code, seat.player_id, seat.secret

    async def join_room(self, room_code: str, display_name: str, connection: Any = None,
                        player_id: Optional[str] = None) -> tuple[str, str, int]:
        code = normalize_room_code(room_code)
        room = self.rooms.get(code)
        if room is None:
            # Pierwszy gracz z nowym kodem zakłada pokój
            room = Room(code=code)
            self.rooms[code] = room

        async with room.lock:
            if player_id and room.seat_by_id(player_id):
                raise TuteError(ROOM_EXISTS, "Gracz o tym ID już siedzi przy stole")
            if room.is_full():
                raise TuteError(ROOM_FULL)
            if room.game_running():
                raise TuteError(GAME_IN_PROGRESS)

            seat = self._add_seat(room, display_name, connection, player_id)
            if room.host_id is None:
                room.host_id = seat.player_id

            await self._send(room, seat, {
                'type': 'JOINED_ROOM',
                'roomCode': code,
                'playerId': seat.player_id,
                'playerSecret': seat.secret,
                'position': seat.position,
            })
            await self._broadcast(
                room,
                {'type': 'PLAYER_JOINED', 'player': seat.to_public(room.host_id)},
                exclude=seat.player_id,
            )
            await self._push_state(room)
            await self._after_mutation(room)

        print(f"👤 [{self.label} {code}] {seat.name} dołączył (pozycja {seat.position})")
        return seat.player_id, seat.secret, seat.position

    async def leave_room(self, room_code: str, player_id: str) -> None:
        room = self.get_room(room_code)
        async with room.lock:
            seat = self._require_seat(room, player_id)

            if room.game_running():
                # W trakcie gry miejsce zostaje; można wrócić przez reconnect
                await self._mark_disconnected(room, seat)
                await self._after_mutation(room)
                return

            room.seats.remove(seat)
            if room.host_id == player_id:
                remaining = sorted(room.seats, key=lambda s: s.position)
                room.host_id = remaining[0].player_id if remaining else None

            print(f"👋 [{self.label} {room.code}] {seat.name} opuścił pokój")
            if not room.seats:
                await self._discard_room(room)
                return

            await self._broadcast(room, {'type': 'PLAYER_LEFT', 'playerId': player_id, 'hostId': room.host_id})
            await self._push_state(room)
            await self._after_mutation(room)

    async def start_game(self, room_code: str, player_id: str) -> None:
        room = self.get_room(room_code)
        async with room.lock:
            self._require_seat(room, player_id)
            if room.host_id != player_id:
                raise TuteError(NOT_HOST)
            if room.game_running():
                raise TuteError(GAME_IN_PROGRESS)
            if len(room.seats) != LICZBA_GRACZY:
                raise TuteError(NOT_ENOUGH_PLAYERS)

            await self._broadcast(room, {'type': 'GAME_STARTING', 'roomCode': room.code})
            room.timers.cancel_all()
            room.engine = self._build_engine(room)
            await self._flush_events(room)
            await self._on_deal(room)
            await self._push_state(room)
            await self._after_mutation(room)

        print(f"🎴 [{self.label} {room.code}] Gra rozpoczęta")

    # ============================================
    # OPERACJE GRY
    # ============================================

    async def _apply(self, room: Room, player_id: str, action: dict) -> SeatRecord:
        """Walidacja + wykonanie akcji. Wywoływane pod lockiem."""
        seat = self._require_seat(room, player_id)
        engine = self._require_engine(room)
        code = engine.validate_action(player_id, action)
        if code:
            raise TuteError(code)
        engine.perform_action(player_id, action)
        return seat

    async def play_card(self, room_code: str, player_id: str, card_id: str) -> None:
        room = self.get_room(room_code)
        async with room.lock:
            seat = await self._apply(room, player_id, {'typ': 'zagraj_karte', 'karta': card_id})
            await self._after_card(room, seat)

    async def _after_card(self, room: Room, seat: SeatRecord):
        await self._flush_events(room)
        await self._on_card_played(room, seat)
        if room.engine.partia.lewa_do_zamkniecia:
            self._schedule_trick_resolution(room)
        await self._push_state(room)
        await self._after_mutation(room)

    async def declare(self, room_code: str, player_id: str, cante_type: str,
                      suit: Optional[str] = None) -> None:
        room = self.get_room(room_code)
        async with room.lock:
            await self._apply(room, player_id, {'typ': 'cante', 'rodzaj': cante_type, 'kolor': suit})
            await self._after_cante(room)

    async def _after_cante(self, room: Room):
        await self._flush_events(room)
        # Tute kończy rundę od razu
        await self._advance_round(room)
        await self._push_state(room)
        await self._after_mutation(room)

    async def skip_declare(self, room_code: str, player_id: str) -> None:
        room = self.get_room(room_code)
        async with room.lock:
            await self._apply(room, player_id, {'typ': 'pomin_cante'})
            await self._push_state(room)
            await self._after_mutation(room)

    # ============================================
    # POŁĄCZENIA
    # ============================================

    async def reconnect(self, room_code: str, player_id: str, player_secret: str,
                        connection: Any = None) -> dict:
        room = self.rooms.get(normalize_room_code(room_code))
        if room is None:
            raise TuteError(RECONNECT_FAILED)

        async with room.lock:
            seat = room.seat_by_id(player_id)
            if seat is None or not secrets.compare_digest(seat.secret, player_secret or ''):
                raise TuteError(RECONNECT_FAILED)

            was_connected = seat.connection is not None
            if connection is not None:
                seat.connection = connection

            await self._send_snapshot(room, seat)
            if not was_connected and seat.connection is not None:
                await self._broadcast(room, {'type': 'PLAYER_RECONNECTED', 'playerId': player_id},
                                      exclude=player_id)
                await self._push_state(room)
                print(f"🔄 [{self.label} {room.code}] {seat.name} wrócił do gry")
            await self._after_mutation(room)
            return project(room, player_id)

    async def disconnect(self, room_code: str, player_id: str, connection: Any = None) -> None:
        room = self.rooms.get(normalize_room_code(room_code))
        if room is None:
            return
        async with room.lock:
            seat = room.seat_by_id(player_id)
            if seat is None or seat.connection is None:
                return
            # Stare połączenie zamknięte po reconnect - miejsce ma już nowe
            if connection is not None and seat.connection is not connection:
                return
            await self._mark_disconnected(room, seat)
            await self._after_mutation(room)
