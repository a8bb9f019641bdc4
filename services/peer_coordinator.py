"""
Service: Peer Coordinator
Odpowiedzialność: Gra bez serwera gry - jeden z graczy jest hostem
- PeerHost: autorytatywny silnik, rozsyła publiczny stan i prywatne ręce
- PeerClient: cienki klient (przekazuje intencje, trzyma ostatni stan)

Protokół (koperta {type, from, timestamp, data}):
    game_state      host -> wszyscy: stan publiczny z rosnącym `seq`
    player_action   klient -> host: intencja (play_card / declare_cante / skip_cante)
                    host -> klient: receive_hand / action_rejected / event
    player_joined   klient -> host: {playerId, playerName[, playerSecret]}
    player_left     klient -> host
    start_game      klient -> host
    sync_request    klient -> host: odpowiedź to stan + ręka
    ping / pong
"""
import time
from typing import Optional, Dict

from pydantic import ValidationError

from models import PeerMessage
from services.coordinator import (
    BaseCoordinator, Room, SeatRecord, TuteError, project, UNKNOWN_MESSAGE, NOT_IN_ROOM
)
from services.peer_transport import PeerLink, peer_message
from silnik_tute import (
    Kolor, Zagranie, karta_z_id, get_legalne_karty, mozliwe_cante, mozliwy_tute, druzyna_gracza
)
from partia_tute import FazaGry
from utils.helpers import generate_player_id

# Pola projekcji, które dotyczą jednego gracza - nie idą w stanie publicznym
PRIVATE_STATE_KEYS = (
    'myId', 'myPosition', 'myTeam', 'myHand', 'isMyTurn',
    'validCards', 'canDeclare', 'availableCantes',
)

# ============================================
# HOST
# ============================================

class PeerHost(BaseCoordinator):
    """
    Host sesji peer. Ma jeden pokój i łącza do wszystkich peerów.
    Sam host siedzi przy stole jak każdy inny gracz.
    """

    label = "Peer"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.room_code: Optional[str] = None
        self.host_id: Optional[str] = None
        # Słownik: peer_id -> łącze do peera
        self.links: Dict[str, PeerLink] = {}
        self.seq = 0

    async def open(self, host_name: str, room_code: Optional[str] = None,
                   link: Optional[PeerLink] = None) -> tuple[str, str, str]:
        """
        Otwórz pokój hosta

        Args:
            host_name: Nazwa gracza-hosta
            room_code: Kod pokoju (domyślnie losowy)
            link: Opcjonalne łącze do UI hosta

        Returns:
            tuple: (room_code, player_id, player_secret)
        """
        code, player_id, secret = await self.create_room(host_name, room_code, connection=link)
        self.room_code = code
        self.host_id = player_id
        if link is not None:
            self.links[player_id] = link
        print(f"✅ [Peer] Host {host_name} otworzył pokój {code}")
        return code, player_id, secret

    @property
    def room(self) -> Optional[Room]:
        return self.rooms.get(self.room_code) if self.room_code else None

    def attach(self, link: PeerLink):
        """
        Zarejestruj łącze do peera (przed jego player_joined).
        Łącze podłączonego miejsca zostaje, dopóki nowe nie przejdzie player_joined.
        """
        current = self.links.get(link.peer_id)
        if current is not None and current is not link and self._seat_link(link.peer_id) is current:
            return
        self.links[link.peer_id] = link

    async def detach(self, peer_id: str, link: PeerLink):
        """Łącze zamknięte - miejsce zostaje, gracz jest rozłączony (o ile to było jego łącze)"""
        if self.links.get(peer_id) is link:
            del self.links[peer_id]
        if self.room_code:
            await self.disconnect(self.room_code, peer_id, connection=link)

    def _seat_link(self, peer_id: str) -> Optional[PeerLink]:
        room = self.room
        seat = room.seat_by_id(peer_id) if room else None
        return seat.connection if seat else None

    def _bind(self, peer_id: str, link: Optional[PeerLink]):
        """Przyjęty player_joined - łącze staje się łączem miejsca"""
        if link is not None and self._seat_link(peer_id) is link:
            self.links[peer_id] = link

    def _wire(self, msg_type: str, data: Optional[dict] = None) -> dict:
        return peer_message(msg_type, self.host_id or 'host', data)

    async def _deliver(self, room: Room, seat: SeatRecord, message: dict):
        link = seat.connection
        if link is None:
            return
        try:
            await link.send(message)
        except ConnectionError as e:
            # Rozłączenie po zwolnieniu locka - jak zamknięte łącze
            name = f"drop:{seat.player_id}"
            if not room.timers.is_scheduled(name):
                print(f"❌ [Peer {self.room_code}] Błąd wysyłania do {seat.name}: {e}")
                peer_id = seat.player_id
                room.timers.schedule(name, 0, lambda: self.detach(peer_id, link))

    # --- transport (haki BaseCoordinator) ---

    async def _send(self, room: Room, seat: SeatRecord, message: dict) -> None:
        await self._deliver(room, seat, self._wire('player_action', {
            'type': 'event',
            'playerId': seat.player_id,
            'event': message,
        }))

    def public_state(self, room: Room) -> dict:
        """Stan bez rąk - tylko liczby kart"""
        state = project(room, None)
        for key in PRIVATE_STATE_KEYS:
            state.pop(key, None)
        state['seq'] = self.seq
        state['status'] = room.status
        state['canStart'] = self._can_start(room)
        return state

    async def _push_state(self, room: Room):
        self.seq += 1
        message = self._wire('game_state', self.public_state(room))
        for seat in room.seats:
            await self._deliver(room, seat, message)

    async def _send_hand(self, room: Room, seat: SeatRecord):
        if room.engine is None:
            return
        await self._deliver(room, seat, self._wire('player_action', {
            'type': 'receive_hand',
            'playerId': seat.player_id,
            'cards': room.engine.get_hand(seat.player_id),
        }))

    async def _on_deal(self, room: Room):
        for seat in room.seats:
            await self._send_hand(room, seat)

    async def _on_card_played(self, room: Room, seat: SeatRecord):
        await self._send_hand(room, seat)

    async def _on_room_discarded(self, room: Room):
        self.links.clear()

    async def _send_snapshot(self, room: Room, seat: SeatRecord):
        await self._send(room, seat, {
            'type': 'ROOM_JOINED',
            'room': room.to_public(),
            'playerId': seat.player_id,
            'playerSecret': seat.secret,
            'position': seat.position,
        })
        await self._deliver(room, seat, self._wire('game_state', self.public_state(room)))
        await self._send_hand(room, seat)

    # --- wiadomości od peerów ---

    async def handle_message(self, peer_id: str, message: dict, link: Optional[PeerLink] = None):
        """
        Obsłuż wiadomość od peera. Odrzucone intencje wracają tylko do nadawcy.

        Args:
            peer_id: ID peera
            message: Koperta {type, from, timestamp, data}
            link: Łącze, którym przyszła wiadomość (domyślnie zarejestrowane łącze peera)
        """
        try:
            envelope = PeerMessage.model_validate(message)
        except ValidationError as e:
            print(f"⚠️ [Peer] Nieprawidłowa wiadomość od {peer_id}: {e.error_count()} błędów")
            return

        room = self.room
        if room is None:
            return
        if link is None:
            link = self.links.get(peer_id)
        data = envelope.data or {}

        try:
            # Poza ping i player_joined działa tylko łącze, które siedzi na miejscu
            if envelope.type not in ('ping', 'player_joined') and link is not None:
                seat_link = self._seat_link(peer_id)
                if seat_link is not None and seat_link is not link:
                    raise TuteError(NOT_IN_ROOM, "To łącze nie jest połączone z miejscem gracza")

            if envelope.type == 'ping':
                if link is not None:
                    await link.send(self._wire('pong'))

            elif envelope.type == 'player_joined':
                secret = data.get('playerSecret')
                if secret:
                    await self.reconnect(room.code, peer_id, secret, connection=link)
                else:
                    await self.join_room(room.code, data.get('playerName') or peer_id,
                                         connection=link, player_id=peer_id)
                self._bind(peer_id, link)

            elif envelope.type == 'sync_request':
                seat = room.seat_by_id(peer_id)
                if seat is None:
                    raise TuteError(NOT_IN_ROOM)
                async with room.lock:
                    await self._send_snapshot(room, seat)

            elif envelope.type == 'start_game':
                await self.start_game(room.code, peer_id)

            elif envelope.type == 'player_left':
                await self.leave_room(room.code, peer_id)

            elif envelope.type == 'player_action':
                await self._handle_intent(room, peer_id, data)

            # game_state / pong od peera nic nie zmieniają

        except TuteError as e:
            print(f"⚠️ [Peer {room.code}] {envelope.type} od {peer_id} odrzucone: {e.code}")
            if link is not None:
                try:
                    await link.send(self._wire('player_action', {
                        'type': 'action_rejected',
                        'playerId': peer_id,
                        'code': e.code,
                        'message': e.message,
                    }))
                except ConnectionError as send_error:
                    print(f"❌ [Peer] Nie można odesłać odrzucenia do {peer_id}: {send_error}")

    async def _handle_intent(self, room: Room, peer_id: str, data: dict):
        # Gracz działa zawsze w imieniu siebie (peer_id łącza), nie pola playerId
        intent = data.get('type')
        if intent == 'play_card':
            await self.play_card(room.code, peer_id, str(data.get('cardId')))
        elif intent == 'declare_cante':
            await self.declare(room.code, peer_id, data.get('canteType'), data.get('suit'))
        elif intent == 'skip_cante':
            await self.skip_declare(room.code, peer_id)
        else:
            raise TuteError(UNKNOWN_MESSAGE)

# ============================================
# KLIENT
# ============================================

class PeerClient:
    """
    Klient peer: wysyła intencje do hosta i trzyma ostatni stan.

    Stan przyjmowany jest tylko, gdy `seq` nie jest starszy niż ostatni
    (starsze odpowiedzi na sync_request są pomijane).
    """

    def __init__(self, player_id: Optional[str] = None, player_name: str = "Jugador",
                 player_secret: Optional[str] = None, link: Optional[PeerLink] = None):
        self.player_id = player_id or generate_player_id()
        self.player_name = player_name
        self.player_secret = player_secret
        self.link = link
        self.room_code: Optional[str] = None
        self.state: Optional[dict] = None
        self.seq = -1
        self.hand: list[dict] = []
        self.events: list[dict] = []
        self.last_error: Optional[dict] = None
        self.last_pong: Optional[float] = None

    async def _send(self, msg_type: str, data: Optional[dict] = None):
        if self.link is None:
            raise ConnectionError("Klient nie jest połączony z hostem")
        await self.link.send(peer_message(msg_type, self.player_id, data))

    async def connect(self, link: Optional[PeerLink] = None):
        """Przedstaw się hostowi i poproś o stan"""
        if link is not None:
            self.link = link
        data = {'playerId': self.player_id, 'playerName': self.player_name}
        if self.player_secret:
            data['playerSecret'] = self.player_secret
        await self._send('player_joined', data)
        await self._send('sync_request')

    # --- intencje ---

    async def play_card(self, card_id: str):
        await self._send('player_action', {'type': 'play_card', 'playerId': self.player_id, 'cardId': card_id})

    async def declare_cante(self, cante_type: str, suit: Optional[str] = None):
        await self._send('player_action', {
            'type': 'declare_cante', 'playerId': self.player_id, 'canteType': cante_type, 'suit': suit,
        })

    async def skip_cante(self):
        await self._send('player_action', {'type': 'skip_cante', 'playerId': self.player_id})

    async def start_game(self):
        await self._send('start_game')

    async def leave(self):
        await self._send('player_left', {'playerId': self.player_id})

    async def ping(self):
        await self._send('ping')

    async def request_sync(self):
        await self._send('sync_request')

    # --- wiadomości od hosta ---

    async def handle_message(self, message: dict):
        msg_type = message.get('type')
        data = message.get('data') or {}

        if msg_type == 'game_state':
            seq = data.get('seq', 0)
            if seq >= self.seq:
                self.seq = seq
                self.state = data
                self.room_code = data.get('roomCode', self.room_code)

        elif msg_type == 'player_action':
            kind = data.get('type')
            if kind == 'receive_hand' and data.get('playerId') == self.player_id:
                self.hand = data.get('cards', [])
            elif kind == 'action_rejected':
                self.last_error = {'code': data.get('code'), 'message': data.get('message')}
            elif kind == 'event':
                event = data.get('event') or {}
                self.events.append(event)
                if event.get('playerSecret') and event.get('playerId') == self.player_id:
                    self.player_secret = event['playerSecret']
                if event.get('type') == 'GAME_STARTING':
                    self.hand = []

        elif msg_type == 'pong':
            self.last_pong = time.time()

    # --- widok liczony lokalnie ---

    def my_position(self) -> Optional[int]:
        for player in (self.state or {}).get('players', []):
            if player.get('id') == self.player_id:
                return player.get('position')
        return None

    def valid_cards(self) -> list[str]:
        """Legalne karty liczone lokalnie regułami silnika"""
        state = self.state
        if not state or state.get('phase') != FazaGry.ROZGRYWKA.value or state.get('trickPending'):
            return []
        if state.get('currentPlayerId') != self.player_id:
            return []
        reka = [karta_z_id(c['id']) for c in self.hand]
        lewa = [Zagranie(e['position'], karta_z_id(e['card']['id'])) for e in state.get('currentTrick', [])]
        atut = Kolor(state['trumpSuit']) if state.get('trumpSuit') else None
        return [k.id for k in get_legalne_karty(reka, lewa, atut)]

    def available_cantes(self) -> list[dict]:
        """Cante możliwe teraz: tute przed 40 i 20"""
        state = self.state
        position = self.my_position()
        if not state or position is None or state.get('phase') != FazaGry.ROZGRYWKA.value:
            return []
        window = state.get('canteWindow')
        if not window or state.get('trickPending') or state.get('currentTrick'):
            return []
        team = druzyna_gracza(position)
        if self.player_id in window.get('skipped', []):
            return []
        if window.get('team') is not None and window['team'] != team:
            return []

        scores = state.get('scores', [])
        all_cantes = [c for score in scores for c in score.get('cantes', [])]
        spiewala = any(c for score in scores if score.get('team') == team for c in score.get('cantes', []))
        zaspiewane = [Kolor(c['suit']) for c in all_cantes if c.get('suit')]
        reka = [karta_z_id(c['id']) for c in self.hand]
        atut = Kolor(state['trumpSuit']) if state.get('trumpSuit') else None
        lewy = state.get('teamTricks', [0, 0])[team]

        available = []
        if mozliwy_tute(reka, lewy, spiewala).mozna:
            available.append({'type': 'tute', 'suit': None})
        for typ, kolor in mozliwe_cante(reka, atut, True, spiewala, zaspiewane).dostepne:
            available.append({'type': typ.value, 'suit': kolor.value})
        return available

    def view(self) -> dict:
        """Ostatni stan + prywatna część gracza (jak projekcja relay)"""
        state = dict(self.state or {})
        position = self.my_position()
        available = self.available_cantes()
        state.update({
            'myId': self.player_id,
            'myPosition': position,
            'myTeam': druzyna_gracza(position) if position is not None else None,
            'myHand': list(self.hand),
            'isMyTurn': state.get('currentPlayerId') == self.player_id,
            'validCards': self.valid_cards(),
            'canDeclare': bool(available),
            'availableCantes': available,
        })
        return state
