"""
Service: Client Session
Odpowiedzialność: Stan po stronie klienta relay, budowany z wiadomości serwera
- Dane logowania (playerId, sekret, kod pokoju) do ponownego połączenia
- Ostatni stan pokoju / gry i ostatni błąd
"""
from typing import Optional


class ClientSession:
    """
    Reduktor wiadomości serwera. Przyjmuje oba kształty odpowiedzi
    na dołączenie: JOINED_ROOM (płaski) i ROOM_JOINED (z obiektem `room`).
    """

    def __init__(self, room_code: Optional[str] = None):
        self.room_code = room_code
        self.player_id: Optional[str] = None
        self.player_secret: Optional[str] = None
        self.position: Optional[int] = None
        self.room: Optional[dict] = None
        self.game_state: Optional[dict] = None
        self.last_error: Optional[dict] = None
        self.events: list[dict] = []

    @property
    def has_credentials(self) -> bool:
        return bool(self.room_code and self.player_id and self.player_secret)

    @property
    def in_game(self) -> bool:
        return self.game_state is not None and self.game_state.get('phase') not in (None, 'waiting')

    def _store_credentials(self, message: dict):
        self.player_id = message.get('playerId', self.player_id)
        self.player_secret = message.get('playerSecret', self.player_secret)
        self.position = message.get('position', self.position)

    def apply(self, message: dict) -> 'ClientSession':
        """Uwzględnij jedną wiadomość serwera"""
        msg_type = message.get('type')

        if msg_type in ('ROOM_CREATED', 'JOINED_ROOM'):
            self._store_credentials(message)
            self.room_code = message.get('roomCode', self.room_code)
            self.last_error = None

        elif msg_type == 'ROOM_JOINED':
            self._store_credentials(message)
            self.room = message.get('room') or self.room
            if self.room:
                self.room_code = self.room.get('roomCode', self.room_code)
            self.last_error = None

        elif msg_type == 'ROOM_STATE':
            self.room = {k: v for k, v in message.items() if k != 'type'}

        elif msg_type == 'GAME_STATE':
            self.game_state = message.get('state')
            self.last_error = None

        elif msg_type == 'GAME_STARTING':
            self.game_state = None

        elif msg_type == 'ERROR':
            self.last_error = {'code': message.get('code'), 'message': message.get('message')}

        elif msg_type == 'PLAYER_LEFT' and message.get('playerId') == self.player_id:
            self.player_id = None
            self.player_secret = None

        elif msg_type in ('CARD_PLAYED', 'TRICK_WON', 'CANTE_DECLARED', 'ROUND_END', 'GAME_END',
                          'NEW_ROUND', 'PLAYER_JOINED', 'PLAYER_LEFT', 'PLAYER_DISCONNECTED',
                          'PLAYER_RECONNECTED'):
            self.events.append(message)

        return self

    def reconnect_message(self) -> Optional[dict]:
        """Wiadomość RECONNECT z zapamiętanych danych (None jeśli ich brak)"""
        if not self.has_credentials:
            return None
        return {'type': 'RECONNECT', 'playerId': self.player_id, 'playerSecret': self.player_secret}
