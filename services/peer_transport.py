"""
Service: Peer Transport
Odpowiedzialność: Łącza między hostem a peerami
- PeerLink: wspólny interfejs (send/close)
- InMemoryPeerLink: para w jednym procesie (testy, gra na jednym urządzeniu)
- WebSocketPeerLink: peer połączony przez FastAPI WebSocket
"""
import json
import time
from abc import ABC, abstractmethod
from typing import Callable, Awaitable, Optional, Any


def peer_message(msg_type: str, sender: str, data: Optional[dict] = None) -> dict:
    """Koperta wiadomości: {type, from, timestamp, data}"""
    return {
        'type': msg_type,
        'from': sender,
        'timestamp': time.time() * 1000,
        'data': data or {},
    }


class PeerLink(ABC):
    """Jeden kierunek łącza do konkretnego peera"""

    def __init__(self, peer_id: str):
        self.peer_id = peer_id
        self.closed = False

    @abstractmethod
    async def send(self, message: dict) -> None:
        """
        Wyślij wiadomość

        Raises:
            ConnectionError: Łącze zamknięte
        """

    async def close(self):
        self.closed = True


class InMemoryPeerLink(PeerLink):
    """
    Łącze w pamięci: wiadomość przechodzi przez JSON (jak przez sieć)
    i trafia do handlera drugiej strony.
    """

    def __init__(self, peer_id: str, handler: Callable[[dict], Awaitable[None]]):
        super().__init__(peer_id)
        self.handler = handler
        self.sent = 0

    async def send(self, message: dict) -> None:
        if self.closed:
            raise ConnectionError(f"Łącze do {self.peer_id} jest zamknięte")
        self.sent += 1
        await self.handler(json.loads(json.dumps(message)))


class WebSocketPeerLink(PeerLink):
    """Łącze do peera podłączonego przez WebSocket"""

    def __init__(self, peer_id: str, websocket: Any):
        super().__init__(peer_id)
        self.websocket = websocket

    async def send(self, message: dict) -> None:
        if self.closed:
            raise ConnectionError(f"Łącze do {self.peer_id} jest zamknięte")
        try:
            await self.websocket.send_json(message)
        except Exception as e:
            self.closed = True
            raise ConnectionError(f"Błąd wysyłania do {self.peer_id}: {e}") from e

    async def close(self):
        await super().close()
        try:
            await self.websocket.close()
        except Exception as e:
            print(f"⚠️ [Peer] Zamykanie łącza {self.peer_id}: {e}")


def connect_in_memory(host: Any, client: Any) -> tuple[InMemoryPeerLink, InMemoryPeerLink]:
    """
    Połącz PeerClient z PeerHost w tym samym procesie

    Returns:
        tuple: (łącze host->klient, łącze klient->host)
    """
    to_client = InMemoryPeerLink(client.player_id, client.handle_message)

    async def _to_host(message: dict):
        await host.handle_message(client.player_id, message, link=to_client)

    to_host = InMemoryPeerLink(client.player_id, _to_host)
    host.attach(to_client)
    client.link = to_host
    return to_client, to_host
