"""
Service: Relay Coordinator
Odpowiedzialność: Serwer jako jedyne źródło prawdy dla pokoi WebSocket
- Doręczanie wiadomości przez ConnectionManager
- Zapis pokoju do Redis po każdej zmianie (opcjonalnie)
- Odtwarzanie pokoi po restarcie
"""
from typing import Optional, Any

from services.coordinator import BaseCoordinator, Room, SeatRecord
from services.redis_service import RedisService


class RelayCoordinator(BaseCoordinator):
    """
    Koordynator relay: wszyscy gracze łączą się z serwerem,
    serwer trzyma silnik i wysyła każdemu jego projekcję.
    """

    label = "Relay"

    def __init__(self, connections: Any, redis_service: Optional[RedisService] = None, **kwargs):
        """
        Args:
            connections: ConnectionManager (send_personal_message(message, websocket))
            redis_service: RedisService albo None (pokoje tylko w pamięci)
        """
        super().__init__(**kwargs)
        self.connections = connections
        self.redis_service = redis_service

    async def _send(self, room: Room, seat: SeatRecord, message: dict) -> None:
        if seat.connection is None:
            return
        await self.connections.send_personal_message(message, seat.connection)

    # ============================================
    # PERSYSTENCJA
    # ============================================

    async def _after_mutation(self, room: Room):
        await super()._after_mutation(room)
        await self.persist(room)

    async def persist(self, room: Room) -> bool:
        """Zapisz opis pokoju i silnik do Redis"""
        if self.redis_service is None or not self._is_current(room):
            return False
        saved = await self.redis_service.save_room(room.code, room.to_snapshot())
        if room.engine is not None:
            saved = await self.redis_service.save_game_engine(room.code, room.engine) and saved
        return saved

    async def _on_room_discarded(self, room: Room):
        if self.redis_service is not None:
            await self.redis_service.delete_room(room.code)

    async def restore_rooms(self) -> int:
        """
        Odtwórz pokoje zapisane w Redis (wywoływane przy starcie)

        Returns:
            int: Liczba odtworzonych pokoi
        """
        if self.redis_service is None:
            return 0

        restored = 0
        for data in await self.redis_service.list_rooms():
            code = data.get('code')
            if not code or code in self.rooms:
                continue
            engine = await self.redis_service.get_game_engine(code)
            room = Room.from_snapshot(data, engine)
            if not room.seats:
                continue
            self.rooms[code] = room
            # Lewa zapisana w trakcie zamykania - dokończ ją
            if engine is not None and engine.partia.lewa_do_zamkniecia:
                self._schedule_trick_resolution(room)
            restored += 1

        print(f"✅ [Relay] Odtworzono {restored} pokoi z Redis")
        return restored
