"""
Service: Local Game
Odpowiedzialność: Gra na jednym urządzeniu - człowiek (opcjonalnie) + boty
- Boty wykonują ruchy po AI_THINK_DELAY (po cante dłuższa pauza AI_CANTE_DELAY)
- Wszystkie opóźnione akcje idą przez timery pokoju, więc exit_game je anuluje
- Listener dostaje każdy widok i zdarzenie przeznaczone dla człowieka
"""
import inspect
import random
from typing import Optional, Callable, Any, Dict, List

from config import settings
from boty_tute import stworz_bota, BotTute, DOSTEPNE_ALGORYTMY
from services.coordinator import BaseCoordinator, Room, SeatRecord, project
from silnik_tute import LICZBA_GRACZY

BOT_NAMES = ["Bot Carlos", "Bot María", "Bot Pedro", "Bot Lucía"]

# Uchwyty "połączeń": człowiek przy tym urządzeniu i boty (zawsze obecne, niczego nie odbierają)
HUMAN_CONNECTION = object()
BOT_CONNECTION = object()


class LocalGame(BaseCoordinator):
    """
    Lokalna partia Tute.

    Człowiek siedzi na pozycji 0 (partnerem jest Bot María na pozycji 2).
    Bez człowieka (player_name=None) grają same boty.
    """

    label = "Local"

    def __init__(self, player_name: Optional[str] = "Jugador", difficulty: str = "medium",
                 bot_levels: Optional[List[str]] = None, listener: Optional[Callable[[dict], Any]] = None,
                 think_delay: Optional[float] = None, cante_delay: Optional[float] = None,
                 rng: Optional[random.Random] = None, **kwargs):
        """
        Args:
            player_name: Nazwa człowieka albo None (same boty)
            difficulty: Poziom wszystkich botów ('easy'/'medium'/'hard'/'expert')
            bot_levels: Poziom dla każdego bota osobno (nadpisuje difficulty)
            listener: Funkcja (sync lub async) dostająca wiadomości dla człowieka
            think_delay: Czas "myślenia" bota (domyślnie settings.AI_THINK_DELAY)
            cante_delay: Dodatkowa pauza po cante bota (domyślnie settings.AI_CANTE_DELAY)
            rng: Random dla botów i tasowania (powtarzalne symulacje)
        """
        if rng is not None:
            kwargs.setdefault('engine_settings', {'rng': rng})
        super().__init__(**kwargs)

        bot_count = LICZBA_GRACZY if player_name is None else LICZBA_GRACZY - 1
        levels = list(bot_levels) if bot_levels else [difficulty] * bot_count
        if len(levels) != bot_count:
            raise ValueError(f"Potrzeba {bot_count} poziomów botów, podano {len(levels)}")
        for level in levels:
            if level not in DOSTEPNE_ALGORYTMY:
                raise ValueError(f"Nieznany poziom bota: {level}")

        self.player_name = player_name
        self.bot_levels = levels
        self.listener = listener
        self.think_delay = settings.AI_THINK_DELAY if think_delay is None else think_delay
        self.cante_delay = settings.AI_CANTE_DELAY if cante_delay is None else cante_delay
        self.rng = rng or random.Random()
        self.room_code: Optional[str] = None
        self.human_id: Optional[str] = None
        # Słownik: player_id -> bot
        self.bots: Dict[str, BotTute] = {}

    # ============================================
    # START / WYJŚCIE
    # ============================================

    async def start(self) -> str:
        """
        Posadź graczy i rozdaj pierwszą rundę

        Returns:
            str: Kod pokoju lokalnego
        """
        names = iter(BOT_NAMES)
        levels = iter(self.bot_levels)

        if self.player_name is not None:
            code, host_id, _ = await self.create_room(self.player_name, connection=HUMAN_CONNECTION)
            self.human_id = host_id
        else:
            level = next(levels)
            code, host_id, _ = await self.create_room(next(names), connection=BOT_CONNECTION)
            self._make_bot(self.rooms[code].seat_by_id(host_id), level)
        self.room_code = code

        room = self.rooms[code]
        for level in levels:
            async with room.lock:
                seat = self._add_seat(room, next(names), BOT_CONNECTION, is_bot=True, bot_level=level)
                self._make_bot(seat, level)

        await self.start_game(code, host_id)
        print(f"🎴 [Local] Partia {code} rozpoczęta (boty: {', '.join(self.bot_levels)})")
        return code

    def _make_bot(self, seat: SeatRecord, level: str):
        seat.is_bot = True
        seat.bot_level = level
        seat.connection = BOT_CONNECTION
        self.bots[seat.player_id] = stworz_bota(level, random.Random(self.rng.random()))

    async def exit_game(self):
        """Zakończ partię i anuluj wszystkie zaplanowane ruchy botów"""
        room = self.room
        if room is None:
            return
        cancelled = room.timers.cancel_all()
        await self.discard_room(room.code)
        print(f"👋 [Local] Wyjście z gry ({cancelled} anulowanych zadań)")

    async def wait_idle(self, timeout: Optional[float] = None):
        """Czekaj, aż boty i rozstrzyganie lew nie będą miały nic do zrobienia"""
        room = self.room
        if room is not None:
            await room.timers.wait_idle(timeout)

    @property
    def room(self) -> Optional[Room]:
        return self.rooms.get(self.room_code) if self.room_code else None

    def view(self) -> dict:
        """Widok człowieka (albo stan publiczny w grze samych botów)"""
        room = self.room
        if room is None:
            return {}
        return project(room, self.human_id)

    def is_finished(self) -> bool:
        room = self.room
        return room is not None and room.engine is not None and room.engine.is_terminal()

    # ============================================
    # RUCHY CZŁOWIEKA
    # ============================================

    async def play(self, card_id: str):
        await self.play_card(self.room_code, self.human_id, card_id)

    async def declare_cante(self, cante_type: str, suit: Optional[str] = None):
        await self.declare(self.room_code, self.human_id, cante_type, suit)

    async def skip_cante(self):
        await self.skip_declare(self.room_code, self.human_id)

    # ============================================
    # TRANSPORT I BOTY
    # ============================================

    async def _send(self, room: Room, seat: SeatRecord, message: dict) -> None:
        if seat.is_bot or self.listener is None:
            return
        result = self.listener(message)
        if inspect.isawaitable(result):
            await result

    async def _after_mutation(self, room: Room):
        await super()._after_mutation(room)
        self._schedule_bot_turn(room, self.think_delay)

    def _schedule_bot_turn(self, room: Room, delay: float):
        engine = room.engine
        if engine is None or engine.is_terminal() or engine.partia.lewa_do_zamkniecia:
            return
        current = engine.get_current_player()
        seat = room.seat_by_id(current)
        if seat is None or not seat.is_bot:
            return
        room.timers.schedule('bot', delay, lambda: self._run_bot_turn(room.code, current))

    async def _run_bot_turn(self, room_code: str, player_id: str):
        room = self.rooms.get(room_code)
        if room is None:
            return
        async with room.lock:
            engine = room.engine
            if engine is None or engine.get_current_player() != player_id:
                return
            bot = self.bots[player_id]
            seat = room.seat_by_id(player_id)

            cante = bot.wybierz_cante(engine, player_id)
            if cante is not None and engine.validate_action(player_id, cante) is None:
                engine.perform_action(player_id, cante)
                print(f"🎴 [Local {room.code}] {seat.name} śpiewa {cante['rodzaj']} {cante['kolor'] or ''}")
                await self._flush_events(room)
                await self._advance_round(room)
                await self._push_state(room)
                room.touch()
                self._schedule_bot_turn(room, self.cante_delay)
                return

            # Bot nie śpiewa - zamyka swoje okno cante, żeby go nie pytać ponownie
            if engine.validate_action(player_id, {'typ': 'pomin_cante'}) is None:
                engine.perform_action(player_id, {'typ': 'pomin_cante'})

            action = bot.znajdz_najlepszy_ruch(engine, player_id)
            if not action:
                return
            engine.perform_action(player_id, action)
            await self._after_card(room, seat)
