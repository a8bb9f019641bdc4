#!/usr/bin/env python3
"""
Testy koordynatora sesji w wariancie relay (services/coordinator.py, relay_coordinator.py).
Połączenia WebSocket zastąpione są menedżerem, który zapisuje wysłane wiadomości.
"""
import random
from collections import defaultdict

import pytest

from services.coordinator import (
    TuteError, Room, ROOM_FULL, NOT_HOST, NOT_ENOUGH_PLAYERS, GAME_IN_PROGRESS,
    NOT_IN_ROOM, RECONNECT_FAILED, ROOM_NOT_FOUND, ROOM_EXISTS, project,
)
from services.relay_coordinator import RelayCoordinator
from services.client_session import ClientSession
from partia_tute import BLAD_NIE_TWOJA_TURA, BLAD_NIEDOZWOLONY_RUCH, BLAD_LEWA_ZAMYKANA, BLAD_BRAK_GRY
from silnik_tute import Talia, stworz_talie
from utils.cleanup import cleanup_idle_rooms

KOD = "STOL01"


class FakeConnections:
    """Zamiast ConnectionManager: zapisuje wiadomości dla każdego połączenia"""

    def __init__(self):
        self.sent = defaultdict(list)

    async def send_personal_message(self, message: dict, websocket) -> bool:
        self.sent[websocket].append(message)
        return True

    def of_type(self, websocket, msg_type: str) -> list[dict]:
        return [m for m in self.sent[websocket] if m['type'] == msg_type]

    def last(self, websocket, msg_type: str) -> dict:
        return self.of_type(websocket, msg_type)[-1]


def talia_ze_zmiana() -> Talia:
    """Pozycja 0: copas-1 + oros, 1: oros-1 + copas, 2: espadas, 3: bastos (atut)"""
    karty = stworz_talie()
    karty[0], karty[10] = karty[10], karty[0]
    return Talia(karty=karty)


def nowy_relay(**kwargs) -> RelayCoordinator:
    kwargs.setdefault('trick_delay', 0)
    return RelayCoordinator(FakeConnections(), **kwargs)


async def posadz(relay: RelayCoordinator, liczba: int = 4) -> list[tuple[str, str, str]]:
    """Host + (liczba-1) graczy. Zwraca [(player_id, secret, połączenie)] wg pozycji."""
    code, pid, secret = await relay.create_room("Ana", KOD, connection="ws0")
    gracze = [(pid, secret, "ws0")]
    for i, imie in enumerate(["Ben", "Cid", "Dan"][:liczba - 1], start=1):
        ws = f"ws{i}"
        pid, secret, _ = await relay.join_room(code, imie, connection=ws)
        gracze.append((pid, secret, ws))
    return gracze


# ============================================
# POKÓJ
# ============================================

@pytest.mark.asyncio
async def test_dolaczanie_zajmuje_najnizsza_pozycje():
    print("\n=== TEST DOŁĄCZANIA ===")
    relay = nowy_relay()
    gracze = await posadz(relay)
    conns = relay.connections

    created = conns.last("ws0", 'ROOM_CREATED')
    assert created['roomCode'] == KOD
    assert created['position'] == 0
    assert created['playerSecret'] == gracze[0][1]
    assert [conns.last(f"ws{i}", 'JOINED_ROOM')['position'] for i in (1, 2, 3)] == [1, 2, 3]
    assert len(conns.of_type("ws0", 'PLAYER_JOINED')) == 3

    state = conns.last("ws3", 'ROOM_STATE')
    assert state['canStart']
    assert [p['team'] for p in state['players']] == [0, 1, 0, 1]
    assert state['hostId'] == gracze[0][0]

    with pytest.raises(TuteError) as e:
        await relay.join_room(KOD, "Eva", connection="ws4")
    assert e.value.code == ROOM_FULL

    # Zwolnione miejsce trafia do następnego chętnego
    await relay.leave_room(KOD, gracze[1][0])
    _, _, pozycja = await relay.join_room(KOD.lower(), "Eva", connection="ws4")
    assert pozycja == 1
    print("✅ Pozycje 0-3, piąty gracz odrzucony")


@pytest.mark.asyncio
async def test_join_tworzy_pokoj_i_bledy():
    print("\n=== TEST JOIN NOWEGO KODU ===")
    relay = nowy_relay()
    pid, _, pozycja = await relay.join_room("nowy01", "Ana", connection="ws0")
    room = relay.get_room("NOWY01")
    assert pozycja == 0
    assert room.host_id == pid

    with pytest.raises(TuteError) as e:
        await relay.create_room("Ben", "NOWY01")
    assert e.value.code == ROOM_EXISTS
    with pytest.raises(TuteError) as e:
        await relay.join_room("NOWY01", "Ana", player_id=pid)
    assert e.value.code == ROOM_EXISTS
    with pytest.raises(TuteError) as e:
        await relay.start_game("BRAK99", pid)
    assert e.value.code == ROOM_NOT_FOUND
    with pytest.raises(TuteError) as e:
        await relay.leave_room("NOWY01", "obcy")
    assert e.value.code == NOT_IN_ROOM
    print("✅ JOIN zakłada pokój, błędy mają kody")


@pytest.mark.asyncio
async def test_wyjscie_hosta_przed_gra():
    print("\n=== TEST WYJŚCIA HOSTA ===")
    relay = nowy_relay()
    gracze = await posadz(relay, 3)

    await relay.leave_room(KOD, gracze[0][0])
    room = relay.get_room(KOD)
    assert room.host_id == gracze[1][0]
    left = relay.connections.last("ws2", 'PLAYER_LEFT')
    assert left == {'type': 'PLAYER_LEFT', 'playerId': gracze[0][0], 'hostId': gracze[1][0]}

    await relay.leave_room(KOD, gracze[1][0])
    await relay.leave_room(KOD, gracze[2][0])
    assert KOD not in relay.rooms
    print("✅ Host przechodzi na najniższą pozycję, pusty pokój znika")


# ============================================
# START GRY
# ============================================

@pytest.mark.asyncio
async def test_start_gry():
    print("\n=== TEST STARTU GRY ===")
    relay = nowy_relay(engine_settings={'rng': random.Random(5)})
    gracze = await posadz(relay, 3)

    with pytest.raises(TuteError) as e:
        await relay.start_game(KOD, gracze[0][0])
    assert e.value.code == NOT_ENOUGH_PLAYERS

    pid, _, _ = await relay.join_room(KOD, "Dan", connection="ws3")
    gracze.append((pid, None, "ws3"))
    with pytest.raises(TuteError) as e:
        await relay.start_game(KOD, gracze[2][0])
    assert e.value.code == NOT_HOST

    await relay.start_game(KOD, gracze[0][0])
    with pytest.raises(TuteError) as e:
        await relay.start_game(KOD, gracze[0][0])
    assert e.value.code == GAME_IN_PROGRESS
    with pytest.raises(TuteError) as e:
        await relay.join_room(KOD, "Eva", connection="ws4")
    assert e.value.code == ROOM_FULL

    conns = relay.connections
    widziane = set()
    for pid, _, ws in gracze:
        typy = [m['type'] for m in conns.sent[ws]]
        assert typy[-3:] == ['GAME_STARTING', 'NEW_ROUND', 'GAME_STATE']
        state = conns.last(ws, 'GAME_STATE')['state']
        assert state['phase'] == 'playing'
        assert state['myId'] == pid
        assert len(state['myHand']) == 10
        assert all(p['cardCount'] == 10 for p in state['players'])
        reka = {c['id'] for c in state['myHand']}
        assert not (reka & widziane)
        widziane |= reka
    assert len(widziane) == 40
    print("✅ Każdy dostał tylko swoje 10 kart")


# ============================================
# RUCHY
# ============================================

@pytest.mark.asyncio
async def test_ruchy_i_opoznione_rozstrzygniecie_lewy():
    print("\n=== TEST RUCHÓW ===")
    relay = nowy_relay(engine_settings={'talia': talia_ze_zmiana()})
    gracze = await posadz(relay)
    ids = [g[0] for g in gracze]
    await relay.start_game(KOD, ids[0])
    room = relay.get_room(KOD)

    with pytest.raises(TuteError) as e:
        await relay.play_card(KOD, ids[1], "copas-2")
    assert e.value.code == BLAD_NIE_TWOJA_TURA

    await relay.play_card(KOD, ids[0], "oros-4")
    await relay.play_card(KOD, ids[3], "bastos-2")
    await relay.play_card(KOD, ids[2], "espadas-2")
    with pytest.raises(TuteError) as e:
        await relay.play_card(KOD, ids[1], "copas-2")
    assert e.value.code == BLAD_NIEDOZWOLONY_RUCH
    await relay.play_card(KOD, ids[1], "oros-1")

    # Lewa pełna - rozstrzygnięcie czeka na timer
    assert room.timers.is_scheduled('trick')
    assert relay.view(KOD, ids[3])['trickPending']
    with pytest.raises(TuteError) as e:
        await relay.play_card(KOD, ids[3], "bastos-1")
    assert e.value.code == BLAD_LEWA_ZAMYKANA

    await room.timers.wait_idle(timeout=2)
    view = relay.view(KOD, ids[3])
    assert not view['trickPending']
    assert view['lastTrickWinner'] == ids[3]
    assert view['currentPlayerId'] == ids[3]
    assert view['teamTricks'] == [0, 1]
    assert relay.connections.last("ws0", 'TRICK_WON') == {'type': 'TRICK_WON', 'winnerId': ids[3], 'points': 11}
    assert len(relay.connections.of_type("ws2", 'CARD_PLAYED')) == 4
    print("✅ Lewa rozstrzygnięta po opóźnieniu")


@pytest.mark.asyncio
async def test_cante_przez_koordynator():
    print("\n=== TEST CANTE ===")
    relay = nowy_relay(engine_settings={'talia': Talia(karty=stworz_talie())})
    gracze = await posadz(relay)
    ids = [g[0] for g in gracze]
    await relay.start_game(KOD, ids[0])

    await relay.skip_declare(KOD, ids[0])
    with pytest.raises(TuteError):
        await relay.skip_declare(KOD, ids[0])
    await relay.declare(KOD, ids[3], '40', 'bastos')

    declared = relay.connections.last("ws1", 'CANTE_DECLARED')
    assert declared == {'type': 'CANTE_DECLARED', 'playerId': ids[3], 'canteType': '40', 'suit': 'bastos'}
    view = relay.view(KOD, ids[1])
    assert view['scores'][1]['roundPoints'] == 40
    assert view['lastAnnouncement']['playerName'] == "Dan"
    assert view['availableCantes'] == []
    print("✅ 40 zaśpiewane, partner nie może już śpiewać")


@pytest.mark.asyncio
async def test_pelna_partia_przez_relay():
    print("\n=== TEST PEŁNEJ PARTII ===")
    relay = nowy_relay(target_rounds=1, engine_settings={'rng': random.Random(9)})
    gracze = await posadz(relay)
    ids = [g[0] for g in gracze]
    await relay.start_game(KOD, ids[0])
    room = relay.get_room(KOD)

    for _ in range(200):
        await room.timers.wait_idle(timeout=2)
        if room.engine.is_terminal():
            break
        current = room.engine.get_current_player()
        view = relay.view(KOD, current)
        await relay.play_card(KOD, current, view['validCards'][0])

    assert room.engine.is_terminal()
    end = relay.connections.last("ws2", 'GAME_END')
    assert end['winnerTeam'] in (0, 1)
    assert relay.connections.last("ws2", 'ROUND_END')['roundNumber'] == 1
    assert room.status == 'gameEnd'

    # Po zakończonej partii host może zacząć od nowa
    await relay.start_game(KOD, ids[0])
    assert relay.view(KOD, ids[0])['roundNumber'] == 1
    print(f"✅ Partia wygrana przez drużynę {end['winnerTeam']}")


@pytest.mark.asyncio
async def test_ruch_bez_gry():
    relay = nowy_relay()
    gracze = await posadz(relay, 2)
    with pytest.raises(TuteError) as e:
        await relay.play_card(KOD, gracze[0][0], "oros-1")
    assert e.value.code == BLAD_BRAK_GRY
    with pytest.raises(TuteError) as e:
        await relay.play_card(KOD, "obcy", "oros-1")
    assert e.value.code == NOT_IN_ROOM


# ============================================
# POŁĄCZENIA
# ============================================

@pytest.mark.asyncio
async def test_rozlaczenie_i_powrot():
    print("\n=== TEST RECONNECT ===")
    relay = nowy_relay(engine_settings={'rng': random.Random(1)})
    gracze = await posadz(relay)
    ids = [g[0] for g in gracze]
    await relay.start_game(KOD, ids[0])
    conns = relay.connections
    pid, secret, ws = gracze[2]

    await relay.disconnect(KOD, pid, connection=ws)
    assert conns.last("ws0", 'PLAYER_DISCONNECTED') == {'type': 'PLAYER_DISCONNECTED', 'playerId': pid}
    room = relay.get_room(KOD)
    assert room.seat_by_id(pid) is not None
    status = {p['id']: p['connectionStatus'] for p in relay.view(KOD, ids[0])['players']}
    assert status[pid] == 'disconnected'

    with pytest.raises(TuteError) as e:
        await relay.reconnect(KOD, pid, "zly-sekret", connection="ws2b")
    assert e.value.code == RECONNECT_FAILED
    with pytest.raises(TuteError) as e:
        await relay.reconnect("BRAK99", pid, secret)
    assert e.value.code == RECONNECT_FAILED

    view = await relay.reconnect(KOD, pid, secret, connection="ws2b")
    assert len(view['myHand']) == 10
    assert conns.last("ws2b", 'GAME_STATE')['state']['myId'] == pid
    assert len(conns.of_type("ws0", 'PLAYER_RECONNECTED')) == 1

    # Drugi reconnect tym samym połączeniem - bez ponownego ogłoszenia
    again = await relay.reconnect(KOD, pid, secret, connection="ws2b")
    assert again['myHand'] == view['myHand']
    assert len(conns.of_type("ws0", 'PLAYER_RECONNECTED')) == 1

    # Zamknięcie starego połączenia nie rozłącza nowego
    await relay.disconnect(KOD, pid, connection=ws)
    assert room.seat_by_id(pid).connection == "ws2b"
    print("✅ Miejsce zachowane, powrót z sekretem")


@pytest.mark.asyncio
async def test_wyjscie_w_trakcie_gry_to_rozlaczenie():
    relay = nowy_relay(engine_settings={'rng': random.Random(2)})
    gracze = await posadz(relay)
    await relay.start_game(KOD, gracze[0][0])

    await relay.leave_room(KOD, gracze[1][0])
    room = relay.get_room(KOD)
    assert len(room.seats) == 4
    assert not room.seat_by_id(gracze[1][0]).connected


@pytest.mark.asyncio
async def test_sprzatanie_nieaktywnych_pokoi():
    print("\n=== TEST CLEANUP ===")
    relay = nowy_relay()
    gracze = await posadz(relay, 2)
    room = relay.get_room(KOD)
    room.last_activity -= 3600

    # Ktoś jest połączony - pokój zostaje
    assert await cleanup_idle_rooms(relay, max_idle_seconds=60) == 0

    for pid, _, ws in gracze:
        await relay.disconnect(KOD, pid, connection=ws)
    room.last_activity -= 3600
    assert await cleanup_idle_rooms(relay, max_idle_seconds=60) == 1
    assert KOD not in relay.rooms
    print("✅ Porzucony pokój usunięty")


# ============================================
# PROJEKCJA I KLIENT
# ============================================

def test_projekcja_przed_gra():
    room = Room(code=KOD)
    state = project(room, "nikt")
    assert state['phase'] == 'waiting'
    assert state['myHand'] == []
    assert state['players'] == []
    assert state['roomCode'] == KOD


@pytest.mark.asyncio
async def test_client_session_jako_reduktor():
    print("\n=== TEST ClientSession ===")
    relay = nowy_relay(engine_settings={'rng': random.Random(3)})
    gracze = await posadz(relay)
    await relay.start_game(KOD, gracze[0][0])

    session = ClientSession()
    for message in relay.connections.sent["ws1"]:
        session.apply(message)

    assert session.has_credentials
    assert session.room_code == KOD
    assert session.player_id == gracze[1][0]
    assert session.position == 1
    assert session.in_game
    assert len(session.game_state['myHand']) == 10
    assert any(e['type'] == 'NEW_ROUND' for e in session.events)
    assert session.reconnect_message() == {
        'type': 'RECONNECT', 'playerId': gracze[1][0], 'playerSecret': gracze[1][1],
    }

    session.apply({'type': 'ERROR', 'code': 'NOT_YOUR_TURN', 'message': 'x'})
    assert session.last_error['code'] == 'NOT_YOUR_TURN'
    assert ClientSession().reconnect_message() is None
    print("✅ Sesja klienta odtworzona z wiadomości")
