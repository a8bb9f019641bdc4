#!/usr/bin/env python3
"""
Testy wariantu peer (services/peer_coordinator.py, peer_transport.py).
Host i klienci w jednym procesie, połączeni łączami w pamięci.
"""
import pytest

from services.coordinator import NOT_HOST, NOT_IN_ROOM, RECONNECT_FAILED
from services.peer_coordinator import PeerHost, PeerClient, PRIVATE_STATE_KEYS
from services.peer_transport import InMemoryPeerLink, connect_in_memory, peer_message
from partia_tute import BLAD_NIE_TWOJA_TURA
from utils.cleanup import cleanup_peer_hosts
from silnik_tute import Talia, stworz_talie

KOD = "PEER01"


async def otworz_stol(kod: str = KOD, **kwargs):
    """
    Host (pozycja 0, bez łącza) + trzech klientów (pozycje 1-3).
    Talia nietasowana: 0 ma oros, 1 copas, 2 espadas, 3 bastos (atut).
    """
    kwargs.setdefault('trick_delay', 0)
    kwargs.setdefault('engine_settings', {'talia': Talia(karty=stworz_talie())})
    host = PeerHost(**kwargs)
    code, host_id, _ = await host.open("Ana", kod)
    klienci = []
    for imie in ("Ben", "Cid", "Dan"):
        klient = PeerClient(player_name=imie)
        connect_in_memory(host, klient)
        await klient.connect()
        klienci.append(klient)
    return host, host_id, klienci


def polacz_z_zapisem(host: PeerHost, klient: PeerClient, log: list):
    """Jak connect_in_memory, ale zapisuje surowe wiadomości od hosta"""
    async def do_klienta(message: dict):
        log.append(message)
        await klient.handle_message(message)

    async def do_hosta(message: dict):
        await host.handle_message(klient.player_id, message)

    host.attach(InMemoryPeerLink(klient.player_id, do_klienta))
    klient.link = InMemoryPeerLink(klient.player_id, do_hosta)


@pytest.mark.asyncio
async def test_dolaczanie_klientow():
    print("\n=== TEST DOŁĄCZANIA PEER ===")
    host, host_id, klienci = await otworz_stol()

    assert host.room.code == KOD
    assert [k.my_position() for k in klienci] == [1, 2, 3]
    for klient in klienci:
        assert klient.player_secret
        assert klient.room_code == KOD
        assert klient.state['canStart']
        assert len(klient.state['players']) == 4
    joined = [e for e in klienci[0].events if e['type'] == 'JOINED_ROOM']
    assert joined[0]['position'] == 1
    print("✅ Trzech peerów przy stole hosta")


@pytest.mark.asyncio
async def test_start_i_prywatne_rece():
    print("\n=== TEST PRYWATNYCH RĄK ===")
    host = PeerHost(trick_delay=0, engine_settings={'talia': Talia(karty=stworz_talie())})
    _, host_id, _ = await host.open("Ana", KOD)
    klienci = [PeerClient(player_name=imie) for imie in ("Ben", "Cid", "Dan")]
    logi = {}
    for klient in klienci:
        logi[klient.player_id] = []
        polacz_z_zapisem(host, klient, logi[klient.player_id])
        await klient.connect()

    # Tylko host może zacząć
    await klienci[0].start_game()
    assert klienci[0].last_error['code'] == NOT_HOST

    await host.start_game(KOD, host_id)
    kolory = {"Ben": "copas", "Cid": "espadas", "Dan": "bastos"}
    for klient in klienci:
        assert len(klient.hand) == 10
        assert {c['suit'] for c in klient.hand} == {kolory[klient.player_name]}
        assert klient.state['phase'] == 'playing'

        for message in logi[klient.player_id]:
            data = message['data']
            if message['type'] == 'game_state':
                assert not any(key in data for key in PRIVATE_STATE_KEYS)
            elif data.get('type') == 'receive_hand':
                assert data['playerId'] == klient.player_id
    print("✅ Ręce tylko do właścicieli, stan publiczny bez kart")


@pytest.mark.asyncio
async def test_ruchy_peerow_i_lokalne_podpowiedzi():
    print("\n=== TEST RUCHÓW PEER ===")
    host, host_id, (ben, cid, dan) = await otworz_stol()
    await host.start_game(KOD, host_id)

    # Przed pierwszą kartą: cante liczone lokalnie = cante z silnika
    assert dan.available_cantes() == [{'type': '40', 'suit': 'bastos'}]
    assert dan.available_cantes() == host.view(KOD, dan.player_id)['availableCantes']
    assert dan.valid_cards() == []

    await cid.play_card("espadas-1")
    assert cid.last_error['code'] == BLAD_NIE_TWOJA_TURA
    assert ben.last_error is None

    await host.play_card(KOD, host_id, "oros-4")
    assert dan.available_cantes() == []
    assert sorted(dan.valid_cards()) == sorted(host.view(KOD, dan.player_id)['validCards'])
    assert len(dan.valid_cards()) == 10
    assert dan.view()['isMyTurn']

    await dan.play_card("bastos-2")
    assert len(dan.hand) == 9
    await cid.play_card("espadas-2")
    await ben.play_card("copas-2")

    await host.room.timers.wait_idle(timeout=2)
    assert ben.state['lastTrickWinner'] == dan.player_id
    assert ben.state['teamTricks'] == [0, 1]
    events = [e['type'] for e in ben.events]
    assert events.count('CARD_PLAYED') == 4
    assert 'TRICK_WON' in events

    # Po lewie okno cante dla drużyny Dana
    await dan.declare_cante('40', 'bastos')
    assert ben.state['scores'][1]['roundPoints'] == 40
    assert ben.available_cantes() == []
    print("✅ Intencje, odrzucenia i podpowiedzi liczone lokalnie")


@pytest.mark.asyncio
async def test_kolejnosc_stanow():
    print("\n=== TEST SEQ ===")
    host, host_id, (ben, _, _) = await otworz_stol()
    await host.start_game(KOD, host_id)

    seq = ben.seq
    state = ben.state
    assert seq == host.seq

    # Spóźniona (starsza) wiadomość nie nadpisuje stanu
    await ben.handle_message(peer_message('game_state', host_id, {'seq': seq - 1, 'phase': 'waiting'}))
    assert ben.state is state
    assert ben.seq == seq

    await host.play_card(KOD, host_id, "oros-4")
    assert ben.seq > seq
    assert ben.state['currentTrick'][0]['card']['id'] == "oros-4"
    print("✅ Wygrywa stan z najwyższym seq")


@pytest.mark.asyncio
async def test_rozlaczenie_i_powrot_peera():
    print("\n=== TEST RECONNECT PEER ===")
    host, host_id, (ben, cid, dan) = await otworz_stol()
    await host.start_game(KOD, host_id)

    await host.detach(cid.player_id, host.links[cid.player_id])
    assert not host.room.seat_by_id(cid.player_id).connected
    assert ben.events[-1] == {'type': 'PLAYER_DISCONNECTED', 'playerId': cid.player_id}

    intruz = PeerClient(player_id=cid.player_id, player_name="Cid", player_secret="zly")
    connect_in_memory(host, intruz)
    await intruz.connect()
    assert intruz.last_error['code'] == RECONNECT_FAILED

    powrot = PeerClient(player_id=cid.player_id, player_name="Cid", player_secret=cid.player_secret)
    connect_in_memory(host, powrot)
    await powrot.connect()
    assert host.room.seat_by_id(cid.player_id).connected
    assert len(powrot.hand) == 10
    assert powrot.state['phase'] == 'playing'
    assert any(e['type'] == 'PLAYER_RECONNECTED' for e in ben.events)
    print("✅ Peer wraca z sekretem, obcy odrzucony")


@pytest.mark.asyncio
async def test_ping_i_bledne_koperty():
    host, _, (ben, _, _) = await otworz_stol()

    await ben.ping()
    assert ben.last_pong is not None

    # Nieznany typ koperty i brak pól - ignorowane bez wyjątku
    await host.handle_message(ben.player_id, {'type': 'hack', 'from': ben.player_id, 'timestamp': 0})
    await host.handle_message(ben.player_id, {'type': 'ping'})

    await ben._send('player_action', {'type': 'dance'})
    assert ben.last_error['code'] == 'UNKNOWN_MESSAGE'


@pytest.mark.asyncio
async def test_zamkniete_lacze():
    link = InMemoryPeerLink("x", handler=None)
    await link.close()
    with pytest.raises(ConnectionError):
        await link.send({'type': 'ping'})
    with pytest.raises(ConnectionError):
        await PeerClient().ping()


@pytest.mark.asyncio
async def test_nowe_lacze_przezywa_zamkniecie_starego():
    print("\n=== TEST NOWE ŁĄCZE PRZED ZAMKNIĘCIEM STAREGO ===")
    host, host_id, (ben, cid, _) = await otworz_stol()
    await host.start_game(KOD, host_id)
    stare = host.links[cid.player_id]

    nowy = PeerClient(player_id=cid.player_id, player_name="Cid", player_secret=cid.player_secret)
    nowe, _ = connect_in_memory(host, nowy)
    # Miejsce ma aktywne łącze - nowe czeka na przyjęty player_joined
    assert host.links[cid.player_id] is stare

    await nowy.connect()
    assert host.links[cid.player_id] is nowe
    assert host.room.seat_by_id(cid.player_id).connection is nowe
    assert len(nowy.hand) == 10

    # Stare gniazdo zamyka się dopiero teraz
    await host.detach(cid.player_id, stare)
    assert host.room.seat_by_id(cid.player_id).connected
    assert host.links[cid.player_id] is nowe
    assert not any(e['type'] == 'PLAYER_DISCONNECTED' for e in ben.events)

    seq = nowy.seq
    await host.play_card(KOD, host_id, "oros-4")
    assert nowy.seq > seq
    assert nowy.state['currentTrick'][0]['card']['id'] == "oros-4"
    print("✅ Zamknięcie starego łącza nie rozłącza gracza")


@pytest.mark.asyncio
async def test_obce_lacze_nie_przejmuje_miejsca():
    print("\n=== TEST OBCEGO ŁĄCZA ===")
    host, host_id, (_, cid, _) = await otworz_stol()
    await host.start_game(KOD, host_id)
    stare = host.links[cid.player_id]

    intruz = PeerClient(player_id=cid.player_id, player_name="Cid", player_secret="zly")
    connect_in_memory(host, intruz)
    await intruz._send('player_joined', {'playerId': cid.player_id, 'playerName': 'Cid', 'playerSecret': 'zly'})
    assert intruz.last_error['code'] == RECONNECT_FAILED
    assert host.links[cid.player_id] is stare
    assert host.room.seat_by_id(cid.player_id).connection is stare

    # Intencja z obcego łącza odrzucona, odpowiedź tylko do nadawcy
    await intruz.play_card("espadas-1")
    assert intruz.last_error['code'] == NOT_IN_ROOM
    assert cid.last_error is None

    await cid.ping()
    assert cid.last_pong is not None
    assert intruz.last_pong is None
    print("✅ Zły sekret nie zmienia łącza gracza")


@pytest.mark.asyncio
async def test_blad_wysylania_rozlacza_miejsce():
    print("\n=== TEST BŁĘDU WYSYŁANIA ===")
    host, host_id, (ben, cid, _) = await otworz_stol()
    await host.start_game(KOD, host_id)
    await host.links[cid.player_id].close()

    await host.play_card(KOD, host_id, "oros-4")
    await host.room.timers.wait_idle(timeout=2)

    assert not host.room.seat_by_id(cid.player_id).connected
    assert cid.player_id not in host.links
    assert {'type': 'PLAYER_DISCONNECTED', 'playerId': cid.player_id} in ben.events
    # Gra toczy się dalej bez Cida
    assert ben.state['currentTrick'][0]['card']['id'] == "oros-4"
    print("✅ Zepsute łącze = rozłączenie jak przy zamknięciu")


@pytest.mark.asyncio
async def test_sprzatanie_hostow_peer():
    print("\n=== TEST SPRZĄTANIA HOSTÓW PEER ===")
    host, host_id, klienci = await otworz_stol()
    await host.start_game(KOD, host_id)
    aktywny, _, _ = await otworz_stol(kod="PEER02")
    hosty = {KOD: host, "PEER02": aktywny}

    for klient in klienci:
        await host.detach(klient.player_id, host.links[klient.player_id])
    room = host.room
    room.last_activity -= 3600

    assert await cleanup_peer_hosts(hosty) == 1
    assert list(hosty) == ["PEER02"]
    assert host.room is None
    assert host.links == {}
    assert room.timers.pending() == []
    assert aktywny.room is not None
    print("✅ Porzucony host peer usunięty z rejestru")
