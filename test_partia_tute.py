#!/usr/bin/env python3
"""
Testy przebiegu partii (partia_tute.py) i adaptera TuteEngine.
Tura, kody błędów, okno cante, tute, koniec rundy i partii, zdarzenia.
"""
import random

import pytest

from silnik_tute import Kolor, Talia, TypCante, karta_z_id, stworz_talie
from partia_tute import (
    Partia, FazaGry, BLAD_BRAK_GRY, BLAD_NIE_TWOJA_TURA, BLAD_LEWA_ZAMYKANA,
    BLAD_NIEZNANA_KARTA, BLAD_NIEDOZWOLONY_RUCH, BLAD_CANTE,
)
from engines.tute_engine import TuteEngine, parse_cante

GRACZE = ["p0", "p1", "p2", "p3"]


def talia_z(*reki: list[str]) -> Talia:
    """Talia, w której pozycja i dostaje dokładnie reki[i] (ostatnia karta = atut)"""
    return Talia(karty=[karta_z_id(i) for reka in reki for i in reka])


def talia_kolorami() -> Talia:
    """
    Pozycja 0: oros, 1: copas, 2: espadas, 3: bastos. Atut: bastos-12.
    Pozycja 3 wygrywa każdą lewę.
    """
    return Talia(karty=stworz_talie())


def talia_ze_zmiana() -> Talia:
    """Jak talia_kolorami, ale pozycje 0 i 1 zamieniły się asami"""
    karty = stworz_talie()
    karty[0], karty[10] = karty[10], karty[0]
    return Talia(karty=karty)


def talia_tute() -> Talia:
    """Pozycja 0 ma cztery króle i asa atutowego. Atut: oros-11."""
    return talia_z(
        ["oros-12", "copas-12", "espadas-12", "bastos-12", "oros-1", "oros-3", "oros-2", "oros-4", "oros-5", "oros-6"],
        ["copas-1", "copas-3", "copas-2", "copas-4", "copas-5", "copas-6", "copas-7", "copas-10", "copas-11", "oros-7"],
        ["espadas-1", "espadas-3", "espadas-2", "espadas-4", "espadas-5", "espadas-6", "espadas-7", "espadas-10",
         "espadas-11", "oros-10"],
        ["bastos-1", "bastos-3", "bastos-2", "bastos-4", "bastos-5", "bastos-6", "bastos-7", "bastos-10",
         "bastos-11", "oros-11"],
    )


def rozegraj_runde(partia: Partia):
    """Każdy gracz zagrywa pierwszą legalną kartę, aż runda się skończy"""
    numer = partia.numer_rundy
    while partia.numer_rundy == numer and partia.faza == FazaGry.ROZGRYWKA:
        if partia.lewa_do_zamkniecia:
            partia.finalizuj_lewe()
            continue
        gracz = partia.aktualny_gracz
        partia.zagraj_karte(gracz, partia.legalne_karty(gracz)[0].id)


# ==========================================================================
# START I TURA
# ==========================================================================

def test_start_partii():
    print("\n=== TEST STARTU PARTII ===")
    partia = Partia()
    assert partia.faza == FazaGry.OCZEKIWANIE
    partia.rozpocznij(talia_kolorami())

    assert partia.faza == FazaGry.ROZGRYWKA
    assert partia.numer_rundy == 1
    assert partia.rozdajacy_idx == 1
    # Pierwszą lewę otwiera pozycja 0
    assert partia.aktualny_gracz == 0
    assert partia.rozdanie.atut == Kolor.BASTOS
    assert partia.rozdanie.karta_atutowa.id == "bastos-12"
    assert all(len(reka) == 10 for reka in partia.rozdanie.rece)

    with pytest.raises(ValueError):
        partia.rozpocznij()
    print("✅ Rozdanie gotowe, pozycja 0 wychodzi")


def test_kody_bledow_zagrania():
    print("\n=== TEST KODÓW BŁĘDÓW ===")
    partia = Partia()
    assert partia.sprawdz_zagranie(0, "oros-1") == BLAD_BRAK_GRY

    partia.rozpocznij(talia_ze_zmiana())
    assert partia.sprawdz_zagranie(1, "oros-1") == BLAD_NIE_TWOJA_TURA
    assert partia.sprawdz_zagranie(0, "oros-1") == BLAD_NIEZNANA_KARTA
    assert partia.sprawdz_zagranie(0, "nie-karta") == BLAD_NIEZNANA_KARTA
    assert partia.sprawdz_zagranie(0, "oros-4") is None

    partia.zagraj_karte(0, "oros-4")
    partia.zagraj_karte(3, "bastos-2")
    partia.zagraj_karte(2, "espadas-2")
    # Pozycja 1 ma jedną kartę oros (asa) - musi ją dać
    assert partia.sprawdz_zagranie(1, "copas-2") == BLAD_NIEDOZWOLONY_RUCH
    assert [k.id for k in partia.legalne_karty(1)] == ["oros-1"]
    with pytest.raises(ValueError):
        partia.zagraj_karte(1, "copas-2")
    partia.zagraj_karte(1, "oros-1")

    # Lewa pełna, czeka na finalizację
    assert partia.lewa_do_zamkniecia
    assert partia.aktualny_gracz is None
    assert partia.sprawdz_zagranie(3, "bastos-1") == BLAD_LEWA_ZAMYKANA
    print("✅ NO_GAME / NOT_YOUR_TURN / INVALID_CARD / ILLEGAL_MOVE / TRICK_PENDING")


def test_finalizacja_lewy():
    print("\n=== TEST FINALIZACJI LEWY ===")
    partia = Partia()
    partia.rozpocznij(talia_ze_zmiana())
    for pozycja, karta in ((0, "oros-4"), (3, "bastos-2"), (2, "espadas-2"), (1, "oros-1")):
        partia.zagraj_karte(pozycja, karta)

    lewa = partia.finalizuj_lewe()
    assert lewa.zwyciezca == 3
    assert lewa.punkty == 11
    assert partia.rozdanie.liczba_lew == [0, 1]
    assert partia.aktualny_gracz == 3
    assert not partia.lewa_do_zamkniecia
    # Druga finalizacja nic nie robi
    assert partia.finalizuj_lewe() is None
    print("✅ Zwycięzca lewy wychodzi do następnej")


# ==========================================================================
# CANTE
# ==========================================================================

def test_okno_cante_przed_pierwsza_lewa():
    print("\n=== TEST OKNA CANTE (START) ===")
    partia = Partia()
    partia.rozpocznij(talia_kolorami())

    # Obie drużyny mogą śpiewać przed pierwszą kartą
    assert partia.dostepne_cante(0) == [(TypCante.DWADZIESCIA, Kolor.OROS)]
    assert partia.dostepne_cante(3) == [(TypCante.CZTERDZIESCI, Kolor.BASTOS)]

    partia.pomin_cante(0)
    assert partia.dostepne_cante(0) == []
    assert partia.sprawdz_pominiecie(0) == BLAD_CANTE
    assert partia.dostepne_cante(2) == [(TypCante.DWADZIESCIA, Kolor.ESPADAS)]

    # Pierwsza karta zamyka okno
    partia.zagraj_karte(0, "oros-4")
    assert partia.dostepne_cante(2) == []
    assert partia.sprawdz_cante(2, TypCante.DWADZIESCIA, Kolor.ESPADAS) == BLAD_CANTE
    print("✅ Okno otwarte dla obu drużyn do pierwszej karty")


def test_cante_raz_na_druzyne():
    print("\n=== TEST CANTE RAZ NA DRUŻYNĘ ===")
    partia = Partia()
    partia.rozpocznij(talia_ze_zmiana())
    for pozycja, karta in ((0, "oros-4"), (3, "bastos-2"), (2, "espadas-2"), (1, "oros-1")):
        partia.zagraj_karte(pozycja, karta)
    partia.finalizuj_lewe()

    # Okno tylko dla drużyny zwycięzcy lewy
    assert partia.dostepne_cante(0) == []
    assert partia.dostepne_cante(1) == [(TypCante.DWADZIESCIA, Kolor.COPAS)]

    cante = partia.zadeklaruj_cante(3, TypCante.CZTERDZIESCI, Kolor.BASTOS)
    assert cante.punkty == 40
    assert partia.ostatnie_ogloszenie['cante'] == '40'
    assert partia.punkty_rundy(1) == 11 + 40
    # Partner nie może już śpiewać w tej rundzie
    assert partia.dostepne_cante(1) == []
    with pytest.raises(ValueError):
        partia.zadeklaruj_cante(1, TypCante.DWADZIESCIA, Kolor.COPAS)
    print("✅ Jedno 20/40 na drużynę")


def test_tute_konczy_runde():
    print("\n=== TEST TUTE ===")
    partia = Partia()
    partia.rozpocznij(talia_tute())
    assert partia.rozdanie.atut == Kolor.OROS
    # Przed pierwszą lewą tute niedostępne
    assert partia.dostepne_cante(0) == []

    for pozycja, karta in ((0, "oros-1"), (3, "oros-11"), (2, "oros-10"), (1, "oros-7")):
        partia.zagraj_karte(pozycja, karta)
    lewa = partia.finalizuj_lewe()
    assert lewa.zwyciezca == 0
    assert partia.dostepne_cante(0) == [(TypCante.TUTE, None)]

    partia.wez_zdarzenia()
    cante = partia.zadeklaruj_cante(0, TypCante.TUTE)
    assert cante.rodzaj_tute == 'reyes'
    assert partia.faza == FazaGry.KONIEC_RUNDY
    assert partia.wygrane_rundy == [1, 0]
    assert partia.historia_rund[-1].tute
    assert partia.sprawdz_zagranie(3, "bastos-1") == BLAD_BRAK_GRY

    typy = [z['typ'] for z in partia.wez_zdarzenia()]
    assert typy == ['cante', 'koniec_rundy']
    print("✅ Tute kończy rundę zwycięstwem drużyny")


def test_tute_moze_zakonczyc_partie():
    print("\n=== TEST TUTE KOŃCZĄCE PARTIĘ ===")
    partia = Partia(cel_rund=1)
    partia.rozpocznij(talia_tute())
    for pozycja, karta in ((0, "oros-1"), (3, "oros-11"), (2, "oros-10"), (1, "oros-7")):
        partia.zagraj_karte(pozycja, karta)
    partia.finalizuj_lewe()
    partia.zadeklaruj_cante(0, TypCante.TUTE)

    assert partia.czy_zakonczona()
    assert partia.zwyciezca_partii == 0
    print("✅ Koniec partii po tute")


# ==========================================================================
# RUNDY I PARTIA
# ==========================================================================

def test_pelna_runda():
    print("\n=== TEST PEŁNEJ RUNDY ===")
    partia = Partia()
    partia.rozpocznij(talia_kolorami())
    rozegraj_runde(partia)

    wynik = partia.historia_rund[-1]
    assert partia.faza == FazaGry.KONIEC_RUNDY
    assert wynik.punkty == [0, 130]
    assert wynik.zwyciezca == 1
    assert wynik.druzyna_ostatniej_lewy == 1
    assert len(partia.rozdanie.historia_lew) == 10
    assert len(partia.rozdanie.wszystkie_karty()) == 40
    print(f"✅ Wynik rundy: {wynik.punkty}")


def test_kolejna_runda_przesuwa_rozdajacego():
    print("\n=== TEST ROTACJI ROZDAJĄCEGO ===")
    partia = Partia()
    partia.rozpocznij(talia_kolorami())
    with pytest.raises(ValueError):
        partia.nastepna_runda()
    rozegraj_runde(partia)

    partia.nastepna_runda(talia_kolorami())
    assert partia.numer_rundy == 2
    assert partia.rozdajacy_idx == 0
    assert partia.aktualny_gracz == 3
    assert partia.ostatnie_ogloszenie is None
    print("✅ Rozdający 1 -> 0, wychodzi pozycja 3")


def test_partia_do_trzech_rund():
    print("\n=== TEST KOŃCA PARTII ===")
    partia = Partia(cel_rund=3)
    partia.rozpocznij(talia_kolorami())
    for _ in range(3):
        if partia.faza == FazaGry.KONIEC_RUNDY:
            partia.nastepna_runda(talia_kolorami())
        rozegraj_runde(partia)

    assert partia.czy_zakonczona()
    assert partia.zwyciezca_partii == 1
    assert partia.wygrane_rundy == [0, 3]
    assert partia.sprawdz_zagranie(0, "oros-1") == BLAD_BRAK_GRY
    with pytest.raises(ValueError):
        partia.nastepna_runda()

    typy = [z['typ'] for z in partia.wez_zdarzenia()]
    assert typy.count('nowa_runda') == 3
    assert typy.count('koniec_rundy') == 3
    assert typy[-1] == 'koniec_partii'
    print("✅ Drużyna 1 wygrywa 3:0")


def test_losowe_rundy_sumuja_sie_do_130():
    print("\n=== TEST LOSOWYCH RUND ===")
    rng = random.Random(11)
    partia = Partia(cel_rund=5, rng=rng)
    partia.rozpocznij()
    while not partia.czy_zakonczona():
        if partia.faza == FazaGry.KONIEC_RUNDY:
            partia.nastepna_runda()
        while partia.faza == FazaGry.ROZGRYWKA:
            if partia.lewa_do_zamkniecia:
                partia.finalizuj_lewe()
                continue
            gracz = partia.aktualny_gracz
            partia.zagraj_karte(gracz, rng.choice(partia.legalne_karty(gracz)).id)

    for wynik in partia.historia_rund:
        assert sum(wynik.punkty) == 130
    assert max(partia.wygrane_rundy) == 5
    print(f"✅ {len(partia.historia_rund)} rund, suma zawsze 130")


# ==========================================================================
# ADAPTER TuteEngine
# ==========================================================================

def test_engine_walidacja_i_zdarzenia():
    print("\n=== TEST TuteEngine ===")
    engine = TuteEngine(GRACZE, {'talia': talia_ze_zmiana()})

    assert engine.get_current_player() == "p0"
    assert engine.validate_action("p1", {'typ': 'zagraj_karte', 'karta': 'copas-2'}) == BLAD_NIE_TWOJA_TURA
    assert engine.validate_action("obcy", {'typ': 'zagraj_karte', 'karta': 'oros-4'}) == BLAD_BRAK_GRY
    assert engine.validate_action("p0", {'typ': 'cante', 'rodzaj': '20'}) == BLAD_CANTE
    assert engine.validate_action("p0", {'typ': 'nieznana'}) == BLAD_BRAK_GRY
    with pytest.raises(ValueError):
        engine.perform_action("p1", {'typ': 'zagraj_karte', 'karta': 'copas-2'})

    engine.perform_action("p0", {'typ': 'zagraj_karte', 'karta': 'oros-4'})
    messages = engine.drain_events()
    assert [m['type'] for m in messages] == ['NEW_ROUND', 'CARD_PLAYED']
    assert messages[0]['dealerId'] == "p1"
    assert messages[0]['trumpCard'] == "bastos-12"
    assert messages[1] == {'type': 'CARD_PLAYED', 'playerId': 'p0', 'cardId': 'oros-4'}
    assert engine.drain_events() == []
    print("✅ Walidacja i zdarzenia adaptera")


def test_engine_stan_bez_cudzych_kart():
    print("\n=== TEST STANU DLA GRACZA ===")
    engine = TuteEngine(GRACZE, {'talia': talia_kolorami()})

    public = engine.get_public_state()
    assert 'myHand' not in public
    assert public['phase'] == 'playing'
    assert public['handSizes'] == {pid: 10 for pid in GRACZE}
    assert public['trumpSuit'] == 'bastos'
    assert public['canteWindow'] == {'team': None, 'skipped': []}

    state = engine.get_state_for_player("p2")
    assert state['myPosition'] == 2
    assert state['myTeam'] == 0
    assert {c['suit'] for c in state['myHand']} == {'espadas'}
    assert state['validCards'] == []
    assert not state['isMyTurn']
    assert state['availableCantes'] == [{'type': '20', 'suit': 'espadas'}]

    state = engine.get_state_for_player("p0")
    assert state['isMyTurn']
    assert len(state['validCards']) == 10
    assert state['myHand'][0] == {'id': 'oros-1', 'suit': 'oros', 'number': 1, 'value': 11}
    print("✅ Każdy widzi tylko swoją rękę")


def test_engine_cante_i_wynik():
    print("\n=== TEST CANTE W ADAPTERZE ===")
    engine = TuteEngine(GRACZE, {'talia': talia_kolorami()})
    engine.drain_events()

    engine.perform_action("p3", {'typ': 'cante', 'rodzaj': '40', 'kolor': 'bastos'})
    messages = engine.drain_events()
    assert messages == [{'type': 'CANTE_DECLARED', 'playerId': 'p3', 'canteType': '40', 'suit': 'bastos'}]

    scores = engine.get_scores()
    assert scores[1]['roundPoints'] == 40
    assert scores[1]['cantes'] == [{'type': '40', 'playerId': 'p3', 'suit': 'bastos'}]
    assert engine.get_public_state()['lastAnnouncement']['type'] == '40'

    with pytest.raises(ValueError):
        parse_cante('30', 'oros')
    with pytest.raises(ValueError):
        parse_cante('20', None)
    assert parse_cante('tute', None) == (TypCante.TUTE, None)
    print("✅ CANTE_DECLARED i punkty drużyny")


def test_engine_wymaga_czterech_graczy():
    with pytest.raises(ValueError):
        TuteEngine(GRACZE[:3])
