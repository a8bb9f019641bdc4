# partia_tute.py

import copy
import random
from enum import Enum
from dataclasses import dataclass
from typing import Optional

from silnik_tute import (
    Karta, Kolor, Talia, Zagranie, Cante, TypCante, WynikRundy,
    LICZBA_GRACZY, karta_z_id, get_legalne_karty, ustal_zwyciezce_lewy,
    mozliwe_cante, mozliwy_tute, oblicz_wynik_rundy, druzyna_gracza,
    nastepny_gracz, punkty_kart,
)

# ==========================================================================
# SEKCJA 1: FAZY I KODY BŁĘDÓW
# ==========================================================================

class FazaGry(Enum):
    """Definiuje, w jakim stanie znajduje się partia. Wartość to nazwa fazy na łączu."""
    OCZEKIWANIE = 'waiting'      # Pokój otwarty, gra nie wystartowała
    ROZDAWANIE = 'dealing'       # Stan przejściowy - tasowanie i rozdanie
    ROZGRYWKA = 'playing'        # Zagrywanie kart
    KONIEC_RUNDY = 'roundEnd'    # Runda rozliczona, przed kolejnym rozdaniem
    KONIEC_PARTII = 'gameEnd'    # Jedna z drużyn wygrała wymaganą liczbę rund

# Kody odrzuconych ruchów (wysyłane do klienta bez zmian)
BLAD_BRAK_GRY = 'NO_GAME'
BLAD_NIE_TWOJA_TURA = 'NOT_YOUR_TURN'
BLAD_LEWA_ZAMYKANA = 'TRICK_PENDING'
BLAD_NIEZNANA_KARTA = 'INVALID_CARD'
BLAD_NIEDOZWOLONY_RUCH = 'ILLEGAL_MOVE'
BLAD_CANTE = 'INVALID_CANTE'

DOMYSLNY_CEL_RUND = 3
# Rozdający pierwszej rundy - dzięki temu pierwszą lewę otwiera pozycja 0
PIERWSZY_ROZDAJACY = 1

@dataclass
class ZakonczonaLewa:
    """Lewa po rozstrzygnięciu - zostaje w historii rundy (np. do liczenia kart przez boty)."""
    zagrania: list[Zagranie]
    zwyciezca: int
    punkty: int

# ==========================================================================
# SEKCJA 2: KLASA ROZDANIE (JEDNA RUNDA)
# ==========================================================================

class Rozdanie:
    """Zarządza logiką pojedynczej rundy Tute (4 graczy, 2 drużyny)."""
    def __init__(self, numer: int, rozdajacy_idx: int, talia: Optional[Talia] = None):
        # --- Podstawowe informacje ---
        self.numer = numer                       # Numer rundy w partii (od 1)
        self.rozdajacy_idx = rozdajacy_idx       # Pozycja rozdającego
        self.talia = talia if talia is not None else Talia()

        # --- Karty ---
        self.rece: list[list[Karta]] = [[] for _ in range(LICZBA_GRACZY)]
        self.atut: Optional[Kolor] = None
        self.karta_atutowa: Optional[Karta] = None
        self.wygrane_karty: list[list[Karta]] = [[], []]  # Karty zebrane przez drużyny

        # --- Stan rozgrywki ---
        self.kolej_gracza_idx: Optional[int] = None
        self.aktualna_lewa: list[Zagranie] = []
        self.historia_lew: list[ZakonczonaLewa] = []
        self.liczba_lew = [0, 0]
        self.zwyciezca_ostatniej_lewy: Optional[int] = None

        # --- Stan przejściowy lewy ---
        self.lewa_do_zamkniecia = False
        self.zwyciezca_lewy_tymczasowy: Optional[int] = None

        # --- Cante ---
        self.cante: list[Cante] = []
        self.okno_cante_otwarte = False
        self.okno_cante_druzyna: Optional[int] = None  # None = przed pierwszą lewą (obie drużyny)
        self.pominiete_cante: set[int] = set()

        # --- Zakończenie ---
        self.zakonczone = False
        self.wynik: Optional[WynikRundy] = None

    def rozpocznij(self):
        """Rozdaje karty, ustala atut i gracza otwierającego pierwszą lewę."""
        self.rece, self.karta_atutowa = self.talia.rozdaj_karty(LICZBA_GRACZY)
        self.atut = self.karta_atutowa.kolor
        # Pierwszą lewę otwiera następny gracz po rozdającym
        self.kolej_gracza_idx = nastepny_gracz(self.rozdajacy_idx)
        self._otworz_okno_cante(None)

    # --- Zagrywanie kart ---

    def legalne_karty(self, pozycja: int) -> list[Karta]:
        """Legalne karty gracza - pusta lista, jeśli to nie jego tura."""
        if self.zakonczone or self.lewa_do_zamkniecia or pozycja != self.kolej_gracza_idx:
            return []
        return get_legalne_karty(self.rece[pozycja], self.aktualna_lewa, self.atut)

    def sprawdz_zagranie(self, pozycja: int, karta: Karta) -> Optional[str]:
        """Zwraca kod błędu, jeśli zagranie jest niedozwolone, albo None."""
        if self.zakonczone:
            return BLAD_BRAK_GRY
        if self.lewa_do_zamkniecia:
            return BLAD_LEWA_ZAMYKANA
        if pozycja != self.kolej_gracza_idx:
            return BLAD_NIE_TWOJA_TURA
        if karta not in self.rece[pozycja]:
            return BLAD_NIEZNANA_KARTA
        if karta not in get_legalne_karty(self.rece[pozycja], self.aktualna_lewa, self.atut):
            return BLAD_NIEDOZWOLONY_RUCH
        return None

    def zagraj_karte(self, pozycja: int, karta: Karta):
        """Zagrywa kartę. Ruch musi być wcześniej sprawdzony przez sprawdz_zagranie."""
        blad = self.sprawdz_zagranie(pozycja, karta)
        if blad:
            raise ValueError(f"Niedozwolony ruch ({blad}): {karta} przez pozycję {pozycja}")

        self.rece[pozycja].remove(karta)
        self.aktualna_lewa.append(Zagranie(pozycja, karta))
        # Zagranie karty zamyka okno na cante
        self._zamknij_okno_cante()

        if len(self.aktualna_lewa) == LICZBA_GRACZY:
            self._zakoncz_lewe()
        else:
            self.kolej_gracza_idx = nastepny_gracz(pozycja)

    def _zakoncz_lewe(self):
        """Ustala zwycięzcę lewy i blokuje ruchy do czasu finalizacji."""
        zwyciezca, _ = ustal_zwyciezce_lewy(self.aktualna_lewa, self.atut)
        self.lewa_do_zamkniecia = True
        self.zwyciezca_lewy_tymczasowy = zwyciezca.pozycja
        self.kolej_gracza_idx = None  # Nikt nie ma tury, dopóki lewa nie jest sfinalizowana

    def finalizuj_lewe(self) -> Optional[ZakonczonaLewa]:
        """Finalizuje lewę: przypisuje karty drużynie, ustawia kolejnego gracza albo rozlicza rundę."""
        if not self.lewa_do_zamkniecia:
            return None

        zwyciezca, punkty = ustal_zwyciezce_lewy(self.aktualna_lewa, self.atut)
        druzyna = druzyna_gracza(zwyciezca.pozycja)

        self.wygrane_karty[druzyna].extend(z.karta for z in self.aktualna_lewa)
        self.liczba_lew[druzyna] += 1
        lewa = ZakonczonaLewa(zagrania=list(self.aktualna_lewa), zwyciezca=zwyciezca.pozycja, punkty=punkty)
        self.historia_lew.append(lewa)
        self.zwyciezca_ostatniej_lewy = zwyciezca.pozycja

        # Resetowanie stanu lewy
        self.aktualna_lewa = []
        self.lewa_do_zamkniecia = False
        self.zwyciezca_lewy_tymczasowy = None

        if not any(self.rece):
            # Ostatnia lewa - +10 dla drużyny, która ją wzięła
            self._rozlicz(druzyna_ostatniej_lewy=druzyna)
        else:
            self.kolej_gracza_idx = zwyciezca.pozycja
            self._otworz_okno_cante(druzyna)
        return lewa

    # --- Cante ---

    def _otworz_okno_cante(self, druzyna: Optional[int]):
        self.okno_cante_otwarte = True
        self.okno_cante_druzyna = druzyna
        self.pominiete_cante = set()

    def _zamknij_okno_cante(self):
        self.okno_cante_otwarte = False
        self.pominiete_cante = set()

    def _druzyna_spiewala(self, druzyna: int) -> bool:
        return any(c.druzyna == druzyna for c in self.cante)

    def okno_cante_dla(self, pozycja: int) -> bool:
        """Czy gracz może teraz zadeklarować (albo odmówić) cante."""
        if self.zakonczone or not self.okno_cante_otwarte or self.aktualna_lewa or self.lewa_do_zamkniecia:
            return False
        if pozycja in self.pominiete_cante:
            return False
        return self.okno_cante_druzyna is None or self.okno_cante_druzyna == druzyna_gracza(pozycja)

    def dostepne_cante(self, pozycja: int) -> list[tuple[TypCante, Optional[Kolor]]]:
        """Lista (typ, kolor) do zadeklarowania - tute (kolor None) przed 40 i 20."""
        if not self.okno_cante_dla(pozycja):
            return []
        druzyna = druzyna_gracza(pozycja)
        spiewala = self._druzyna_spiewala(druzyna)
        reka = self.rece[pozycja]

        dostepne: list[tuple[TypCante, Optional[Kolor]]] = []
        if mozliwy_tute(reka, self.liczba_lew[druzyna], spiewala).mozna:
            dostepne.append((TypCante.TUTE, None))
        zaspiewane = [c.kolor for c in self.cante if c.kolor is not None]
        dostepne.extend(mozliwe_cante(reka, self.atut, True, spiewala, zaspiewane).dostepne)
        return dostepne

    def zadeklaruj_cante(self, pozycja: int, typ: TypCante, kolor: Optional[Kolor] = None) -> Cante:
        """Deklaruje cante. Tute natychmiast kończy rundę."""
        if typ == TypCante.TUTE:
            kolor = None
        if (typ, kolor) not in self.dostepne_cante(pozycja):
            raise ValueError(f"Niedozwolone cante {typ.value} ({kolor}) dla pozycji {pozycja}")

        rodzaj_tute = None
        if typ == TypCante.TUTE:
            druzyna = druzyna_gracza(pozycja)
            rodzaj_tute = mozliwy_tute(self.rece[pozycja], self.liczba_lew[druzyna], False).rodzaj

        cante = Cante(typ=typ, pozycja=pozycja, kolor=kolor, rodzaj_tute=rodzaj_tute)
        self.cante.append(cante)
        self.pominiete_cante.add(pozycja)

        if typ == TypCante.TUTE:
            self._rozlicz(druzyna_ostatniej_lewy=None)
        return cante

    def pomin_cante(self, pozycja: int):
        if not self.okno_cante_dla(pozycja):
            raise ValueError(f"Pozycja {pozycja} nie może teraz pominąć cante")
        self.pominiete_cante.add(pozycja)

    # --- Punktacja ---

    def punkty_druzyny(self, druzyna: int) -> int:
        """Bieżące punkty drużyny w rundzie (po rozliczeniu - wynik końcowy)."""
        if self.wynik:
            return self.wynik.punkty[druzyna]
        punkty = punkty_kart(self.wygrane_karty[druzyna])
        return punkty + sum(c.punkty for c in self.cante if c.druzyna == druzyna)

    def _rozlicz(self, druzyna_ostatniej_lewy: Optional[int]):
        self.wynik = oblicz_wynik_rundy(self.wygrane_karty, self.cante, druzyna_ostatniej_lewy)
        self.zakonczone = True
        self.kolej_gracza_idx = None
        self._zamknij_okno_cante()

    def wszystkie_karty(self) -> list[Karta]:
        """Karty w rękach, na stole i w lewach - zawsze 40 różnych kart."""
        karty = [k for reka in self.rece for k in reka]
        karty.extend(z.karta for z in self.aktualna_lewa)
        for wygrane in self.wygrane_karty:
            karty.extend(wygrane)
        return karty

# ==========================================================================
# SEKCJA 3: KLASA PARTIA (KOLEJNE RUNDY)
# ==========================================================================

class Partia:
    """
    Cała partia Tute: kolejne rundy, aż jedna z drużyn wygra `cel_rund` rund.

    Zdarzenia (zagrania, lewy, cante, koniec rundy/partii) trafiają do skrzynki
    `zdarzenia`, którą opróżnia koordynator sesji (wez_zdarzenia).
    """
    def __init__(self, cel_rund: int = DOMYSLNY_CEL_RUND,
                 rozdajacy_idx: int = PIERWSZY_ROZDAJACY,
                 rng: Optional[random.Random] = None):
        self.cel_rund = cel_rund
        self.rozdajacy_idx = rozdajacy_idx
        self.rng = rng

        self.faza = FazaGry.OCZEKIWANIE
        self.numer_rundy = 0
        self.wygrane_rundy = [0, 0]
        self.rozdanie: Optional[Rozdanie] = None
        self.historia_rund: list[WynikRundy] = []
        self.zwyciezca_partii: Optional[int] = None
        self.ostatnie_ogloszenie: Optional[dict] = None
        self.zdarzenia: list[dict] = []

    # --- Cykl życia ---

    def rozpocznij(self, talia: Optional[Talia] = None):
        """Startuje partię (pierwsze rozdanie)."""
        if self.faza != FazaGry.OCZEKIWANIE:
            raise ValueError(f"Nie można rozpocząć partii w fazie {self.faza.name}")
        self._nowa_runda(talia)

    def nastepna_runda(self, talia: Optional[Talia] = None):
        """Rozdaje kolejną rundę po rozliczeniu poprzedniej."""
        if self.faza != FazaGry.KONIEC_RUNDY:
            raise ValueError(f"Nie można rozdać w fazie {self.faza.name}")
        self._nowa_runda(talia)

    def _nowa_runda(self, talia: Optional[Talia]):
        self.faza = FazaGry.ROZDAWANIE
        self.numer_rundy += 1
        if self.numer_rundy > 1:
            # Rozdający przesuwa się o jedno miejsce w kolejności gry
            self.rozdajacy_idx = nastepny_gracz(self.rozdajacy_idx)

        self.rozdanie = Rozdanie(self.numer_rundy, self.rozdajacy_idx, talia or Talia(rng=self.rng))
        self.rozdanie.rozpocznij()
        self.ostatnie_ogloszenie = None
        self.faza = FazaGry.ROZGRYWKA
        self._dodaj_zdarzenie(
            'nowa_runda', numer_rundy=self.numer_rundy, rozdajacy=self.rozdajacy_idx,
            karta_atutowa=self.rozdanie.karta_atutowa.id
        )

    @property
    def aktualny_gracz(self) -> Optional[int]:
        if self.faza != FazaGry.ROZGRYWKA or not self.rozdanie:
            return None
        return self.rozdanie.kolej_gracza_idx

    @property
    def lewa_do_zamkniecia(self) -> bool:
        return bool(self.rozdanie and self.faza == FazaGry.ROZGRYWKA and self.rozdanie.lewa_do_zamkniecia)

    def czy_zakonczona(self) -> bool:
        return self.faza == FazaGry.KONIEC_PARTII

    # --- Walidacja na granicy ---

    def sprawdz_zagranie(self, pozycja: int, karta_id: str) -> Optional[str]:
        """Zwraca kod błędu dla zagrania albo None, jeśli ruch jest legalny."""
        if self.faza != FazaGry.ROZGRYWKA or not self.rozdanie:
            return BLAD_BRAK_GRY
        try:
            karta = karta_z_id(karta_id)
        except ValueError:
            return BLAD_NIEZNANA_KARTA
        return self.rozdanie.sprawdz_zagranie(pozycja, karta)

    def sprawdz_cante(self, pozycja: int, typ: TypCante, kolor: Optional[Kolor]) -> Optional[str]:
        if self.faza != FazaGry.ROZGRYWKA or not self.rozdanie:
            return BLAD_BRAK_GRY
        if typ == TypCante.TUTE:
            kolor = None
        if (typ, kolor) not in self.rozdanie.dostepne_cante(pozycja):
            return BLAD_CANTE
        return None

    def sprawdz_pominiecie(self, pozycja: int) -> Optional[str]:
        if self.faza != FazaGry.ROZGRYWKA or not self.rozdanie:
            return BLAD_BRAK_GRY
        if not self.rozdanie.okno_cante_dla(pozycja):
            return BLAD_CANTE
        return None

    # --- Mutacje ---

    def zagraj_karte(self, pozycja: int, karta_id: str):
        blad = self.sprawdz_zagranie(pozycja, karta_id)
        if blad:
            raise ValueError(f"Niedozwolony ruch ({blad}): {karta_id} przez pozycję {pozycja}")
        self.rozdanie.zagraj_karte(pozycja, karta_z_id(karta_id))
        self._dodaj_zdarzenie('zagranie_karty', gracz=pozycja, karta=karta_id)

    def finalizuj_lewe(self) -> Optional[ZakonczonaLewa]:
        """Rozstrzyga oczekującą lewę. Jeśli to była ostatnia lewa - rozlicza rundę."""
        if not self.lewa_do_zamkniecia:
            return None
        lewa = self.rozdanie.finalizuj_lewe()
        self._dodaj_zdarzenie('koniec_lewy', zwyciezca=lewa.zwyciezca, punkty=lewa.punkty)
        if self.rozdanie.zakonczone:
            self._zakoncz_runde()
        return lewa

    def zadeklaruj_cante(self, pozycja: int, typ: TypCante, kolor: Optional[Kolor] = None) -> Cante:
        blad = self.sprawdz_cante(pozycja, typ, kolor)
        if blad:
            raise ValueError(f"Niedozwolone cante ({blad}) dla pozycji {pozycja}")
        cante = self.rozdanie.zadeklaruj_cante(pozycja, typ, kolor)
        self.ostatnie_ogloszenie = {
            'gracz': pozycja, 'cante': cante.typ.value,
            'kolor': cante.kolor.value if cante.kolor else None,
            'rodzaj_tute': cante.rodzaj_tute,
        }
        self._dodaj_zdarzenie('cante', **self.ostatnie_ogloszenie)
        if self.rozdanie.zakonczone:
            self._zakoncz_runde()
        return cante

    def pomin_cante(self, pozycja: int):
        blad = self.sprawdz_pominiecie(pozycja)
        if blad:
            raise ValueError(f"Pozycja {pozycja} nie może pominąć cante ({blad})")
        self.rozdanie.pomin_cante(pozycja)

    def _zakoncz_runde(self):
        wynik = self.rozdanie.wynik
        self.historia_rund.append(wynik)
        self.wygrane_rundy[wynik.zwyciezca] += 1
        self._dodaj_zdarzenie(
            'koniec_rundy', numer_rundy=self.numer_rundy, zwyciezca=wynik.zwyciezca,
            punkty=list(wynik.punkty), tute=wynik.tute
        )

        if self.wygrane_rundy[wynik.zwyciezca] >= self.cel_rund:
            self.faza = FazaGry.KONIEC_PARTII
            self.zwyciezca_partii = wynik.zwyciezca
            self._dodaj_zdarzenie('koniec_partii', zwyciezca=wynik.zwyciezca, wygrane_rundy=list(self.wygrane_rundy))
        else:
            self.faza = FazaGry.KONIEC_RUNDY

    # --- Odczyt stanu ---

    def legalne_karty(self, pozycja: int) -> list[Karta]:
        if self.faza != FazaGry.ROZGRYWKA or not self.rozdanie:
            return []
        return self.rozdanie.legalne_karty(pozycja)

    def dostepne_cante(self, pozycja: int) -> list[tuple[TypCante, Optional[Kolor]]]:
        if self.faza != FazaGry.ROZGRYWKA or not self.rozdanie:
            return []
        return self.rozdanie.dostepne_cante(pozycja)

    def punkty_rundy(self, druzyna: int) -> int:
        return self.rozdanie.punkty_druzyny(druzyna) if self.rozdanie else 0

    def _dodaj_zdarzenie(self, typ: str, **dane):
        """Dodaje wpis do skrzynki zdarzeń (kopie, aby nie współdzielić list ze stanem)."""
        self.zdarzenia.append({'typ': typ, **copy.deepcopy(dane)})

    def wez_zdarzenia(self) -> list[dict]:
        """Zwraca i czyści zdarzenia od ostatniego wywołania."""
        zdarzenia, self.zdarzenia = self.zdarzenia, []
        return zdarzenia
