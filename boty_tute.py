# boty_tute.py

import math
import random
from abc import ABC, abstractmethod
from typing import Optional, Any

from silnik_tute import (
    Karta, Kolor, LICZBA_GRACZY,
    stworz_talie, bije, najlepsze_zagranie, partner, nastepny_gracz, druzyna_gracza,
)
from partia_tute import Rozdanie
from engines.abstract_game_engine import AbstractGameEngine

# ==========================================================================
# SEKCJA 1: STAŁE I FUNKCJE POMOCNICZE
# ==========================================================================

# EasyBot: szansa na losową kartę zamiast heurystyki
SZANSA_LOSOWEGO_RUCHU = 0.7
# EasyBot: szansa, że zaśpiewa dostępne cante
SZANSA_CANTE_LATWY = 0.5
# ExpertBot: minimalne prawdopodobieństwo wzięcia lewy, przy którym warto przebijać
PROG_WYGRANEJ = 0.6

def _najslabsza(karty: list[Karta], atut: Optional[Kolor]) -> Karta:
    """Najsłabsza karta, atuty oszczędzamy."""
    return min(karty, key=lambda k: (k.kolor == atut, k.sila, k.wartosc))

def _najtansza(karty: list[Karta], atut: Optional[Kolor]) -> Karta:
    """Karta o najmniejszej wartości punktowej (przy remisie słabsza, bez atutu)."""
    return min(karty, key=lambda k: (k.wartosc, k.kolor == atut, k.sila))

def _najtansza_bijaca(karty: list[Karta], atut: Optional[Kolor]) -> Karta:
    """Najtańsza karta przejmująca lewę - najpierw w kolorze, atut w ostateczności."""
    return min(karty, key=lambda k: (k.kolor == atut, k.sila))

def _srodkowa(karty: list[Karta]) -> Karta:
    posortowane = sorted(karty, key=lambda k: (k.sila, k.kolor.value))
    return posortowane[len(posortowane) // 2]

def _akcja_karty(karta: Karta) -> dict[str, Any]:
    return {'typ': 'zagraj_karte', 'karta': karta.id}

# ==========================================================================
# SEKCJA 2: KLASA BAZOWA
# ==========================================================================

class BotTute(ABC):
    """
    Wspólna część botów Tute.
    Boty dostają silnik przez interfejs AbstractGameEngine, a do szczegółów
    rundy (lewa, ręka, atut) sięgają przez adapter TuteEngine.
    """
    poziom = 'medium'

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def _kontekst(self, engine: AbstractGameEngine, player_id: str) -> tuple[Optional[Rozdanie], Optional[int]]:
        pozycja = engine.position_of(player_id)
        return engine.partia.rozdanie, pozycja

    def znajdz_najlepszy_ruch(self, engine: AbstractGameEngine, player_id: str) -> dict:
        """
        Wybiera kartę do zagrania.

        Returns:
            dict: Akcja {'typ': 'zagraj_karte', 'karta': id} albo {} gdy to nie tura bota
        """
        rozdanie, pozycja = self._kontekst(engine, player_id)
        if rozdanie is None or pozycja is None:
            return {}
        legalne = engine.partia.legalne_karty(pozycja)
        if not legalne:
            return {}

        karta = self._wybierz_karte(rozdanie, pozycja, legalne)
        if karta not in legalne:
            # Błąd w heurystyce - bot nigdy nie może zagrać nielegalnie
            raise RuntimeError(f"Bot {self.poziom} wybrał nielegalną kartę {karta}")
        return _akcja_karty(karta)

    def wybierz_cante(self, engine: AbstractGameEngine, player_id: str) -> Optional[dict]:
        """Wybiera najcenniejsze dostępne cante (tute > 40 > 20) albo None."""
        _, pozycja = self._kontekst(engine, player_id)
        if pozycja is None:
            return None
        dostepne = engine.partia.dostepne_cante(pozycja)
        if not dostepne:
            return None
        typ, kolor = dostepne[0]
        return {'typ': 'cante', 'rodzaj': typ.value, 'kolor': kolor.value if kolor else None}

    @abstractmethod
    def _wybierz_karte(self, rozdanie: Rozdanie, pozycja: int, legalne: list[Karta]) -> Karta:
        """Heurystyka poziomu: jedna z legalnych kart."""
        pass

# ==========================================================================
# SEKCJA 3: BOTY HEURYSTYCZNE (POZIOMY 1-3)
# ==========================================================================

class MediumBot(BotTute):
    """
    Wychodzi kartą o średniej sile. Do lewy dokłada najtańszą kartę,
    która przejmuje lewę, a jeśli nie może - najsłabszą.
    """
    poziom = 'medium'

    def _wybierz_karte(self, rozdanie: Rozdanie, pozycja: int, legalne: list[Karta]) -> Karta:
        lewa = rozdanie.aktualna_lewa
        if not lewa:
            return _srodkowa(legalne)

        najlepsza = najlepsze_zagranie(lewa, rozdanie.atut).karta
        bijace = [k for k in legalne if bije(k, najlepsza, rozdanie.atut)]
        if bijace:
            return _najtansza_bijaca(bijace, rozdanie.atut)
        return _najslabsza(legalne, rozdanie.atut)

class EasyBot(MediumBot):
    """Przeważnie gra losowo, czasem jak MediumBot. Co drugie cante przegapia."""
    poziom = 'easy'

    def _wybierz_karte(self, rozdanie: Rozdanie, pozycja: int, legalne: list[Karta]) -> Karta:
        if self.rng.random() < SZANSA_LOSOWEGO_RUCHU:
            return self.rng.choice(legalne)
        return super()._wybierz_karte(rozdanie, pozycja, legalne)

    def wybierz_cante(self, engine: AbstractGameEngine, player_id: str) -> Optional[dict]:
        if self.rng.random() >= SZANSA_CANTE_LATWY:
            return None
        return super().wybierz_cante(engine, player_id)

class HardBot(MediumBot):
    """Jak MediumBot, ale nie przebija partnera - gdy partner bierze lewę, dokłada najtańszą kartę."""
    poziom = 'hard'

    def _wybierz_karte(self, rozdanie: Rozdanie, pozycja: int, legalne: list[Karta]) -> Karta:
        lewa = rozdanie.aktualna_lewa
        if lewa and najlepsze_zagranie(lewa, rozdanie.atut).pozycja == partner(pozycja):
            return _najtansza(legalne, rozdanie.atut)
        return super()._wybierz_karte(rozdanie, pozycja, legalne)

# ==========================================================================
# SEKCJA 4: EXPERTBOT (LICZENIE KART)
# ==========================================================================

class ExpertBot(HardBot):
    """
    Bot liczący karty.
    Śledzi zagrane karty i braki kolorów u przeciwników, szacuje szansę
    wzięcia lewy przez daną kartę i gra najtańszą kartę, która przekracza próg.
    """
    poziom = 'expert'

    def _niewidoczne_karty(self, rozdanie: Rozdanie, pozycja: int) -> set[Karta]:
        """Karty, których bot nie widział (ani w swojej ręce, ani na stole)."""
        widziane = set(rozdanie.rece[pozycja])
        for lewa in rozdanie.historia_lew:
            widziane.update(z.karta for z in lewa.zagrania)
        widziane.update(z.karta for z in rozdanie.aktualna_lewa)
        return set(stworz_talie()) - widziane

    def _braki_kolorow(self, rozdanie: Rozdanie) -> dict[int, set[Kolor]]:
        """Kolory, których dany gracz na pewno nie ma (wywnioskowane z historii lew)."""
        braki: dict[int, set[Kolor]] = {p: set() for p in range(LICZBA_GRACZY)}
        lewy = [lewa.zagrania for lewa in rozdanie.historia_lew] + [rozdanie.aktualna_lewa]
        for zagrania in lewy:
            if not zagrania:
                continue
            kolor_wiodacy = zagrania[0].karta.kolor
            for z in zagrania[1:]:
                if z.karta.kolor == kolor_wiodacy:
                    continue
                braki[z.pozycja].add(kolor_wiodacy)
                # Nie dołożył koloru ani atutu - nie ma też atutów
                if z.karta.kolor != rozdanie.atut:
                    braki[z.pozycja].add(rozdanie.atut)
        return braki

    def _szansa_przetrwania(self, rozdanie: Rozdanie, pozycja: int, karta: Karta,
                            niewidoczne: set[Karta], braki: dict[int, set[Kolor]]) -> float:
        """
        Szansa, że `karta` leżąca na szczycie lewy przetrwa ruchy graczy po `pozycja`.
        Dla każdego kolejnego przeciwnika liczy rozkład hipergeometryczny:
        P(w jego ręce nie ma żadnej karty bijącej).
        """
        lewa = rozdanie.aktualna_lewa
        kolor_wiodacy = lewa[0].karta.kolor if lewa else karta.kolor
        atut = rozdanie.atut
        # Niewidoczne karty są dokładnie w rękach pozostałych graczy
        u = len(niewidoczne)
        szansa = 1.0
        gracz = pozycja
        for _ in range(LICZBA_GRACZY - len(lewa) - 1):
            gracz = nastepny_gracz(gracz)
            if druzyna_gracza(gracz) == druzyna_gracza(pozycja):
                continue
            bijace = 0
            if karta.kolor not in braki[gracz]:
                bijace += sum(1 for k in niewidoczne if k.kolor == karta.kolor and k.sila > karta.sila)
            if karta.kolor != atut and kolor_wiodacy in braki[gracz] and atut not in braki[gracz]:
                bijace += sum(1 for k in niewidoczne if k.kolor == atut)
            reka = len(rozdanie.rece[gracz])
            if bijace and reka and u:
                szansa *= math.comb(u - bijace, reka) / math.comb(u, reka)
        return szansa

    def _szansa_utrzymania(self, rozdanie: Rozdanie, pozycja: int, karta: Karta,
                           niewidoczne: set[Karta], braki: dict[int, set[Kolor]]) -> float:
        """Szansa, że zagrana teraz `karta` wygra lewę (0, jeśli nawet jej teraz nie przejmuje)."""
        lewa = rozdanie.aktualna_lewa
        if lewa and not bije(karta, najlepsze_zagranie(lewa, rozdanie.atut).karta, rozdanie.atut):
            return 0.0
        return self._szansa_przetrwania(rozdanie, pozycja, karta, niewidoczne, braki)

    def _wybierz_karte(self, rozdanie: Rozdanie, pozycja: int, legalne: list[Karta]) -> Karta:
        atut = rozdanie.atut
        niewidoczne = self._niewidoczne_karty(rozdanie, pozycja)
        braki = self._braki_kolorow(rozdanie)
        lewa = rozdanie.aktualna_lewa

        if not lewa:
            return self._wybierz_wyjscie(rozdanie, pozycja, legalne, niewidoczne, braki)

        # Partner bierze lewę i raczej ją utrzyma - dokładamy punkty
        najlepsze = najlepsze_zagranie(lewa, atut)
        if najlepsze.pozycja == partner(pozycja):
            bez_atutow = [k for k in legalne if k.kolor != atut]
            szansa_partnera = self._szansa_przetrwania(rozdanie, pozycja, najlepsze.karta, niewidoczne, braki)
            if szansa_partnera >= PROG_WYGRANEJ and bez_atutow:
                return max(bez_atutow, key=lambda k: (k.wartosc, -k.sila))
            return _najtansza(legalne, atut)

        szanse = {k: self._szansa_utrzymania(rozdanie, pozycja, k, niewidoczne, braki) for k in legalne}
        pewne = [k for k in legalne if szanse[k] >= PROG_WYGRANEJ]
        if pewne:
            return _najtansza_bijaca(pewne, atut)
        return _najslabsza(legalne, atut)

    def _wybierz_wyjscie(self, rozdanie: Rozdanie, pozycja: int, legalne: list[Karta],
                         niewidoczne: set[Karta], braki: dict[int, set[Kolor]]) -> Karta:
        """Wyjście: pewna (najwyższa pozostała) karta w kolorze nieatutowym, inaczej niska blotka."""
        atut = rozdanie.atut
        przeciwnicy = [p for p in range(LICZBA_GRACZY) if druzyna_gracza(p) != druzyna_gracza(pozycja)]

        pewniaki = []
        for karta in legalne:
            if karta.kolor == atut:
                continue
            if any(k.kolor == karta.kolor and k.sila > karta.sila for k in niewidoczne):
                continue
            # Przeciwnik bez koloru przebiłby atutem
            if any(karta.kolor in braki[p] and atut not in braki[p] for p in przeciwnicy):
                continue
            pewniaki.append(karta)
        if pewniaki:
            return max(pewniaki, key=lambda k: (k.wartosc, k.sila))

        blotki = [k for k in legalne if k.kolor != atut and k.wartosc == 0]
        if blotki:
            dlugosc = {kolor: sum(1 for k in legalne if k.kolor == kolor) for kolor in Kolor}
            return min(blotki, key=lambda k: (-dlugosc[k.kolor], k.sila))
        return _srodkowa(legalne)

# ==========================================================================
# SEKCJA 5: REJESTR ALGORYTMÓW BOTÓW
# ==========================================================================

BOT_ALGORITHMS = {
    'easy': lambda rng=None: EasyBot(rng),
    'medium': lambda rng=None: MediumBot(rng),
    'hard': lambda rng=None: HardBot(rng),
    'expert': lambda rng=None: ExpertBot(rng),
}

# Dostępne nazwy algorytmów (dla walidacji)
DOSTEPNE_ALGORYTMY = list(BOT_ALGORITHMS.keys())

def stworz_bota(poziom: str, rng: Optional[random.Random] = None) -> BotTute:
    """
    Tworzy bota dla danego poziomu trudności.

    Raises:
        ValueError: Jeśli poziom nie istnieje
    """
    if poziom not in BOT_ALGORITHMS:
        raise ValueError(f"Nieznany poziom bota: {poziom} (dostępne: {', '.join(DOSTEPNE_ALGORYTMY)})")
    return BOT_ALGORITHMS[poziom](rng)
