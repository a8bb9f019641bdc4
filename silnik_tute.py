# silnik_tute.py

import random
from enum import Enum
from dataclasses import dataclass
from typing import Optional, Iterable, NamedTuple

# ==========================================================================
# SEKCJA 1: PODSTAWOWE DEFINICJE (ENUMY, KARTY, TALIA)
# ==========================================================================

class Kolor(Enum):
    """Kolory talii hiszpańskiej (palos). Wartość to nazwa używana w id karty."""
    OROS = 'oros'
    COPAS = 'copas'
    ESPADAS = 'espadas'
    BASTOS = 'bastos'

class Ranga(Enum):
    """Rangi kart. Wartość to liczba nadrukowana na karcie (w talii nie ma 8 i 9)."""
    AS = 1
    DOS = 2
    TRES = 3
    CUATRO = 4
    CINCO = 5
    SEIS = 6
    SIETE = 7
    SOTA = 10     # walet
    CABALLO = 11  # koń
    REY = 12      # król

# Słownik mapujący rangi kart na ich wartości punktowe (suma w talii = 120).
WARTOSCI_KART = {
    Ranga.AS: 11, Ranga.TRES: 10, Ranga.REY: 4,
    Ranga.CABALLO: 3, Ranga.SOTA: 2,
    Ranga.DOS: 0, Ranga.CUATRO: 0, Ranga.CINCO: 0, Ranga.SEIS: 0, Ranga.SIETE: 0,
}

# Siła karty w lewie - od najsłabszej do najmocniejszej.
KOLEJNOSC_SILY = [
    Ranga.DOS, Ranga.CUATRO, Ranga.CINCO, Ranga.SEIS, Ranga.SIETE,
    Ranga.SOTA, Ranga.CABALLO, Ranga.REY, Ranga.TRES, Ranga.AS,
]
SILA_KART = {ranga: i for i, ranga in enumerate(KOLEJNOSC_SILY)}

# Słownik do sortowania kart według ustalonej kolejności kolorów.
KOLEJNOSC_KOLOROW_SORT = {
    Kolor.OROS: 1,
    Kolor.COPAS: 2,
    Kolor.ESPADAS: 3,
    Kolor.BASTOS: 4,
}

LICZBA_GRACZY = 4
PUNKTY_OSTATNIA_LEWA = 10
PUNKTY_CANTE_ZWYKLE = 20
PUNKTY_CANTE_ATUTOWE = 40

@dataclass(frozen=True)
class Karta:
    """Reprezentuje pojedynczą kartę do gry. Jest niezmienna (frozen=True)."""
    kolor: Kolor
    ranga: Ranga

    @property
    def wartosc(self) -> int:
        """Zwraca wartość punktową karty."""
        return WARTOSCI_KART[self.ranga]

    @property
    def sila(self) -> int:
        """Zwraca siłę karty w lewie (0 = dwójka, 9 = as)."""
        return SILA_KART[self.ranga]

    @property
    def id(self) -> str:
        """Stabilny identyfikator karty, np. "oros-1"."""
        return f"{self.kolor.value}-{self.ranga.value}"

    def __str__(self) -> str:
        return self.id

def karta_z_id(karta_id: str) -> Karta:
    """Konwertuje id (np. "bastos-12") na obiekt Karta."""
    try:
        kolor_str, ranga_str = karta_id.split('-')
        return Karta(kolor=Kolor(kolor_str), ranga=Ranga(int(ranga_str)))
    except (ValueError, AttributeError) as e:
        raise ValueError(f"Nieprawidłowe id karty: {karta_id}") from e

def stworz_talie() -> list[Karta]:
    """Tworzy pełną, nieposortowaną talię 40 kart (oros-1 ... bastos-12)."""
    return [Karta(kolor, ranga) for kolor in Kolor for ranga in Ranga]

def tasuj(talia: list[Karta], rng: Optional[random.Random] = None) -> list[Karta]:
    """Zwraca nową, losowo przetasowaną kopię talii (Fisher-Yates)."""
    wynik = list(talia)
    (rng or random).shuffle(wynik)
    return wynik

def rozdaj(talia: list[Karta], liczba_graczy: int = LICZBA_GRACZY) -> tuple[list[list[Karta]], Karta]:
    """
    Dzieli talię na równe, ciągłe części - ręka i to talia[i*n:(i+1)*n].

    Returns:
        (ręce, karta atutowa) - karta atutowa to ostatnia karta ostatniej ręki

    Raises:
        ValueError: Jeśli talii nie da się podzielić po równo (błąd programisty)
    """
    if liczba_graczy <= 0 or not talia or len(talia) % liczba_graczy != 0:
        raise ValueError(f"Nie można rozdać {len(talia)} kart na {liczba_graczy} graczy")
    n = len(talia) // liczba_graczy
    rece = [list(talia[i * n:(i + 1) * n]) for i in range(liczba_graczy)]
    return rece, rece[-1][-1]

def posortuj_reke(reka: Iterable[Karta], atut: Optional[Kolor] = None) -> list[Karta]:
    """Sortuje rękę do wyświetlenia: najpierw atuty, potem kolory, w kolorze od najmocniejszej."""
    return sorted(
        reka,
        key=lambda k: (k.kolor != atut, KOLEJNOSC_KOLOROW_SORT[k.kolor], -k.sila)
    )

def punkty_kart(karty: Iterable[Karta]) -> int:
    return sum(k.wartosc for k in karty)

class Talia:
    """Talia na jedno rozdanie - po rozdaniu przestaje istnieć jako osobny byt."""
    def __init__(self, karty: Optional[list[Karta]] = None, rng: Optional[random.Random] = None):
        self.karty = list(karty) if karty is not None else tasuj(stworz_talie(), rng)

    def rozdaj_karty(self, liczba_graczy: int = LICZBA_GRACZY) -> tuple[list[list[Karta]], Karta]:
        """Rozdaje całą talię i ją opróżnia."""
        rece, karta_atutowa = rozdaj(self.karty, liczba_graczy)
        self.karty = []
        return rece, karta_atutowa

    def __len__(self) -> int:
        return len(self.karty)

# ==========================================================================
# SEKCJA 2: ZASADY (LEWY, CANTE, PUNKTACJA)
# ==========================================================================

def druzyna_gracza(pozycja: int) -> int:
    """Pozycje 0/2 to drużyna 0, pozycje 1/3 to drużyna 1."""
    return pozycja % 2

def partner(pozycja: int) -> int:
    return (pozycja + 2) % LICZBA_GRACZY

def nastepny_gracz(pozycja: int) -> int:
    """Kolejny gracz - gra idzie przeciwnie do ruchu wskazówek zegara (pozycja maleje)."""
    return (pozycja + LICZBA_GRACZY - 1) % LICZBA_GRACZY

@dataclass(frozen=True)
class Zagranie:
    """Karta zagrana do lewy przez gracza siedzącego na danej pozycji."""
    pozycja: int
    karta: Karta

def bije(karta: Karta, najlepsza: Karta, atut: Optional[Kolor]) -> bool:
    """Czy `karta` przejmuje lewę, w której aktualnie wygrywa `najlepsza`."""
    if karta.kolor == najlepsza.kolor:
        return karta.sila > najlepsza.sila
    return karta.kolor == atut

def najlepsze_zagranie(lewa: list[Zagranie], atut: Optional[Kolor]) -> Zagranie:
    """Zagranie, które w tej chwili wygrywa (niepełną) lewę."""
    if not lewa:
        raise ValueError("Lewa jest pusta")
    najlepsze = lewa[0]
    for zagranie in lewa[1:]:
        if bije(zagranie.karta, najlepsze.karta, atut):
            najlepsze = zagranie
    return najlepsze

def ustal_zwyciezce_lewy(lewa: list[Zagranie], atut: Optional[Kolor]) -> tuple[Zagranie, int]:
    """
    Ustala zwycięzcę lewy: najwyższy atut, a bez atutów najwyższa karta koloru wiodącego.

    Returns:
        (zwycięskie zagranie, suma punktów kart w lewie)
    """
    zwyciezca = najlepsze_zagranie(lewa, atut)
    return zwyciezca, punkty_kart(z.karta for z in lewa)

def get_legalne_karty(reka: list[Karta], lewa: list[Zagranie], atut: Optional[Kolor]) -> list[Karta]:
    """Zwraca karty, które gracz może legalnie dołożyć do lewy."""
    # 1. Pierwsza karta w lewie - dowolna
    if not lewa:
        return list(reka)

    kolor_wiodacy = lewa[0].karta.kolor
    najlepsza = najlepsze_zagranie(lewa, atut).karta

    # 2. Gracz ma kolor wiodący - musi go dołożyć i przebić, jeśli może
    karty_do_koloru = [k for k in reka if k.kolor == kolor_wiodacy]
    if karty_do_koloru:
        # Jeśli lewę trzyma atut (przy nieatutowym wyjściu), żadna karta koloru jej nie przebije
        przebijajace = [k for k in karty_do_koloru if bije(k, najlepsza, atut)]
        return przebijajace or karty_do_koloru

    # 3. Brak koloru, ale są atuty - musi dać atut, przebijając atut na stole, jeśli może
    atuty = [k for k in reka if k.kolor == atut]
    if atuty:
        atuty_na_stole = [z.karta for z in lewa if z.karta.kolor == atut]
        if atuty_na_stole:
            najwyzszy = max(atuty_na_stole, key=lambda k: k.sila)
            wyzsze = [k for k in atuty if k.sila > najwyzszy.sila]
            return wyzsze or atuty
        return atuty

    # 4. Ani koloru, ani atutu - dowolna karta
    return list(reka)

class TypCante(Enum):
    """Rodzaje deklaracji. Wartość to zapis używany na łączu."""
    DWADZIESCIA = '20'
    CZTERDZIESCI = '40'
    TUTE = 'tute'

# Kolejność preferencji przy wyborze deklaracji (najcenniejsza pierwsza)
PRIORYTET_CANTE = {TypCante.TUTE: 0, TypCante.CZTERDZIESCI: 1, TypCante.DWADZIESCIA: 2}

@dataclass(frozen=True)
class Cante:
    """Zadeklarowana para król+koń (20/40) albo tute."""
    typ: TypCante
    pozycja: int
    kolor: Optional[Kolor] = None       # None dla tute
    rodzaj_tute: Optional[str] = None   # 'reyes' / 'caballos'

    @property
    def druzyna(self) -> int:
        return druzyna_gracza(self.pozycja)

    @property
    def punkty(self) -> int:
        if self.typ == TypCante.CZTERDZIESCI:
            return PUNKTY_CANTE_ATUTOWE
        if self.typ == TypCante.DWADZIESCIA:
            return PUNKTY_CANTE_ZWYKLE
        return 0

class MozliweCante(NamedTuple):
    mozna: bool
    dostepne: list[tuple[TypCante, Kolor]]

class MozliwyTute(NamedTuple):
    mozna: bool
    rodzaj: Optional[str]

def mozliwe_cante(
    reka: list[Karta],
    atut: Optional[Kolor],
    druzyna_wziela_ostatnia_lewe: bool,
    druzyna_juz_spiewala: bool,
    zaspiewane_kolory: Iterable[Kolor] = (),
) -> MozliweCante:
    """
    Sprawdza, czy gracz może zaśpiewać 20/40.

    Args:
        reka: Ręka gracza
        atut: Kolor atutowy rundy
        druzyna_wziela_ostatnia_lewe: Drużyna wzięła poprzednią lewę (albo to pierwsza lewa rundy)
        druzyna_juz_spiewala: Drużyna śpiewała już 20/40 w tej rundzie
        zaspiewane_kolory: Kolory już zaśpiewane w tej rundzie

    Returns:
        MozliweCante: flaga i lista (typ, kolor), 40 przed 20
    """
    if not druzyna_wziela_ostatnia_lewe or druzyna_juz_spiewala:
        return MozliweCante(False, [])

    zajete = set(zaspiewane_kolory)
    dostepne = []
    for kolor in Kolor:
        if kolor in zajete:
            continue
        if Karta(kolor, Ranga.REY) in reka and Karta(kolor, Ranga.CABALLO) in reka:
            typ = TypCante.CZTERDZIESCI if kolor == atut else TypCante.DWADZIESCIA
            dostepne.append((typ, kolor))
    dostepne.sort(key=lambda para: PRIORYTET_CANTE[para[0]])
    return MozliweCante(bool(dostepne), dostepne)

def mozliwy_tute(reka: list[Karta], liczba_lew_druzyny: int, druzyna_juz_spiewala: bool) -> MozliwyTute:
    """Tute: cztery króle albo cztery konie, tylko zaraz po pierwszej lewie wziętej przez drużynę."""
    if liczba_lew_druzyny != 1 or druzyna_juz_spiewala:
        return MozliwyTute(False, None)
    for ranga, rodzaj in ((Ranga.REY, 'reyes'), (Ranga.CABALLO, 'caballos')):
        if sum(1 for k in reka if k.ranga == ranga) == 4:
            return MozliwyTute(True, rodzaj)
    return MozliwyTute(False, None)

@dataclass
class WynikRundy:
    """Kanoniczny rekord wyniku rundy."""
    punkty: list[int]
    zwyciezca: int
    tute: bool = False
    druzyna_ostatniej_lewy: Optional[int] = None

def oblicz_wynik_rundy(
    wygrane_karty: list[list[Karta]],
    cante: list[Cante],
    druzyna_ostatniej_lewy: Optional[int],
) -> WynikRundy:
    """
    Rozlicza rundę.

    Args:
        wygrane_karty: Karty zebrane przez każdą z drużyn
        cante: Deklaracje z tej rundy
        druzyna_ostatniej_lewy: Drużyna, która wzięła ostatnią lewę (+10), None przy tute

    Returns:
        WynikRundy: punkty drużyn i zwycięzca (remis wygrywa drużyna ostatniej lewy)
    """
    punkty = [punkty_kart(karty) for karty in wygrane_karty]
    if druzyna_ostatniej_lewy is not None:
        punkty[druzyna_ostatniej_lewy] += PUNKTY_OSTATNIA_LEWA

    for c in cante:
        punkty[c.druzyna] += c.punkty

    tute = next((c for c in cante if c.typ == TypCante.TUTE), None)
    if tute:
        zwyciezca = tute.druzyna
    elif punkty[0] != punkty[1]:
        zwyciezca = 0 if punkty[0] > punkty[1] else 1
    else:
        zwyciezca = druzyna_ostatniej_lewy if druzyna_ostatniej_lewy is not None else 0

    return WynikRundy(
        punkty=punkty,
        zwyciezca=zwyciezca,
        tute=tute is not None,
        druzyna_ostatniej_lewy=druzyna_ostatniej_lewy,
    )
