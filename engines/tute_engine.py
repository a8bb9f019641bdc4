# engines/tute_engine.py

import copy
from typing import Optional, Any

# Import interfejsu
from .abstract_game_engine import AbstractGameEngine

# Import logiki gry z głównego katalogu
from silnik_tute import (
    Karta, Kolor, TypCante, LICZBA_GRACZY, druzyna_gracza, posortuj_reke
)
from partia_tute import (
    Partia, FazaGry, BLAD_CANTE, BLAD_BRAK_GRY, DOMYSLNY_CEL_RUND, PIERWSZY_ROZDAJACY
)

def karta_do_dicta(karta: Karta) -> dict[str, Any]:
    """Konwertuje obiekt Karta na słownik wysyłany do klienta."""
    return {
        'id': karta.id,
        'suit': karta.kolor.value,
        'number': karta.ranga.value,
        'value': karta.wartosc,
    }

def parse_cante(cante_type: Any, suit: Any) -> tuple[TypCante, Optional[Kolor]]:
    """
    Konwertuje zapis z łącza ('20'/'40'/'tute', 'oros') na Enumy.

    Raises:
        ValueError: Jeśli typ lub kolor nie istnieje
    """
    try:
        typ = TypCante(str(cante_type))
        kolor = Kolor(suit) if suit else None
    except ValueError as e:
        raise ValueError(f"Nieprawidłowe cante: {cante_type} {suit}") from e
    if typ != TypCante.TUTE and kolor is None:
        raise ValueError(f"Cante {typ.value} wymaga koloru")
    return typ, kolor

class TuteEngine(AbstractGameEngine):
    """
    Adapter implementujący AbstractGameEngine dla gry w Tute.
    Tłumaczy identyfikatory graczy na pozycje przy stole i wywołania
    abstrakcyjne na metody klasy Partia z pliku partia_tute.py.
    """

    def __init__(self, player_ids: list[str], settings: Optional[dict[str, Any]] = None):
        """
        Inicjalizuje nową partię i od razu rozdaje pierwszą rundę.

        :param player_ids: Identyfikatory graczy w kolejności pozycji 0..3.
        :param settings: Np. {'cel_rund': 3, 'rozdajacy_idx': 1, 'rng': Random, 'talia': Talia}
        """
        if len(player_ids) != LICZBA_GRACZY:
            raise ValueError(f"Tute wymaga dokładnie {LICZBA_GRACZY} graczy.")
        self.player_ids = list(player_ids)
        self.settings = settings or {}
        self.partia = Partia(
            cel_rund=self.settings.get('cel_rund', DOMYSLNY_CEL_RUND),
            rozdajacy_idx=self.settings.get('rozdajacy_idx', PIERWSZY_ROZDAJACY),
            rng=self.settings.get('rng'),
        )
        self.partia.rozpocznij(self.settings.get('talia'))

    # --- Prywatne metody pomocnicze (Mappery) ---

    def position_of(self, player_id: str) -> Optional[int]:
        """Zwraca pozycję gracza przy stole albo None."""
        try:
            return self.player_ids.index(player_id)
        except ValueError:
            return None

    def player_at(self, pozycja: Optional[int]) -> Optional[str]:
        if pozycja is None or not (0 <= pozycja < len(self.player_ids)):
            return None
        return self.player_ids[pozycja]

    # --- Implementacja metod interfejsu AbstractGameEngine ---

    def validate_action(self, player_id: str, action: dict[str, Any]) -> Optional[str]:
        pozycja = self.position_of(player_id)
        if pozycja is None:
            return BLAD_BRAK_GRY

        action_type = action.get('typ')
        if action_type == 'zagraj_karte':
            return self.partia.sprawdz_zagranie(pozycja, str(action.get('karta')))
        if action_type == 'cante':
            try:
                typ, kolor = parse_cante(action.get('rodzaj'), action.get('kolor'))
            except ValueError:
                return BLAD_CANTE
            return self.partia.sprawdz_cante(pozycja, typ, kolor)
        if action_type == 'pomin_cante':
            return self.partia.sprawdz_pominiecie(pozycja)
        if action_type == 'finalizuj_lewe':
            return None if self.partia.lewa_do_zamkniecia else BLAD_BRAK_GRY
        if action_type == 'nastepna_runda':
            return None if self.partia.faza == FazaGry.KONIEC_RUNDY else BLAD_BRAK_GRY
        return BLAD_BRAK_GRY

    def perform_action(self, player_id: str, action: dict[str, Any]) -> None:
        """
        Wykonuje akcję gracza, mapując ją na odpowiednią metodę partii.

        Raises:
            ValueError: Jeśli akcja nie przeszła walidacji (błąd wywołującego)
        """
        blad = self.validate_action(player_id, action)
        if blad:
            raise ValueError(f"Akcja {action} odrzucona dla {player_id}: {blad}")

        pozycja = self.position_of(player_id)
        action_type = action['typ']

        if action_type == 'zagraj_karte':
            self.partia.zagraj_karte(pozycja, str(action['karta']))
        elif action_type == 'cante':
            typ, kolor = parse_cante(action.get('rodzaj'), action.get('kolor'))
            self.partia.zadeklaruj_cante(pozycja, typ, kolor)
        elif action_type == 'pomin_cante':
            self.partia.pomin_cante(pozycja)
        elif action_type == 'finalizuj_lewe':
            self.partia.finalizuj_lewe()
        elif action_type == 'nastepna_runda':
            self.partia.nastepna_runda()

    def get_legal_actions(self, player_id: str) -> list[dict[str, Any]]:
        """Legalne zagrania i cante gracza."""
        pozycja = self.position_of(player_id)
        if pozycja is None:
            return []

        actions = [
            {'typ': 'cante', 'rodzaj': typ.value, 'kolor': kolor.value if kolor else None}
            for typ, kolor in self.partia.dostepne_cante(pozycja)
        ]
        if self.partia.rozdanie and self.partia.rozdanie.okno_cante_dla(pozycja):
            actions.append({'typ': 'pomin_cante'})
        actions.extend(
            {'typ': 'zagraj_karte', 'karta': karta.id}
            for karta in self.partia.legalne_karty(pozycja)
        )
        return actions

    def get_current_player(self) -> Optional[str]:
        return self.player_at(self.partia.aktualny_gracz)

    def is_terminal(self) -> bool:
        return self.partia.czy_zakonczona()

    def get_outcome(self) -> dict[str, float]:
        if not self.is_terminal():
            return {}
        zwyciezca = self.partia.zwyciezca_partii
        return {
            pid: 1.0 if druzyna_gracza(i) == zwyciezca else -1.0
            for i, pid in enumerate(self.player_ids)
        }

    def clone(self) -> 'TuteEngine':
        return copy.deepcopy(self)

    # --- Serializacja stanu ---

    def get_scores(self) -> list[dict[str, Any]]:
        """Kanoniczny rekord wyniku: jedna pozycja na drużynę."""
        partia = self.partia
        rozdanie = partia.rozdanie
        scores = []
        for druzyna in (0, 1):
            cantes = []
            if rozdanie:
                cantes = [
                    {
                        'type': c.typ.value,
                        'playerId': self.player_at(c.pozycja),
                        'suit': c.kolor.value if c.kolor else None,
                    }
                    for c in rozdanie.cante if c.druzyna == druzyna
                ]
            scores.append({
                'team': druzyna,
                'roundPoints': partia.punkty_rundy(druzyna),
                'roundsWon': partia.wygrane_rundy[druzyna],
                'cantes': cantes,
            })
        return scores

    def get_public_state(self) -> dict[str, Any]:
        """Stan widoczny dla wszystkich - bez zawartości rąk."""
        partia = self.partia
        rozdanie = partia.rozdanie

        current_trick = []
        hand_sizes = {pid: 0 for pid in self.player_ids}
        trump_card = None
        trick_winner = None
        last_trick_winner = None
        cante_window = None
        if rozdanie:
            current_trick = [
                {'playerId': self.player_at(z.pozycja), 'position': z.pozycja, 'card': karta_do_dicta(z.karta)}
                for z in rozdanie.aktualna_lewa
            ]
            hand_sizes = {pid: len(rozdanie.rece[i]) for i, pid in enumerate(self.player_ids)}
            trump_card = karta_do_dicta(rozdanie.karta_atutowa) if rozdanie.karta_atutowa else None
            trick_winner = self.player_at(rozdanie.zwyciezca_lewy_tymczasowy)
            last_trick_winner = self.player_at(rozdanie.zwyciezca_ostatniej_lewy)
            if rozdanie.okno_cante_otwarte and not rozdanie.zakonczone:
                cante_window = {
                    'team': rozdanie.okno_cante_druzyna,
                    'skipped': sorted(self.player_at(p) for p in rozdanie.pominiete_cante),
                }

        last_announcement = None
        if partia.ostatnie_ogloszenie:
            ogloszenie = partia.ostatnie_ogloszenie
            last_announcement = {
                'playerId': self.player_at(ogloszenie['gracz']),
                'type': ogloszenie['cante'],
                'suit': ogloszenie['kolor'],
                'tuteKind': ogloszenie['rodzaj_tute'],
            }

        last_round = None
        if partia.historia_rund:
            wynik = partia.historia_rund[-1]
            last_round = {'winnerTeam': wynik.zwyciezca, 'points': list(wynik.punkty), 'tute': wynik.tute}

        return {
            'phase': partia.faza.value,
            'handSizes': hand_sizes,
            'trumpSuit': rozdanie.atut.value if rozdanie and rozdanie.atut else None,
            'trumpCard': trump_card,
            'currentTrick': current_trick,
            'currentPlayerId': self.get_current_player(),
            'dealerId': self.player_at(partia.rozdajacy_idx),
            'trickPending': partia.lewa_do_zamkniecia,
            'trickWinnerId': trick_winner,
            'lastTrickWinner': last_trick_winner,
            'teamTricks': list(rozdanie.liczba_lew) if rozdanie else [0, 0],
            'canteWindow': cante_window,
            'scores': self.get_scores(),
            'roundNumber': partia.numer_rundy,
            'targetRounds': partia.cel_rund,
            'lastAnnouncement': last_announcement,
            'lastRound': last_round,
            'winner': partia.zwyciezca_partii,
        }

    def get_hand(self, player_id: str) -> list[dict[str, Any]]:
        """Posortowana ręka gracza (do prywatnego doręczenia)."""
        pozycja = self.position_of(player_id)
        rozdanie = self.partia.rozdanie
        if pozycja is None or not rozdanie:
            return []
        return [karta_do_dicta(k) for k in posortuj_reke(rozdanie.rece[pozycja], rozdanie.atut)]

    def get_state_for_player(self, player_id: str) -> dict[str, Any]:
        """Stan publiczny + prywatna część gracza (ręka, legalne karty, cante)."""
        state = self.get_public_state()
        pozycja = self.position_of(player_id)

        available = []
        valid_cards = []
        if pozycja is not None:
            available = [
                {'type': typ.value, 'suit': kolor.value if kolor else None}
                for typ, kolor in self.partia.dostepne_cante(pozycja)
            ]
            # Legalne karty liczone tylko dla gracza, który ma turę
            valid_cards = [k.id for k in self.partia.legalne_karty(pozycja)]

        state.update({
            'myId': player_id,
            'myPosition': pozycja,
            'myTeam': druzyna_gracza(pozycja) if pozycja is not None else None,
            'myHand': self.get_hand(player_id),
            'isMyTurn': pozycja is not None and self.partia.aktualny_gracz == pozycja,
            'validCards': valid_cards,
            'canDeclare': bool(available),
            'availableCantes': available,
        })
        return state

    def drain_events(self) -> list[dict[str, Any]]:
        """
        Opróżnia skrzynkę zdarzeń partii i tłumaczy je na wiadomości
        (CARD_PLAYED, TRICK_WON, CANTE_DECLARED, ROUND_END, GAME_END, NEW_ROUND).
        """
        messages = []
        for zdarzenie in self.partia.wez_zdarzenia():
            typ = zdarzenie['typ']
            if typ == 'zagranie_karty':
                messages.append({
                    'type': 'CARD_PLAYED',
                    'playerId': self.player_at(zdarzenie['gracz']),
                    'cardId': zdarzenie['karta'],
                })
            elif typ == 'koniec_lewy':
                messages.append({
                    'type': 'TRICK_WON',
                    'winnerId': self.player_at(zdarzenie['zwyciezca']),
                    'points': zdarzenie['punkty'],
                })
            elif typ == 'cante':
                messages.append({
                    'type': 'CANTE_DECLARED',
                    'playerId': self.player_at(zdarzenie['gracz']),
                    'canteType': zdarzenie['cante'],
                    'suit': zdarzenie['kolor'],
                })
            elif typ == 'koniec_rundy':
                messages.append({
                    'type': 'ROUND_END',
                    'roundNumber': zdarzenie['numer_rundy'],
                    'winnerTeam': zdarzenie['zwyciezca'],
                    'points': zdarzenie['punkty'],
                    'tute': zdarzenie['tute'],
                    'scores': self.get_scores(),
                })
            elif typ == 'koniec_partii':
                messages.append({
                    'type': 'GAME_END',
                    'winnerTeam': zdarzenie['zwyciezca'],
                    'roundsWon': zdarzenie['wygrane_rundy'],
                })
            elif typ == 'nowa_runda':
                messages.append({
                    'type': 'NEW_ROUND',
                    'roundNumber': zdarzenie['numer_rundy'],
                    'dealerId': self.player_at(zdarzenie['rozdajacy']),
                    'trumpCard': zdarzenie['karta_atutowa'],
                })
        return messages
