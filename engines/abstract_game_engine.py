# engines/abstract_game_engine.py

from abc import ABC, abstractmethod
from typing import Optional, Any

class AbstractGameEngine(ABC):
    """
    Abstrakcyjny interfejs silnika gry.
    Definiuje "kontrakt", który spełnia silnik Tute, aby koordynatory sesji
    (relay, peer, gra lokalna) i boty mogły nim sterować bez znajomości
    wewnętrznych klas rozgrywki.
    """

    @abstractmethod
    def perform_action(self, player_id: str, action: dict[str, Any]) -> None:
        """
        Główna metoda modyfikująca stan gry na podstawie akcji gracza
        (zagraj kartę, zaśpiewaj cante, pomiń cante, finalizuj lewę).
        Akcja musi być wcześniej sprawdzona przez validate_action.
        """
        pass

    @abstractmethod
    def validate_action(self, player_id: str, action: dict[str, Any]) -> Optional[str]:
        """
        Sprawdza akcję bez modyfikowania stanu.
        Zwraca kod błędu (np. 'NOT_YOUR_TURN') albo None, jeśli akcja jest legalna.
        """
        pass

    @abstractmethod
    def get_legal_actions(self, player_id: str) -> list[dict[str, Any]]:
        """
        Zwraca listę wszystkich legalnych akcji dla danego gracza
        w bieżącym stanie gry.
        """
        pass

    @abstractmethod
    def get_state_for_player(self, player_id: str) -> dict[str, Any]:
        """
        Zwraca serializowalny stan gry z perspektywy danego gracza:
        własna ręka w całości, u pozostałych tylko liczba kart.
        """
        pass

    @abstractmethod
    def get_current_player(self) -> Optional[str]:
        """
        Zwraca identyfikator gracza, którego jest aktualnie tura.
        Zwraca None, jeśli tura nie należy do nikogo (np. lewa czeka na rozstrzygnięcie).
        """
        pass

    @abstractmethod
    def is_terminal(self) -> bool:
        """
        Zwraca True, jeśli partia się zakończyła.
        """
        pass

    @abstractmethod
    def get_outcome(self) -> dict[str, float]:
        """
        Jeśli partia jest zakończona (is_terminal() == True),
        zwraca wyniki dla graczy, np. {'p1': 1.0, 'p2': -1.0, ...}
        """
        pass

    @abstractmethod
    def clone(self) -> 'AbstractGameEngine':
        """
        Zwraca głęboką kopię bieżącego stanu silnika
        (np. dla bota, który chce bezpiecznie symulować ruchy).
        """
        pass
