"""
Utils: Helpers
Odpowiedzialność: Helper functions (kody pokoi, identyfikatory, walidacja, formatowanie)
"""
import secrets
import uuid
from typing import Optional

from config import settings

# Bez znaków mylących się na ekranie (I, L, O, 0, 1)
ROOM_CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"

MAX_NAME_LENGTH = 20

# ============================================
# ID GENERATION
# ============================================

def generate_room_code(length: Optional[int] = None) -> str:
    """
    Wygeneruj kod pokoju do podania znajomym

    Args:
        length: Długość kodu (domyślnie settings.ROOM_CODE_LENGTH)

    Returns:
        str: Kod z wielkich liter i cyfr (np. "K7QW")

    Example:
        >>> len(generate_room_code(6))
        6
    """
    length = length or settings.ROOM_CODE_LENGTH
    return ''.join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(length))

def generate_player_id() -> str:
    """
    Wygeneruj unikalny ID gracza

    Returns:
        str: 8-znakowy ID (np. "a3f5b2c9")
    """
    return str(uuid.uuid4())[:8]

def generate_secret() -> str:
    """Sekret do ponownego połączenia (zna go tylko właściciel miejsca)"""
    return secrets.token_urlsafe(16)

# ============================================
# VALIDATION
# ============================================

def normalize_room_code(room_code: Optional[str]) -> str:
    """
    Kod pokoju bez spacji, wielkimi literami

    Example:
        >>> normalize_room_code(" k7qw2m ")
        'K7QW2M'
    """
    return (room_code or '').strip().upper()

def clean_player_name(name: Optional[str], fallback: str = "Jugador") -> str:
    """
    Przytnij nazwę gracza; pusta nazwa zamieniana jest na domyślną

    Example:
        >>> clean_player_name("  Ana  ")
        'Ana'
        >>> clean_player_name("")
        'Jugador'
    """
    name = (name or '').strip()
    if not name:
        return fallback
    return name[:MAX_NAME_LENGTH]

# ============================================
# FORMATTING
# ============================================

def format_duration(seconds: float) -> str:
    """
    Formatuj czas trwania na czytelny string

    Example:
        >>> format_duration(9030)
        '2h 30m 30s'
        >>> format_duration(90)
        '1m 30s'
    """
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)

    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    elif minutes > 0:
        return f"{minutes}m {secs}s"
    else:
        return f"{secs}s"
