"""
Konfiguracja aplikacji
Odpowiedzialność: Wszystkie stałe, ustawienia Redis, parametry stołu i czasy
"""
from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    """Ustawienia aplikacji"""

    # Redis
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None
    # Bez Redis pokoje żyją tylko w pamięci procesu
    PERSIST_ROOMS: bool = False
    ROOM_EXPIRATION_SECONDS: int = 86400

    # Stół
    TARGET_ROUNDS: int = 3
    ROOM_CODE_LENGTH: int = 4

    # Czasy (sekundy)
    TRICK_RESOLUTION_DELAY: float = 2.0
    AI_THINK_DELAY: float = 0.8
    AI_CANTE_DELAY: float = 1.2

    # Sprzątanie pokoi
    ROOM_IDLE_TIMEOUT_MINUTES: int = 30
    CLEANUP_INTERVAL_SECONDS: int = 120

    # CORS (lista rozdzielona przecinkami)
    CORS_ORIGINS: str = "*"

    class Config:
        env_file = ".env"
        case_sensitive = True

# Singleton
settings = Settings()

# Redis keys prefixes
REDIS_PREFIX_ROOM = "tute:room:"
REDIS_PREFIX_GAME = "tute:game:"
