"""
Service: Redis
Odpowiedzialność: Trwałość pokoi relay (opis pokoju w JSON + silnik gry w cloudpickle)
"""
import json
import cloudpickle
from redis.asyncio import Redis, from_url
from typing import Optional, Any, List
from config import settings, REDIS_PREFIX_ROOM, REDIS_PREFIX_GAME

# Singleton Redis client
_redis_client: Optional[Redis] = None

async def init_redis() -> Redis:
    """
    Inicjalizuj Redis client (wywoływane przy starcie app)

    Returns:
        Redis: Zainicjalizowany client
    """
    global _redis_client
    if _redis_client is None:
        _redis_client = from_url(
            f"redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.REDIS_DB}",
            password=settings.REDIS_PASSWORD,
            decode_responses=False  # Dla pickle (binarny)
        )
        await _redis_client.ping()
        print("✅ Redis połączony")
    return _redis_client

def get_redis_client() -> Redis:
    """
    Pobierz Redis client (singleton)

    Raises:
        RuntimeError: Jeśli Redis nie został zainicjalizowany
    """
    if _redis_client is None:
        raise RuntimeError("Redis nie został zainicjalizowany. Wywołaj init_redis() przy starcie.")
    return _redis_client

async def close_redis():
    """Zamknij połączenie Redis (wywoływane przy shutdown)"""
    global _redis_client
    if _redis_client:
        await _redis_client.close()
        _redis_client = None
        print("👋 Redis zamknięty")

# ============================================
# KEY HELPERS
# ============================================

def room_key(room_code: str) -> str:
    """Klucz Redis dla opisu pokoju"""
    return f"{REDIS_PREFIX_ROOM}{room_code}"

def engine_key(room_code: str) -> str:
    """Klucz Redis dla silnika gry"""
    return f"{REDIS_PREFIX_GAME}{room_code}"

# ============================================
# REDIS SERVICE CLASS
# ============================================

class RedisService:
    """Service do operacji Redis na pokojach"""

    def __init__(self, redis: Optional[Any] = None):
        # W testach można podać własnego klienta (np. fakeredis)
        self.redis = redis if redis is not None else get_redis_client()
        self.expiration = settings.ROOM_EXPIRATION_SECONDS

    # ============================================
    # ROOM OPERATIONS
    # ============================================

    async def save_room(self, room_code: str, room_data: dict) -> bool:
        """
        Zapisz opis pokoju (gracze, sekrety, host) do Redis

        Args:
            room_code: Kod pokoju
            room_data: Snapshot pokoju (dict serializowalny do JSON)

        Returns:
            bool: True jeśli sukces
        """
        try:
            json_data = json.dumps(room_data)
            await self.redis.set(
                room_key(room_code),
                json_data,
                ex=self.expiration
            )
            return True
        except Exception as e:
            print(f"❌ Redis save_room error [{room_code}]: {e}")
            return False

    async def get_room(self, room_code: str) -> Optional[dict]:
        """
        Pobierz opis pokoju z Redis

        Returns:
            Optional[dict]: Dane pokoju lub None
        """
        try:
            json_data = await self.redis.get(room_key(room_code))
            if json_data:
                if isinstance(json_data, bytes):
                    json_data = json_data.decode('utf-8')
                return json.loads(json_data)
            return None
        except Exception as e:
            print(f"❌ Redis get_room error [{room_code}]: {e}")
            return None

    async def list_rooms(self) -> List[dict]:
        """
        Lista wszystkich zapisanych pokoi

        Returns:
            List[dict]: Snapshoty pokoi
        """
        try:
            pattern = f"{REDIS_PREFIX_ROOM}*"
            keys = []
            async for key in self.redis.scan_iter(match=pattern):
                keys.append(key)

            rooms = []
            for key in keys:
                json_data = await self.redis.get(key)
                if json_data:
                    if isinstance(json_data, bytes):
                        json_data = json_data.decode('utf-8')
                    rooms.append(json.loads(json_data))

            return rooms
        except Exception as e:
            print(f"❌ Redis list_rooms error: {e}")
            return []

    # ============================================
    # GAME OPERATIONS
    # ============================================

    async def save_game_engine(self, room_code: str, engine: Any) -> bool:
        """
        Zapisz silnik gry do Redis (pickle)

        Args:
            room_code: Kod pokoju
            engine: Obiekt TuteEngine

        Returns:
            bool: True jeśli sukces
        """
        try:
            # Serializacja za pomocą cloudpickle
            pickled_engine = cloudpickle.dumps(engine)
            await self.redis.set(
                engine_key(room_code),
                pickled_engine,
                ex=self.expiration
            )
            return True
        except Exception as e:
            print(f"❌ Redis save_game_engine error [{room_code}]: {e}")
            return False

    async def get_game_engine(self, room_code: str) -> Optional[Any]:
        """
        Pobierz silnik gry z Redis

        Returns:
            Optional[Any]: Engine lub None
        """
        try:
            pickled_engine = await self.redis.get(engine_key(room_code))
            if pickled_engine:
                # Deserializacja za pomocą cloudpickle
                return cloudpickle.loads(pickled_engine)
            return None
        except Exception as e:
            print(f"❌ Redis get_game_engine error [{room_code}]: {e}")
            return None

    async def delete_room(self, room_code: str) -> bool:
        """
        Usuń pokój (opis + engine)

        Returns:
            bool: True jeśli sukces
        """
        try:
            await self.redis.delete(
                room_key(room_code),
                engine_key(room_code)
            )
            print(f"🗑️ Usunięto pokój {room_code} z Redis")
            return True
        except Exception as e:
            print(f"❌ Redis delete_room error [{room_code}]: {e}")
            return False
