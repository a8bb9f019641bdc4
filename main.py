"""
Główny plik aplikacji FastAPI
Odpowiedzialność: Inicjalizacja app, routing, startup/shutdown
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

# Import routerów
from routers import websocket_router, peer_router, rooms
from routers.websocket_router import relay

# Import services
from services.redis_service import init_redis, close_redis, RedisService

# Import utils
from utils.cleanup import setup_periodic_cleanup, stop_cleanup

# Import logging config
from logging_config import setup_logging

from config import settings
from models import HealthResponse

# ============================================
# LIFESPAN - Startup/Shutdown
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Zarządza cyklem życia aplikacji (startup/shutdown)
    """
    # ============================================
    # STARTUP
    # ============================================
    print("=" * 60)
    print("🚀 URUCHAMIANIE APLIKACJI: Tute - serwer pokoi")
    print("=" * 60)

    # 1. Konfiguracja logowania
    print("\n📋 [1/3] Konfiguracja logowania...")
    try:
        setup_logging()
    except Exception as e:
        print(f"⚠️ OSTRZEŻENIE logging: {e}")

    # 2. Redis (tylko jeśli pokoje mają przetrwać restart)
    print("\n🔴 [2/3] Persystencja pokoi...")
    if settings.PERSIST_ROOMS:
        try:
            await init_redis()
            relay.redis_service = RedisService()
            await relay.restore_rooms()
            print("✅ Redis gotowy!")
        except Exception as e:
            print(f"❌ BŁĄD Redis: {e}")
            raise
    else:
        print("ℹ️ PERSIST_ROOMS wyłączone - pokoje tylko w pamięci")

    # 3. Uruchomienie cleanup task
    print("\n🧹 [3/3] Uruchamianie garbage collector...")
    try:
        setup_periodic_cleanup(relay, peer_router.peer_hosts)
    except Exception as e:
        print(f"⚠️ OSTRZEŻENIE cleanup: {e}")
        # Nie przerywaj startu jeśli cleanup nie działa

    print("\n" + "=" * 60)
    print("✅ APLIKACJA URUCHOMIONA POMYŚLNIE!")
    print("=" * 60)
    print("\n📍 Dostępne endpointy:")
    print("   • ws://localhost:8000/party/{code}           - Pokój relay")
    print("   • ws://localhost:8000/peer/{code}/{peer_id}  - Łącze peer")
    print("   • http://localhost:8000/api/rooms/{code}     - Informacje o pokoju")
    print("   • http://localhost:8000/docs                 - API dokumentacja")
    print("\n")

    # Yield - aplikacja działa
    yield

    # ============================================
    # SHUTDOWN
    # ============================================
    print("\n" + "=" * 60)
    print("👋 ZAMYKANIE APLIKACJI...")
    print("=" * 60)

    # 1. Zatrzymaj cleanup task
    try:
        await stop_cleanup()
    except Exception as e:
        print(f"⚠️ Błąd zatrzymywania cleanup: {e}")

    # 2. Anuluj timery pokoi (zapisany stan lewy dokończy się po restarcie)
    for room in list(relay.rooms.values()):
        room.timers.cancel_all()
    for host in list(peer_router.peer_hosts.values()):
        for room in list(host.rooms.values()):
            room.timers.cancel_all()

    # 3. Zamknij Redis
    if settings.PERSIST_ROOMS:
        try:
            await close_redis()
        except Exception as e:
            print(f"⚠️ Błąd zamykania Redis: {e}")

    print("\n" + "=" * 60)
    print("✅ APLIKACJA ZAMKNIĘTA POMYŚLNIE!")
    print("=" * 60 + "\n")

# ============================================
# INICJALIZACJA FASTAPI
# ============================================

app = FastAPI(
    title="Tute",
    description="Serwer pokoi dla hiszpańskiej gry karcianej Tute (4 graczy, 2 drużyny)",
    version="1.0.0",
    lifespan=lifespan
)

# ============================================
# MIDDLEWARE
# ============================================

# CORS - pozwól na requesty z frontendu
cors_origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================
# ROUTING
# ============================================

# Rooms endpoints: /api/rooms/*
app.include_router(
    rooms.router,
    prefix="/api/rooms",
    tags=["🎮 Rooms"]
)

# WebSocket relay: /party/*
app.include_router(
    websocket_router.router,
    tags=["🔌 WebSocket"]
)

# Peer: /api/peer/host, /peer/*
app.include_router(
    peer_router.router,
    tags=["🤝 Peer"]
)

@app.get("/health", response_model=HealthResponse, tags=["🏥 Health"])
async def health_check():
    """
    Health check endpoint - sprawdź czy serwer działa
    """
    return HealthResponse(
        status="healthy",
        rooms=len(relay.rooms),
        peerRooms=len(peer_router.peer_hosts),
        persistence=relay.redis_service is not None,
    )

# ============================================
# MAIN - Uruchomienie serwera
# ============================================

if __name__ == "__main__":
    import uvicorn

    print("\n" + "=" * 60)
    print("🎴 TUTE")
    print("=" * 60)
    print("\n▶️  Uruchamianie serwera deweloperskiego...\n")

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
