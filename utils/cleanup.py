"""
Utils: Cleanup
Odpowiedzialność: Garbage collector - usuwanie porzuconych pokoi
"""
import asyncio
from typing import Optional, Dict

from config import settings
from services.coordinator import BaseCoordinator
from services.peer_coordinator import PeerHost
from utils.helpers import format_duration

# ============================================
# CLEANUP TASK
# ============================================

cleanup_task: Optional[asyncio.Task] = None

async def cleanup_idle_rooms(coordinator: BaseCoordinator, max_idle_seconds: Optional[float] = None) -> int:
    """
    Jedno przejście sprzątania: usuń pokoje bez podłączonych graczy,
    nieaktywne dłużej niż ROOM_IDLE_TIMEOUT_MINUTES

    Returns:
        int: Liczba usuniętych pokoi
    """
    if max_idle_seconds is None:
        max_idle_seconds = settings.ROOM_IDLE_TIMEOUT_MINUTES * 60

    cleaned = 0
    for code in coordinator.idle_rooms(max_idle_seconds):
        if await coordinator.discard_room(code):
            cleaned += 1
            print(f"[Cleanup] Usunięto pokój {code} (nieaktywny > {format_duration(max_idle_seconds)})")

    if cleaned > 0:
        print(f"🧹 [Cleanup] Wyczyszczono {cleaned} pokoi")
    return cleaned

async def cleanup_peer_hosts(peer_hosts: Dict[str, PeerHost], max_idle_seconds: Optional[float] = None) -> int:
    """
    Sprzątanie hostów peer uruchomionych w tym procesie.
    Host, którego pokój został usunięty, znika z rejestru.

    Returns:
        int: Liczba usuniętych pokoi
    """
    cleaned = 0
    for code, host in list(peer_hosts.items()):
        cleaned += await cleanup_idle_rooms(host, max_idle_seconds)
        if host.room is None:
            del peer_hosts[code]
            print(f"🧹 [Cleanup] Host peer {code} usunięty z rejestru")
    return cleaned

async def cleanup_loop(coordinator: BaseCoordinator, peer_hosts: Optional[Dict[str, PeerHost]] = None):
    """
    Periodic task - czyści porzucone pokoje
    Uruchamiany co CLEANUP_INTERVAL_SECONDS
    """
    while True:
        try:
            await asyncio.sleep(settings.CLEANUP_INTERVAL_SECONDS)
            await cleanup_idle_rooms(coordinator)
            if peer_hosts is not None:
                await cleanup_peer_hosts(peer_hosts)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            print(f"[Cleanup] Błąd: {e}")
            import traceback
            traceback.print_exc()

def setup_periodic_cleanup(coordinator: BaseCoordinator, peer_hosts: Optional[Dict[str, PeerHost]] = None):
    """
    Uruchom periodic cleanup task
    Wywoływane w main.py przy startup
    """
    global cleanup_task

    if cleanup_task is None or cleanup_task.done():
        cleanup_task = asyncio.create_task(cleanup_loop(coordinator, peer_hosts))
        print("✅ Cleanup task uruchomiony")
    else:
        print("⚠️ Cleanup task już działa")

async def stop_cleanup():
    """
    Zatrzymaj cleanup task
    Wywoływane w main.py przy shutdown
    """
    global cleanup_task

    if cleanup_task and not cleanup_task.done():
        cleanup_task.cancel()
        try:
            await cleanup_task
        except asyncio.CancelledError:
            pass
        print("👋 Cleanup task zatrzymany")
    cleanup_task = None
