"""
Service: Timers
Odpowiedzialność: Odroczone, anulowalne zadania pokoju
- Opóźnione rozstrzygnięcie lewy (czas na obejrzenie kart)
- "Myślenie" botów przed ruchem
- Anulowanie wszystkiego przy zamykaniu pokoju
"""
import asyncio
from typing import Dict, Callable, Awaitable, Optional


class RoomTimers:
    """
    Nazwane zadania asyncio należące do jednego pokoju.

    Zadanie o tej samej nazwie zastępuje poprzednie (stare jest anulowane).
    Zadanie może zaplanować swojego następcę pod tą samą nazwą.
    """

    def __init__(self, label: str = ""):
        self.label = label
        # Słownik: nazwa -> task
        self._tasks: Dict[str, asyncio.Task] = {}

    def schedule(self, name: str, delay: float, callback: Callable[[], Awaitable[None]]) -> asyncio.Task:
        """
        Zaplanuj wywołanie `callback` po `delay` sekundach

        Args:
            name: Nazwa zadania (np. 'trick', 'bot')
            delay: Opóźnienie w sekundach
            callback: Funkcja async bez argumentów

        Returns:
            asyncio.Task: Zaplanowane zadanie
        """
        self.cancel(name)
        task = asyncio.create_task(self._run(name, delay, callback))
        self._tasks[name] = task
        return task

    async def _run(self, name: str, delay: float, callback: Callable[[], Awaitable[None]]):
        try:
            if delay > 0:
                await asyncio.sleep(delay)
            await callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            print(f"❌ [Timers {self.label}] Błąd w zadaniu '{name}': {e}")
        finally:
            if self._tasks.get(name) is asyncio.current_task():
                del self._tasks[name]

    def cancel(self, name: str) -> bool:
        """Anuluj zadanie (o ile nie jest to właśnie wykonywane zadanie)"""
        task = self._tasks.get(name)
        if task is None:
            return False
        if task is asyncio.current_task():
            # Zadanie planuje swojego następcę - nie anulujemy samego siebie
            del self._tasks[name]
            return False
        task.cancel()
        del self._tasks[name]
        return True

    def cancel_all(self) -> int:
        """Anuluj wszystkie zadania pokoju. Zwraca liczbę anulowanych."""
        cancelled = 0
        for name in list(self._tasks):
            if self.cancel(name):
                cancelled += 1
        return cancelled

    def is_scheduled(self, name: str) -> bool:
        return name in self._tasks

    def pending(self) -> list[str]:
        return list(self._tasks)

    async def wait_idle(self, timeout: Optional[float] = None):
        """
        Czekaj, aż nie będzie żadnych zadań (także tych planowanych przez inne zadania)

        Raises:
            asyncio.TimeoutError: Jeśli zadania nie skończą się w czasie
        """
        async def _drain():
            while self._tasks:
                current = asyncio.current_task()
                tasks = [t for t in self._tasks.values() if t is not current]
                if not tasks:
                    return
                await asyncio.gather(*tasks, return_exceptions=True)

        await asyncio.wait_for(_drain(), timeout=timeout)
