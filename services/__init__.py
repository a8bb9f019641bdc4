"""
Services package
Lazy imports to avoid circular dependencies
"""

__all__ = [
    'redis_service', 'timer_service', 'coordinator', 'relay_coordinator',
    'peer_transport', 'peer_coordinator', 'local_game_service', 'client_session',
]

# Lazy imports - nie importuj automatycznie, żeby uniknąć circular imports
# Użyj: from services.coordinator import BaseCoordinator
# zamiast: from services import coordinator
