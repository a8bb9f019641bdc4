"""
Routers package
"""
# Eksportuj wszystkie routery dla wygodnego importu
from . import websocket_router, peer_router, rooms

__all__ = ['websocket_router', 'peer_router', 'rooms']
