from .main import main_router
from .websocket import websocket_router

__all__ = ["main_router", "websocket_router"]
