from .websocket_relay import WebSocketRelay, open_relay

__all__ = ['WebSocketRelay', 'open_relay']
