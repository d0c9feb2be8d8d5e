"""
Project-level Channels routing configuration.

Collects the WebSocket URL patterns of every app.  The JWT middleware
stack is applied in `eventconnect.asgi`.
"""
from chat.routing import websocket_urlpatterns as chat_ws
from realtime.routing import websocket_urlpatterns as realtime_ws

websocket_urlpatterns = [
    *realtime_ws,
    *chat_ws,
]
