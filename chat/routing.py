"""
WebSocket routing for the chat app.

The JWT middleware stack authenticates the socket; the consumer checks
that the user participates in the chat.
"""
from django.urls import re_path

from .consumers import ChatConsumer

websocket_urlpatterns = [
    re_path(r"^ws/chat/(?P<chat_id>\d+)/$", ChatConsumer.as_asgi()),
]
