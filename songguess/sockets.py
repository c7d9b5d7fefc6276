"""Initialisation Socket.IO asynchrone."""

from __future__ import annotations

import socketio

from .config import get_settings

# Async Server pour ASGI
sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=get_settings().cors_origins)
