"""Point d'entrée ASGI: FastAPI + Socket.IO."""

from __future__ import annotations

import logging
from typing import Optional

import socketio

from .config import Settings, get_settings
from .events import register_handlers
from .http import create_http_app
from .sockets import sio
from .state import state
from .store import DocumentStore, build_store

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, store: Optional[DocumentStore] = None) -> socketio.ASGIApp:
    settings = settings or get_settings()
    state.configure(settings, store if store is not None else build_store(settings))
    # CORS Socket.IO: porté par le serveur Engine.IO sous-jacent
    sio.eio.cors_allowed_origins = settings.cors_origins
    register_handlers()
    fastapi_app = create_http_app()
    logger.info("SongGuess ready (store: %s)", type(state.store).__name__)
    return socketio.ASGIApp(sio, fastapi_app)
