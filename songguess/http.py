"""Endpoints HTTP (FastAPI): proxy de recherche YouTube, ajout de morceaux et lecture des sessions."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from . import sessions
from .errors import SessionError, TransportError, ValidationError
from .paths import FRONTEND_DIR
from .search import search_youtube
from .state import state

logger = logging.getLogger(__name__)


class AddSongPayload(BaseModel):
    title: Optional[str] = None
    url: Optional[str] = None
    sessionCode: Optional[str] = None


def _text_error(exc: Exception, status_code: int) -> PlainTextResponse:
    return PlainTextResponse(str(exc), status_code=status_code)


def create_http_app() -> FastAPI:
    app = FastAPI(title="SongGuess")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=state.settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        logger.warning("Malformed request to %s: %s", request.url.path, exc.errors())
        return PlainTextResponse("Malformed request body", status_code=400)

    @app.get("/api/youtube-search")
    async def youtube_search(q: Optional[str] = None):
        try:
            results = await run_in_threadpool(search_youtube, q or "", state.settings)
        except (ValidationError, TransportError) as e:
            return _text_error(e, e.status_code)
        return JSONResponse(results)

    @app.post("/api/add-song", status_code=201)
    async def add_song(payload: AddSongPayload):
        try:
            code = sessions.validate_session_code(payload.sessionCode) if payload.sessionCode else None
            song = await sessions.add_song(state.store, payload.title, payload.url, code)
        except (ValidationError, TransportError) as e:
            return _text_error(e, e.status_code)
        return JSONResponse({"id": song.id, "title": song.title, "url": song.url}, status_code=201)

    @app.get("/api/songs")
    async def get_songs(sessionCode: Optional[str] = None):
        try:
            code = sessions.validate_session_code(sessionCode) if sessionCode else None
            songs = await sessions.list_songs(state.store, code)
        except (ValidationError, TransportError) as e:
            return _text_error(e, e.status_code)
        return JSONResponse([s.to_dict() for s in songs])

    @app.get("/api/game/{session_code}")
    async def get_game(session_code: str):
        try:
            game = await sessions.get_game(state.store, sessions.validate_session_code(session_code))
        except (ValidationError, TransportError) as e:
            return _text_error(e, e.status_code)
        return JSONResponse(game)

    @app.post("/api/sessions", status_code=201)
    async def create_session():
        try:
            code = await sessions.create_session(state.store, state.settings.session_code_attempts)
        except SessionError as e:
            return _text_error(e, 503)
        except TransportError as e:
            return _text_error(e, e.status_code)
        return JSONResponse({"sessionCode": code}, status_code=201)

    @app.get("/api/sessions/{session_code}")
    async def check_session(session_code: str):
        try:
            code = await sessions.join_session(state.store, session_code)
        except (ValidationError, TransportError) as e:
            return _text_error(e, e.status_code)
        return JSONResponse({"sessionCode": code})

    # Frontend construit, servi s'il est présent
    if FRONTEND_DIR.is_dir():
        app.mount("/", StaticFiles(directory=str(FRONTEND_DIR), html=True), name="static")

    return app
