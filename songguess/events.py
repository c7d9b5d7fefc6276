"""Gestion des événements Socket.IO (sessions, répertoire, lecture, lecteur local)."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi.concurrency import run_in_threadpool

from . import sessions
from .coordinator import PlaybackCoordinator
from .debounce import Debouncer
from .errors import SongGuessError, TransportError, ValidationError
from .models import GameState, Player, Song, jsonable
from .paths import players_path, songs_path
from .player import SocketMediaPlayer
from .search import search_youtube
from .sockets import sio
from .state import ClientContext, state
from .store import Document
from .synchronizer import LocalSynchronizer

logger = logging.getLogger(__name__)


def get_client(sid: str) -> Optional[ClientContext]:
    return state.clients.get(sid)


async def emit_error(sid: str, message: str, event: str = "error") -> None:
    await sio.emit(event, {"message": message}, to=sid)


def _payload(data: Any, key: str) -> Any:
    return data.get(key) if isinstance(data, dict) else data


# Connexion / sessions


@sio.event
async def connect(sid: str, _environ: Dict[str, Any], _auth: Any = None) -> None:
    logger.info("Client %s connected", sid)


@sio.event
async def disconnect(sid: str, *_args: Any) -> None:
    logger.info("Client %s disconnected", sid)
    debouncer = state.searches.pop(sid, None)
    if debouncer is not None:
        debouncer.cancel()
    await leave(sid)


async def leave(sid: str) -> None:
    client = state.clients.pop(sid, None)
    if client is not None:
        logger.info("Client %s leaving session %s", sid, client.session_code)
        await client.close()


async def enter(sid: str, code: str) -> ClientContext:
    """Rattache l'écran `sid` à la session et branche ses abonnements."""
    await leave(sid)
    player = SocketMediaPlayer(sio, sid)
    coordinator = PlaybackCoordinator(state.store, code, state.settings)
    synchronizer = LocalSynchronizer(player, coordinator, state.settings)
    client = ClientContext(sid, code, player, coordinator, synchronizer)
    state.clients[sid] = client

    async def on_game_state(game_state: GameState) -> None:
        await sio.emit("game_state", jsonable(game_state.to_document()), to=sid)

    async def on_songs(documents: List[Document]) -> None:
        songs = [Song.from_document(d.id, d.data).to_dict() for d in documents]
        await sio.emit("songs", songs, to=sid)

    async def on_players(documents: List[Document]) -> None:
        players = [Player.from_document(d.id, d.data).to_dict() for d in documents]
        await sio.emit("players", players, to=sid)

    coordinator.add_listener(on_game_state)
    client.unsubscribers.append(
        await state.store.subscribe_collection(songs_path(code), on_songs, order_by="createdAt", descending=True)
    )
    client.unsubscribers.append(await state.store.subscribe_collection(players_path(code), on_players, order_by="name"))
    await coordinator.start()
    await sio.emit("session_joined", {"sessionCode": code}, to=sid)
    return client


@sio.event
async def create_session(sid: str, *_args: Any) -> None:
    try:
        code = await sessions.create_session(state.store, state.settings.session_code_attempts)
    except SongGuessError as e:
        logger.error("Error creating game session: %s", e)
        await emit_error(sid, str(e), "join_error")
        return
    await enter(sid, code)


@sio.event
async def join_session(sid: str, data: Any) -> None:
    try:
        code = await sessions.join_session(state.store, _payload(data, "sessionCode"))
    except SongGuessError as e:
        logger.warning("Error joining game session: %s", e)
        await emit_error(sid, str(e), "join_error")
        return
    await enter(sid, code)


@sio.event
async def leave_session(sid: str, *_args: Any) -> None:
    await leave(sid)


@sio.event
async def request_state(sid: str, *_args: Any) -> None:
    client = get_client(sid)
    if client and client.coordinator.state:
        await sio.emit("game_state", jsonable(client.coordinator.state.to_document()), to=sid)


# Joueurs et répertoire


@sio.event
async def add_player(sid: str, data: Any) -> None:
    client = get_client(sid)
    if client is None:
        return
    try:
        await sessions.add_player(state.store, client.session_code, _payload(data, "name"))
    except SongGuessError as e:
        await emit_error(sid, str(e))


@sio.event
async def delete_player(sid: str, data: Any) -> None:
    client = get_client(sid)
    if client is None:
        return
    try:
        await sessions.delete_player(state.store, client.session_code, _payload(data, "playerId"))
    except SongGuessError as e:
        await emit_error(sid, str(e))


@sio.event
async def update_score(sid: str, data: Dict[str, Any]) -> None:
    client = get_client(sid)
    if client is None or not isinstance(data, dict):
        return
    try:
        await sessions.update_score(state.store, client.session_code, data.get("playerId"), data.get("amount"))
    except SongGuessError as e:
        await emit_error(sid, str(e))


@sio.event
async def add_song(sid: str, data: Dict[str, Any]) -> None:
    client = get_client(sid)
    if client is None or not isinstance(data, dict):
        return
    try:
        await sessions.add_song(state.store, data.get("title"), data.get("url"), client.session_code)
    except SongGuessError as e:
        await emit_error(sid, str(e), "add_song_error")


@sio.event
async def delete_song(sid: str, data: Any) -> None:
    client = get_client(sid)
    if client is None:
        return
    song_id = _payload(data, "songId")
    try:
        await sessions.delete_song(state.store, client.session_code, song_id)
    except SongGuessError as e:
        await emit_error(sid, str(e))
        return
    current = client.coordinator.state
    if current is not None and current.current_song_id == song_id:
        logger.info("Deleted song was the current song, selecting next")
        await client.coordinator.request_next_song()


# Recherche (différée)


async def run_search(sid: str, term: str) -> None:
    if len(term.strip()) < state.settings.search_min_length:
        await sio.emit("search_results", [], to=sid)
        return
    try:
        results = await run_in_threadpool(search_youtube, term, state.settings)
    except (TransportError, ValidationError) as e:
        await sio.emit("search_error", {"message": str(e), "status": e.status_code}, to=sid)
        return
    await sio.emit("search_results", results, to=sid)


@sio.event
async def search(sid: str, data: Any) -> None:
    term = str(_payload(data, "q") or "")
    debouncer = state.searches.get(sid)
    if debouncer is None:
        debouncer = state.searches[sid] = Debouncer(state.settings.search_debounce, lambda t: run_search(sid, t))
    debouncer(term)


# Lecture


async def _run(sid: str, action: str, *args: Any) -> None:
    client = get_client(sid)
    if client is None:
        await emit_error(sid, "Not in a game session.")
        return
    try:
        await getattr(client.coordinator, action)(*args)
    except TransportError as e:
        await emit_error(sid, str(e))


@sio.event
async def next_song(sid: str, *_args: Any) -> None:
    await _run(sid, "request_next_song")


@sio.event
async def play_snippet(sid: str, *_args: Any) -> None:
    await _run(sid, "request_play_snippet")


@sio.event
async def play_more(sid: str, *_args: Any) -> None:
    await _run(sid, "request_play_more")


@sio.event
async def reveal(sid: str, *_args: Any) -> None:
    await _run(sid, "request_reveal")


@sio.event
async def start_game(sid: str, *_args: Any) -> None:
    await _run(sid, "request_start_game")


@sio.event
async def restart_game(sid: str, *_args: Any) -> None:
    await _run(sid, "request_restart_game")


# Notifications du lecteur local
#
# Chaque notification reprend l'URL de la dernière commande `load`; celles
# d'un morceau précédent (ou sans URL) sont ignorées.


def _current_client(sid: str, data: Any) -> Optional[ClientContext]:
    client = get_client(sid)
    if client is None:
        return None
    url = data.get("url") if isinstance(data, dict) else None
    if not client.player.is_current(url):
        logger.debug("Dropping stale player notification from %s (%s)", sid, url)
        return None
    return client


def _seconds(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@sio.event
async def player_ready(sid: str, data: Any = None) -> None:
    client = _current_client(sid, data)
    if client is None:
        return
    client.player.report(
        data["url"], current_time=_seconds(data.get("currentTime")), duration=_seconds(data.get("duration"))
    )
    await client.synchronizer.on_ready(data["url"])


@sio.event
async def player_duration(sid: str, data: Any = None) -> None:
    client = _current_client(sid, data)
    if client is not None:
        client.player.report(data["url"], duration=_seconds(data.get("duration")))


@sio.event
async def player_progress(sid: str, data: Any = None) -> None:
    client = _current_client(sid, data)
    if client is None:
        return
    seconds = _seconds(data.get("playedSeconds"))
    if seconds is None:
        logger.warning("Invalid progress report from %s: %r", sid, data.get("playedSeconds"))
        return
    client.player.report(data["url"], current_time=seconds)
    await client.synchronizer.on_progress(seconds, data["url"])


@sio.event
async def player_ended(sid: str, data: Any = None) -> None:
    client = _current_client(sid, data)
    if client is not None:
        await client.synchronizer.on_ended(data["url"])


@sio.event
async def player_error(sid: str, data: Any = None) -> None:
    client = _current_client(sid, data)
    if client is not None:
        await client.synchronizer.on_error(data.get("message"), data["url"])


def register_handlers() -> None:  # pragma: no cover - simple no-op
    """En important ce module, les décorateurs @sio.event attachent les handlers."""
    return None
