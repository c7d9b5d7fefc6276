"""Sessions de jeu, répertoire de morceaux et joueurs."""

from __future__ import annotations

import logging
import random
import re
from typing import Any, Dict, List, Optional

from .errors import DuplicateError, NotFoundError, SessionError, ValidationError
from .models import GameState, Player, Song, initial_game_state, jsonable
from .paths import (
    game_state_path,
    player_path,
    players_path,
    session_path,
    song_path,
    songs_path,
)
from .store import SERVER_TIMESTAMP, DocumentStore

logger = logging.getLogger(__name__)

SESSION_CODE_RE = re.compile(r"^\d{6}$")
YOUTUBE_WATCH_PREFIX = "https://www.youtube.com/watch?v="


def generate_session_code(rng: Optional[random.Random] = None) -> str:
    return str((rng or random).randint(100000, 999999))


def validate_session_code(code: Any) -> str:
    code = str(code or "").strip()
    if not SESSION_CODE_RE.match(code):
        raise ValidationError("Session code must be 6 digits.")
    return code


async def create_session(
    store: DocumentStore, attempts: int = 5, rng: Optional[random.Random] = None
) -> str:
    """Crée une session avec un code libre (plusieurs essais en cas de collision)."""
    for _ in range(attempts):
        code = generate_session_code(rng)
        if await store.get_document(session_path(code)) is not None:
            logger.info("Code %s already exists, generating new one", code)
            continue
        await store.set_document(session_path(code), {"createdAt": SERVER_TIMESTAMP})
        await store.set_document(
            game_state_path(code), {**initial_game_state(), "lastActionTimestamp": SERVER_TIMESTAMP}
        )
        logger.info("New game session created with code %s", code)
        return code
    raise SessionError("Failed to generate a unique session code after several attempts.")


async def join_session(store: DocumentStore, code: Any) -> str:
    code = validate_session_code(code)
    if await store.get_document(session_path(code)) is None:
        raise NotFoundError("Invalid session code. Game session not found.")
    logger.info("Joining existing game session %s", code)
    return code


async def get_game(store: DocumentStore, code: str) -> Dict[str, Any]:
    """Etat de partie et joueurs d'une session, prêts pour JSON."""
    document = await store.get_document(game_state_path(code))
    if document is None:
        raise NotFoundError("Game session not found")
    state = GameState.from_document(document.data).to_document()
    players = await list_players(store, code)
    return jsonable({**state, "players": [p.to_dict() for p in players]})


# Morceaux


async def list_songs(store: DocumentStore, code: Optional[str] = None) -> List[Song]:
    documents = await store.query_collection(songs_path(code), order_by="createdAt", descending=True)
    return [Song.from_document(d.id, d.data) for d in documents]


async def add_song(store: DocumentStore, title: Any, url: Any, code: Optional[str] = None) -> Song:
    if not isinstance(title, str) or not isinstance(url, str):
        raise ValidationError("Missing title or url in request body")
    title = title.strip()
    url = url.strip()
    if not title or not url:
        raise ValidationError("Missing title or url in request body")
    if not url.startswith(YOUTUBE_WATCH_PREFIX):
        raise ValidationError("Invalid YouTube URL format")

    collection = songs_path(code)
    existing = await store.query_collection(collection, filters=[("url", url)], limit=1)
    if existing:
        logger.info("Song with URL %s already exists in %s", url, collection)
        raise DuplicateError("Song with this URL already exists")

    song_id = await store.add_document(collection, {"title": title, "url": url, "createdAt": SERVER_TIMESTAMP})
    logger.info("Added new song: %s (%s) with ID %s", title, url, song_id)
    return Song(id=song_id, url=url, title=title)


async def delete_song(store: DocumentStore, code: str, song_id: str) -> None:
    await store.delete_document(song_path(code, song_id))
    logger.info("Song %s deleted from session %s", song_id, code)


# Joueurs


async def list_players(store: DocumentStore, code: str) -> List[Player]:
    documents = await store.query_collection(players_path(code), order_by="name")
    return [Player.from_document(d.id, d.data) for d in documents]


async def add_player(store: DocumentStore, code: str, name: Any) -> Player:
    name = str(name or "").strip()
    if not name:
        raise ValidationError("Player name cannot be empty.")
    existing = await store.query_collection(players_path(code), filters=[("nameLower", name.lower())], limit=1)
    if existing:
        raise DuplicateError(f"Player name '{name}' already exists in this session.")
    player_id = await store.add_document(
        players_path(code),
        {"name": name, "nameLower": name.lower(), "score": 0, "createdAt": SERVER_TIMESTAMP},
    )
    logger.info("Player %s added to session %s", name, code)
    return Player(id=player_id, name=name)


async def delete_player(store: DocumentStore, code: str, player_id: str) -> None:
    await store.delete_document(player_path(code, player_id))
    logger.info("Player %s deleted from session %s", player_id, code)


async def update_score(store: DocumentStore, code: str, player_id: str, amount: Any) -> int:
    """Ajoute `amount` au score du joueur, sans descendre sous zéro."""
    try:
        delta = int(amount)
    except (TypeError, ValueError):
        raise ValidationError("Score change must be an integer.") from None
    document = await store.get_document(player_path(code, player_id))
    if document is None:
        raise NotFoundError("Player not found for score update.")
    score = max(0, int(document.data.get("score") or 0) + delta)
    await store.set_document(player_path(code, player_id), {"score": score}, merge=True)
    logger.info("Score updated for player %s to %s", player_id, score)
    return score
