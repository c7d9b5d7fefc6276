"""Chemins communs: fichiers du frontend et documents du magasin."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

ROOT_DIR = Path(__file__).resolve().parents[1]
FRONTEND_DIR = ROOT_DIR / "frontend"

SESSIONS = "sessions"
LIBRARY_SONGS = "songs"
GAME_STATE_DOC_ID = "current_game"


def session_path(code: str) -> str:
    return f"{SESSIONS}/{code}"


def songs_path(code: Optional[str] = None) -> str:
    """Collection des morceaux d'une session, ou la bibliothèque globale sans code."""
    return f"{session_path(code)}/songs" if code else LIBRARY_SONGS


def song_path(code: Optional[str], song_id: str) -> str:
    return f"{songs_path(code)}/{song_id}"


def players_path(code: str) -> str:
    return f"{session_path(code)}/players"


def player_path(code: str, player_id: str) -> str:
    return f"{players_path(code)}/{player_id}"


def game_state_path(code: str) -> str:
    return f"{session_path(code)}/state/{GAME_STATE_DOC_ID}"
