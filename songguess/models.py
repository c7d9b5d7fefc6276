"""Modèles de données: état de partie partagé, morceaux et joueurs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class PlaybackState(str, Enum):
    PAUSED = "paused"
    LOADING = "loading"
    PLAYING_SNIPPET = "playing_snippet"
    PLAYING_MORE = "playing_more"
    REVEALED = "revealed"
    FINISHED = "finished"
    ERROR = "error"

    @property
    def is_playing(self) -> bool:
        return self in (PlaybackState.PLAYING_SNIPPET, PlaybackState.PLAYING_MORE)


def jsonable(value: Any) -> Any:
    """Convertit les horodatages du magasin pour l'envoi JSON / Socket.IO."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [jsonable(v) for v in value]
    return value


@dataclass
class GameState:
    """Document `state/current_game` partagé par tous les écrans d'une session."""

    current_song_id: Optional[str] = None
    current_song_url: Optional[str] = None
    current_song_title: Optional[str] = None
    playback_state: PlaybackState = PlaybackState.PAUSED
    seek_time: float = 0.0
    snippet_played_once: bool = False
    played_song_ids: List[str] = field(default_factory=list)
    error: Optional[str] = None
    last_action_timestamp: Any = None

    @property
    def has_song(self) -> bool:
        return self.current_song_url is not None

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "GameState":
        raw_state = data.get("playbackState") or PlaybackState.PAUSED.value
        try:
            playback_state = PlaybackState(raw_state)
        except ValueError:
            playback_state = PlaybackState.ERROR
        return cls(
            current_song_id=data.get("currentSongId"),
            current_song_url=data.get("currentSongUrl"),
            current_song_title=data.get("currentSongTitle"),
            playback_state=playback_state,
            seek_time=float(data.get("seekTime") or 0),
            snippet_played_once=bool(data.get("snippetPlayedOnce", False)),
            # dict.fromkeys: ordre conservé, doublons écartés
            played_song_ids=list(dict.fromkeys(data.get("playedSongIds") or [])),
            error=data.get("error"),
            last_action_timestamp=data.get("lastActionTimestamp"),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "currentSongId": self.current_song_id,
            "currentSongUrl": self.current_song_url,
            "currentSongTitle": self.current_song_title,
            "playbackState": self.playback_state.value,
            "seekTime": self.seek_time,
            "snippetPlayedOnce": self.snippet_played_once,
            "playedSongIds": list(self.played_song_ids),
            "error": self.error,
            "lastActionTimestamp": self.last_action_timestamp,
        }


def initial_game_state() -> Dict[str, Any]:
    """Etat initial écrit à la création d'une session (sans horodatage)."""
    document = GameState().to_document()
    del document["lastActionTimestamp"]
    return document


@dataclass
class Song:
    id: str
    url: str
    title: str
    created_at: Any = None

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "Song":
        return cls(
            id=doc_id,
            url=data.get("url", ""),
            title=data.get("title", ""),
            created_at=data.get("createdAt"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "url": self.url, "title": self.title, "createdAt": jsonable(self.created_at)}


@dataclass
class Player:
    id: str
    name: str
    score: int = 0
    created_at: Any = None

    @property
    def name_lower(self) -> str:
        return self.name.lower()

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "Player":
        return cls(
            id=doc_id,
            name=data.get("name", ""),
            score=int(data.get("score") or 0),
            created_at=data.get("createdAt"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "nameLower": self.name_lower,
            "score": self.score,
            "createdAt": jsonable(self.created_at),
        }
