"""Machine à états de la lecture partagée.

Fonctions pures: à partir de l'état partagé, de la vue du lecteur local et d'un
événement entrant, elles calculent la mise à jour partielle du document
`current_game` à publier (ou `None` si l'événement est sans effet).
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from .models import GameState, PlaybackState, Song
from .selector import AllPlayed, NoSongsAtAll, Outcome, Selected, SelectionFailed

Update = Dict[str, Any]

NO_SONGS_TITLE = "No songs available to play."
NO_SONGS_ERROR = "No songs added to this session."
DURATION_ERROR = "Failed to get video duration."
SNIPPET_ERROR = "Cannot play snippet. Player not ready or video too short."


class Event(str, Enum):
    SELECT_NEXT = "select_next"
    PLAY_SNIPPET = "play_snippet"
    PLAY_MORE = "play_more"
    REVEAL = "reveal"
    STOP_TIMER_EXPIRED = "stop_timer_expired"
    MEDIA_ENDED = "media_ended"
    PLAYER_ERROR = "player_error"
    DURATION_FAILED = "duration_failed"


@dataclass(frozen=True)
class PlayerView:
    """Ce que le lecteur local sait du morceau courant."""

    ready: bool = False
    duration: float = 0.0
    position: float = 0.0


@dataclass(frozen=True)
class Timing:
    snippet_duration: float = 10.0
    end_buffer: float = 40.0
    play_more_margin: float = 0.5

    @classmethod
    def from_settings(cls, settings: Any) -> "Timing":
        return cls(
            snippet_duration=settings.snippet_duration,
            end_buffer=settings.end_buffer,
            play_more_margin=settings.play_more_margin,
        )


def max_snippet_seek(duration: float, timing: Timing) -> float:
    return max(0.0, duration - timing.snippet_duration - timing.end_buffer)


def pick_snippet_seek(duration: float, timing: Timing, rng: Optional[random.Random] = None) -> float:
    upper = max_snippet_seek(duration, timing)
    if upper <= 0:
        return 0.0
    return (rng or random).uniform(0.0, upper)


def can_select_next(state: Optional[GameState]) -> bool:
    return state is None or state.playback_state is not PlaybackState.LOADING


def can_play_snippet(state: GameState, view: PlayerView, timing: Timing) -> bool:
    return (
        state.playback_state is PlaybackState.PAUSED
        and state.has_song
        and not state.snippet_played_once
        and view.ready
        and view.duration >= timing.snippet_duration
    )


def can_play_more(state: GameState, view: PlayerView, timing: Timing) -> bool:
    return (
        state.playback_state is PlaybackState.PAUSED
        and state.has_song
        and state.snippet_played_once
        and view.ready
        and view.duration > view.position + timing.play_more_margin
    )


def can_reveal(state: GameState) -> bool:
    return state.has_song and state.playback_state not in (PlaybackState.LOADING, PlaybackState.REVEALED)


def loading_update() -> Update:
    return {"playbackState": PlaybackState.LOADING.value, "error": None, "snippetPlayedOnce": False}


def error_update(message: str) -> Update:
    return {"playbackState": PlaybackState.ERROR.value, "error": message}


def transition(
    state: GameState,
    event: Event,
    view: PlayerView = PlayerView(),
    timing: Timing = Timing(),
    rng: Optional[random.Random] = None,
    message: Optional[str] = None,
) -> Optional[Update]:
    current = state.playback_state

    if event is Event.SELECT_NEXT:
        return loading_update() if can_select_next(state) else None

    if event is Event.PLAY_SNIPPET:
        if current is not PlaybackState.PAUSED or not state.has_song or state.snippet_played_once:
            return None
        if not view.ready or view.duration < timing.snippet_duration:
            return error_update(SNIPPET_ERROR)
        return {
            "playbackState": PlaybackState.PLAYING_SNIPPET.value,
            "seekTime": pick_snippet_seek(view.duration, timing, rng),
            "snippetPlayedOnce": True,
            "error": None,
        }

    if event is Event.PLAY_MORE:
        if not can_play_more(state, view, timing):
            return None
        # reprend là où l'extrait s'est arrêté
        return {"playbackState": PlaybackState.PLAYING_MORE.value, "seekTime": view.position, "error": None}

    if event is Event.REVEAL:
        return {"playbackState": PlaybackState.REVEALED.value} if can_reveal(state) else None

    if event in (Event.STOP_TIMER_EXPIRED, Event.MEDIA_ENDED):
        return {"playbackState": PlaybackState.PAUSED.value} if current.is_playing else None

    if event is Event.PLAYER_ERROR:
        return error_update(f"Player error: {message or 'Unknown'}")

    if event is Event.DURATION_FAILED:
        return error_update(DURATION_ERROR)

    raise ValueError(f"Unhandled event: {event!r}")


def selection_update(
    outcome: Outcome,
    played_song_ids: List[str],
    song: Optional[Song] = None,
    all_played_message: str = "All songs played!",
) -> Update:
    """Mise à jour publiée à la sortie de l'état `loading`."""
    if isinstance(outcome, Selected):
        if song is None or song.id != outcome.song_id:
            raise ValueError("A selected outcome needs the matching song record")
        return {
            "currentSongId": song.id,
            "currentSongUrl": song.url,
            "currentSongTitle": song.title,
            "playbackState": PlaybackState.PAUSED.value,
            "seekTime": 0,
            "error": None,
            "snippetPlayedOnce": False,
            "playedSongIds": [*played_song_ids, song.id],
        }
    if isinstance(outcome, AllPlayed):
        return {
            "currentSongId": None,
            "currentSongUrl": None,
            "currentSongTitle": all_played_message,
            "playbackState": PlaybackState.FINISHED.value,
            "error": None,
            "playedSongIds": list(played_song_ids),
        }
    if isinstance(outcome, NoSongsAtAll):
        return {
            "currentSongId": None,
            "currentSongUrl": None,
            "currentSongTitle": NO_SONGS_TITLE,
            "playbackState": PlaybackState.ERROR.value,
            "error": NO_SONGS_ERROR,
            "playedSongIds": list(played_song_ids),
        }
    if isinstance(outcome, SelectionFailed):
        # playedSongIds n'est pas touché
        return error_update(f"Failed to select next song: {outcome.reason}")
    raise ValueError(f"Unknown selection outcome: {outcome!r}")
