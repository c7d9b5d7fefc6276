"""Sélection du morceau suivant sans remise.

Dans une même partie aucun morceau n'est rejoué tant que tous n'ont pas été
servis; l'épuisement du répertoire est signalé par `AllPlayed`.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union


@dataclass(frozen=True)
class Selected:
    song_id: str


@dataclass(frozen=True)
class AllPlayed:
    pass


@dataclass(frozen=True)
class NoSongsAtAll:
    pass


@dataclass(frozen=True)
class SelectionFailed:
    reason: str


Outcome = Union[Selected, AllPlayed, NoSongsAtAll, SelectionFailed]


def available_song_ids(session_song_ids: Iterable[str], played_song_ids: Iterable[str]) -> List[str]:
    played = set(played_song_ids)
    return [song_id for song_id in dict.fromkeys(session_song_ids) if song_id not in played]


def select_next(
    session_song_ids: Iterable[str],
    played_song_ids: Iterable[str],
    force_reset: bool = False,
    rng: Optional[random.Random] = None,
) -> Outcome:
    """Tire uniformément un morceau parmi ceux qui n'ont pas encore été joués."""
    song_ids = list(dict.fromkeys(session_song_ids))
    if not song_ids:
        return NoSongsAtAll()
    available = available_song_ids(song_ids, [] if force_reset else played_song_ids)
    if not available:
        return AllPlayed()
    return Selected((rng or random).choice(available))
