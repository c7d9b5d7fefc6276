"""Coordinateur de lecture d'un écran connecté à une session.

Toutes les écritures du document `current_game` passent par
`request_state_update` (fusion, dernier écrivain gagnant, horodatage serveur).
Les échecs de sélection et de lecture sont publiés dans le champ `error` de
l'état partagé pour que tous les écrans les voient.
"""

from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional

from .config import Settings
from .errors import SelectionError, SongGuessError, TransportError
from .machine import (
    Event,
    PlayerView,
    Timing,
    can_play_snippet,
    can_select_next,
    error_update,
    loading_update,
    selection_update,
    transition,
)
from .models import GameState, Song, initial_game_state
from .paths import game_state_path, song_path, songs_path
from .selector import Outcome, Selected, SelectionFailed, select_next
from .store import SERVER_TIMESTAMP, Document, DocumentStore, Unsubscribe

if TYPE_CHECKING:
    from .synchronizer import LocalSynchronizer

logger = logging.getLogger(__name__)

StateListener = Callable[[GameState], Awaitable[None]]


class PlaybackCoordinator:
    def __init__(
        self,
        store: DocumentStore,
        session_code: str,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.store = store
        self.session_code = session_code
        self.settings = settings or Settings()
        self.timing = Timing.from_settings(self.settings)
        self.state: Optional[GameState] = None
        self.synchronizer: Optional["LocalSynchronizer"] = None
        self._rng = rng or random.Random()
        self._listeners: List[StateListener] = []
        self._unsubscribe: Optional[Unsubscribe] = None

    @property
    def path(self) -> str:
        return game_state_path(self.session_code)

    @property
    def view(self) -> PlayerView:
        return self.synchronizer.view if self.synchronizer else PlayerView()

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    async def start(self) -> None:
        self._unsubscribe = await self.store.subscribe(self.path, self._on_snapshot)

    async def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self.synchronizer is not None:
            await self.synchronizer.close()
        self._listeners.clear()

    async def _on_snapshot(self, document: Optional[Document]) -> None:
        if document is None:
            logger.info("Game state missing for session %s, initializing", self.session_code)
            await self.store.set_document(
                self.path, {**initial_game_state(), "lastActionTimestamp": SERVER_TIMESTAMP}
            )
            return
        state = GameState.from_document(document.data)
        self.state = state
        logger.debug("Game state for session %s: %s", self.session_code, state.playback_state.value)
        if self.synchronizer is not None:
            await self.synchronizer.on_state(state)
        for listener in list(self._listeners):
            await listener(state)

    async def request_state_update(self, update: Dict[str, Any]) -> None:
        data = {**update, "lastActionTimestamp": SERVER_TIMESTAMP}
        logger.debug("Updating game state for session %s: %s", self.session_code, update)
        try:
            await self.store.set_document(self.path, data, merge=True)
        except TransportError:
            logger.error("Failed to update game state for session %s", self.session_code, exc_info=True)
            raise

    async def handle_event(self, event: Event, message: Optional[str] = None) -> bool:
        """Applique la transition de `event`; renvoie False si elle est sans effet."""
        update = transition(self.state or GameState(), event, self.view, self.timing, self._rng, message)
        if update is None:
            logger.debug("Ignoring %s in state %s", event.value, self.state and self.state.playback_state.value)
            return False
        await self.request_state_update(update)
        return True

    async def request_next_song(self, force_reset_played_ids: bool = False) -> None:
        if self.synchronizer is not None:
            self.synchronizer.disarm_auto_play()
        await self._select_next(force_reset_played_ids)

    async def _select_next(self, force_reset: bool = False) -> None:
        if self.state is None and not force_reset:
            return
        if not force_reset and not can_select_next(self.state):
            logger.info("Song selection already in progress for session %s", self.session_code)
            return
        played = [] if force_reset else list(self.state.played_song_ids)
        if self.synchronizer is not None:
            self.synchronizer.cancel_stop_timer()

        await self.request_state_update(loading_update())

        song: Optional[Song] = None
        try:
            documents = await self.store.query_collection(songs_path(self.session_code))
            outcome: Outcome = select_next([d.id for d in documents], played, force_reset, self._rng)
            if isinstance(outcome, Selected):
                document = await self.store.get_document(song_path(self.session_code, outcome.song_id))
                if document is None:
                    raise SelectionError(f"Selected song document with ID {outcome.song_id} does not exist!")
                song = Song.from_document(document.id, document.data)
        except (SelectionError, TransportError) as exc:
            outcome = SelectionFailed(str(exc))

        if isinstance(outcome, SelectionFailed):
            logger.error("Failed to select next song for session %s: %s", self.session_code, outcome.reason)
        else:
            logger.info("Selection for session %s: %s", self.session_code, outcome)
        await self.request_state_update(
            selection_update(outcome, played, song, self.settings.all_played_message)
        )

    async def request_play_snippet(self, auto: bool = False) -> bool:
        if auto and not can_play_snippet(self.state or GameState(), self.view, self.timing):
            logger.warning("Auto-play conditions not met for session %s, dropping", self.session_code)
            return False
        return await self.handle_event(Event.PLAY_SNIPPET)

    async def request_play_more(self) -> bool:
        return await self.handle_event(Event.PLAY_MORE)

    async def request_reveal(self) -> bool:
        return await self.handle_event(Event.REVEAL)

    async def request_start_game(self) -> None:
        """Sélectionne le premier morceau puis joue l'extrait dès que le lecteur est prêt."""
        if self.synchronizer is not None:
            self.synchronizer.disarm_auto_play()
        await self._select_next()
        if self.synchronizer is not None:
            self.synchronizer.arm_auto_play()

    async def request_restart_game(self) -> None:
        logger.info("Restarting game for session %s", self.session_code)
        if self.synchronizer is not None:
            self.synchronizer.disarm_auto_play()
        try:
            await self.request_state_update({"playedSongIds": []})
            await self._select_next(force_reset=True)
        except SongGuessError as exc:
            await self.request_state_update(error_update(f"Failed to restart game: {exc}"))
            return
        if self.synchronizer is not None:
            self.synchronizer.arm_auto_play()
