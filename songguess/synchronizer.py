"""Synchronisation de l'état partagé avec le lecteur local d'un écran.

Chaque écran possède ses propres disponibilité, durée et position du lecteur,
ainsi que ses minuteries. Elles ne sont jamais partagées entre écrans.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Tuple

from .config import Settings
from .coordinator import PlaybackCoordinator
from .machine import Event, PlayerView
from .models import GameState, PlaybackState
from .player import MediaPlayer
from .timers import cancel_timer, schedule

logger = logging.getLogger(__name__)


class LocalSynchronizer:
    def __init__(
        self,
        player: MediaPlayer,
        coordinator: PlaybackCoordinator,
        settings: Optional[Settings] = None,
    ) -> None:
        self.player = player
        self.coordinator = coordinator
        self.settings = settings or coordinator.settings
        coordinator.synchronizer = self

        self.url: Optional[str] = None
        self.ready = False
        self.duration = 0.0
        self.position = 0.0
        self.auto_play = False
        self.closed = False

        self._state: Optional[GameState] = None
        self._applied: Optional[Tuple[PlaybackState, float, bool]] = None
        self._seek_task: Optional["asyncio.Task[Any]"] = None
        self._stop_task: Optional["asyncio.Task[Any]"] = None
        self._retry_task: Optional["asyncio.Task[Any]"] = None
        self._auto_task: Optional["asyncio.Task[Any]"] = None

    @property
    def view(self) -> PlayerView:
        return PlayerView(ready=self.ready, duration=self.duration, position=self.position)

    # --- minuteries -----------------------------------------------------

    def cancel_stop_timer(self) -> None:
        cancel_timer(self._stop_task)
        self._stop_task = None

    def _cancel_playback_timers(self) -> None:
        cancel_timer(self._seek_task)
        self._seek_task = None
        self.cancel_stop_timer()

    def _cancel_all(self) -> None:
        self._cancel_playback_timers()
        cancel_timer(self._retry_task)
        self._retry_task = None
        cancel_timer(self._auto_task)
        self._auto_task = None

    # --- état partagé ---------------------------------------------------

    async def on_state(self, state: GameState) -> None:
        if self.closed:
            return
        self._state = state
        if state.current_song_url != self.url:
            logger.info("Current song URL changed to %s, resetting local player", state.current_song_url)
            self._cancel_all()
            self.url = state.current_song_url
            self.ready = False
            self.duration = 0.0
            self.position = 0.0
            self._applied = None
            if self.url:
                await self.player.load(self.url)
        await self._apply()

    async def _apply(self) -> None:
        state = self._state
        if state is None:
            return
        key = (state.playback_state, state.seek_time, self.ready)
        if key == self._applied:
            return
        self._applied = key
        self._cancel_playback_timers()

        if state.playback_state.is_playing and self.ready:
            target = state.seek_time or 0.0
            self._seek_task = schedule(self.settings.seek_settle_delay, lambda: self._settle_seek(target))
            logger.debug("Stop timer set for %ss (%s)", self.settings.snippet_duration, state.playback_state.value)
            self._stop_task = schedule(self.settings.snippet_duration, self._on_stop_timer)
            await self.player.play()
        elif self.url:
            await self.player.pause()

    async def _settle_seek(self, target: float) -> None:
        self._seek_task = None
        if self.closed or not self.ready:
            return
        current = self.player.get_current_time() or 0.0
        if abs(current - target) > self.settings.seek_tolerance:
            logger.debug("Seeking to %.1fs (current %.1fs)", target, current)
            await self.player.seek_to(target)
            self.position = target

    async def _on_stop_timer(self) -> None:
        self._stop_task = None
        logger.debug("Stop timer fired, requesting pause")
        await self.coordinator.handle_event(Event.STOP_TIMER_EXPIRED)

    # --- notifications du lecteur ------------------------------------------

    def _is_stale(self, url: Optional[str]) -> bool:
        """Une notification qui nomme une autre URL vient d'un morceau précédent."""
        if url is not None and url != self.url:
            logger.debug("Ignoring notification for %s, current song is %s", url, self.url)
            return True
        return False

    async def on_ready(self, url: Optional[str] = None) -> None:
        if self.closed or self._is_stale(url):
            return
        if not self.url:
            logger.info("Player ready without a current song")
            self.ready = False
            return
        duration = self.player.get_duration() or 0.0
        if duration > 0:
            await self._become_ready(duration)
            return
        logger.warning("Initial duration check failed (%s), retrying in %ss", duration, self.settings.duration_retry_delay)
        current = self.url
        cancel_timer(self._retry_task)
        self._retry_task = schedule(self.settings.duration_retry_delay, lambda: self._retry_duration(current))

    async def _retry_duration(self, url: str) -> None:
        self._retry_task = None
        if self.closed or url != self.url:
            logger.info("Duration retry aborted, song changed")
            return
        duration = self.player.get_duration() or 0.0
        if duration > 0:
            await self._become_ready(duration)
            return
        logger.error("Could not get a valid duration for %s after retry", url)
        self.ready = False
        await self.coordinator.handle_event(Event.DURATION_FAILED)

    async def _become_ready(self, duration: float) -> None:
        self.duration = duration
        self.ready = True
        await self._apply()
        await self._maybe_auto_play()

    async def on_progress(self, seconds: float, url: Optional[str] = None) -> None:
        if self._is_stale(url):
            return
        if self.ready and self.url:
            self.position = seconds

    async def on_ended(self, url: Optional[str] = None) -> None:
        if self._is_stale(url):
            return
        if self._state is not None and self._state.playback_state.is_playing:
            logger.info("Media ended while playing")
            await self.coordinator.handle_event(Event.MEDIA_ENDED)

    async def on_error(self, message: Optional[str] = None, url: Optional[str] = None) -> None:
        if self._is_stale(url):
            return
        logger.error("Local player error for %s: %s", self.url, message)
        self.ready = False
        self.duration = 0.0
        self._cancel_playback_timers()
        await self.coordinator.handle_event(Event.PLAYER_ERROR, message)

    # --- lecture automatique du premier extrait ---------------------------

    def arm_auto_play(self) -> None:
        self.auto_play = True
        if self.ready:
            cancel_timer(self._auto_task)
            self._auto_task = schedule(0, self._scheduled_auto_play)

    def disarm_auto_play(self) -> None:
        self.auto_play = False

    async def _scheduled_auto_play(self) -> None:
        self._auto_task = None
        await self._maybe_auto_play()

    async def _maybe_auto_play(self) -> None:
        if self.auto_play and self.ready and self.duration >= self.settings.snippet_duration:
            self.auto_play = False
            await self.coordinator.request_play_snippet(auto=True)

    async def close(self) -> None:
        self.closed = True
        self.auto_play = False
        self._cancel_all()
