"""Lecteur multimédia local.

Le lecteur réel vit dans le navigateur (lecteur YouTube masqué). Le service
lui envoie des commandes `music_control` et garde en cache la position et la
durée qu'il rapporte.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol


class MediaPlayer(Protocol):
    async def load(self, url: str) -> None: ...

    async def play(self) -> None: ...

    async def pause(self) -> None: ...

    async def seek_to(self, seconds: float) -> None: ...

    def get_current_time(self) -> float: ...

    def get_duration(self) -> float: ...


class SocketMediaPlayer:
    """Pilote le lecteur d'un client Socket.IO (un `sid`)."""

    def __init__(self, sio: Any, sid: str) -> None:
        self._sio = sio
        self.sid = sid
        self.url: Optional[str] = None
        self.current_time = 0.0
        self.duration = 0.0

    async def _control(self, payload: Dict[str, Any]) -> None:
        await self._sio.emit("music_control", payload, to=self.sid)

    async def load(self, url: str) -> None:
        self.url = url
        self.current_time = 0.0
        self.duration = 0.0
        await self._control({"action": "load", "url": url})

    async def play(self) -> None:
        await self._control({"action": "play"})

    async def pause(self) -> None:
        await self._control({"action": "pause"})

    async def seek_to(self, seconds: float) -> None:
        self.current_time = seconds
        await self._control({"action": "seek", "seconds": seconds})

    def get_current_time(self) -> float:
        return self.current_time

    def get_duration(self) -> float:
        return self.duration

    def is_current(self, url: Optional[str]) -> bool:
        return url is not None and url == self.url

    def report(
        self,
        url: Optional[str],
        current_time: Optional[float] = None,
        duration: Optional[float] = None,
    ) -> bool:
        """Met à jour le cache avec les valeurs remontées par le navigateur.

        Le navigateur renvoie l'URL reçue avec la commande `load`; un rapport
        portant une autre URL concerne un morceau précédent et est ignoré.
        """
        if not self.is_current(url):
            return False
        if current_time is not None:
            self.current_time = float(current_time)
        if duration is not None:
            self.duration = float(duration)
        return True
