"""Etat applicatif centralisé: configuration, magasin et écrans connectés."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .config import Settings
from .coordinator import PlaybackCoordinator
from .debounce import Debouncer
from .player import SocketMediaPlayer
from .store import DocumentStore, MemoryStore, Unsubscribe
from .synchronizer import LocalSynchronizer


@dataclass
class ClientContext:
    """Un écran (sid Socket.IO) rattaché à une session."""

    sid: str
    session_code: str
    player: SocketMediaPlayer
    coordinator: PlaybackCoordinator
    synchronizer: LocalSynchronizer
    unsubscribers: List[Unsubscribe] = field(default_factory=list)

    async def close(self) -> None:
        for unsubscribe in self.unsubscribers:
            unsubscribe()
        self.unsubscribers.clear()
        await self.coordinator.close()


@dataclass
class AppState:
    settings: Settings = field(default_factory=Settings)
    store: DocumentStore = field(default_factory=MemoryStore)
    clients: Dict[str, ClientContext] = field(default_factory=dict)
    searches: Dict[str, Debouncer] = field(default_factory=dict)

    def configure(self, settings: Settings, store: Optional[DocumentStore] = None) -> "AppState":
        self.settings = settings
        self.store = store if store is not None else MemoryStore()
        self.clients.clear()
        self.searches.clear()
        return self


# instance globale unique
state = AppState()
