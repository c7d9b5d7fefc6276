import asyncio
from typing import Any, List, Tuple

import pytest

from songguess import sessions
from songguess.config import Settings
from songguess.store import MemoryStore


class FakePlayer:
    """Lecteur local factice: enregistre les commandes reçues."""

    def __init__(self, duration: float = 180.0) -> None:
        self.duration = duration
        self.current_time = 0.0
        self.url = None
        self.calls: List[Tuple[Any, ...]] = []

    async def load(self, url: str) -> None:
        self.url = url
        self.current_time = 0.0
        self.calls.append(("load", url))

    async def play(self) -> None:
        self.calls.append(("play",))

    async def pause(self) -> None:
        self.calls.append(("pause",))

    async def seek_to(self, seconds: float) -> None:
        self.current_time = seconds
        self.calls.append(("seek", seconds))

    def get_current_time(self) -> float:
        return self.current_time

    def get_duration(self) -> float:
        return self.duration

    def commands(self, name: str) -> List[Tuple[Any, ...]]:
        return [c for c in self.calls if c[0] == name]


FAST = Settings(
    snippet_duration=0.1,
    end_buffer=40.0,
    seek_settle_delay=0.01,
    duration_retry_delay=0.05,
    search_debounce=0.05,
)


async def make_session(store: MemoryStore, titles=("A", "B", "C")):
    code = await sessions.create_session(store)
    ids = []
    for title in titles:
        song = await sessions.add_song(store, title, f"https://www.youtube.com/watch?v={title}", code)
        ids.append(song.id)
    return code, ids


@pytest.fixture
def run():
    return asyncio.run


@pytest.fixture
def fast_settings() -> Settings:
    return FAST
