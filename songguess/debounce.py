"""Appel différé annulable: une nouvelle demande remplace celle qui n'a pas encore été exécutée."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

from .timers import cancel_timer, schedule


class Debouncer:
    def __init__(self, delay: float, callback: Callable[..., Awaitable[Any]]) -> None:
        self.delay = delay
        self.callback = callback
        self._task: Optional["asyncio.Task[Any]"] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def __call__(self, *args: Any) -> "asyncio.Task[Any]":
        cancel_timer(self._task)
        self._task = schedule(self.delay, lambda: self.callback(*args))
        return self._task

    def cancel(self) -> None:
        cancel_timer(self._task)
        self._task = None
