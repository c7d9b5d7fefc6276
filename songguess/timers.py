"""Minuteries asyncio annulables (arrêt d'extrait, recalage, relecture de durée, recherche)."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


def schedule(delay: float, callback: Callable[[], Awaitable[Any]]) -> "asyncio.Task[None]":
    """Exécute `callback` après `delay` secondes, sauf annulation entre-temps."""

    async def timer_loop() -> None:
        await asyncio.sleep(delay)
        await callback()

    task = asyncio.create_task(timer_loop())
    task.add_done_callback(_log_failure)
    return task


def _log_failure(task: "asyncio.Task[None]") -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Timer callback failed", exc_info=exc)


def cancel_timer(task: Optional["asyncio.Task[Any]"]) -> None:
    """Annule une minuterie en attente sans attendre sa fin.

    Une minuterie qui s'annulerait elle-même depuis son propre rappel est
    laissée intacte.
    """
    if task is None or task.done():
        return
    try:
        current = asyncio.current_task()
    except RuntimeError:
        current = None
    if task is current:
        return
    task.cancel()


async def stop_timer(task: Optional["asyncio.Task[Any]"]) -> None:
    """Annule la minuterie et attend sa terminaison effective."""
    if task is None or task.done() or task is asyncio.current_task():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
