"""FIFO narration side-channel.

Pipeline results are spoken one at a time: ``enqueue`` never waits, and a
single drain task hands items to the speech engine in order, waiting for
each utterance to finish before starting the next. A failed utterance is
logged and treated exactly like a finished one.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Optional

from .types import NarrationParams, SpeechEngine

logger = logging.getLogger("image_answer.pipeline")


class NarrationQueue:
    def __init__(
        self,
        engine: SpeechEngine,
        params: NarrationParams | None = None,
        *,
        pause_seconds: float = 0.1,
    ) -> None:
        self._engine = engine
        self._params = params or NarrationParams()
        self._pause_seconds = pause_seconds
        self._items: deque[str] = deque()
        self._speaking = False
        self._drain_task: Optional[asyncio.Task[None]] = None
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def params(self) -> NarrationParams:
        return self._params

    @property
    def is_speaking(self) -> bool:
        return self._speaking

    @property
    def pending(self) -> list[str]:
        return list(self._items)

    def enqueue(self, text: str) -> None:
        """Append ``text`` and start draining if nothing is being spoken."""

        self._items.append(text)
        self._idle.clear()
        self._schedule_drain()

    async def wait_idle(self) -> None:
        """Wait until every queued item has been spoken."""

        await self._idle.wait()

    async def close(self) -> None:
        self._items.clear()
        task = self._drain_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._speaking = False
        self._idle.set()

    def _schedule_drain(self) -> None:
        if self._drain_task is not None and not self._drain_task.done():
            return
        self._drain_task = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        try:
            while self._items:
                text = self._items.popleft()
                self._speaking = True
                try:
                    await self._engine.speak(text, self._params)
                except Exception:
                    logger.exception("Fallo en narración: %s", text[:80])
                finally:
                    self._speaking = False
                if self._items and self._pause_seconds:
                    await asyncio.sleep(self._pause_seconds)
        finally:
            if not self._items:
                self._idle.set()


__all__ = ["NarrationQueue"]
