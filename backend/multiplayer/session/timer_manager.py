"""Keyed one-shot timers for deadline transitions and bot moves."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from multiplayer.logic.exceptions import SessionError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Hashable

logger = structlog.get_logger()


class DeferredTaskManager:
    """Run a callback after a delay, at most one pending task per key.

    Scheduling a key that is already pending is ignored, so re-observing the
    same room snapshot never stacks duplicate transitions.
    """

    def __init__(self) -> None:
        self._tasks: dict[Hashable, asyncio.Task[None]] = {}

    def schedule(self, key: Hashable, delay: float, callback: Callable[[], Awaitable[None]]) -> bool:
        task = self._tasks.get(key)
        if task is not None and not task.done():
            return False
        self._tasks[key] = asyncio.create_task(self._run(key, max(0.0, delay), callback))
        return True

    def is_pending(self, key: Hashable) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    def cancel(self, key: Hashable) -> None:
        task = self._tasks.pop(key, None)
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def cancel_all(self) -> None:
        for key in list(self._tasks):
            self.cancel(key)

    @property
    def pending_keys(self) -> list[Hashable]:
        return [key for key, task in self._tasks.items() if not task.done()]

    async def _run(self, key: Hashable, delay: float, callback: Callable[[], Awaitable[None]]) -> None:
        try:
            await asyncio.sleep(delay)
            await callback()
        except asyncio.CancelledError:
            pass
        except SessionError as e:
            logger.warning("deferred task rejected", key=str(key), error_code=e.code, error=e.message)
        except Exception:
            logger.exception("deferred task failed", key=str(key))
        finally:
            if self._tasks.get(key) is asyncio.current_task():
                del self._tasks[key]
