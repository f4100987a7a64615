"""Background expiry of rooms nobody has touched for a while."""

from __future__ import annotations

import asyncio
import contextlib
import time
from typing import TYPE_CHECKING

import structlog

from multiplayer.logic.enums import RoomStatus
from multiplayer.session.store import DocumentNotFoundError, RevisionConflictError

if TYPE_CHECKING:
    from collections.abc import Callable

    from multiplayer.session.store import RoomStore

logger = structlog.get_logger()


class IdleRoomSweeper:
    """Mark waiting rooms abandoned once last_activity_at is older than the TTL.

    Expiry is a conditional write against the revision that was inspected,
    so a join racing with the sweep wins and the room stays open.
    """

    def __init__(
        self,
        store: RoomStore,
        room_ttl_seconds: float = 3600,
        interval_seconds: float = 30,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._room_ttl_seconds = room_ttl_seconds
        self._interval_seconds = interval_seconds
        self._clock = clock
        self._task: asyncio.Task[None] | None = None

    def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._sweep_loop())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval_seconds)
            try:
                await self.sweep()
            except Exception:
                logger.exception("room sweep failed")

    async def sweep(self) -> list[str]:
        """Expire idle waiting rooms; return their codes."""
        now = self._clock()
        expired: list[str] = []
        for code in await self._store.list_ids():
            doc = await self._store.get(code)
            if doc is None or doc["status"] != RoomStatus.WAITING:
                continue
            if now - doc["last_activity_at"] <= self._room_ttl_seconds:
                continue
            try:
                await self._store.update(
                    code,
                    {"status": RoomStatus.ABANDONED.value, "abandoned_by": None, "last_activity_at": now},
                    expected_revision=doc["revision"],
                )
            except (RevisionConflictError, DocumentNotFoundError):
                logger.debug("room changed during sweep", room_code=code)
                continue
            expired.append(code)
            logger.info("room expired", room_code=code, idle_seconds=round(now - doc["last_activity_at"]))
        return expired
