"""Process-wide wiring: one shared room store, the idle-room sweeper and controller construction."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import structlog

from multiplayer.session.controller import SessionController
from multiplayer.session.settings import SessionSettings
from multiplayer.session.store import InMemoryRoomStore
from multiplayer.session.sweeper import IdleRoomSweeper
from shared.logging import setup_logging

if TYPE_CHECKING:
    import random
    from collections.abc import Callable

    from multiplayer.logic.enums import GameKind
    from multiplayer.session.store import RoomStore

logger = structlog.get_logger()


class SessionEngine:
    def __init__(
        self,
        store: RoomStore | None = None,
        settings: SessionSettings | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings or SessionSettings()
        # when the engine creates its own store, it owns its lifecycle
        self._owns_store = store is None
        self.store = store or InMemoryRoomStore()
        self._clock = clock
        self._controllers: list[SessionController] = []
        self.sweeper = IdleRoomSweeper(
            self.store,
            room_ttl_seconds=self.settings.room_ttl_seconds,
            interval_seconds=self.settings.sweep_interval_seconds,
            clock=clock,
        )

    def controller(
        self,
        game: GameKind | str,
        player_id: str,
        *,
        rng: random.Random | None = None,
    ) -> SessionController:
        controller = SessionController(
            self.store, game, player_id, settings=self.settings, clock=self._clock, rng=rng
        )
        self._controllers.append(controller)
        return controller

    def start(self) -> None:
        self.sweeper.start()
        logger.info("session engine ready", room_ttl_seconds=self.settings.room_ttl_seconds)

    async def stop(self) -> None:
        """Close every controller handed out, stop the sweeper and release an owned store."""
        controllers, self._controllers = self._controllers, []
        for controller in controllers:
            await controller.close()
        await self.sweeper.stop()
        if self._owns_store and isinstance(self.store, InMemoryRoomStore):
            await self.store.close()
        logger.info("session engine stopped", controllers=len(controllers))


def get_engine() -> SessionEngine:  # pragma: no cover
    """Engine factory for production use: settings from the environment, logging configured."""
    settings = SessionSettings()
    setup_logging(log_dir=settings.log_dir)
    return SessionEngine(settings=settings)
