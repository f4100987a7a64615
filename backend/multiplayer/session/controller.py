"""
Session controller: one player's handle on one room.

The controller turns UI calls into store writes and turns store snapshots
into a SessionView. Shared state is never changed locally before the store
confirms it: every write is a compare-and-swap against the revision that
was read, and the view is only recomputed from confirmed documents (the
write's result or a subscription snapshot, whichever arrives first).

Deadline-driven transitions (mismatch flip-back, shopping phase timers,
trivia reveal) are scheduled on every client from the room's absolute
phase_deadline. They are guarded system actions, so when both clients fire
the same transition the second write is a no-op.
"""

from __future__ import annotations

import asyncio
import contextlib
import random
import time
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from multiplayer.logic.actions import FlipCardAction, parse_action
from multiplayer.logic.bot import MatchingBot
from multiplayer.logic.enums import GameKind, RoomStatus
from multiplayer.logic.exceptions import (
    InvalidActionError,
    InvalidPhaseError,
    NotInRoomError,
    ProtocolError,
    RoomClosedError,
    RoomNotFoundError,
    SessionError,
    StoreUnavailableError,
)
from multiplayer.logic.registry import determine_winners, get_rules
from multiplayer.logic.rules import GameRules
from multiplayer.session.models import Room
from multiplayer.session.room_codes import RoomCodeGenerator, normalize_room_code
from multiplayer.session.settings import SessionSettings
from multiplayer.session.state_machine import SessionStateMachine, check_transition
from multiplayer.session.store import (
    DocumentNotFoundError,
    InMemoryRoomStore,
    RevisionConflictError,
    apply_partial,
)
from multiplayer.session.timer_manager import DeferredTaskManager
from multiplayer.session.types import REMOTE_ERROR_CODES, SessionView, ViewError
from shared.logging import bind_room_context, clear_room_context

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from pydantic import BaseModel

    from multiplayer.logic.actions import BaseAction
    from multiplayer.session.store import RoomStore, Subscription

logger = structlog.get_logger()

BOT_PLAYER_ID = "bot"
SOLO_PARTNER_ID = "solo_partner"


class SessionController:
    def __init__(
        self,
        store: RoomStore,
        game: GameKind | str | GameRules,
        player_id: str,
        *,
        settings: SessionSettings | None = None,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ) -> None:
        if not player_id:
            raise ValueError("player_id must not be empty")
        self.rules = game if isinstance(game, GameRules) else get_rules(game)
        self.player_id = player_id
        self.settings = settings or SessionSettings()
        self._shared_store = store
        self._store = store
        self._clock = clock
        self._rng = rng or random.Random()
        self._machine = SessionStateMachine(self.rules)
        self._codes = self._code_generator(store)
        self._timers = DeferredTaskManager()
        self._listeners: list[Callable[[SessionView], None]] = []
        self._log = logger.bind(player_id=player_id, game=self.rules.kind)

        self._room: Room | None = None
        self._room_code: str | None = None
        self._subscription: Subscription | None = None
        self._timed_key: tuple[str, str] | None = None
        self._in_flight = 0
        self._bot: MatchingBot | None = None
        self._view = SessionView(player_id=player_id, game=self.rules.kind)

    # --- Observable state ---

    @property
    def current_view(self) -> SessionView:
        return self._view

    @property
    def room_code(self) -> str | None:
        return self._room_code

    @property
    def room(self) -> Room | None:
        """Last confirmed room document."""
        return self._room

    def add_listener(self, listener: Callable[[SessionView], None]) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[SessionView], None]) -> None:
        with contextlib.suppress(ValueError):
            self._listeners.remove(listener)

    # --- Public operations ---

    async def create_room(self, config: BaseModel | dict[str, Any] | None = None) -> str:
        """Create a waiting room hosted by this player and return its join code."""
        async with self._operation("create_room"):
            self._require_detached()
            game_settings = self._parse_settings(config)
            now = self._clock()

            def build(code: str) -> dict[str, Any]:
                return self._machine.new_room(code, self.player_id, game_settings, now).to_document()

            doc = await self._retrying(lambda: self._codes.claim(build))
            room = Room.from_document(doc)
            self._log.info("room created", room_code=room.code)
            await self._attach(room.code, doc)
            return room.code

    async def join_room(self, code: str) -> None:
        """Take the guest seat of the room with the given join code."""
        async with self._operation("join_room"):
            self._require_detached()
            code = normalize_room_code(code, self.rules.code_format)
            doc = await self._retrying(lambda: self._store.get(code))
            if doc is None or doc.get("game") != self.rules.kind:
                raise RoomNotFoundError(f"no {self.rules.kind} room with code {code}")
            doc = await self._transact(
                code, lambda room: self._machine.join(room, self.player_id, self._clock())
            )
            self._log.info("room joined", room_code=code)
            await self._attach(code, doc)

    async def start_game(self) -> None:
        """Host only: move the room from waiting to playing and seed the game state."""
        async with self._operation("start_game"):
            code = self._require_attached()
            doc = await self._transact(
                code, lambda room: self._machine.start(room, self.player_id, self._rng, self._clock())
            )
            self._log.info("game started", room_code=code)
            self.apply_snapshot(doc)

    async def submit_action(self, action: BaseAction | dict[str, Any]) -> None:
        """Submit a player action; the view changes once the store confirms it."""
        async with self._operation("submit_action"):
            parsed = parse_action(action)
            if parsed.is_system:
                raise InvalidActionError(f"{parsed.type} is applied automatically when its timer runs out")
            code = self._require_attached()
            doc = await self._transact(
                code, lambda room: self._machine.apply_action(room, self.player_id, parsed, self._clock())
            )
            self.apply_snapshot(doc)

    async def leave_room(self) -> None:
        """Stop following the room and mark it abandoned if it is still open."""
        code = self._room_code
        if code is None:
            return
        try:
            async with self._operation("leave_room"):
                with contextlib.suppress(RoomClosedError, NotInRoomError):
                    await self._transact(
                        code, lambda room: self._machine.abandon(room, self.player_id, self._clock())
                    )
                self._log.info("room left", room_code=code)
        finally:
            await self._detach()

    async def create_solo_game(
        self,
        config: BaseModel | dict[str, Any] | None = None,
        *,
        with_bot: bool = False,
    ) -> str:
        """
        Start a practice game in a private store, skipping the waiting phase.

        with_bot seats a matching-pairs opponent in the guest seat; without it
        the guest seat is a placeholder and the turn never passes.
        """
        async with self._operation("create_solo_game"):
            self._require_detached()
            if with_bot and self.rules.kind != GameKind.MATCHING_PAIRS:
                raise InvalidActionError(f"no bot opponent for {self.rules.kind}")
            partner = BOT_PLAYER_ID if with_bot else SOLO_PARTNER_ID
            if partner == self.player_id:
                raise InvalidActionError(f"player id {partner!r} is reserved")
            game_settings = self._parse_settings(config)

            self._store = InMemoryRoomStore()
            self._codes = self._code_generator(self._store)
            if with_bot:
                self._bot = MatchingBot(self._rng)

            now = self._clock()

            def build(code: str) -> dict[str, Any]:
                room = self._machine.new_room(code, self.player_id, game_settings, now)
                room = room.model_copy(update={"solo": not with_bot})
                doc = apply_partial(room.to_document(), self._machine.join(room, partner, now) or {})
                start = self._machine.start(Room.from_document(doc), self.player_id, self._rng, now)
                return apply_partial(doc, start)

            doc = await self._codes.claim(build)
            self._log.info("solo game started", room_code=doc["code"], with_bot=with_bot)
            await self._attach(doc["code"], doc)
            return doc["code"]

    async def close(self) -> None:
        """Leave the current room (if any) and stop all timers."""
        await self.leave_room()
        self._timers.cancel_all()

    # --- Snapshot handling ---

    def apply_snapshot(self, doc: dict[str, Any] | None) -> None:
        """
        Reconcile the view with a confirmed room document.

        Snapshots at or below the last seen revision are ignored, so the same
        document delivered twice (write result and subscription) is harmless.
        """
        if self._room_code is None:
            return
        if doc is None:
            self._timers.cancel_all()
            self._log.warning("room deleted", room_code=self._room_code)
            self._record_error(RoomClosedError("the room no longer exists"))
            return

        room = Room.from_document(doc)
        if room.code != self._room_code:
            return
        previous = self._room
        if previous is not None and room.session_id != previous.session_id:
            self._timers.cancel_all()
            self._record_error(RoomClosedError(f"room {room.code} was closed and its code reused"))
            return
        if previous is not None and room.revision <= previous.revision:
            return
        try:
            check_transition(previous.status if previous is not None else None, room.status)
        except ProtocolError as e:
            self._log.error("protocol error", room_code=room.code, error=e.message, revision=room.revision)
            self._record_error(e)
            return

        self._room = room
        error = self._view.error
        if error is not None and error.code not in REMOTE_ERROR_CODES:
            # a rejected local action is stale once the room has moved on
            error = None
        if room.status == RoomStatus.ABANDONED and room.abandoned_by != self.player_id:
            error = ViewError.from_exception(RoomClosedError(self._abandon_message(room)))
        self._publish(self._build_view(room, error))

        if room.status.is_terminal:
            self._timers.cancel_all()
            if previous is None or previous.status != room.status:
                self._log.info(
                    "room closed",
                    room_code=room.code,
                    status=room.status,
                    scores=room.scores,
                    winners=self._view.winners,
                )
            return
        self._schedule_timed_transition(room)
        self._schedule_bot_turn(room)

    async def _on_snapshot(self, doc: dict[str, Any] | None) -> None:
        if self._room_code is None:
            return
        bind_room_context(room_code=self._room_code, game=self.rules.kind.value, player_id=self.player_id)
        try:
            self.apply_snapshot(doc)
        finally:
            clear_room_context()

    def _build_view(self, room: Room, error: ViewError | None) -> SessionView:
        playing = room.status == RoomStatus.PLAYING
        if self.rules.turn_based:
            is_my_turn = playing and room.current_turn == self.player_id
        else:
            is_my_turn = playing and room.seat_of(self.player_id) is not None
        winners = determine_winners(room.scores) if room.status == RoomStatus.FINISHED else ()
        return SessionView(
            player_id=self.player_id,
            game=room.game,
            room_code=room.code,
            role=room.seat_of(self.player_id),
            status=room.status,
            sub_phase=self._machine.sub_phase(room),
            is_my_turn=is_my_turn,
            current_turn=room.current_turn,
            opponent_id=room.opponent_of(self.player_id),
            scores=room.scores,
            shared_state=room.shared_state,
            winners=winners,
            is_tie=len(winners) > 1,
            phase_deadline=room.phase_deadline,
            revision=room.revision,
            pending=self._in_flight > 0,
            error=error,
        )

    def _abandon_message(self, room: Room) -> str:
        if room.abandoned_by is None:
            return "the room expired"
        return f"{room.abandoned_by} left the room"

    def _publish(self, view: SessionView) -> None:
        if view == self._view:
            return
        self._view = view
        for listener in list(self._listeners):
            listener(view)

    def _record_error(self, error: SessionError) -> None:
        self._publish(self._view.model_copy(update={"error": ViewError.from_exception(error)}))

    # --- Deferred transitions and bot turns ---

    def _schedule_timed_transition(self, room: Room) -> None:
        action = self._machine.timed_action(room)
        key = ("timed", action.model_dump_json()) if action is not None else None
        if self._timed_key is not None and self._timed_key != key:
            self._timers.cancel(self._timed_key)
        self._timed_key = key
        if action is None or key is None or room.phase_deadline is None:
            return
        delay = room.phase_deadline - self._clock()
        self._timers.schedule(key, delay, lambda: self._submit_system(action))

    async def _submit_system(self, action: BaseAction) -> None:
        """Fire a due transition, retrying through store outages while it is still due."""
        delay = self.settings.store_retry_backoff_seconds
        while self._timed_action_due(action):
            code = self._room_code
            assert code is not None
            try:
                doc = await self._transact(
                    code, lambda room: self._machine.apply_action(room, None, action, self._clock())
                )
            except StoreUnavailableError as e:
                self._log.warning("timed transition postponed", action=action.type, delay=delay, error=e.message)
                await asyncio.sleep(delay)
                delay = min(delay * 2, self.settings.timed_retry_max_backoff_seconds)
                continue
            self.apply_snapshot(doc)
            return

    def _timed_action_due(self, action: BaseAction) -> bool:
        if self._room_code is None or self._room is None:
            return False
        return self._machine.timed_action(self._room) == action

    def _schedule_bot_turn(self, room: Room) -> None:
        if self._bot is None or not room.shared_state:
            return
        state = self.rules.parse_state(room.shared_state)
        self._bot.observe(state)
        if room.status != RoomStatus.PLAYING or room.current_turn != BOT_PLAYER_ID:
            return
        if state.pending_mismatch is not None:
            return
        delay = (
            self.settings.bot_flip_interval_seconds
            if state.face_up_unmatched()
            else self.settings.bot_think_seconds
        )
        self._timers.schedule(("bot", room.revision), delay, lambda: self._bot_move(room.revision))

    async def _bot_move(self, revision: int) -> None:
        room = self._room
        if self._bot is None or room is None or room.revision != revision:
            # a newer snapshot scheduled its own move
            return
        state = self.rules.parse_state(room.shared_state)
        face_up = state.face_up_unmatched()
        index = self._bot.choose_second(state, face_up[0]) if face_up else self._bot.choose_first(state)
        action = FlipCardAction(index=index)
        doc = await self._transact(
            room.code, lambda r: self._machine.apply_action(r, BOT_PLAYER_ID, action, self._clock())
        )
        self.apply_snapshot(doc)

    # --- Store round-trips ---

    async def _transact(self, code: str, mutate: Callable[[Room], dict[str, Any] | None]) -> dict[str, Any]:
        """
        Read-modify-write with compare-and-swap.

        mutate validates against the freshly read room and returns the partial
        update (None for a no-op). A lost race re-reads and re-validates, so
        an action that became illegal meanwhile is rejected instead of applied.
        """
        for attempt in range(1, self.settings.max_conflict_retries + 1):
            doc = await self._retrying(lambda: self._store.get(code))
            if doc is None:
                raise RoomClosedError(f"room {code} no longer exists")
            room = Room.from_document(doc)
            if self._room is not None and room.session_id != self._room.session_id:
                raise RoomClosedError(f"room {code} was closed and its code reused")
            changes = mutate(room)
            if changes is None:
                return doc
            try:
                return await self._retrying(
                    lambda: self._store.update(code, changes, expected_revision=room.revision)
                )
            except RevisionConflictError as e:
                self._log.info("revision conflict", room_code=code, attempt=attempt, actual=e.actual)
            except DocumentNotFoundError as e:
                raise RoomClosedError(f"room {code} no longer exists") from e
        raise StoreUnavailableError(f"room {code} kept changing, gave up after {attempt} attempts")

    async def _retrying(self, operation: Callable[[], Awaitable[Any]]) -> Any:
        delay = self.settings.store_retry_backoff_seconds
        attempts = self.settings.store_retry_attempts
        for attempt in range(1, attempts + 1):
            try:
                return await operation()
            except StoreUnavailableError as e:
                if attempt == attempts:
                    raise
                self._log.warning(
                    "store unavailable, retrying", attempt=attempt, delay=delay, error=e.message
                )
                await asyncio.sleep(delay)
                delay *= 2
        raise AssertionError("unreachable")  # pragma: no cover

    async def _attach(self, code: str, doc: dict[str, Any]) -> None:
        self._room_code = code
        self._room = None
        self._timed_key = None
        self.apply_snapshot(doc)
        self._subscription = await self._retrying(lambda: self._store.subscribe(code, self._on_snapshot))

    async def _detach(self) -> None:
        self._timers.cancel_all()
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            await self._store.unsubscribe(subscription)
        if self._store is not self._shared_store and isinstance(self._store, InMemoryRoomStore):
            await self._store.close()
        self._store = self._shared_store
        self._codes = self._code_generator(self._store)
        self._bot = None
        self._room = None
        self._room_code = None
        self._timed_key = None
        self._publish(SessionView(player_id=self.player_id, game=self.rules.kind, error=self._view.error))

    # --- Helpers ---

    @contextlib.asynccontextmanager
    async def _operation(self, name: str) -> AsyncIterator[None]:
        """Track the pending flag and mirror raised SessionErrors onto the view."""
        self._in_flight += 1
        self._publish(self._view.model_copy(update={"pending": True, "error": None}))
        try:
            yield
        except SessionError as e:
            self._log.info("operation rejected", operation=name, error_code=e.code, error=e.message)
            self._record_error(e)
            raise
        finally:
            self._in_flight -= 1
            self._publish(self._view.model_copy(update={"pending": self._in_flight > 0}))

    def _parse_settings(self, config: BaseModel | dict[str, Any] | None) -> BaseModel:
        try:
            return self.rules.parse_settings(config)
        except ValidationError as e:
            raise InvalidActionError(f"invalid {self.rules.kind} settings: {e.errors()[0]['msg']}") from e

    def _code_generator(self, store: RoomStore) -> RoomCodeGenerator:
        return RoomCodeGenerator(store, self.rules.code_format, self.settings.code_max_attempts, self._rng)

    def _require_attached(self) -> str:
        if self._room_code is None:
            raise NotInRoomError("not attached to a room")
        return self._room_code

    def _require_detached(self) -> None:
        if self._room_code is not None:
            raise InvalidPhaseError(f"already in room {self._room_code}; leave it first")
