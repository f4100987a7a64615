import asyncio
import random
from collections.abc import Callable
from typing import Any

import pytest

from multiplayer.logic.enums import GameKind, RoomStatus, ShoppingPhase
from multiplayer.logic.settings import TriviaSettings
from multiplayer.logic.state import Card, MatchingState, ShoppingItem, ShoppingState, TriviaState
from multiplayer.session.controller import SessionController
from multiplayer.session.models import Room
from multiplayer.session.settings import SessionSettings
from multiplayer.session.store import InMemoryRoomStore

HOST = "alice"
GUEST = "bob"
START_TIME = 1_700_000_000.0


# ============================================================================
# Test State Builder Helpers
# ============================================================================


def create_matching_state(
    symbols: str | list[str] = "AABB",
    *,
    face_up: tuple[int, ...] = (),
    matched: tuple[int, ...] = (),
    pending_mismatch: tuple[int, int] | None = None,
    matches_found: int | None = None,
    moves: int = 0,
) -> MatchingState:
    """Create a MatchingState from a symbol layout such as "AABB"."""
    cards = tuple(
        Card(symbol=symbol, face_up=i in face_up or i in matched, matched=i in matched)
        for i, symbol in enumerate(symbols)
    )
    return MatchingState(
        cards=cards,
        grid_size=2,
        matches_found=matches_found if matches_found is not None else len(matched) // 2,
        moves=moves,
        pending_mismatch=pending_mismatch,
    )


def create_shopping_state(
    targets: tuple[str, ...] = ("apple", "bread", "milk"),
    distractors: tuple[str, ...] = ("fish", "tea"),
    *,
    phase: ShoppingPhase = ShoppingPhase.SELECTION,
    selected: dict[str, str] | None = None,
) -> ShoppingState:
    """Create a ShoppingState; selected maps item_id -> player who picked it."""
    selected = selected or {}
    items = tuple(
        ShoppingItem(
            item_id=item_id,
            name=item_id.title(),
            emoji="*",
            category="test",
            is_target=item_id in targets,
            is_selected=item_id in selected,
            selected_by=selected.get(item_id),
        )
        for item_id in targets + distractors
    )
    return ShoppingState(target_item_ids=targets, items=items, phase=phase)


def create_trivia_state(**updates: Any) -> TriviaState:
    return TriviaState(puzzles=TriviaSettings().puzzles[:2]).model_copy(update=updates)


def create_room(
    game: GameKind = GameKind.MATCHING_PAIRS,
    *,
    status: RoomStatus = RoomStatus.WAITING,
    guest_id: str | None = GUEST,
    current_turn: str | None = None,
    shared_state: dict[str, Any] | None = None,
    settings: dict[str, Any] | None = None,
    revision: int = 1,
    code: str = "1234",
    last_activity_at: float = START_TIME,
    **updates: Any,
) -> Room:
    scores = {HOST: 0} if guest_id is None else {HOST: 0, guest_id: 0}
    return Room(
        code=code,
        game=game,
        host_id=HOST,
        guest_id=guest_id,
        status=status,
        current_turn=current_turn,
        shared_state=shared_state or {},
        scores=scores,
        settings=settings or {},
        created_at=START_TIME,
        last_activity_at=last_activity_at,
        revision=revision,
        **updates,
    )


# ============================================================================
# Async helpers
# ============================================================================


class FakeClock:
    """Wall clock replacement; tests advance it explicitly."""

    def __init__(self, now: float = START_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the event loop until predicate holds, failing after timeout."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.001)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def store() -> InMemoryRoomStore:
    return InMemoryRoomStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


@pytest.fixture
def session_settings() -> SessionSettings:
    return SessionSettings(
        bot_think_seconds=0,
        bot_flip_interval_seconds=0,
        store_retry_backoff_seconds=0,
        store_retry_attempts=3,
    )


@pytest.fixture
async def make_controller(store, clock, rng, session_settings):
    """Factory for controllers sharing one store; all are closed on teardown."""
    created: list[SessionController] = []

    def factory(
        player_id: str,
        game: GameKind = GameKind.MATCHING_PAIRS,
        *,
        player_clock: Callable[[], float] | None = None,
    ) -> SessionController:
        controller = SessionController(
            store, game, player_id, settings=session_settings, clock=player_clock or clock, rng=rng
        )
        created.append(controller)
        return controller

    yield factory
    for controller in created:
        await controller.close()
    await store.close()
