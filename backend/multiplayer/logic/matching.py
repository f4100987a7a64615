"""
Matching-pairs (concentration) rules.

Turn-based: the player holding the turn flips two cards. A match scores a
point and keeps the turn; a mismatch stays face up for a short fairness
window (visible to both seats) and is then flipped back by a system action,
which also passes the turn.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, ClassVar

from multiplayer.logic.actions import FlipCardAction, ResolveMismatchAction
from multiplayer.logic.catalog import DIFFICULTY_GRID, symbols_for_difficulty
from multiplayer.logic.enums import CodeFormat, GameKind
from multiplayer.logic.exceptions import InvalidActionError, InvalidPhaseError
from multiplayer.logic.rules import GameRules, RuleOutcome
from multiplayer.logic.settings import MatchingSettings
from multiplayer.logic.state import Card, MatchingState

if TYPE_CHECKING:
    import random

    from multiplayer.logic.actions import BaseAction

RESOLVING_SUB_PHASE = "resolving_mismatch"


def build_deck(settings: MatchingSettings, rng: random.Random) -> tuple[tuple[str, ...], int]:
    """Return (symbols by position, grid side) for a new game."""
    if settings.deck is not None:
        return settings.deck, math.isqrt(len(settings.deck) - 1) + 1
    side, _ = DIFFICULTY_GRID[settings.difficulty]
    symbols = [symbol for symbol in symbols_for_difficulty(settings.difficulty) for _ in range(2)]
    rng.shuffle(symbols)
    return tuple(symbols), side


def _set_cards(cards: tuple[Card, ...], indices: tuple[int, ...], **updates: bool) -> tuple[Card, ...]:
    new_cards = list(cards)
    for i in indices:
        new_cards[i] = cards[i].model_copy(update=updates)
    return tuple(new_cards)


class MatchingPairsRules(GameRules):
    kind: ClassVar[GameKind] = GameKind.MATCHING_PAIRS
    code_format: ClassVar[CodeFormat] = CodeFormat.NUMERIC
    turn_based: ClassVar[bool] = True
    settings_model = MatchingSettings
    state_model = MatchingState
    accepted_actions = (FlipCardAction, ResolveMismatchAction)

    def initial_state(
        self,
        settings: MatchingSettings,
        players: tuple[str, str],  # noqa: ARG002
        rng: random.Random,
        now: float,  # noqa: ARG002
    ) -> RuleOutcome:
        symbols, side = build_deck(settings, rng)
        state = MatchingState(cards=tuple(Card(symbol=s) for s in symbols), grid_size=side)
        return RuleOutcome(state=state)

    def _apply(
        self,
        state: MatchingState,
        actor: str | None,
        action: BaseAction,
        settings: MatchingSettings,
        now: float,
    ) -> RuleOutcome:
        if isinstance(action, ResolveMismatchAction):
            return self._resolve_mismatch(state, action)
        assert isinstance(action, FlipCardAction)
        assert actor is not None
        return self._flip(state, actor, action.index, settings, now)

    def _flip(
        self,
        state: MatchingState,
        actor: str,
        index: int,
        settings: MatchingSettings,
        now: float,
    ) -> RuleOutcome:
        if state.pending_mismatch is not None:
            raise InvalidPhaseError("mismatched pair is still face up")
        if not (0 <= index < len(state.cards)):
            raise InvalidActionError(f"card index {index} out of range 0-{len(state.cards) - 1}")
        card = state.cards[index]
        if card.matched:
            raise InvalidActionError(f"card {index} is already matched")
        if card.face_up:
            raise InvalidActionError(f"card {index} is already face up")

        face_up = state.face_up_unmatched()
        if not face_up:
            cards = _set_cards(state.cards, (index,), face_up=True)
            return RuleOutcome(state=state.model_copy(update={"cards": cards}))

        first = face_up[0]
        moves = state.moves + 1
        if state.cards[first].symbol == card.symbol:
            matches_found = state.matches_found + 1
            new_state = state.model_copy(
                update={
                    "cards": _set_cards(state.cards, (first, index), face_up=True, matched=True),
                    "matches_found": matches_found,
                    "moves": moves,
                }
            )
            return RuleOutcome(
                state=new_state,
                score_deltas={actor: 1},
                completed=matches_found == new_state.total_pairs,
            )

        new_state = state.model_copy(
            update={
                "cards": _set_cards(state.cards, (index,), face_up=True),
                "moves": moves,
                "pending_mismatch": (first, index),
            }
        )
        return RuleOutcome(state=new_state, phase_deadline=now + settings.mismatch_delay_seconds)

    @staticmethod
    def _resolve_mismatch(state: MatchingState, action: ResolveMismatchAction) -> RuleOutcome:
        # another client already flipped this pair back
        if state.pending_mismatch != (action.first, action.second):
            return RuleOutcome.unchanged(state)
        new_state = state.model_copy(
            update={
                "cards": _set_cards(state.cards, (action.first, action.second), face_up=False),
                "pending_mismatch": None,
            }
        )
        return RuleOutcome(state=new_state, pass_turn=True)

    def is_complete(self, state: MatchingState) -> bool:
        return state.total_pairs > 0 and state.matches_found == state.total_pairs

    def sub_phase(self, state: MatchingState) -> str | None:
        return RESOLVING_SUB_PHASE if state.pending_mismatch is not None else None

    def timed_transition(self, state: MatchingState) -> ResolveMismatchAction | None:
        if state.pending_mismatch is None:
            return None
        first, second = state.pending_mismatch
        return ResolveMismatchAction(first=first, second=second)
