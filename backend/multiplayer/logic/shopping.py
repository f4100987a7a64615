"""
Shopping-list (cooperative memory) rules.

Both players see a target list during the memorize phase, then pick items
from a larger grid together. Either player may toggle any item; the room
score is correct picks minus incorrect picks.
"""

from __future__ import annotations

from collections import Counter
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, ClassVar

from multiplayer.logic.actions import AdvanceShoppingPhaseAction, SubmitSelectionAction, ToggleItemAction
from multiplayer.logic.catalog import GROCERY_ITEMS
from multiplayer.logic.enums import CodeFormat, GameKind, ShoppingPhase
from multiplayer.logic.exceptions import InvalidActionError, InvalidPhaseError
from multiplayer.logic.rules import GameRules, RuleOutcome
from multiplayer.logic.settings import ShoppingSettings
from multiplayer.logic.state import ShoppingItem, ShoppingResult, ShoppingState

if TYPE_CHECKING:
    import random

    from multiplayer.logic.actions import BaseAction


def score_selection(state: ShoppingState) -> ShoppingResult:
    """Score the current selection against the target list."""
    targets = set(state.target_item_ids)
    selected = state.selected_ids
    correct = len(selected & targets)
    incorrect = len(selected - targets)
    total = len(targets)
    accuracy = Decimal(correct * 100) / Decimal(total) if total else Decimal(0)
    correct_by_player = Counter(
        item.selected_by
        for item in state.items
        if item.is_selected and item.is_target and item.selected_by is not None
    )
    return ShoppingResult(
        correct=correct,
        incorrect=incorrect,
        missed=total - correct,
        total=total,
        accuracy=float(accuracy.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)),
        score=correct - incorrect,
        correct_by_player=dict(correct_by_player),
    )


class ShoppingListRules(GameRules):
    kind: ClassVar[GameKind] = GameKind.SHOPPING_LIST
    code_format: ClassVar[CodeFormat] = CodeFormat.ALPHANUMERIC
    turn_based: ClassVar[bool] = False
    settings_model = ShoppingSettings
    state_model = ShoppingState
    accepted_actions = (ToggleItemAction, SubmitSelectionAction, AdvanceShoppingPhaseAction)

    def initial_state(
        self,
        settings: ShoppingSettings,
        players: tuple[str, str],  # noqa: ARG002
        rng: random.Random,
        now: float,
    ) -> RuleOutcome:
        grid = rng.sample(GROCERY_ITEMS, settings.total_item_count)
        target_ids = {item_id for item_id, *_ in rng.sample(grid, settings.target_item_count)}
        items = tuple(
            ShoppingItem(
                item_id=item_id, name=name, emoji=emoji, category=category, is_target=item_id in target_ids
            )
            for item_id, name, emoji, category in grid
        )
        state = ShoppingState(
            target_item_ids=tuple(item.item_id for item in items if item.is_target),
            items=items,
        )
        return RuleOutcome(state=state, phase_deadline=now + settings.memorize_seconds)

    def _apply(
        self,
        state: ShoppingState,
        actor: str | None,
        action: BaseAction,
        settings: ShoppingSettings,
        now: float,
    ) -> RuleOutcome:
        match action:
            case ToggleItemAction(item_id=item_id):
                self._require_selection(state)
                return RuleOutcome(state=self._toggle(state, item_id, actor))
            case SubmitSelectionAction():
                self._require_selection(state)
                return self._finish(state)
            case AdvanceShoppingPhaseAction(expected_phase=expected):
                if state.phase != expected:
                    return RuleOutcome.unchanged(state)
                if state.phase == ShoppingPhase.MEMORIZE:
                    return RuleOutcome(
                        state=state.model_copy(update={"phase": ShoppingPhase.SELECTION}),
                        phase_deadline=now + settings.selection_seconds,
                    )
                if state.phase == ShoppingPhase.SELECTION:
                    return self._finish(state)
                return RuleOutcome.unchanged(state)
        raise InvalidActionError(f"unsupported action {action.type}")

    @staticmethod
    def _require_selection(state: ShoppingState) -> None:
        if state.phase != ShoppingPhase.SELECTION:
            raise InvalidPhaseError(f"items can only be picked during selection, not {state.phase}")

    @staticmethod
    def _toggle(state: ShoppingState, item_id: str, actor: str | None) -> ShoppingState:
        for i, item in enumerate(state.items):
            if item.item_id == item_id:
                break
        else:
            raise InvalidActionError(f"unknown item {item_id!r}")
        if item.is_selected:
            updated = item.model_copy(update={"is_selected": False, "selected_by": None})
        else:
            updated = item.model_copy(update={"is_selected": True, "selected_by": actor})
        items = state.items[:i] + (updated,) + state.items[i + 1 :]
        return state.model_copy(update={"items": items})

    @staticmethod
    def _finish(state: ShoppingState) -> RuleOutcome:
        result = score_selection(state)
        new_state = state.model_copy(update={"phase": ShoppingPhase.RESULTS, "result": result})
        deltas = {player: count for player, count in result.correct_by_player.items() if count > 0}
        return RuleOutcome(state=new_state, score_deltas=deltas, completed=True)

    def is_complete(self, state: ShoppingState) -> bool:
        return state.phase == ShoppingPhase.RESULTS

    def sub_phase(self, state: ShoppingState) -> str | None:
        return state.phase.value

    def timed_transition(self, state: ShoppingState) -> AdvanceShoppingPhaseAction | None:
        if state.phase == ShoppingPhase.RESULTS:
            return None
        return AdvanceShoppingPhaseAction(expected_phase=state.phase)
