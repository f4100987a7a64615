"""
Player and system actions accepted by the game rules.

Actions are plain pydantic models so the presentation layer can submit
either a model instance or a dict such as {"type": "flip_card", "index": 3}.
System actions are timed transitions that any seated client may submit once
the room's phase deadline has passed; they carry a guard value so a
duplicate submission from the other seat is a no-op.
"""

from typing import Annotated, Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from multiplayer.logic.enums import ActionType, ShoppingPhase
from multiplayer.logic.exceptions import InvalidActionError


class BaseAction(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    is_system: ClassVar[bool] = False


# --- Matching pairs ---


class FlipCardAction(BaseAction):
    type: Literal[ActionType.FLIP_CARD] = ActionType.FLIP_CARD
    index: int


class ResolveMismatchAction(BaseAction):
    """Flip a mismatched pair back face down and pass the turn."""

    is_system: ClassVar[bool] = True

    type: Literal[ActionType.RESOLVE_MISMATCH] = ActionType.RESOLVE_MISMATCH
    first: int
    second: int


# --- Shopping list ---


class ToggleItemAction(BaseAction):
    type: Literal[ActionType.TOGGLE_ITEM] = ActionType.TOGGLE_ITEM
    item_id: str


class SubmitSelectionAction(BaseAction):
    type: Literal[ActionType.SUBMIT_SELECTION] = ActionType.SUBMIT_SELECTION


class AdvanceShoppingPhaseAction(BaseAction):
    """Deadline-driven memorize -> selection -> results transition."""

    is_system: ClassVar[bool] = True

    type: Literal[ActionType.ADVANCE_SHOPPING_PHASE] = ActionType.ADVANCE_SHOPPING_PHASE
    expected_phase: ShoppingPhase


# --- Trivia ---


class PlayHintAction(BaseAction):
    type: Literal[ActionType.PLAY_HINT] = ActionType.PLAY_HINT


class ReadyToAnswerAction(BaseAction):
    type: Literal[ActionType.READY_TO_ANSWER] = ActionType.READY_TO_ANSWER


class SelectAnswerAction(BaseAction):
    type: Literal[ActionType.SELECT_ANSWER] = ActionType.SELECT_ANSWER
    option: str
    # question the player was looking at when answering
    expected_index: int


class AdvanceQuestionAction(BaseAction):
    """Deadline-driven move from a revealed answer to the next question."""

    is_system: ClassVar[bool] = True

    type: Literal[ActionType.ADVANCE_QUESTION] = ActionType.ADVANCE_QUESTION
    expected_index: int


GameAction = Annotated[
    FlipCardAction
    | ResolveMismatchAction
    | ToggleItemAction
    | SubmitSelectionAction
    | AdvanceShoppingPhaseAction
    | PlayHintAction
    | ReadyToAnswerAction
    | SelectAnswerAction
    | AdvanceQuestionAction,
    Field(discriminator="type"),
]

_action_adapter: TypeAdapter[GameAction] = TypeAdapter(GameAction)


def parse_action(data: BaseAction | dict[str, Any]) -> BaseAction:
    """Validate a UI-supplied action; model instances pass through unchanged."""
    if isinstance(data, BaseAction):
        return data
    try:
        return _action_adapter.validate_python(data)
    except ValidationError as e:
        raise InvalidActionError(f"malformed action: {e.errors()[0]['msg']}") from e
