"""
Shared game-state models stored in a room's shared_state field.

All models are frozen. Rules never mutate an incoming state; they return a
new instance built with model_copy(update=...).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from multiplayer.logic.enums import HintType, ShoppingPhase, TriviaStatus


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


# --- Matching pairs ---


class Card(FrozenModel):
    symbol: str
    face_up: bool = False
    matched: bool = False


class MatchingState(FrozenModel):
    cards: tuple[Card, ...]
    grid_size: int
    matches_found: int = 0
    moves: int = 0
    # positions of a face-up mismatched pair waiting to be flipped back
    pending_mismatch: tuple[int, int] | None = None

    @property
    def total_pairs(self) -> int:
        return len(self.cards) // 2

    def face_up_unmatched(self) -> list[int]:
        return [i for i, card in enumerate(self.cards) if card.face_up and not card.matched]

    def unmatched_face_down(self) -> list[int]:
        return [i for i, card in enumerate(self.cards) if not card.face_up and not card.matched]


# --- Shopping list ---


class ShoppingItem(FrozenModel):
    item_id: str
    name: str
    emoji: str
    category: str
    is_target: bool = False
    is_selected: bool = False
    selected_by: str | None = None


class ShoppingResult(FrozenModel):
    """Scoring of a finished selection.

    accuracy is correct / total targets * 100, rounded half-up to one decimal.
    """

    correct: int
    incorrect: int
    missed: int
    total: int
    accuracy: float
    score: int
    correct_by_player: dict[str, int] = Field(default_factory=dict)


class ShoppingState(FrozenModel):
    target_item_ids: tuple[str, ...]
    items: tuple[ShoppingItem, ...]
    phase: ShoppingPhase = ShoppingPhase.MEMORIZE
    result: ShoppingResult | None = None

    @property
    def target_items(self) -> tuple[ShoppingItem, ...]:
        targets = set(self.target_item_ids)
        return tuple(item for item in self.items if item.item_id in targets)

    @property
    def selected_ids(self) -> frozenset[str]:
        return frozenset(item.item_id for item in self.items if item.is_selected)


# --- Trivia ---


class Puzzle(FrozenModel):
    puzzle_id: str
    category: str
    image_asset: str
    hint: str
    hint_type: HintType
    options: tuple[str, ...]
    answer: str
    audio_asset: str | None = None


class TriviaState(FrozenModel):
    puzzles: tuple[Puzzle, ...]
    current_question_index: int = 0
    status: TriviaStatus = TriviaStatus.DISCUSSING
    hint_played: bool = False
    selected_answer: str | None = None
    selected_by: str | None = None
    last_answer_correct: bool | None = None
    team_score: int = 0

    @property
    def current_puzzle(self) -> Puzzle | None:
        if self.current_question_index < len(self.puzzles):
            return self.puzzles[self.current_question_index]
        return None

    @property
    def has_more_puzzles(self) -> bool:
        return self.current_question_index < len(self.puzzles) - 1
