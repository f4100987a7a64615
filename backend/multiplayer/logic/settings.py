"""Per-game settings, validated at room creation and stored in the room document."""

from __future__ import annotations

from collections import Counter

from pydantic import BaseModel, ConfigDict, Field, model_validator

from multiplayer.logic.catalog import GROCERY_ITEMS, SAMPLE_PUZZLES
from multiplayer.logic.enums import Difficulty
from multiplayer.logic.state import Puzzle

MIN_TARGET_ITEMS = 4
MAX_TARGET_ITEMS = 12


class MatchingSettings(BaseModel):
    """
    Matching-pairs configuration.

    When deck is provided it fixes the card layout (position -> symbol) and
    overrides difficulty; every symbol must appear exactly twice.
    """

    model_config = ConfigDict(frozen=True)

    difficulty: Difficulty = Difficulty.EASY
    deck: tuple[str, ...] | None = None
    mismatch_delay_seconds: float = Field(default=1.0, ge=0, le=5)

    @model_validator(mode="after")
    def _validate_deck(self) -> MatchingSettings:
        if self.deck is None:
            return self
        if not self.deck:
            raise ValueError("deck must not be empty")
        odd = sorted(symbol for symbol, count in Counter(self.deck).items() if count != 2)
        if odd:
            raise ValueError(f"every deck symbol must appear exactly twice: {odd}")
        return self


def _default_puzzles() -> tuple[Puzzle, ...]:
    return tuple(
        Puzzle(
            puzzle_id=puzzle_id,
            category=category,
            image_asset=image_asset,
            hint=hint,
            hint_type=hint_type,
            options=options,
            answer=answer,
            audio_asset=audio_asset,
        )
        for puzzle_id, category, image_asset, hint, hint_type, options, answer, audio_asset in SAMPLE_PUZZLES
    )


class ShoppingSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    target_item_count: int = Field(default=8, ge=MIN_TARGET_ITEMS, le=MAX_TARGET_ITEMS)
    total_item_count: int = Field(default=20, le=len(GROCERY_ITEMS))
    memorize_seconds: int = Field(default=30, ge=15, le=60)
    selection_seconds: int = Field(default=60, ge=30, le=120)

    @model_validator(mode="after")
    def _validate_counts(self) -> ShoppingSettings:
        if self.total_item_count < self.target_item_count:
            raise ValueError(
                f"total_item_count ({self.total_item_count}) must be >= "
                f"target_item_count ({self.target_item_count})"
            )
        return self


class TriviaSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    puzzles: tuple[Puzzle, ...] = Field(default_factory=_default_puzzles, min_length=1)
    reveal_delay_seconds: float = Field(default=3.0, ge=0, le=30)

    @model_validator(mode="after")
    def _validate_answers(self) -> TriviaSettings:
        for puzzle in self.puzzles:
            if puzzle.answer not in puzzle.options:
                raise ValueError(f"puzzle {puzzle.puzzle_id}: answer is not among its options")
        return self
