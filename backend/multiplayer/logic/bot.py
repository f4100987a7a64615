"""
Matching-pairs opponent for single-player games.

The bot remembers every symbol it has seen face up. When it knows where both
cards of a pair are it uses that knowledge with probability recall_chance;
otherwise it flips a random face-down card. The policy only picks indices;
timing and submission belong to the session layer.
"""

from __future__ import annotations

import random

from multiplayer.logic.state import MatchingState

DEFAULT_RECALL_CHANCE = 0.6


class MatchingBot:
    def __init__(
        self,
        rng: random.Random | None = None,
        recall_chance: float = DEFAULT_RECALL_CHANCE,
    ) -> None:
        if not 0.0 <= recall_chance <= 1.0:
            raise ValueError(f"recall_chance must be within [0, 1], got {recall_chance}")
        self._rng = rng or random.Random()
        self.recall_chance = recall_chance
        self.memory: dict[int, str] = {}

    def observe(self, state: MatchingState) -> None:
        """Record face-up symbols and forget positions that are already matched."""
        for i, card in enumerate(state.cards):
            if card.matched:
                self.memory.pop(i, None)
            elif card.face_up:
                self.memory[i] = card.symbol

    def reset(self) -> None:
        self.memory.clear()

    def choose_first(self, state: MatchingState) -> int:
        candidates = state.unmatched_face_down()
        if not candidates:
            raise ValueError("no face-down card left to flip")
        known = self._known_pair(candidates)
        if known is not None and self._recalls():
            return known[0]
        return self._rng.choice(candidates)

    def choose_second(self, state: MatchingState, first: int) -> int:
        candidates = [i for i in state.unmatched_face_down() if i != first]
        if not candidates:
            raise ValueError("no face-down card left to flip")
        symbol = state.cards[first].symbol
        partners = [i for i in candidates if self.memory.get(i) == symbol]
        if partners and self._recalls():
            return partners[0]
        return self._rng.choice(candidates)

    def _known_pair(self, candidates: list[int]) -> tuple[int, int] | None:
        seen: dict[str, int] = {}
        for i in candidates:
            symbol = self.memory.get(i)
            if symbol is None:
                continue
            if symbol in seen:
                return seen[symbol], i
            seen[symbol] = i
        return None

    def _recalls(self) -> bool:
        return self._rng.random() < self.recall_chance
