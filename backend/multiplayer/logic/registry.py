"""Lookup of the rules implementation for each game kind."""

from multiplayer.logic.enums import GameKind
from multiplayer.logic.matching import MatchingPairsRules
from multiplayer.logic.rules import GameRules
from multiplayer.logic.shopping import ShoppingListRules
from multiplayer.logic.trivia import TriviaRules

_RULES: dict[GameKind, GameRules] = {
    GameKind.MATCHING_PAIRS: MatchingPairsRules(),
    GameKind.SHOPPING_LIST: ShoppingListRules(),
    GameKind.TRIVIA: TriviaRules(),
}


def get_rules(kind: GameKind | str) -> GameRules:
    return _RULES[GameKind(kind)]


def determine_winners(scores: dict[str, int]) -> tuple[str, ...]:
    """Players with the highest score; more than one means a tie."""
    if not scores:
        return ()
    best = max(scores.values())
    return tuple(sorted(player for player, score in scores.items() if score == best))
