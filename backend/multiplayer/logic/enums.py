"""
String enum definitions for rooms, games and their sub-phases.
"""

from enum import StrEnum


class GameKind(StrEnum):
    """Games that can be played in a two-seat room."""

    MATCHING_PAIRS = "matching_pairs"
    SHOPPING_LIST = "shopping_list"
    TRIVIA = "trivia"


class RoomStatus(StrEnum):
    """Lifecycle of a room document.

    Only forward transitions are legal: waiting -> playing -> finished.
    ABANDONED is terminal and reachable from waiting or playing.
    """

    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"
    ABANDONED = "abandoned"

    @property
    def is_active(self) -> bool:
        return self in (RoomStatus.WAITING, RoomStatus.PLAYING)

    @property
    def is_terminal(self) -> bool:
        return not self.is_active


# forward order used to detect regressions in observed snapshots
ROOM_STATUS_ORDER: dict[RoomStatus, int] = {
    RoomStatus.WAITING: 0,
    RoomStatus.PLAYING: 1,
    RoomStatus.FINISHED: 2,
    RoomStatus.ABANDONED: 2,
}


class Seat(StrEnum):
    """The two seats of a room."""

    HOST = "host"
    GUEST = "guest"


class CodeFormat(StrEnum):
    """Join code alphabets."""

    NUMERIC = "numeric"
    ALPHANUMERIC = "alphanumeric"


class Difficulty(StrEnum):
    """Matching-pairs grid presets."""

    EASY = "easy"  # 2x2, 2 pairs
    MEDIUM = "medium"  # 4x4, 8 pairs
    HARD = "hard"  # 6x6, 18 pairs


class ShoppingPhase(StrEnum):
    """Sub-phases of a shopping-list round."""

    MEMORIZE = "memorize"
    SELECTION = "selection"
    RESULTS = "results"


class TriviaStatus(StrEnum):
    """Per-question sub-phases of a trivia round."""

    DISCUSSING = "discussing"
    ANSWERING = "answering"
    REVEALED = "revealed"


class HintType(StrEnum):
    """How a trivia hint is presented."""

    LYRIC = "lyric"
    DIALOGUE = "dialogue"
    AUDIO = "audio"
    TEXT = "text"


class ActionType(StrEnum):
    """Discriminator values for player and system actions."""

    FLIP_CARD = "flip_card"
    RESOLVE_MISMATCH = "resolve_mismatch"
    TOGGLE_ITEM = "toggle_item"
    SUBMIT_SELECTION = "submit_selection"
    ADVANCE_SHOPPING_PHASE = "advance_shopping_phase"
    PLAY_HINT = "play_hint"
    READY_TO_ANSWER = "ready_to_answer"
    SELECT_ANSWER = "select_answer"
    ADVANCE_QUESTION = "advance_question"


class SessionErrorCode(StrEnum):
    """Error codes surfaced to callers and on the session view."""

    ROOM_NOT_FOUND = "room_not_found"
    ROOM_FULL = "room_full"
    ROOM_NOT_JOINABLE = "room_not_joinable"
    INVALID_PHASE = "invalid_phase"
    NOT_YOUR_TURN = "not_your_turn"
    CODE_SPACE_EXHAUSTED = "code_space_exhausted"
    STORE_UNAVAILABLE = "store_unavailable"
    INVALID_ROOM_CODE = "invalid_room_code"
    INVALID_ACTION = "invalid_action"
    NOT_HOST = "not_host"
    NOT_IN_ROOM = "not_in_room"
    PROTOCOL_ERROR = "protocol_error"
    ROOM_CLOSED = "room_closed"
