"""Typed domain exceptions for the multiplayer session engine.

Every error a caller can act on derives from SessionError and carries a
SessionErrorCode. The controller catches SessionError at its public
boundary, records it on the session view and re-raises it to the caller.
"""

from multiplayer.logic.enums import SessionErrorCode


class SessionError(Exception):
    """Base exception for session and game-rule violations.

    Attributes:
        code: Machine-readable error code for the presentation layer.
        message: Human-readable explanation.

    """

    code: SessionErrorCode = SessionErrorCode.INVALID_ACTION

    def __init__(self, message: str = "") -> None:
        self.message = message or self.code.value.replace("_", " ")
        super().__init__(self.message)


class RoomNotFoundError(SessionError):
    """The join code does not resolve to a room of this game."""

    code = SessionErrorCode.ROOM_NOT_FOUND


class RoomFullError(SessionError):
    """The guest seat is already taken."""

    code = SessionErrorCode.ROOM_FULL


class RoomNotJoinableError(SessionError):
    """The room is past the waiting phase, or the joiner is the host."""

    code = SessionErrorCode.ROOM_NOT_JOINABLE


class InvalidPhaseError(SessionError):
    """Action submitted outside the phase that accepts it."""

    code = SessionErrorCode.INVALID_PHASE


class NotYourTurnError(SessionError):
    """Turn-based action submitted by the player who does not hold the turn."""

    code = SessionErrorCode.NOT_YOUR_TURN


class CodeSpaceExhaustedError(SessionError):
    """No free join code was found within the bounded number of attempts."""

    code = SessionErrorCode.CODE_SPACE_EXHAUSTED


class StoreUnavailableError(SessionError):
    """The room store could not be reached. Recoverable by retrying."""

    code = SessionErrorCode.STORE_UNAVAILABLE


class InvalidRoomCodeError(SessionError):
    """Join code has the wrong length or alphabet. Raised before any store round-trip."""

    code = SessionErrorCode.INVALID_ROOM_CODE


class InvalidActionError(SessionError):
    """Action is not valid for the current game state (bad index, unknown item, ...)."""

    code = SessionErrorCode.INVALID_ACTION


class NotHostError(SessionError):
    """Host-only operation attempted by the guest."""

    code = SessionErrorCode.NOT_HOST


class NotInRoomError(SessionError):
    """Operation needs an attached room, or the actor holds no seat in it."""

    code = SessionErrorCode.NOT_IN_ROOM


class ProtocolError(SessionError):
    """An observed snapshot broke a room invariant (e.g. status regression)."""

    code = SessionErrorCode.PROTOCOL_ERROR


class RoomClosedError(SessionError):
    """The room was abandoned or deleted while this client was attached."""

    code = SessionErrorCode.ROOM_CLOSED
