"""UI-facing view of a session, recomputed from every confirmed room snapshot."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from multiplayer.logic.enums import GameKind, RoomStatus, SessionErrorCode, Seat

if TYPE_CHECKING:
    from multiplayer.logic.exceptions import SessionError

# observed from other clients' writes; kept on the view until the next local operation
REMOTE_ERROR_CODES = frozenset({SessionErrorCode.ROOM_CLOSED, SessionErrorCode.PROTOCOL_ERROR})


class ViewError(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: SessionErrorCode
    message: str

    @classmethod
    def from_exception(cls, error: SessionError) -> ViewError:
        return cls(code=error.code, message=error.message)


class SessionView(BaseModel):
    """
    Everything a presentation layer needs to render one seat.

    shared_state is the raw game payload as stored in the room; sub_phase is
    the game's in-round state (memorize, answering, resolving_mismatch, ...).
    pending is True while one of this client's writes is in flight.
    """

    model_config = ConfigDict(frozen=True)

    player_id: str
    game: GameKind
    room_code: str | None = None
    role: Seat | None = None
    status: RoomStatus | None = None
    sub_phase: str | None = None
    is_my_turn: bool = False
    current_turn: str | None = None
    opponent_id: str | None = None
    scores: dict[str, int] = Field(default_factory=dict)
    shared_state: dict[str, Any] = Field(default_factory=dict)
    winners: tuple[str, ...] = ()
    is_tie: bool = False
    phase_deadline: float | None = None
    revision: int = 0
    pending: bool = False
    error: ViewError | None = None

    def remaining(self, now: float) -> float | None:
        """Seconds until the current phase deadline, never negative."""
        if self.phase_deadline is None:
            return None
        return max(0.0, self.phase_deadline - now)
