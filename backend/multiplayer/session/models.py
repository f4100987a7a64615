"""The room document shared by both seats."""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from multiplayer.logic.enums import GameKind, RoomStatus, Seat


class Room(BaseModel):
    """
    Typed view of a stored room document.

    The store holds plain dicts; a Room is parsed from every snapshot and
    never written back wholesale, only through partial updates.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    # distinguishes rooms that reuse the code of a finished one
    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    game: GameKind
    host_id: str
    guest_id: str | None = None
    status: RoomStatus = RoomStatus.WAITING
    current_turn: str | None = None
    shared_state: dict[str, Any] = Field(default_factory=dict)
    scores: dict[str, int] = Field(default_factory=dict)
    settings: dict[str, Any] = Field(default_factory=dict)
    created_at: float
    last_activity_at: float
    started_at: float | None = None
    finished_at: float | None = None
    phase_deadline: float | None = None
    abandoned_by: str | None = None
    # practice room: the guest seat is synthetic and the turn never leaves the host
    solo: bool = False
    # owned by the store, incremented on every write
    revision: int = 0

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> Room:
        return cls.model_validate(doc)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @property
    def players(self) -> tuple[str, ...]:
        return (self.host_id,) if self.guest_id is None else (self.host_id, self.guest_id)

    def seat_of(self, player_id: str) -> Seat | None:
        if player_id == self.host_id:
            return Seat.HOST
        if self.guest_id is not None and player_id == self.guest_id:
            return Seat.GUEST
        return None

    def opponent_of(self, player_id: str) -> str | None:
        if player_id == self.host_id:
            return self.guest_id
        if player_id == self.guest_id:
            return self.host_id
        return None
