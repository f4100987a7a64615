"""
Room lifecycle, seating and turn ownership.

Each method validates a requested transition against a parsed Room and
returns the partial update to write (None when the request is an accepted
no-op). Nothing here performs I/O; the controller owns the store round-trip.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from multiplayer.logic.enums import ROOM_STATUS_ORDER, RoomStatus
from multiplayer.logic.exceptions import (
    InvalidPhaseError,
    NotHostError,
    NotInRoomError,
    NotYourTurnError,
    ProtocolError,
    RoomFullError,
    RoomNotJoinableError,
)
from multiplayer.session.models import Room
from multiplayer.session.store import Increment

if TYPE_CHECKING:
    import random

    from pydantic import BaseModel

    from multiplayer.logic.actions import BaseAction
    from multiplayer.logic.rules import GameRules, RuleOutcome

Changes = dict[str, Any]


def check_transition(previous: RoomStatus | None, current: RoomStatus) -> None:
    """Raise ProtocolError when an observed status moves backwards or sideways."""
    if previous is None or previous == current:
        return
    if ROOM_STATUS_ORDER[current] <= ROOM_STATUS_ORDER[previous]:
        raise ProtocolError(f"room status went from {previous} to {current}")


class SessionStateMachine:
    def __init__(self, rules: GameRules) -> None:
        self.rules = rules

    def new_room(self, code: str, host_id: str, settings: BaseModel, now: float) -> Room:
        return Room(
            code=code,
            game=self.rules.kind,
            host_id=host_id,
            scores={host_id: 0},
            settings=settings.model_dump(mode="json"),
            created_at=now,
            last_activity_at=now,
        )

    def join(self, room: Room, guest_id: str, now: float) -> Changes | None:
        if room.guest_id is not None and room.guest_id != guest_id:
            raise RoomFullError(f"room {room.code} already has a guest")
        if room.guest_id == guest_id:
            return None
        if guest_id == room.host_id:
            raise RoomNotJoinableError("the host cannot join their own room as guest")
        if room.status != RoomStatus.WAITING:
            raise RoomNotJoinableError(f"room {room.code} is {room.status}")
        return {"guest_id": guest_id, f"scores.{guest_id}": 0, "last_activity_at": now}

    def start(self, room: Room, actor: str, rng: random.Random, now: float) -> Changes:
        if actor != room.host_id:
            raise NotHostError("only the host can start the game")
        if room.status != RoomStatus.WAITING:
            raise InvalidPhaseError(f"cannot start a room that is {room.status}")
        if room.guest_id is None:
            raise InvalidPhaseError("waiting for a second player")
        settings = self.rules.parse_settings(room.settings)
        outcome = self.rules.initial_state(settings, (room.host_id, room.guest_id), rng, now)
        return {
            "status": RoomStatus.PLAYING.value,
            "current_turn": room.host_id if self.rules.turn_based else None,
            "shared_state": outcome.state.model_dump(mode="json"),
            "phase_deadline": outcome.phase_deadline,
            "started_at": now,
            "last_activity_at": now,
        }

    def authorize(self, room: Room, actor: str | None, action: BaseAction) -> None:
        if room.status != RoomStatus.PLAYING:
            raise InvalidPhaseError(f"room is {room.status}, not playing")
        if action.is_system:
            return
        if actor is None or room.seat_of(actor) is None:
            raise NotInRoomError(f"{actor} has no seat in room {room.code}")
        if self.rules.turn_based and room.current_turn != actor:
            raise NotYourTurnError(f"it is {room.current_turn}'s turn")

    def apply_action(self, room: Room, actor: str | None, action: BaseAction, now: float) -> Changes | None:
        """Authorize and evaluate an action; rejected actions raise before any change is built."""
        self.authorize(room, actor, action)
        state = self.rules.parse_state(room.shared_state)
        settings = self.rules.parse_settings(room.settings)
        outcome = self.rules.apply_action(state, None if action.is_system else actor, action, settings, now)
        if not outcome.changed:
            return None
        return self.apply_outcome(room, outcome, now)

    def apply_outcome(self, room: Room, outcome: RuleOutcome, now: float) -> Changes:
        changes: Changes = {
            "shared_state": outcome.state.model_dump(mode="json"),
            "last_activity_at": now,
        }
        for player, delta in outcome.score_deltas.items():
            if delta < 0:
                raise ValueError(f"score delta for {player} must not be negative, got {delta}")
            if delta:
                changes[f"scores.{player}"] = Increment(delta)

        if self.rules.timed_transition(outcome.state) is None:
            changes["phase_deadline"] = None
        elif outcome.phase_deadline is not None:
            changes["phase_deadline"] = outcome.phase_deadline

        if outcome.pass_turn and self.rules.turn_based and not room.solo and room.current_turn is not None:
            changes["current_turn"] = room.opponent_of(room.current_turn)

        if outcome.completed or self.rules.is_complete(outcome.state):
            changes["status"] = RoomStatus.FINISHED.value
            changes["finished_at"] = now
            changes["phase_deadline"] = None
        return changes

    def abandon(self, room: Room, actor: str, now: float) -> Changes | None:
        if room.seat_of(actor) is None:
            raise NotInRoomError(f"{actor} has no seat in room {room.code}")
        if room.status.is_terminal:
            return None
        return {
            "status": RoomStatus.ABANDONED.value,
            "abandoned_by": actor,
            "phase_deadline": None,
            "last_activity_at": now,
        }

    def timed_action(self, room: Room) -> BaseAction | None:
        """System action due at room.phase_deadline, if any."""
        if room.status != RoomStatus.PLAYING or room.phase_deadline is None:
            return None
        return self.rules.timed_transition(self.rules.parse_state(room.shared_state))

    def sub_phase(self, room: Room) -> str | None:
        if not room.shared_state:
            return None
        return self.rules.sub_phase(self.rules.parse_state(room.shared_state))
