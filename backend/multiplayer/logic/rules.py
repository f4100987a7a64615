"""
Game rules interface.

A GameRules implementation is a pure decision function over one game's
shared state: it never touches the room store, the clock or the network.
The session layer passes in the current time and a random generator, and
applies the returned RuleOutcome to the room document.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel

from multiplayer.logic.exceptions import InvalidActionError

if TYPE_CHECKING:
    import random

    from multiplayer.logic.actions import BaseAction
    from multiplayer.logic.enums import CodeFormat, GameKind


@dataclass(frozen=True)
class RuleOutcome:
    """Effect of an action on the shared game state.

    Attributes:
        state: New shared state (the input state when changed is False).
        score_deltas: Non-negative per-player score increments.
        pass_turn: Turn moves to the other seat (turn-based games only).
        completed: The game's completion predicate now holds.
        phase_deadline: Absolute time of a newly scheduled timed transition. None keeps
            the room deadline while a timed transition is still pending and clears
            it otherwise.
        changed: False for accepted no-ops (e.g. a second answer after reveal).

    """

    state: BaseModel
    score_deltas: dict[str, int] = field(default_factory=dict)
    pass_turn: bool = False
    completed: bool = False
    phase_deadline: float | None = None
    changed: bool = True

    @classmethod
    def unchanged(cls, state: BaseModel) -> RuleOutcome:
        return cls(state=state, changed=False)


class GameRules(ABC):
    """Pluggable per-game logic driven by the session state machine."""

    kind: ClassVar[GameKind]
    code_format: ClassVar[CodeFormat]
    turn_based: ClassVar[bool] = False
    settings_model: ClassVar[type[BaseModel]]
    state_model: ClassVar[type[BaseModel]]
    accepted_actions: ClassVar[tuple[type[BaseAction], ...]]

    def parse_settings(self, raw: BaseModel | dict[str, Any] | None) -> BaseModel:
        if isinstance(raw, self.settings_model):
            return raw
        if isinstance(raw, BaseModel):
            raw = raw.model_dump()
        return self.settings_model.model_validate(raw or {})

    def parse_state(self, raw: dict[str, Any]) -> BaseModel:
        return self.state_model.model_validate(raw)

    def apply_action(
        self,
        state: BaseModel,
        actor: str | None,
        action: BaseAction,
        settings: BaseModel,
        now: float,
    ) -> RuleOutcome:
        """
        Compute the effect of an action.

        actor is None only for system actions (deadline transitions).
        Raises SessionError subclasses for rejected actions; a rejected action
        never produces a partial state.
        """
        if not isinstance(action, self.accepted_actions):
            raise InvalidActionError(f"{action.type} is not an action of {self.kind}")
        if actor is None and not action.is_system:
            raise InvalidActionError(f"{action.type} needs an acting player")
        return self._apply(state, actor, action, settings, now)

    @abstractmethod
    def initial_state(
        self,
        settings: BaseModel,
        players: tuple[str, str],
        rng: random.Random,
        now: float,
    ) -> RuleOutcome:
        """Build the shared state seeded when the host starts the game."""

    @abstractmethod
    def _apply(
        self,
        state: BaseModel,
        actor: str | None,
        action: BaseAction,
        settings: BaseModel,
        now: float,
    ) -> RuleOutcome: ...

    @abstractmethod
    def is_complete(self, state: BaseModel) -> bool:
        """Completion predicate; once true the room moves to finished."""

    @abstractmethod
    def sub_phase(self, state: BaseModel) -> str | None:
        """In-game sub-state shown to the UI (memorize, answering, ...)."""

    @abstractmethod
    def timed_transition(self, state: BaseModel) -> BaseAction | None:
        """System action to submit once the room's phase deadline passes."""
