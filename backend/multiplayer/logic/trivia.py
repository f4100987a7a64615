"""
Cooperative movie-trivia rules.

Per question: discussing -> answering -> revealed. Either player may play the
hint or move the pair to answering. The first answer submitted is the
team's answer; a later answer for the same question is ignored.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from multiplayer.logic.actions import (
    AdvanceQuestionAction,
    PlayHintAction,
    ReadyToAnswerAction,
    SelectAnswerAction,
)
from multiplayer.logic.enums import CodeFormat, GameKind, TriviaStatus
from multiplayer.logic.exceptions import InvalidActionError, InvalidPhaseError
from multiplayer.logic.rules import GameRules, RuleOutcome
from multiplayer.logic.settings import TriviaSettings
from multiplayer.logic.state import TriviaState

if TYPE_CHECKING:
    import random

    from multiplayer.logic.actions import BaseAction


class TriviaRules(GameRules):
    kind: ClassVar[GameKind] = GameKind.TRIVIA
    code_format: ClassVar[CodeFormat] = CodeFormat.NUMERIC
    turn_based: ClassVar[bool] = False
    settings_model = TriviaSettings
    state_model = TriviaState
    accepted_actions = (PlayHintAction, ReadyToAnswerAction, SelectAnswerAction, AdvanceQuestionAction)

    def initial_state(
        self,
        settings: TriviaSettings,
        players: tuple[str, str],  # noqa: ARG002
        rng: random.Random,  # noqa: ARG002
        now: float,  # noqa: ARG002
    ) -> RuleOutcome:
        return RuleOutcome(state=TriviaState(puzzles=settings.puzzles))

    def _apply(
        self,
        state: TriviaState,
        actor: str | None,
        action: BaseAction,
        settings: TriviaSettings,
        now: float,
    ) -> RuleOutcome:
        match action:
            case PlayHintAction():
                if state.status == TriviaStatus.REVEALED:
                    raise InvalidPhaseError("the answer is already revealed")
                if state.hint_played:
                    return RuleOutcome.unchanged(state)
                return RuleOutcome(state=state.model_copy(update={"hint_played": True}))
            case ReadyToAnswerAction():
                if state.status == TriviaStatus.REVEALED:
                    raise InvalidPhaseError("the answer is already revealed")
                if state.status == TriviaStatus.ANSWERING:
                    return RuleOutcome.unchanged(state)
                return RuleOutcome(state=state.model_copy(update={"status": TriviaStatus.ANSWERING}))
            case SelectAnswerAction(option=option, expected_index=expected):
                assert actor is not None
                if expected != state.current_question_index:
                    return RuleOutcome.unchanged(state)
                return self._select_answer(state, actor, option, settings, now)
            case AdvanceQuestionAction(expected_index=expected):
                return self._advance(state, expected)
        raise InvalidActionError(f"unsupported action {action.type}")

    @staticmethod
    def _select_answer(
        state: TriviaState,
        actor: str,
        option: str,
        settings: TriviaSettings,
        now: float,
    ) -> RuleOutcome:
        if state.status == TriviaStatus.DISCUSSING:
            raise InvalidPhaseError("press ready before answering")
        if state.status == TriviaStatus.REVEALED:
            # first answer wins
            return RuleOutcome.unchanged(state)
        puzzle = state.current_puzzle
        if puzzle is None or option not in puzzle.options:
            raise InvalidActionError(f"{option!r} is not one of the offered answers")

        correct = option == puzzle.answer
        new_state = state.model_copy(
            update={
                "status": TriviaStatus.REVEALED,
                "selected_answer": option,
                "selected_by": actor,
                "last_answer_correct": correct,
                "team_score": state.team_score + (1 if correct else 0),
            }
        )
        return RuleOutcome(
            state=new_state,
            score_deltas={actor: 1} if correct else {},
            phase_deadline=now + settings.reveal_delay_seconds,
        )

    def _advance(self, state: TriviaState, expected_index: int) -> RuleOutcome:
        if state.status != TriviaStatus.REVEALED or state.current_question_index != expected_index:
            return RuleOutcome.unchanged(state)
        new_state = state.model_copy(
            update={
                "current_question_index": state.current_question_index + 1,
                "status": TriviaStatus.DISCUSSING,
                "hint_played": False,
                "selected_answer": None,
                "selected_by": None,
                "last_answer_correct": None,
            }
        )
        if new_state.current_puzzle is None:
            # keep the last reveal on screen once the set is exhausted
            new_state = state.model_copy(update={"current_question_index": state.current_question_index + 1})
        return RuleOutcome(state=new_state, completed=self.is_complete(new_state))

    def is_complete(self, state: TriviaState) -> bool:
        return state.current_question_index >= len(state.puzzles)

    def sub_phase(self, state: TriviaState) -> str | None:
        return state.status.value

    def timed_transition(self, state: TriviaState) -> AdvanceQuestionAction | None:
        if state.status != TriviaStatus.REVEALED or self.is_complete(state):
            return None
        return AdvanceQuestionAction(expected_index=state.current_question_index)
