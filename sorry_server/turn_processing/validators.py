from __future__ import annotations

from dataclasses import dataclass
from abc import ABC, abstractmethod

from sorry_server.api.models import GameSession, TurnState
from sorry_server.errors import GameNotStarted, GameOver, WrongState


@dataclass(frozen=True, slots=True)
class ValidationContext:
    """The acting seat and action name for one validation run."""

    room_id: str
    player_index: int
    action: str


class TurnValidator(ABC):
    """A small, composable validation unit for an incoming action."""

    @abstractmethod
    def validate(self, *, ctx: ValidationContext, session: GameSession) -> None:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class StartedGameValidator(TurnValidator):
    def validate(self, *, ctx: ValidationContext, session: GameSession) -> None:
        if not session.game_started:
            raise GameNotStarted("Game has not started")


@dataclass(frozen=True, slots=True)
class CompletedGameValidator(TurnValidator):
    """Deny every game action once somebody has won."""

    def validate(self, *, ctx: ValidationContext, session: GameSession) -> None:
        if session.game_over:
            raise GameOver("Game is over")


@dataclass(frozen=True, slots=True)
class CurrentPlayerValidator(TurnValidator):
    """Only the current player may act."""

    def validate(self, *, ctx: ValidationContext, session: GameSession) -> None:
        from sorry_server.turn_processing.turns import assert_is_players_turn

        assert_is_players_turn(session=session, player_index=ctx.player_index)


@dataclass(frozen=True, slots=True)
class TurnStateValidator(TurnValidator):
    """Validates the current turn sub-state for a given action."""

    allowed_states: frozenset[TurnState]

    def validate(self, *, ctx: ValidationContext, session: GameSession) -> None:
        if session.turn_state not in self.allowed_states:
            allowed = ",".join(sorted(s.value for s in self.allowed_states))
            raise WrongState(
                f"Action '{ctx.action}' not allowed in state '{session.turn_state.value}' (allowed: {allowed})"
            )


@dataclass(frozen=True, slots=True)
class NoHeldCardValidator(TurnValidator):
    def validate(self, *, ctx: ValidationContext, session: GameSession) -> None:
        if session.current_card is not None:
            raise WrongState("A card has already been drawn this turn")


@dataclass(frozen=True, slots=True)
class ValidatorPipeline:
    validators: tuple[TurnValidator, ...]

    def validate(self, *, ctx: ValidationContext, session: GameSession) -> None:
        for v in self.validators:
            v.validate(ctx=ctx, session=session)


def _turn_pipeline(*allowed: TurnState, extra: tuple[TurnValidator, ...] = ()) -> ValidatorPipeline:
    return ValidatorPipeline(
        validators=(
            StartedGameValidator(),
            CompletedGameValidator(),
            CurrentPlayerValidator(),
            TurnStateValidator(allowed_states=frozenset(allowed)),
            *extra,
        )
    )


SELECT_PAWN_STATES = (
    TurnState.select_pawn,
    TurnState.select_sorry_pawn,
    TurnState.select_11_pawn,
    TurnState.select_7_pawn1,
    TurnState.select_7_pawn2,
)

SELECT_MOVE_STATES = (
    TurnState.select_move,
    TurnState.select_11_action,
    TurnState.select_7_move1,
    TurnState.select_7_move2,
)


DEFAULT_ACTION_PIPELINES: dict[str, ValidatorPipeline] = {
    "drawCard": _turn_pipeline(TurnState.awaiting_draw, extra=(NoHeldCardValidator(),)),
    "selectPawn": _turn_pipeline(*SELECT_PAWN_STATES),
    "selectMove": _turn_pipeline(*SELECT_MOVE_STATES),
    "executeSorry": _turn_pipeline(TurnState.select_sorry_target),
    "executeSwap": _turn_pipeline(TurnState.select_11_action, TurnState.select_11_swap_target),
}


def pipeline_for_action(action: str) -> ValidatorPipeline:
    pipe = DEFAULT_ACTION_PIPELINES.get(action)
    if pipe is None:
        raise ValueError(f"Unknown action: {action}")
    return pipe
