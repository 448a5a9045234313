from __future__ import annotations

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from sorry_server.api.models import GameSession, TurnState
from sorry_server.errors import WrongState


def _state(turn_state: TurnState, **kwargs: bool) -> State:
    return State(turn_state.value, value=turn_state.value, **kwargs)


class TurnFSM(StateMachine):
    """Turn sub-state machine wrapped around a GameSession.

    Handlers do the rule work; the FSM only guards which sub-state may follow which.
    One instance is built per action from `session.turn_state`, then synced back.
    """

    lobby = _state(TurnState.lobby, initial=True)
    awaiting_draw = _state(TurnState.awaiting_draw)
    select_pawn = _state(TurnState.select_pawn)
    select_move = _state(TurnState.select_move)
    select_sorry_pawn = _state(TurnState.select_sorry_pawn)
    select_sorry_target = _state(TurnState.select_sorry_target)
    select_11_pawn = _state(TurnState.select_11_pawn)
    select_11_action = _state(TurnState.select_11_action)
    select_11_swap_target = _state(TurnState.select_11_swap_target)
    select_7_pawn1 = _state(TurnState.select_7_pawn1)
    select_7_move1 = _state(TurnState.select_7_move1)
    select_7_pawn2 = _state(TurnState.select_7_pawn2)
    select_7_move2 = _state(TurnState.select_7_move2)
    turn_resolved = _state(TurnState.turn_resolved)
    game_over = _state(TurnState.game_over, final=True)

    begin = lobby.to(awaiting_draw)

    # drawCard
    offer_moves = awaiting_draw.to(select_pawn)
    offer_sorry = awaiting_draw.to(select_sorry_pawn)
    offer_eleven = awaiting_draw.to(select_11_pawn)
    offer_seven = awaiting_draw.to(select_7_pawn1)

    # selectPawn
    pawn_chosen = (
        select_pawn.to(select_move)
        | select_sorry_pawn.to(select_sorry_target)
        | select_7_pawn1.to(select_7_move1)
        | select_7_pawn2.to(select_7_move2)
    )
    eleven_move_only = select_11_pawn.to(select_move)
    eleven_move_or_swap = select_11_pawn.to(select_11_action)
    eleven_swap_only = select_11_pawn.to(select_11_swap_target)

    # selectMove on the first half of a split 7
    split_continues = select_7_move1.to(select_7_pawn2)

    resolve = (
        awaiting_draw.to(turn_resolved)
        | select_pawn.to(turn_resolved)
        | select_move.to(turn_resolved)
        | select_sorry_pawn.to(turn_resolved)
        | select_sorry_target.to(turn_resolved)
        | select_11_pawn.to(turn_resolved)
        | select_11_action.to(turn_resolved)
        | select_11_swap_target.to(turn_resolved)
        | select_7_pawn1.to(turn_resolved)
        | select_7_move1.to(turn_resolved)
        | select_7_pawn2.to(turn_resolved)
        | select_7_move2.to(turn_resolved)
    )
    next_turn = turn_resolved.to(awaiting_draw)
    win = turn_resolved.to(game_over)

    def __init__(self, session: GameSession):
        self.session = session
        super().__init__(start_value=session.turn_state.value)

    @property
    def turn_state(self) -> TurnState:
        return TurnState(str(self.current_state.value))

    def apply_event(self, event: str) -> None:
        """Send `event`, turning an illegal transition into a WrongState error."""

        try:
            self.send(event)
        except TransitionNotAllowed as e:
            raise WrongState(f"Cannot {event.replace('_', ' ')} while in state '{self.turn_state.value}'") from e
        self.sync_state_to_model()

    def sync_state_to_model(self) -> None:
        self.session.turn_state = self.turn_state
