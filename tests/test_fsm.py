from __future__ import annotations

import pytest

from sorry_server.api.models import TurnState
from sorry_server.errors import WrongState
from sorry_server.fsm import TurnFSM


def test_fsm_starts_from_session_state(make_game) -> None:
    session = make_game(started=False)
    fsm = TurnFSM(session)
    assert fsm.turn_state == TurnState.lobby

    session.turn_state = TurnState.select_7_pawn2
    assert TurnFSM(session).turn_state == TurnState.select_7_pawn2


def test_fsm_event_updates_session(make_game) -> None:
    session = make_game()
    fsm = TurnFSM(session)

    fsm.apply_event("offer_eleven")
    assert session.turn_state == TurnState.select_11_pawn

    fsm.apply_event("eleven_swap_only")
    fsm.apply_event("resolve")
    fsm.apply_event("next_turn")
    assert session.turn_state == TurnState.awaiting_draw


def test_fsm_pawn_chosen_depends_on_current_state(make_game) -> None:
    session = make_game()
    session.turn_state = TurnState.select_sorry_pawn
    fsm = TurnFSM(session)

    fsm.apply_event("pawn_chosen")

    assert session.turn_state == TurnState.select_sorry_target


def test_fsm_denies_invalid_transition(make_game) -> None:
    session = make_game()
    fsm = TurnFSM(session)

    with pytest.raises(WrongState) as e:
        fsm.apply_event("split_continues")

    assert "awaiting-draw" in str(e.value)
    assert session.turn_state == TurnState.awaiting_draw


def test_fsm_game_over_is_terminal(make_game) -> None:
    session = make_game()
    fsm = TurnFSM(session)
    fsm.apply_event("resolve")
    fsm.apply_event("win")
    assert session.turn_state == TurnState.game_over

    with pytest.raises(WrongState):
        fsm.apply_event("next_turn")
