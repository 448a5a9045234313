from __future__ import annotations

import pytest

from sorry_server.api.models import TurnState
from sorry_server.errors import GameNotStarted, GameOver, NotYourTurn, WrongState
from sorry_server.turn_processing.validators import ValidationContext, pipeline_for_action


def test_state_validator_denies_wrong_sub_state(make_game) -> None:
    # Every action pipeline should deny if the current sub-state doesn't match allowed.
    session = make_game()
    ctx = ValidationContext(room_id=session.room_id, player_index=0, action="selectMove")

    with pytest.raises(ValueError) as e:
        pipeline_for_action("selectMove").validate(ctx=ctx, session=session)

    assert isinstance(e.value, WrongState)
    assert "not allowed" in str(e.value)
    assert "awaiting-draw" in str(e.value)


def test_draw_denied_once_game_is_over(make_game) -> None:
    session = make_game()
    session.game_over = True
    session.turn_state = TurnState.game_over
    ctx = ValidationContext(room_id=session.room_id, player_index=0, action="drawCard")

    with pytest.raises(GameOver) as e:
        pipeline_for_action("drawCard").validate(ctx=ctx, session=session)

    assert str(e.value) == "Game is over"


def test_draw_denied_before_start(make_game) -> None:
    session = make_game(started=False)
    ctx = ValidationContext(room_id=session.room_id, player_index=0, action="drawCard")

    with pytest.raises(GameNotStarted):
        pipeline_for_action("drawCard").validate(ctx=ctx, session=session)


def test_current_player_validator_denies_other_seats(make_game) -> None:
    session = make_game()
    ctx = ValidationContext(room_id=session.room_id, player_index=3, action="drawCard")

    with pytest.raises(NotYourTurn) as e:
        pipeline_for_action("drawCard").validate(ctx=ctx, session=session)

    assert "current player is 0" in str(e.value)


def test_draw_denied_while_holding_a_card(make_game) -> None:
    session = make_game()
    session.current_card = session.deck.draw_pile.pop()
    ctx = ValidationContext(room_id=session.room_id, player_index=0, action="drawCard")

    with pytest.raises(WrongState) as e:
        pipeline_for_action("drawCard").validate(ctx=ctx, session=session)

    assert "already been drawn" in str(e.value)


def test_swap_allowed_from_both_eleven_states(make_game) -> None:
    session = make_game()
    ctx = ValidationContext(room_id=session.room_id, player_index=0, action="executeSwap")
    pipe = pipeline_for_action("executeSwap")

    for state in (TurnState.select_11_action, TurnState.select_11_swap_target):
        session.turn_state = state
        pipe.validate(ctx=ctx, session=session)

    session.turn_state = TurnState.select_sorry_target
    with pytest.raises(WrongState):
        pipe.validate(ctx=ctx, session=session)


def test_unknown_action_pipeline_raises() -> None:
    with pytest.raises(ValueError) as e:
        pipeline_for_action("nope")
    assert "Unknown action" in str(e.value)
