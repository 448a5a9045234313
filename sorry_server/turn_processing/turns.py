from __future__ import annotations

import logging

from sorry_server.api.models import GameSession, SlotStatus, SplitData, TurnState
from sorry_server.board import BOARD, PLAYER_COUNT
from sorry_server.core.events import ServerEvent, game_over_event, your_turn_event
from sorry_server.errors import NotYourTurn
from sorry_server.fsm import TurnFSM
from sorry_server.session import player_name

logger = logging.getLogger(__name__)


def assert_is_players_turn(*, session: GameSession, player_index: int) -> None:
    expected = session.current_player_index
    if player_index != expected:
        raise NotYourTurn(f"Not your turn (current player is {expected})")


def next_player_index(*, session: GameSession, after: int) -> int:
    """First seat after `after`, in seat order, that has not disconnected.

    Falls back to `after` itself when every other seat is disconnected.
    """

    for offset in range(1, PLAYER_COUNT + 1):
        idx = (after + offset) % PLAYER_COUNT
        if session.slots[idx].status != SlotStatus.disconnected:
            return idx
    return after


def clear_selection(session: GameSession) -> None:
    session.selected_pawn = None
    session.selectable_pawn_ids = []
    session.valid_moves = []
    session.targetable_opponents = []
    session.split_mandatory = False
    session.split_data = SplitData()


def _discard_held_card(session: GameSession) -> None:
    if session.current_card is not None:
        session.deck.discard(session.current_card)
        session.current_card = None


def turn_prompt(session: GameSession) -> str:
    return f"{BOARD.color(session.current_player_index).value}'s turn. Draw a card."


def begin_game(*, session: GameSession) -> list[ServerEvent]:
    fsm = TurnFSM(session)
    fsm.apply_event("begin")
    session.game_started = True
    first = 0
    if session.slots[first].status == SlotStatus.disconnected:
        first = next_player_index(session=session, after=first)
    session.current_player_index = first
    session.message = turn_prompt(session)
    return [your_turn_event(first)]


def end_turn(*, session: GameSession, fsm: TurnFSM) -> list[ServerEvent]:
    """Discard the held card, rotate to the next seat and reopen the draw."""

    _discard_held_card(session)
    clear_selection(session)
    if fsm.turn_state != TurnState.turn_resolved:
        fsm.apply_event("resolve")

    previous = session.current_player_index
    session.current_player_index = next_player_index(session=session, after=previous)
    fsm.apply_event("next_turn")
    session.message = turn_prompt(session)

    logger.debug("[turn] room=%s %s -> %s", session.room_id, previous, session.current_player_index)
    return [your_turn_event(session.current_player_index)]


def declare_winner(*, session: GameSession, fsm: TurnFSM, player_index: int) -> list[ServerEvent]:
    _discard_held_card(session)
    clear_selection(session)
    if fsm.turn_state != TurnState.turn_resolved:
        fsm.apply_event("resolve")
    fsm.apply_event("win")

    session.game_over = True
    session.winner_index = player_index
    name = player_name(session, player_index)
    session.message = f"{name} ({BOARD.color(player_index).value}) wins!"

    logger.info("[gameOver] room=%s winner=%s", session.room_id, player_index)
    return [game_over_event(winner_index=player_index, winner_name=name)]


def force_end_turn(*, session: GameSession) -> list[ServerEvent]:
    """End the current turn without further input, e.g. when the current player leaves."""

    if not session.game_started or session.game_over:
        return []
    return end_turn(session=session, fsm=TurnFSM(session))
