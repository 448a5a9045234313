from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal, TypeVar

from pydantic import BaseModel

from sorry_server.api.models import (
    DrawCardMessage,
    ExecuteSorryMessage,
    ExecuteSwapMessage,
    GameSession,
    Pawn,
    PawnRef,
    SelectMoveMessage,
    SelectPawnMessage,
    TurnState,
)
from sorry_server.core.events import ServerEvent, message_event
from sorry_server.deck import CardRank
from sorry_server.errors import InvalidSelection
from sorry_server.fsm import TurnFSM
from sorry_server.move_engine import apply_move, apply_sorry, apply_swap, has_won, legal_moves, opponent_targets
from sorry_server.session import pawn_for_ref, pawns_of, require_pawn
from sorry_server.turn_processing.selection import offer_card
from sorry_server.turn_processing.turns import declare_winner, end_turn
from sorry_server.turn_processing.validators import ValidationContext, pipeline_for_action

logger = logging.getLogger(__name__)


ActionName = Literal["drawCard", "selectPawn", "selectMove", "executeSorry", "executeSwap"]

M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True, slots=True)
class ActionResult:
    """`session` is a new, fully-updated copy; the caller commits it in place of the old one."""

    session: GameSession
    events: list[ServerEvent]


Handler = Callable[[GameSession, TurnFSM, dict[str, Any], random.Random], list[ServerEvent]]


def _parse(model: type[M], action: str, payload: dict[str, Any]) -> M:
    return model.model_validate({**payload, "type": action})


def _held_card(session: GameSession) -> CardRank:
    if session.current_card is None:
        raise RuntimeError(f"No card held in state '{session.turn_state.value}'")
    return session.current_card


def _selected_pawn(session: GameSession) -> Pawn:
    if session.selected_pawn is None:
        raise RuntimeError(f"No pawn selected in state '{session.turn_state.value}'")
    return pawn_for_ref(session, session.selected_pawn)


def _finish(*, session: GameSession, fsm: TurnFSM) -> list[ServerEvent]:
    player = session.current_player_index
    if has_won(session, player):
        return declare_winner(session=session, fsm=fsm, player_index=player)
    return end_turn(session=session, fsm=fsm)


def _bump_messages(bumped: list[PawnRef]) -> list[ServerEvent]:
    if not bumped:
        return []
    names = ", ".join(f"P{ref.player_index}-{ref.pawn_id}" for ref in bumped)
    return [message_event(f"Bumped back to start: {names}")]


# ---- Handlers ----


def _draw_card(session: GameSession, fsm: TurnFSM, payload: dict[str, Any], rng: random.Random) -> list[ServerEvent]:
    _parse(DrawCardMessage, "drawCard", payload)

    card = session.deck.draw(rng=rng)
    if card is None:
        logger.info("[drawCard] room=%s deck exhausted", session.room_id)
        return [message_event("No cards left!"), *end_turn(session=session, fsm=fsm)]

    session.current_card = card
    logger.info("[drawCard] room=%s player=%s card=%s", session.room_id, session.current_player_index, card.value)
    return offer_card(session=session, fsm=fsm, card=card)


def _select_pawn(session: GameSession, fsm: TurnFSM, payload: dict[str, Any], rng: random.Random) -> list[ServerEvent]:
    msg = _parse(SelectPawnMessage, "selectPawn", payload)
    if msg.pawn_id not in session.selectable_pawn_ids:
        raise InvalidSelection(f"Pawn {msg.pawn_id} cannot be selected")

    player = session.current_player_index
    pawn = require_pawn(session, player_index=player, pawn_id=msg.pawn_id)
    card = _held_card(session)
    state = fsm.turn_state
    session.selected_pawn = pawn.ref

    if state == TurnState.select_pawn:
        session.valid_moves = legal_moves(session, pawn, card)
        fsm.apply_event("pawn_chosen")
        session.message = "Select a destination."

    elif state == TurnState.select_sorry_pawn:
        fsm.apply_event("pawn_chosen")
        session.message = "Sorry!: select an opponent pawn to bump."

    elif state == TurnState.select_11_pawn:
        moves = legal_moves(session, pawn, card)
        targets = opponent_targets(session, player) if pawn.on_track else []
        session.valid_moves = moves
        session.targetable_opponents = targets
        if moves and targets:
            fsm.apply_event("eleven_move_or_swap")
            session.message = "Move 11 or select an opponent pawn to swap with."
        elif moves:
            fsm.apply_event("eleven_move_only")
            session.message = "Select a destination."
        else:
            fsm.apply_event("eleven_swap_only")
            session.message = "Select an opponent pawn to swap with."

    elif state == TurnState.select_7_pawn1:
        moves = legal_moves(session, pawn, card)
        if session.split_mandatory:
            moves = [m for m in moves if m.steps is not None and m.steps < 7]
        if not moves:
            raise InvalidSelection(f"Pawn {msg.pawn_id} has no legal split move")
        session.valid_moves = moves
        fsm.apply_event("pawn_chosen")
        session.message = "Select how far to move the first pawn."

    elif state == TurnState.select_7_pawn2:
        remaining = session.split_data.remaining
        session.valid_moves = [
            m.model_copy(update={"steps": remaining}) for m in legal_moves(session, pawn, remaining)
        ]
        session.split_data.second_pawn_id = pawn.id
        fsm.apply_event("pawn_chosen")
        session.message = f"Select a destination for the remaining {remaining}."

    else:
        raise RuntimeError(f"selectPawn reached unexpected state '{state.value}'")

    return []


def _select_move(session: GameSession, fsm: TurnFSM, payload: dict[str, Any], rng: random.Random) -> list[ServerEvent]:
    msg = _parse(SelectMoveMessage, "selectMove", payload)
    move = next(
        (
            m
            for m in session.valid_moves
            if m.matches(position_type=msg.position_type, position_index=msg.position_index, steps=msg.steps)
        ),
        None,
    )
    if move is None:
        raise InvalidSelection("Invalid move destination")

    pawn = _selected_pawn(session)
    state = fsm.turn_state
    bumped = apply_move(session, pawn, move)
    events = _bump_messages(bumped)
    logger.info(
        "[selectMove] room=%s pawn=%s -> %s:%s steps=%s",
        session.room_id,
        pawn.ref,
        move.target_type.value,
        move.target_index,
        move.steps,
    )

    player = session.current_player_index
    if has_won(session, player):
        return [*events, *declare_winner(session=session, fsm=fsm, player_index=player)]

    if state == TurnState.select_7_move1 and move.steps is not None and move.steps < 7:
        remaining = 7 - move.steps
        session.split_data.first_pawn_id = pawn.id
        session.split_data.first_steps = move.steps
        others = [
            p.id for p in pawns_of(session, player) if p.id != pawn.id and legal_moves(session, p, remaining)
        ]
        if others:
            session.selected_pawn = None
            session.valid_moves = []
            session.selectable_pawn_ids = others
            fsm.apply_event("split_continues")
            session.message = f"First move done ({move.steps}). Select second pawn for remaining {remaining}."
            return events
        events.append(message_event(f"First move done ({move.steps}). No valid second move. Turn ends."))

    return [*events, *end_turn(session=session, fsm=fsm)]


def _target(session: GameSession, *, target_player_index: int, target_pawn_id: int) -> PawnRef:
    target = PawnRef(player_index=target_player_index, pawn_id=target_pawn_id)
    if target.player_index == session.current_player_index:
        raise InvalidSelection("Cannot target your own pawn")
    if target not in session.targetable_opponents:
        raise InvalidSelection(f"Pawn {target_pawn_id} of player {target_player_index} cannot be targeted")
    return target


def _execute_sorry(session: GameSession, fsm: TurnFSM, payload: dict[str, Any], rng: random.Random) -> list[ServerEvent]:
    msg = _parse(ExecuteSorryMessage, "executeSorry", payload)
    target = _target(session, target_player_index=msg.target_player_index, target_pawn_id=msg.target_pawn_id)
    pawn = _selected_pawn(session)
    apply_sorry(session, pawn, target)
    logger.info("[executeSorry] room=%s pawn=%s bumped=%s", session.room_id, pawn.ref, target)
    return [*_bump_messages([target]), *_finish(session=session, fsm=fsm)]


def _execute_swap(session: GameSession, fsm: TurnFSM, payload: dict[str, Any], rng: random.Random) -> list[ServerEvent]:
    msg = _parse(ExecuteSwapMessage, "executeSwap", payload)
    target = _target(session, target_player_index=msg.target_player_index, target_pawn_id=msg.target_pawn_id)
    pawn = _selected_pawn(session)
    apply_swap(session, pawn, target)
    logger.info("[executeSwap] room=%s pawn=%s with=%s", session.room_id, pawn.ref, target)
    return _finish(session=session, fsm=fsm)


ACTION_HANDLERS: dict[str, Handler] = {
    "drawCard": _draw_card,
    "selectPawn": _select_pawn,
    "selectMove": _select_move,
    "executeSorry": _execute_sorry,
    "executeSwap": _execute_swap,
}


def dispatch_action(
    *,
    session: GameSession,
    player_index: int,
    action: ActionName | str,
    payload: dict[str, Any],
    rng: random.Random,
) -> ActionResult:
    """Entry point for every in-game action.

    Applies an action by:
    - validating turn ownership and sub-state (validator pipeline)
    - running the action's handler on a deep copy of the session
    - guarding sub-state transitions via the FSM

    A rejected action raises and leaves `session` untouched.
    """

    ctx = ValidationContext(room_id=session.room_id, player_index=player_index, action=str(action))
    pipeline_for_action(ctx.action).validate(ctx=ctx, session=session)
    handler = ACTION_HANDLERS[ctx.action]

    working = session.model_copy(deep=True)
    fsm = TurnFSM(working)
    events = handler(working, fsm, payload, rng)
    fsm.sync_state_to_model()
    return ActionResult(session=working, events=events)
