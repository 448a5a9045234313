from __future__ import annotations

from sorry_server.api.models import GameSession
from sorry_server.board import PositionType
from sorry_server.core.events import ServerEvent, message_event
from sorry_server.deck import CardRank
from sorry_server.fsm import TurnFSM
from sorry_server.move_engine import legal_moves, movable_pawn_ids, opponent_targets
from sorry_server.session import pawns_of
from sorry_server.turn_processing.turns import clear_selection, end_turn


def _skip(*, session: GameSession, fsm: TurnFSM, card: CardRank) -> list[ServerEvent]:
    text = f"Drew {card.value}: no possible moves. Turn skipped."
    return [message_event(text), *end_turn(session=session, fsm=fsm)]


def offer_card(*, session: GameSession, fsm: TurnFSM, card: CardRank) -> list[ServerEvent]:
    """Publish what the current player may do with `card`, or skip the turn if nothing.

    Fills `selectable_pawn_ids` (and `targetable_opponents` for Sorry!/11) and moves
    the FSM into the card's pawn-selection state.
    """

    player = session.current_player_index
    clear_selection(session)

    if card == CardRank.sorry:
        targets = opponent_targets(session, player)
        starters = [p.id for p in pawns_of(session, player) if p.position_type == PositionType.start]
        if not (targets and starters):
            return _skip(session=session, fsm=fsm, card=card)
        session.selectable_pawn_ids = starters
        session.targetable_opponents = targets
        fsm.apply_event("offer_sorry")
        session.message = "Sorry!: select a pawn from your start area."
        return []

    if card == CardRank.eleven:
        targets = opponent_targets(session, player)
        selectable = [
            p.id
            for p in pawns_of(session, player)
            if legal_moves(session, p, card) or (p.on_track and targets)
        ]
        if not selectable:
            return _skip(session=session, fsm=fsm, card=card)
        session.selectable_pawn_ids = selectable
        session.targetable_opponents = targets
        fsm.apply_event("offer_eleven")
        session.message = "Drew 11: select a pawn to move 11 or swap."
        return []

    selectable = movable_pawn_ids(session, player, card)
    if not selectable:
        return _skip(session=session, fsm=fsm, card=card)
    session.selectable_pawn_ids = selectable

    if card == CardRank.seven:
        session.split_mandatory = len(selectable) >= 2
        fsm.apply_event("offer_seven")
        if session.split_mandatory:
            session.message = "Drew 7: split the move between two pawns. Select the first pawn."
        else:
            session.message = "Drew 7: select a pawn to move."
        return []

    fsm.apply_event("offer_moves")
    session.message = f"Drew {card.value}: select a pawn to move."
    return []
