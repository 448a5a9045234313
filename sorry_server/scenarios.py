"""Preset board positions for manual rule testing.

Each scenario resets the board, places pawns relative to the current player's seat,
and hands that player a specific card as if it had just been drawn.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from sorry_server.api.models import GameSession, TurnState
from sorry_server.board import BOARD, PLAYER_COUNT, PositionType
from sorry_server.core.events import ServerEvent, message_event
from sorry_server.deck import CardRank
from sorry_server.errors import GameNotStarted, GameOver
from sorry_server.fsm import TurnFSM
from sorry_server.session import require_pawn
from sorry_server.turn_processing.selection import offer_card
from sorry_server.turn_processing.turns import clear_selection


@dataclass(frozen=True, slots=True)
class Scenario:
    description: str
    card: CardRank
    setup: Callable[[GameSession, int], None]


def _place(session: GameSession, player: int, pawn_id: int, position_type: PositionType, index: int) -> None:
    pawn = require_pawn(session, player_index=player, pawn_id=pawn_id)
    pawn.position_type = position_type
    pawn.position_index = index


def _on_track(session: GameSession, player: int, pawn_id: int, index: int) -> None:
    _place(session, player, pawn_id, BOARD.track_position_type(player, index), index)


def _safety_entry_collision(session: GameSession, player: int) -> None:
    entry = BOARD.safety_entry_index(player)
    _on_track(session, player, 0, entry)
    _on_track(session, player, 1, BOARD.step_backward(entry, 1))


def _safety_zone_occupation(session: GameSession, player: int) -> None:
    entry = BOARD.safety_entry_index(player)
    _place(session, player, 0, PositionType.safe, 0)
    _place(session, player, 1, PositionType.safe, 2)
    _on_track(session, player, 2, BOARD.step_backward(entry, 2))


def _slide_and_bump(session: GameSession, player: int) -> None:
    owner = (player + 1) % PLAYER_COUNT
    slide = next(s for s in BOARD.slides.values() if s.owner_index == owner)
    _on_track(session, player, 0, BOARD.step_backward(slide.start_index, 1))
    _on_track(session, owner, 0, BOARD.step_forward(slide.start_index, 2))
    _on_track(session, (player + 2) % PLAYER_COUNT, 0, slide.end_index)


def _split_card_7(session: GameSession, player: int) -> None:
    exit_index = BOARD.exit_index(player)
    _on_track(session, player, 0, BOARD.step_forward(exit_index, 6))
    _on_track(session, player, 1, BOARD.step_forward(exit_index, 16))


def _sorry_targets(session: GameSession, player: int) -> None:
    first = (player + 1) % PLAYER_COUNT
    second = (player + 2) % PLAYER_COUNT
    _on_track(session, first, 0, BOARD.exit_index(first))
    _on_track(session, second, 0, BOARD.step_forward(BOARD.exit_index(second), 3))


def _swap_eleven(session: GameSession, player: int) -> None:
    other = (player + 1) % PLAYER_COUNT
    _on_track(session, player, 0, BOARD.step_forward(BOARD.exit_index(player), 2))
    _on_track(session, other, 1, BOARD.step_forward(BOARD.exit_index(other), 5))


SCENARIOS: dict[str, Scenario] = {
    "safetyEntryCollision": Scenario(
        description="Two pawns of the same color at the safety entry point",
        card=CardRank.one,
        setup=_safety_entry_collision,
    ),
    "safetyZoneOccupation": Scenario(
        description="Safety zone occupation validation",
        card=CardRank.two,
        setup=_safety_zone_occupation,
    ),
    "slideAndBump": Scenario(
        description="Slide mechanics and bumping",
        card=CardRank.one,
        setup=_slide_and_bump,
    ),
    "splitCard7": Scenario(
        description="Card 7 splitting mechanics",
        card=CardRank.seven,
        setup=_split_card_7,
    ),
    "sorryTargets": Scenario(
        description="Sorry! card with two opponents on the track",
        card=CardRank.sorry,
        setup=_sorry_targets,
    ),
    "swapEleven": Scenario(
        description="11 card with a swap available",
        card=CardRank.eleven,
        setup=_swap_eleven,
    ),
}


def apply_scenario(*, session: GameSession, name: str) -> list[ServerEvent]:
    scenario = SCENARIOS.get(name)
    if scenario is None:
        raise ValueError(f"Unknown scenario: {name}")
    if not session.game_started:
        raise GameNotStarted("Game has not started")
    if session.game_over:
        raise GameOver("Game is over")

    fsm = TurnFSM(session)
    if session.current_card is not None:
        session.deck.discard(session.current_card)
        session.current_card = None
    clear_selection(session)
    if fsm.turn_state != TurnState.awaiting_draw:
        fsm.apply_event("resolve")
        fsm.apply_event("next_turn")

    for pawn in session.pawns:
        pawn.bump()
    player = session.current_player_index
    scenario.setup(session, player)

    session.current_card = session.deck.take(scenario.card)
    events = [message_event(f"Scenario: {scenario.description}")]
    events.extend(offer_card(session=session, fsm=fsm, card=scenario.card))
    return events
