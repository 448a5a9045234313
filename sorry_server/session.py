from __future__ import annotations

import random
from datetime import UTC, datetime

from sorry_server.api.models import (
    GameSession,
    GameSnapshot,
    Pawn,
    PawnRef,
    PlayerInfo,
    PlayerSlot,
    SlotStatus,
)
from sorry_server.board import PAWNS_PER_PLAYER, PLAYER_COUNT
from sorry_server.deck import Deck


def _now() -> datetime:
    return datetime.now(tz=UTC)


def build_initial_slots() -> list[PlayerSlot]:
    return [PlayerSlot(player_index=i) for i in range(PLAYER_COUNT)]


def build_initial_pawns() -> list[Pawn]:
    return [Pawn(player_index=p, id=i) for p in range(PLAYER_COUNT) for i in range(PAWNS_PER_PLAYER)]


def new_session(*, room_id: str, seed: int) -> tuple[GameSession, random.Random]:
    """Create an empty room: every slot pending, every pawn at start, a shuffled deck.

    Returns the rng alongside the session; the owner keeps it for later reshuffles.
    """

    rng = random.Random(seed)
    session = GameSession(
        room_id=room_id,
        created_at=_now(),
        seed=seed,
        slots=build_initial_slots(),
        pawns=build_initial_pawns(),
        deck=Deck.fresh(rng=rng),
    )
    return session, rng


def require_pawn(session: GameSession, *, player_index: int, pawn_id: int) -> Pawn:
    for pawn in session.pawns:
        if pawn.player_index == player_index and pawn.id == pawn_id:
            return pawn
    raise LookupError(f"Pawn not found: player={player_index} id={pawn_id}")


def pawn_for_ref(session: GameSession, ref: PawnRef) -> Pawn:
    return require_pawn(session, player_index=ref.player_index, pawn_id=ref.pawn_id)


def pawns_of(session: GameSession, player_index: int) -> list[Pawn]:
    return [p for p in session.pawns if p.player_index == player_index]


def opponents_of(session: GameSession, player_index: int) -> list[Pawn]:
    return [p for p in session.pawns if p.player_index != player_index]


def slot_for_identity(session: GameSession, identity: str) -> PlayerSlot | None:
    return next((s for s in session.slots if s.identity == identity and s.status != SlotStatus.disconnected), None)


def seated_slots(session: GameSession) -> list[PlayerSlot]:
    return [s for s in session.slots if s.status == SlotStatus.human]


def player_name(session: GameSession, player_index: int) -> str:
    slot = session.slots[player_index]
    return slot.display_name or f"Player {player_index + 1}"


def players_info(session: GameSession) -> list[PlayerInfo]:
    return [
        PlayerInfo(player_index=s.player_index, name=player_name(session, s.player_index), status=s.status)
        for s in session.slots
    ]


def to_snapshot(session: GameSession) -> GameSnapshot:
    """Full public view of a session. Deck contents are never included, only sizes."""

    return GameSnapshot(
        room_id=session.room_id,
        players=players_info(session),
        deck_size=len(session.deck.draw_pile),
        discard_size=len(session.deck.discard_pile),
        current_player_index=session.current_player_index,
        current_card=session.current_card,
        turn_state=session.turn_state,
        selected_pawn_id=session.selected_pawn.pawn_id if session.selected_pawn else None,
        selectable_pawn_ids=list(session.selectable_pawn_ids),
        valid_moves=list(session.valid_moves),
        targetable_opponent_ids=list(session.targetable_opponents),
        split_mandatory=session.split_mandatory,
        split_data=session.split_data,
        game_started=session.game_started,
        game_over=session.game_over,
        winner_index=session.winner_index,
        message=session.message,
        pawns=[p.model_copy() for p in session.pawns],
    )


def snapshot_payload(session: GameSession) -> dict[str, object]:
    return to_snapshot(session).model_dump(mode="json", by_alias=True)
