from __future__ import annotations

from sorry_server.api.models import GameSession, Move, Pawn, PawnRef
from sorry_server.board import BOARD, OFF_BOARD, SAFETY_LANE_LENGTH, PositionType
from sorry_server.deck import CardRank
from sorry_server.session import opponents_of, pawn_for_ref, pawns_of


# Cards that can bring a pawn out of its start area.
START_CARDS = frozenset({CardRank.one, CardRank.two})


# ---- Occupancy ----


def _track_occupant(session: GameSession, index: int, *, exclude: Pawn) -> Pawn | None:
    for p in session.pawns:
        if p.ref == exclude.ref:
            continue
        if p.on_track and p.position_index == index:
            return p
    return None


def _own_in_lane(session: GameSession, pawn: Pawn, lane_index: int) -> bool:
    return any(
        p.id != pawn.id and p.position_type == PositionType.safe and p.position_index == lane_index
        for p in pawns_of(session, pawn.player_index)
    )


def _landing(session: GameSession, pawn: Pawn, index: int) -> Move | None:
    """Move onto track cell `index`, or None when one of the mover's own pawns is there."""

    occupant = _track_occupant(session, index, exclude=pawn)
    if occupant is not None and occupant.player_index == pawn.player_index:
        return None
    return Move(
        target_type=BOARD.track_position_type(pawn.player_index, index),
        target_index=index,
        bumps=occupant.ref if occupant is not None else None,
    )


# ---- Forward movement ----


def _forward_on_track(session: GameSession, pawn: Pawn, steps: int) -> Move | None:
    entry = BOARD.safety_entry_index(pawn.player_index)
    pos = pawn.position_index
    for step in range(1, steps + 1):
        pos = BOARD.step_forward(pos, 1)
        if step == steps:
            break
        # A pawn may not pass its own safety entry without stopping on it.
        if pos == entry:
            return None
        occupant = _track_occupant(session, pos, exclude=pawn)
        if occupant is not None and occupant.player_index == pawn.player_index:
            return None
    return _landing(session, pawn, pos)


def _forward_in_lane(session: GameSession, pawn: Pawn, from_lane: int, steps: int) -> Move | None:
    dest = from_lane + steps
    if dest == SAFETY_LANE_LENGTH:
        return Move(target_type=PositionType.home, target_index=OFF_BOARD)
    if dest > SAFETY_LANE_LENGTH:
        return None
    if _own_in_lane(session, pawn, dest):
        return None
    return Move(target_type=PositionType.safe, target_index=dest)


def _forward_from_entry(session: GameSession, pawn: Pawn, steps: int) -> Move | None:
    # The first step is spent entering the lane.
    dest = steps - 1
    if dest >= SAFETY_LANE_LENGTH:
        return None
    if _own_in_lane(session, pawn, dest):
        return None
    return Move(target_type=PositionType.safe, target_index=dest)


def forward_move(session: GameSession, pawn: Pawn, steps: int) -> Move | None:
    if steps <= 0:
        return None
    if pawn.position_type == PositionType.board:
        return _forward_on_track(session, pawn, steps)
    if pawn.position_type == PositionType.entry:
        return _forward_from_entry(session, pawn, steps)
    if pawn.position_type == PositionType.safe:
        return _forward_in_lane(session, pawn, pawn.position_index, steps)
    return None


# ---- Backward movement ----


def backward_move(session: GameSession, pawn: Pawn, steps: int) -> Move | None:
    if pawn.on_track:
        return _landing(session, pawn, BOARD.step_backward(pawn.position_index, steps))
    if pawn.position_type == PositionType.safe:
        dest = pawn.position_index - steps
        if dest < 0 or _own_in_lane(session, pawn, dest):
            return None
        return Move(target_type=PositionType.safe, target_index=dest)
    return None


# ---- Legal moves ----


def _exit_move(session: GameSession, pawn: Pawn) -> Move | None:
    return _landing(session, pawn, BOARD.exit_index(pawn.player_index))


def legal_moves(session: GameSession, pawn: Pawn, card_or_steps: CardRank | int) -> list[Move]:
    """Every legal destination for `pawn` given a card (or a bare forward step count).

    A bare int is used for the remainder of a split 7 and only ever moves forward.
    Read-only with respect to `session`.
    """

    if pawn.position_type == PositionType.home:
        return []

    if not isinstance(card_or_steps, CardRank):
        move = forward_move(session, pawn, int(card_or_steps))
        return [move] if move is not None else []

    rank = card_or_steps

    if pawn.position_type == PositionType.start:
        if rank not in START_CARDS:
            return []
        move = _exit_move(session, pawn)
        return [move] if move is not None else []

    if rank == CardRank.sorry:
        return []

    moves: list[Move] = []
    if rank == CardRank.seven:
        for steps in range(1, 8):
            move = forward_move(session, pawn, steps)
            if move is not None:
                moves.append(move.model_copy(update={"steps": steps}))
        return moves

    if rank == CardRank.four:
        candidates = [backward_move(session, pawn, 4)]
    elif rank == CardRank.ten:
        candidates = [forward_move(session, pawn, 10), backward_move(session, pawn, 1)]
    else:
        candidates = [forward_move(session, pawn, int(rank.numeric_value or 0))]

    return [m for m in candidates if m is not None]


def movable_pawn_ids(session: GameSession, player_index: int, card_or_steps: CardRank | int) -> list[int]:
    return [p.id for p in pawns_of(session, player_index) if legal_moves(session, p, card_or_steps)]


def opponent_targets(session: GameSession, player_index: int) -> list[PawnRef]:
    """Opponent pawns that a Sorry! or an 11-swap may target."""

    return [p.ref for p in opponents_of(session, player_index) if p.on_track]


# ---- Applying ----


def _slide(session: GameSession, pawn: Pawn) -> list[PawnRef]:
    slide = BOARD.slide_at(pawn.position_index)
    if slide is None or slide.owner_index == pawn.player_index:
        return []

    bumped: list[PawnRef] = []
    for index in slide.covered_indexes():
        for other in session.pawns:
            if other.ref != pawn.ref and other.on_track and other.position_index == index:
                other.bump()
                bumped.append(other.ref)

    pawn.position_index = slide.end_index
    pawn.position_type = BOARD.track_position_type(pawn.player_index, slide.end_index)

    leftover = _track_occupant(session, slide.end_index, exclude=pawn)
    if leftover is not None:
        leftover.bump()
        bumped.append(leftover.ref)
    return bumped


def apply_move(session: GameSession, pawn: Pawn, move: Move) -> list[PawnRef]:
    """Move `pawn`, bump whatever it lands on and resolve slides. Returns bumped pawns."""

    bumped: list[PawnRef] = []
    if move.target_type in (PositionType.board, PositionType.entry):
        occupant = _track_occupant(session, move.target_index, exclude=pawn)
        if occupant is not None:
            if occupant.player_index == pawn.player_index:
                raise RuntimeError(f"Own pawn {occupant.ref} blocks destination {move.target_index}")
            occupant.bump()
            bumped.append(occupant.ref)

    pawn.position_type = move.target_type
    pawn.position_index = move.target_index

    if move.target_type == PositionType.board:
        bumped.extend(_slide(session, pawn))
    return bumped


def apply_sorry(session: GameSession, pawn: Pawn, target: PawnRef) -> None:
    """Take the target's cell and send the target back to start. No slide."""

    victim = pawn_for_ref(session, target)
    if not victim.on_track:
        raise RuntimeError(f"Sorry! target {target} is not on the track")
    index = victim.position_index
    victim.bump()
    pawn.position_type = BOARD.track_position_type(pawn.player_index, index)
    pawn.position_index = index


def apply_swap(session: GameSession, pawn: Pawn, target: PawnRef) -> None:
    """Exchange cells with an opponent pawn. No slide."""

    other = pawn_for_ref(session, target)
    if not (pawn.on_track and other.on_track):
        raise RuntimeError(f"Swap needs both pawns on the track ({pawn.ref}, {target})")
    mine, theirs = pawn.position_index, other.position_index
    pawn.position_type = BOARD.track_position_type(pawn.player_index, theirs)
    pawn.position_index = theirs
    other.position_type = BOARD.track_position_type(other.player_index, mine)
    other.position_index = mine


def has_won(session: GameSession, player_index: int) -> bool:
    return all(p.position_type == PositionType.home for p in pawns_of(session, player_index))
