from __future__ import annotations

import random
from collections.abc import Callable, Generator

import pytest
from fastapi.testclient import TestClient

from sorry_server.api.models import GameSession, SlotStatus
from sorry_server.board import BOARD, PositionType
from sorry_server.deck import DECK_SIZE, CardRank
from sorry_server.gateway import SessionGateway
from sorry_server.room_registry import RoomRegistry
from sorry_server.session import new_session, require_pawn
from sorry_server.turn_processing.turns import begin_game


@pytest.fixture()
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture()
def make_game() -> Callable[..., GameSession]:
    """Build a session with `seated` human players (identities p0..pN) and optionally start it."""

    def _make(*, seated: int = 4, started: bool = True) -> GameSession:
        session, _ = new_session(room_id="TEST1", seed=42)
        for i in range(seated):
            slot = session.slots[i]
            slot.identity = f"p{i}"
            slot.display_name = f"Player{i}"
            slot.status = SlotStatus.human
        if started:
            begin_game(session=session)
        return session

    return _make


@pytest.fixture()
def place() -> Callable[..., None]:
    """Put a pawn on a track cell (board/entry derived from the cell) or an explicit position."""

    def _place(
        session: GameSession,
        player: int,
        pawn_id: int,
        index: int,
        position_type: PositionType | None = None,
    ) -> None:
        pawn = require_pawn(session, player_index=player, pawn_id=pawn_id)
        pawn.position_type = position_type or BOARD.track_position_type(player, index)
        pawn.position_index = index

    return _place


@pytest.fixture()
def rig_deck() -> Callable[..., None]:
    """Move the given ranks to the top of the draw pile; the first one is drawn first."""

    def _rig(session: GameSession, *ranks: CardRank) -> None:
        for rank in reversed(ranks):
            session.deck.take(rank)
            session.deck.draw_pile.append(rank)

    return _rig


def cards_accounted_for(session: GameSession) -> int:
    held = 1 if session.current_card is not None else 0
    return len(session.deck.draw_pile) + len(session.deck.discard_pile) + held


@pytest.fixture()
def assert_deck_complete() -> Callable[[GameSession], None]:
    def _check(session: GameSession) -> None:
        assert cards_accounted_for(session) == DECK_SIZE

    return _check


@pytest.fixture()
def registry() -> RoomRegistry:
    return RoomRegistry(code_length=5, lock_timeout_ms=1_000)


@pytest.fixture()
def gateway(registry: RoomRegistry) -> SessionGateway:
    return SessionGateway(registry)


@pytest.fixture()
def client(gateway: SessionGateway) -> Generator[TestClient, None, None]:
    """FastAPI TestClient wired to a fresh gateway/registry for each test."""

    from sorry_server.api.deps import get_gateway
    from sorry_server.main import app

    app.dependency_overrides[get_gateway] = lambda: gateway
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
