from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from sorry_server.api.models import TurnState
from sorry_server.board import PositionType
from sorry_server.deck import CardRank
from sorry_server.errors import GameNotStarted
from sorry_server.scenarios import SCENARIOS, apply_scenario


def test_every_scenario_leaves_a_playable_turn(make_game, assert_deck_complete) -> None:
    for name in SCENARIOS:
        session = make_game()

        events = apply_scenario(session=session, name=name)

        assert events[0].payload["text"].startswith("Scenario: ")
        assert session.current_player_index == 0
        assert session.current_card == SCENARIOS[name].card
        assert session.turn_state not in (TurnState.awaiting_draw, TurnState.lobby), name
        assert session.selectable_pawn_ids, name
        assert_deck_complete(session)


def test_split_seven_scenario(make_game) -> None:
    session = make_game()

    apply_scenario(session=session, name="splitCard7")

    assert session.turn_state == TurnState.select_7_pawn1
    assert session.split_mandatory is True
    assert session.selectable_pawn_ids == [0, 1]


def test_scenario_replaces_a_half_played_turn(make_game, assert_deck_complete) -> None:
    session = make_game()
    session.current_card = session.deck.draw_pile.pop()
    session.turn_state = TurnState.select_pawn
    session.selectable_pawn_ids = [0]

    apply_scenario(session=session, name="sorryTargets")

    assert session.current_card == CardRank.sorry
    assert session.turn_state == TurnState.select_sorry_pawn
    assert len(session.targetable_opponents) == 2
    assert all(p.position_type == PositionType.start for p in session.pawns if p.player_index == 0)
    assert_deck_complete(session)


def test_unknown_or_early_scenario_is_rejected(make_game) -> None:
    with pytest.raises(ValueError) as e:
        apply_scenario(session=make_game(), name="nope")
    assert "Unknown scenario" in str(e.value)

    with pytest.raises(GameNotStarted):
        apply_scenario(session=make_game(started=False), name="splitCard7")


def _started_room(gateway) -> str:
    gateway.connect("c1", "Alice")
    room_id = gateway.handle("c1", {"type": "createRoom"})[0].event.payload["roomId"]
    gateway.handle("c1", {"type": "startGame"})
    return room_id


def test_scenario_endpoint_disabled_by_default(client: TestClient, gateway, monkeypatch) -> None:
    monkeypatch.delenv("SORRY_ENABLE_SCENARIOS", raising=False)
    room_id = _started_room(gateway)

    res = client.post(f"/rooms/{room_id}/scenario/splitCard7")

    assert res.status_code == 404


def test_scenario_endpoint_loads_position(client: TestClient, gateway, monkeypatch) -> None:
    monkeypatch.setenv("SORRY_ENABLE_SCENARIOS", "1")
    room_id = _started_room(gateway)

    res = client.post(f"/rooms/{room_id}/scenario/swapEleven")

    assert res.status_code == 200
    body = res.json()
    assert body["currentCard"] == "11"
    assert body["turnState"] == "select-11-pawn"
    assert body["targetableOpponentIds"] == [{"playerIndex": 1, "pawnId": 1}]

    assert client.post(f"/rooms/{room_id}/scenario/nope").status_code == 422
    assert client.post("/rooms/NOPE1/scenario/swapEleven").status_code == 404
