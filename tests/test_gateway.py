from __future__ import annotations

import pytest

from sorry_server.deck import CardRank
from sorry_server.gateway import INTERNAL_ERROR_MESSAGE, Delivery, SessionGateway


def _by_type(deliveries: list[Delivery]) -> dict[str, Delivery]:
    return {d.event.name: d for d in deliveries}


def _two_player_room(gateway: SessionGateway) -> str:
    gateway.connect("c1", "Alice")
    gateway.connect("c2", "Bob")
    created = gateway.handle("c1", {"type": "createRoom"})
    room_id = created[0].event.payload["roomId"]
    gateway.handle("c2", {"type": "joinRoom", "roomCode": room_id})
    return room_id


def test_create_room_replies_only_to_creator(gateway: SessionGateway) -> None:
    gateway.connect("c1", "Alice")

    deliveries = gateway.handle("c1", {"type": "createRoom"})

    assert len(deliveries) == 1
    d = deliveries[0]
    assert d.recipients == ("c1",)
    assert d.event.name == "roomCreated"
    assert d.event.payload["state"]["turnState"] == "lobby"
    assert d.event.payload["players"][0] == {"playerIndex": 0, "name": "Alice", "status": "human"}


def test_join_room_broadcasts_to_everyone_seated(gateway: SessionGateway) -> None:
    gateway.connect("c1", "Alice")
    gateway.connect("c2", "Bob")
    room_id = gateway.handle("c1", {"type": "createRoom"})[0].event.payload["roomId"]

    deliveries = gateway.handle("c2", {"type": "joinRoom", "roomCode": room_id})
    by_type = _by_type(deliveries)

    assert deliveries[0].event.name == "roomJoined"
    assert by_type["roomJoined"].recipients == ("c2",)
    assert by_type["roomJoined"].event.payload["yourPlayerIndex"] == 1
    assert by_type["roomInfoUpdate"].recipients == ("c1", "c2")
    assert by_type["gameStateUpdate"].recipients == ("c1", "c2")
    assert by_type["message"].event.payload == {"text": "Bob joined the room."}


def test_start_game_sends_state_then_private_turn_prompt(gateway: SessionGateway) -> None:
    _two_player_room(gateway)

    deliveries = gateway.handle("c2", {"type": "startGame"})

    assert [d.event.name for d in deliveries] == ["gameStateUpdate", "yourTurn"]
    assert deliveries[0].event.payload["state"]["gameStarted"] is True
    assert deliveries[1].recipients == ("c1",)
    assert deliveries[1].event.to_wire() == {"type": "yourTurn", "currentPlayerIndex": 0}


def test_game_action_out_of_turn_is_reported_to_actor_only(gateway: SessionGateway) -> None:
    _two_player_room(gateway)
    gateway.handle("c1", {"type": "startGame"})

    deliveries = gateway.handle("c2", {"type": "drawCard"})

    assert len(deliveries) == 1
    assert deliveries[0].recipients == ("c2",)
    assert deliveries[0].event.name == "gameError"
    assert "Not your turn" in deliveries[0].event.payload["message"]


def test_draw_card_broadcasts_new_state(gateway: SessionGateway) -> None:
    _two_player_room(gateway)
    gateway.handle("c1", {"type": "startGame"})

    deliveries = gateway.handle("c1", {"type": "drawCard"})

    assert deliveries[0].event.name == "gameStateUpdate"
    assert deliveries[0].recipients == ("c1", "c2")
    assert deliveries[0].event.payload["state"]["deckSize"] == 44


def test_two_card_takes_pawn_out_of_start_and_passes_the_turn(gateway: SessionGateway, rig_deck) -> None:
    room_id = _two_player_room(gateway)
    gateway.handle("c1", {"type": "startGame"})
    rig_deck(gateway.registry.require_room(room_id).session, CardRank.two)

    drawn = gateway.handle("c1", {"type": "drawCard"})[0].event.payload["state"]
    assert drawn["currentCard"] == "2"
    assert drawn["turnState"] == "select-pawn"

    gateway.handle("c1", {"type": "selectPawn", "pawnId": 0})
    deliveries = gateway.handle("c1", {"type": "selectMove", "positionType": "board", "positionIndex": 4})

    update = deliveries[0]
    assert update.event.name == "gameStateUpdate"
    assert update.recipients == ("c1", "c2")
    state = update.event.payload["state"]
    pawn = next(p for p in state["pawns"] if p["playerIndex"] == 0 and p["id"] == 0)
    assert (pawn["positionType"], pawn["positionIndex"]) == ("board", 4)
    assert state["currentCard"] is None
    assert state["currentPlayerIndex"] == 1
    assert state["turnState"] == "awaiting-draw"
    assert _by_type(deliveries)["yourTurn"].recipients == ("c2",)


@pytest.mark.parametrize(
    "raw",
    [
        {"type": "bogus"},
        {"type": "selectPawn", "pawnId": 9},
        {"noType": True},
        ["drawCard"],
    ],
)
def test_malformed_messages_are_rejected(gateway: SessionGateway, raw: object) -> None:
    gateway.connect("c1")

    deliveries = gateway.handle("c1", raw)

    assert len(deliveries) == 1
    assert deliveries[0].event.name == "gameError"
    assert deliveries[0].event.payload["message"].startswith("Invalid message")


def test_non_json_text_is_rejected(gateway: SessionGateway) -> None:
    deliveries = gateway.handle_text("c1", "{not json")
    assert deliveries[0].event.payload == {"message": "Invalid message: not JSON"}


def test_game_action_outside_a_room(gateway: SessionGateway) -> None:
    deliveries = gateway.handle("lonely", {"type": "drawCard"})
    assert deliveries[0].event.payload == {"message": "You are not in a room"}


def test_unexpected_failure_becomes_generic_error(gateway: SessionGateway, monkeypatch) -> None:
    room_id = _two_player_room(gateway)
    gateway.handle("c1", {"type": "startGame"})
    before = gateway.registry.snapshot(room_id).model_dump()

    def boom(**kwargs: object) -> None:
        raise KeyError("corrupt")

    monkeypatch.setattr("sorry_server.room_registry.dispatch_action", boom)

    deliveries = gateway.handle("c1", {"type": "drawCard"})

    assert len(deliveries) == 1
    assert deliveries[0].recipients == ("c1",)
    assert deliveries[0].event.payload == {"message": INTERNAL_ERROR_MESSAGE}
    assert gateway.registry.snapshot(room_id).model_dump() == before


def test_disconnect_marks_seat_and_passes_turn(gateway: SessionGateway) -> None:
    room_id = _two_player_room(gateway)
    gateway.handle("c1", {"type": "startGame"})

    deliveries = gateway.disconnect("c1")
    names = [d.event.name for d in deliveries]

    assert names == ["roomInfoUpdate", "gameStateUpdate", "message", "yourTurn"]
    assert all(d.recipients[0] == "c2" for d in deliveries)
    assert deliveries[-1].recipients == ("c2",)
    session = gateway.registry.snapshot(room_id)
    assert session.current_player_index == 1
    assert session.slots[0].display_name == "Alice (Disconnected)"


def test_last_disconnect_deletes_room_silently(gateway: SessionGateway) -> None:
    gateway.connect("c1", "Alice")
    room_id = gateway.handle("c1", {"type": "createRoom"})[0].event.payload["roomId"]

    assert gateway.disconnect("c1") == []
    assert gateway.registry.get(room_id) is None


def test_leave_room_when_not_seated(gateway: SessionGateway) -> None:
    deliveries = gateway.handle("c9", {"type": "leaveRoom"})
    assert deliveries[0].event.name == "gameError"


def test_blank_display_name_falls_back(gateway: SessionGateway) -> None:
    gateway.connect("c1", "   ")
    assert gateway.display_name("c1") == "Anonymous"
