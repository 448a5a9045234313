from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal

EventName = Literal[
    "roomCreated",
    "roomJoined",
    "roomInfoUpdate",
    "gameStateUpdate",
    "yourTurn",
    "gameError",
    "gameOver",
    "message",
]


@dataclass(frozen=True, slots=True)
class ServerEvent:
    """An outbound event. `to_player` narrows delivery to one seat; None means the whole room."""

    name: EventName
    payload: dict[str, Any]
    ts: datetime
    to_player: int | None = None

    @staticmethod
    def now(*, name: EventName, payload: dict[str, Any], to_player: int | None = None) -> "ServerEvent":
        return ServerEvent(name=name, payload=payload, ts=datetime.now(timezone.utc), to_player=to_player)

    def to_wire(self) -> dict[str, Any]:
        return {"type": self.name, **self.payload}


def message_event(text: str) -> ServerEvent:
    return ServerEvent.now(name="message", payload={"text": text})


def your_turn_event(player_index: int) -> ServerEvent:
    return ServerEvent.now(name="yourTurn", payload={"currentPlayerIndex": player_index}, to_player=player_index)


def game_over_event(*, winner_index: int, winner_name: str) -> ServerEvent:
    return ServerEvent.now(name="gameOver", payload={"winnerIndex": winner_index, "winnerName": winner_name})


def game_error_event(message: str) -> ServerEvent:
    return ServerEvent.now(name="gameError", payload={"message": message})
