from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import TypeAdapter, ValidationError

from sorry_server.api.models import GameSession, InboundMessage, SlotStatus
from sorry_server.core.events import ServerEvent, game_error_event
from sorry_server.errors import NotSeated
from sorry_server.room_registry import RoomRegistry, RoomUpdate
from sorry_server.session import players_info, snapshot_payload

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal error; action discarded"
DEFAULT_PLAYER_NAME = "Anonymous"

_INBOUND = TypeAdapter(InboundMessage)


@dataclass(frozen=True, slots=True)
class Delivery:
    """One outbound event and the connections that should receive it."""

    recipients: tuple[str, ...]
    event: ServerEvent


def _players_payload(session: GameSession) -> list[dict[str, Any]]:
    return [p.model_dump(mode="json", by_alias=True) for p in players_info(session)]


def _room_connections(session: GameSession) -> tuple[str, ...]:
    return tuple(s.identity for s in session.slots if s.status == SlotStatus.human and s.identity)


def _player_connection(session: GameSession, player_index: int) -> tuple[str, ...]:
    slot = session.slots[player_index]
    if slot.status == SlotStatus.human and slot.identity:
        return (slot.identity,)
    return ()


def _describe(error: ValidationError) -> str:
    first = error.errors()[0] if error.errors() else {"msg": str(error)}
    loc = ".".join(str(p) for p in first.get("loc", ()))
    return f"Invalid message: {first['msg']}" + (f" ({loc})" if loc else "")


class SessionGateway:
    """Transport-agnostic boundary between connections and rooms.

    Inbound: `(connection_id, raw JSON object)`. Outbound: a list of Deliveries the
    transport sends as `{"type": <event>, ...payload}` frames. A connection id is the
    acting identity.
    """

    def __init__(self, registry: RoomRegistry) -> None:
        self.registry = registry
        self._names: dict[str, str] = {}
        self._lock = threading.Lock()
        self._routes: dict[str, Callable[[str, Any], list[Delivery]]] = {
            "createRoom": self._create_room,
            "joinRoom": self._join_room,
            "startGame": self._start_game,
            "leaveRoom": self._leave_room,
        }

    # ---- connections ----

    def connect(self, connection_id: str, display_name: str | None = None) -> None:
        name = (display_name or "").strip() or DEFAULT_PLAYER_NAME
        with self._lock:
            self._names[connection_id] = name[:32]
        logger.info("[connect] conn=%s name=%s", connection_id, name)

    def disconnect(self, connection_id: str) -> list[Delivery]:
        with self._lock:
            self._names.pop(connection_id, None)
        update = self.registry.leave(identity=connection_id)
        logger.info("[disconnect] conn=%s", connection_id)
        if update is None:
            return []
        return self._after_leave(update)

    def display_name(self, connection_id: str) -> str:
        with self._lock:
            return self._names.get(connection_id, DEFAULT_PLAYER_NAME)

    # ---- inbound ----

    def handle(self, connection_id: str, raw: Any) -> list[Delivery]:
        try:
            message = _INBOUND.validate_python(raw)
        except ValidationError as e:
            return [self._error(connection_id, _describe(e))]

        route = self._routes.get(message.type, self._game_action)
        try:
            return route(connection_id, message)
        except ValueError as e:
            logger.debug("[rejected] conn=%s type=%s reason=%s", connection_id, message.type, e)
            return [self._error(connection_id, str(e))]
        except Exception:
            logger.exception("[internal] conn=%s type=%s", connection_id, message.type)
            return [self._error(connection_id, INTERNAL_ERROR_MESSAGE)]

    def handle_text(self, connection_id: str, text: str) -> list[Delivery]:
        try:
            raw = json.loads(text)
        except json.JSONDecodeError:
            return [self._error(connection_id, "Invalid message: not JSON")]
        return self.handle(connection_id, raw)

    def load_scenario(self, room_id: str, name: str) -> list[Delivery]:
        """Developer hook: load a preset position and broadcast it like any other change."""

        return self._fan_out(self.registry.apply_scenario(room_id=room_id, name=name))

    # ---- routes ----

    def _require_room_id(self, connection_id: str) -> str:
        room_id = self.registry.room_of(connection_id)
        if room_id is None:
            raise NotSeated("You are not in a room")
        return room_id

    def _create_room(self, connection_id: str, message: Any) -> list[Delivery]:
        update = self.registry.create_room(identity=connection_id, display_name=self.display_name(connection_id))
        session = update.session
        payload = {
            "roomId": session.room_id,
            "state": snapshot_payload(session),
            "players": _players_payload(session),
        }
        return [Delivery(recipients=(connection_id,), event=ServerEvent.now(name="roomCreated", payload=payload))]

    def _join_room(self, connection_id: str, message: Any) -> list[Delivery]:
        update = self.registry.join_room(
            room_id=message.room_code.strip(),
            identity=connection_id,
            display_name=self.display_name(connection_id),
        )
        session = update.session
        joined = ServerEvent.now(
            name="roomJoined",
            payload={
                "roomId": session.room_id,
                "yourPlayerIndex": update.player_index,
                "state": snapshot_payload(session),
                "players": _players_payload(session),
            },
        )
        deliveries = [Delivery(recipients=(connection_id,), event=joined)]
        deliveries.append(self._room_info(session))
        deliveries.extend(self._fan_out(update))
        return deliveries

    def _start_game(self, connection_id: str, message: Any) -> list[Delivery]:
        update = self.registry.start_game(room_id=self._require_room_id(connection_id), identity=connection_id)
        return self._fan_out(update)

    def _leave_room(self, connection_id: str, message: Any) -> list[Delivery]:
        update = self.registry.leave(identity=connection_id)
        if update is None:
            raise NotSeated("You are not in a room")
        return self._after_leave(update)

    def _game_action(self, connection_id: str, message: Any) -> list[Delivery]:
        update = self.registry.apply_action(
            room_id=self._require_room_id(connection_id),
            identity=connection_id,
            action=message.type,
            payload=message.model_dump(mode="json", by_alias=True, exclude={"type"}),
        )
        return self._fan_out(update)

    # ---- outbound ----

    def _error(self, connection_id: str, text: str) -> Delivery:
        return Delivery(recipients=(connection_id,), event=game_error_event(text))

    def _room_info(self, session: GameSession) -> Delivery:
        event = ServerEvent.now(name="roomInfoUpdate", payload={"players": _players_payload(session)})
        return Delivery(recipients=_room_connections(session), event=event)

    def _fan_out(self, update: RoomUpdate) -> list[Delivery]:
        """Full-state broadcast first, then the events the change produced."""

        session = update.session
        everyone = _room_connections(session)
        deliveries = [
            Delivery(
                recipients=everyone,
                event=ServerEvent.now(name="gameStateUpdate", payload={"state": snapshot_payload(session)}),
            )
        ]
        for event in update.events:
            if event.to_player is None:
                recipients = everyone
            else:
                recipients = _player_connection(session, event.to_player)
            if recipients:
                deliveries.append(Delivery(recipients=recipients, event=event))
        return deliveries

    def _after_leave(self, update: RoomUpdate) -> list[Delivery]:
        if update.room_deleted:
            return []
        return [self._room_info(update.session), *self._fan_out(update)]
