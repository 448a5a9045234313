from __future__ import annotations

import logging
import random
import string
import threading
from dataclasses import dataclass, field
from typing import Any

from sorry_server.actions import dispatch_action
from sorry_server.api.models import GameSession, RoomSummary, SlotStatus
from sorry_server.core.events import ServerEvent, message_event
from sorry_server.errors import AlreadySeated, GameAlreadyStarted, NotSeated, RoomFull, RoomNotFound
from sorry_server.infra.config import get_room_code_length, get_room_lock_timeout_ms
from sorry_server.lock import room_lock
from sorry_server.scenarios import apply_scenario
from sorry_server.session import new_session, player_name, seated_slots, slot_for_identity
from sorry_server.turn_processing.turns import begin_game, force_end_turn

logger = logging.getLogger(__name__)

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits


@dataclass(slots=True)
class Room:
    session: GameSession
    rng: random.Random
    lock: threading.Lock = field(default_factory=threading.Lock)
    # Set once the room is removed from the registry; late arrivals treat it as missing.
    closed: bool = False

    @property
    def room_id(self) -> str:
        return self.session.room_id


@dataclass(frozen=True, slots=True)
class RoomUpdate:
    """Committed state after a registry operation, plus the events it produced."""

    session: GameSession
    events: list[ServerEvent] = field(default_factory=list)
    player_index: int | None = None
    room_deleted: bool = False


def _seat_index(session: GameSession, identity: str) -> int:
    slot = slot_for_identity(session, identity)
    if slot is None:
        raise NotSeated(f"You are not seated in room {session.room_id}")
    return slot.player_index


class RoomRegistry:
    """Owns every live room.

    `_lock` guards only the two maps and is never held while a room action runs;
    each room's own lock serializes actions within that room.
    """

    def __init__(self, *, code_length: int | None = None, lock_timeout_ms: int | None = None) -> None:
        self._rooms: dict[str, Room] = {}
        self._identity_rooms: dict[str, str] = {}
        self._lock = threading.Lock()
        self._code_length = code_length or get_room_code_length()
        self._lock_timeout_ms = lock_timeout_ms or get_room_lock_timeout_ms()
        self._sysrand = random.SystemRandom()

    # ---- lookups ----

    def get(self, room_id: str) -> Room | None:
        with self._lock:
            return self._rooms.get(room_id.upper())

    def require_room(self, room_id: str) -> Room:
        room = self.get(room_id)
        if room is None:
            raise RoomNotFound(room_id)
        return room

    def room_of(self, identity: str) -> str | None:
        with self._lock:
            return self._identity_rooms.get(identity)

    def snapshot(self, room_id: str) -> GameSession:
        room = self.require_room(room_id)
        with room_lock(lock=room.lock, room_id=room.room_id, timeout_ms=self._lock_timeout_ms):
            return room.session.model_copy(deep=True)

    def list_rooms(self) -> list[RoomSummary]:
        with self._lock:
            rooms = list(self._rooms.values())
        return [
            RoomSummary(
                room_id=r.room_id,
                seated_players=len(seated_slots(r.session)),
                game_started=r.session.game_started,
                game_over=r.session.game_over,
            )
            for r in sorted(rooms, key=lambda r: r.session.created_at)
        ]

    # ---- lifecycle ----

    def _new_room_code(self) -> str:
        return "".join(self._sysrand.choices(ROOM_CODE_ALPHABET, k=self._code_length))

    def _claim_identity(self, identity: str) -> None:
        current = self._identity_rooms.get(identity)
        if current is not None:
            raise AlreadySeated(f"Already seated in room {current}")

    def create_room(self, *, identity: str, display_name: str) -> RoomUpdate:
        seed = self._sysrand.randint(1, 2**31 - 1)

        with self._lock:
            self._claim_identity(identity)
            room_id = self._new_room_code()
            while room_id in self._rooms:
                room_id = self._new_room_code()

            session, rng = new_session(room_id=room_id, seed=seed)
            host = session.slots[0]
            host.identity = identity
            host.display_name = display_name
            host.status = SlotStatus.human
            session.message = "Waiting for players..."

            self._rooms[room_id] = Room(session=session, rng=rng)
            self._identity_rooms[identity] = room_id

        logger.info("[createRoom] room=%s host=%s", room_id, display_name)
        return RoomUpdate(session=session.model_copy(deep=True), player_index=0)

    def join_room(self, *, room_id: str, identity: str, display_name: str) -> RoomUpdate:
        with self._lock:
            self._claim_identity(identity)
        room = self.require_room(room_id)

        with room_lock(lock=room.lock, room_id=room.room_id, timeout_ms=self._lock_timeout_ms):
            if room.closed:
                raise RoomNotFound(room_id)
            session = room.session
            slot = next((s for s in session.slots if s.status == SlotStatus.pending), None)
            if slot is None:
                raise RoomFull(room.room_id)
            if session.game_started:
                raise GameAlreadyStarted(room.room_id)

            working = session.model_copy(deep=True)
            seat = working.slots[slot.player_index]
            seat.identity = identity
            seat.display_name = display_name
            seat.status = SlotStatus.human
            with self._lock:
                self._claim_identity(identity)
                self._identity_rooms[identity] = room.room_id
            room.session = working

        logger.info("[joinRoom] room=%s player=%s name=%s", room.room_id, seat.player_index, display_name)
        return RoomUpdate(
            session=working.model_copy(deep=True),
            events=[message_event(f"{display_name} joined the room.")],
            player_index=seat.player_index,
        )

    def start_game(self, *, room_id: str, identity: str) -> RoomUpdate:
        room = self.require_room(room_id)
        with room_lock(lock=room.lock, room_id=room.room_id, timeout_ms=self._lock_timeout_ms):
            session = room.session
            _seat_index(session, identity)
            if session.game_started:
                raise GameAlreadyStarted(room.room_id)

            working = session.model_copy(deep=True)
            events = begin_game(session=working)
            room.session = working

        logger.info("[startGame] room=%s", room.room_id)
        return RoomUpdate(session=working.model_copy(deep=True), events=events)

    def apply_action(self, *, room_id: str, identity: str, action: str, payload: dict[str, Any]) -> RoomUpdate:
        room = self.require_room(room_id)
        with room_lock(lock=room.lock, room_id=room.room_id, timeout_ms=self._lock_timeout_ms):
            if room.closed:
                raise RoomNotFound(room_id)
            player_index = _seat_index(room.session, identity)
            result = dispatch_action(
                session=room.session,
                player_index=player_index,
                action=action,
                payload=payload,
                rng=room.rng,
            )
            room.session = result.session

        return RoomUpdate(session=result.session.model_copy(deep=True), events=result.events, player_index=player_index)

    def leave(self, *, identity: str) -> RoomUpdate | None:
        """Mark the identity's seat disconnected. Returns None if it was not seated anywhere."""

        with self._lock:
            room_id = self._identity_rooms.pop(identity, None)
            room = self._rooms.get(room_id) if room_id is not None else None
        if room is None:
            return None

        with room_lock(lock=room.lock, room_id=room.room_id, timeout_ms=self._lock_timeout_ms):
            working = room.session.model_copy(deep=True)
            slot = slot_for_identity(working, identity)
            if slot is None:
                return None

            name = player_name(working, slot.player_index)
            slot.status = SlotStatus.disconnected
            slot.identity = None
            slot.display_name = f"{name} (Disconnected)"
            events = [message_event(f"{name} left the room.")]

            if working.game_started and not working.game_over and working.current_player_index == slot.player_index:
                events.extend(force_end_turn(session=working))
            room.session = working

            deleted = not seated_slots(working)
            if deleted:
                room.closed = True
                with self._lock:
                    self._rooms.pop(room.room_id, None)

        if deleted:
            logger.info("[deleteRoom] room=%s (no players left)", room.room_id)
        else:
            logger.info("[leaveRoom] room=%s player=%s", room.room_id, slot.player_index)
        return RoomUpdate(
            session=working.model_copy(deep=True),
            events=events,
            player_index=slot.player_index,
            room_deleted=deleted,
        )

    def apply_scenario(self, *, room_id: str, name: str) -> RoomUpdate:
        """Load a developer scenario into a running game for the current player."""

        room = self.require_room(room_id)
        with room_lock(lock=room.lock, room_id=room.room_id, timeout_ms=self._lock_timeout_ms):
            working = room.session.model_copy(deep=True)
            events = apply_scenario(session=working, name=name)
            room.session = working

        logger.info("[scenario] room=%s name=%s", room.room_id, name)
        return RoomUpdate(session=working.model_copy(deep=True), events=events)
