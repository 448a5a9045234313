from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from sorry_server.board import OFF_BOARD, PositionType
from sorry_server.deck import CardRank, Deck


class WireModel(BaseModel):
    """Base for anything that crosses the wire: camelCase JSON, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SlotStatus(StrEnum):
    pending = "pending"
    human = "human"
    disconnected = "disconnected"


class TurnState(StrEnum):
    lobby = "lobby"
    awaiting_draw = "awaiting-draw"
    select_pawn = "select-pawn"
    select_move = "select-move"
    select_sorry_pawn = "select-sorry-pawn"
    select_sorry_target = "select-sorry-target"
    select_11_pawn = "select-11-pawn"
    select_11_action = "select-11-action"
    select_11_swap_target = "select-11-swap-target"
    select_7_pawn1 = "select-7-pawn1"
    select_7_move1 = "select-7-move1"
    select_7_pawn2 = "select-7-pawn2"
    select_7_move2 = "select-7-move2"
    turn_resolved = "turn-resolved"
    game_over = "game-over"


class PawnRef(WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    player_index: int
    pawn_id: int


class Pawn(WireModel):
    player_index: int
    id: int
    position_type: PositionType = PositionType.start
    position_index: int = OFF_BOARD

    @property
    def ref(self) -> PawnRef:
        return PawnRef(player_index=self.player_index, pawn_id=self.id)

    @property
    def on_track(self) -> bool:
        return self.position_type in (PositionType.board, PositionType.entry)

    def bump(self) -> None:
        self.position_type = PositionType.start
        self.position_index = OFF_BOARD


class Move(WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    target_type: PositionType
    target_index: int
    steps: int | None = None
    # Opponent sitting on the destination, sent home when the move is applied.
    bumps: PawnRef | None = None

    def matches(self, *, position_type: PositionType, position_index: int, steps: int | None) -> bool:
        return (
            self.target_type == position_type
            and self.target_index == position_index
            and self.steps == steps
        )


class PlayerSlot(WireModel):
    player_index: int
    identity: str | None = None
    display_name: str = ""
    status: SlotStatus = SlotStatus.pending


class SplitData(WireModel):
    first_pawn_id: int | None = None
    first_steps: int = 0
    second_pawn_id: int | None = None

    @property
    def remaining(self) -> int:
        return 7 - self.first_steps


class GameSession(BaseModel):
    """Authoritative per-room state.

    Only the turn coordinator mutates a live session, and it does so on a deep copy
    that replaces the stored one once an action is accepted.
    """

    room_id: str
    created_at: datetime

    # For reproducibility/debugging.
    seed: int

    slots: list[PlayerSlot]
    pawns: list[Pawn]
    deck: Deck

    current_player_index: int = 0
    current_card: CardRank | None = None
    turn_state: TurnState = TurnState.lobby

    # Selection buffers, reset at every turn boundary.
    selected_pawn: PawnRef | None = None
    selectable_pawn_ids: list[int] = Field(default_factory=list)
    valid_moves: list[Move] = Field(default_factory=list)
    targetable_opponents: list[PawnRef] = Field(default_factory=list)
    split_mandatory: bool = False
    split_data: SplitData = Field(default_factory=SplitData)

    game_started: bool = False
    game_over: bool = False
    winner_index: int | None = None
    message: str = ""


# ---- Snapshots (server -> client) ----


class PlayerInfo(WireModel):
    player_index: int
    name: str
    status: SlotStatus


class GameSnapshot(WireModel):
    room_id: str
    players: list[PlayerInfo]
    deck_size: int
    discard_size: int
    current_player_index: int
    current_card: CardRank | None
    turn_state: TurnState
    selected_pawn_id: int | None
    selectable_pawn_ids: list[int]
    valid_moves: list[Move]
    targetable_opponent_ids: list[PawnRef]
    split_mandatory: bool
    split_data: SplitData
    game_started: bool
    game_over: bool
    winner_index: int | None
    message: str
    pawns: list[Pawn]


class RoomSummary(WireModel):
    room_id: str
    seated_players: int
    game_started: bool
    game_over: bool


class RoomListResponse(WireModel):
    rooms: list[RoomSummary]


# ---- Inbound messages (client -> server) ----


class CreateRoomMessage(WireModel):
    type: Literal["createRoom"]


class JoinRoomMessage(WireModel):
    type: Literal["joinRoom"]
    room_code: str = Field(..., min_length=1, max_length=16)


class StartGameMessage(WireModel):
    type: Literal["startGame"]


class LeaveRoomMessage(WireModel):
    type: Literal["leaveRoom"]


class DrawCardMessage(WireModel):
    type: Literal["drawCard"]


class SelectPawnMessage(WireModel):
    type: Literal["selectPawn"]
    pawn_id: int = Field(..., ge=0, le=3)


class SelectMoveMessage(WireModel):
    type: Literal["selectMove"]
    position_type: PositionType
    position_index: int
    steps: int | None = Field(default=None, ge=1, le=7)


class ExecuteSorryMessage(WireModel):
    type: Literal["executeSorry"]
    target_pawn_id: int = Field(..., ge=0, le=3)
    target_player_index: int = Field(..., ge=0, le=3)


class ExecuteSwapMessage(WireModel):
    type: Literal["executeSwap"]
    target_pawn_id: int = Field(..., ge=0, le=3)
    target_player_index: int = Field(..., ge=0, le=3)


InboundMessage = Annotated[
    Union[
        CreateRoomMessage,
        JoinRoomMessage,
        StartGameMessage,
        LeaveRoomMessage,
        DrawCardMessage,
        SelectPawnMessage,
        SelectMoveMessage,
        ExecuteSorryMessage,
        ExecuteSwapMessage,
    ],
    Field(discriminator="type"),
]
