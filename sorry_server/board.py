from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


TRACK_LENGTH = 60
SAFETY_LANE_LENGTH = 5
PAWNS_PER_PLAYER = 4
PLAYER_COUNT = 4

# Off-board sentinel used by start and home positions.
OFF_BOARD = -1


class PositionType(StrEnum):
    start = "start"
    board = "board"
    entry = "entry"
    safe = "safe"
    home = "home"


class PlayerColor(StrEnum):
    red = "Red"
    blue = "Blue"
    yellow = "Yellow"
    green = "Green"


@dataclass(frozen=True, slots=True)
class Slide:
    start_index: int
    length: int
    end_index: int
    owner_index: int

    def covered_indexes(self) -> list[int]:
        """Track cells from start+1 through end, inclusive, in travel order."""

        return [(self.start_index + i) % TRACK_LENGTH for i in range(1, self.length + 1)]


@dataclass(frozen=True, slots=True)
class PlayerLayout:
    color: PlayerColor
    exit_index: int
    safety_entry_index: int


@dataclass(frozen=True, slots=True)
class Board:
    """Static topology: the 60-cell track, per-player exits/entries and the slide table.

    Everything here is pure data; pawn positions live on the session.
    """

    layouts: tuple[PlayerLayout, ...]
    slides: dict[int, Slide]

    def layout(self, player_index: int) -> PlayerLayout:
        if not 0 <= player_index < len(self.layouts):
            raise ValueError(f"Unknown player index: {player_index}")
        return self.layouts[player_index]

    def color(self, player_index: int) -> PlayerColor:
        return self.layout(player_index).color

    def exit_index(self, player_index: int) -> int:
        return self.layout(player_index).exit_index

    def safety_entry_index(self, player_index: int) -> int:
        return self.layout(player_index).safety_entry_index

    def slide_at(self, index: int) -> Slide | None:
        return self.slides.get(index)

    @staticmethod
    def step_forward(index: int, steps: int) -> int:
        return (index + steps) % TRACK_LENGTH

    @staticmethod
    def step_backward(index: int, steps: int) -> int:
        return (index - steps + TRACK_LENGTH) % TRACK_LENGTH

    def track_position_type(self, player_index: int, index: int) -> PositionType:
        """Position type for a pawn of `player_index` resting on track cell `index`."""

        if index == self.safety_entry_index(player_index):
            return PositionType.entry
        return PositionType.board


def _make_slide(start: int, length: int, owner: int) -> Slide:
    return Slide(start_index=start, length=length, end_index=(start + length) % TRACK_LENGTH, owner_index=owner)


def build_board() -> Board:
    layouts = (
        PlayerLayout(color=PlayerColor.red, exit_index=4, safety_entry_index=1),
        PlayerLayout(color=PlayerColor.blue, exit_index=19, safety_entry_index=16),
        PlayerLayout(color=PlayerColor.yellow, exit_index=34, safety_entry_index=31),
        PlayerLayout(color=PlayerColor.green, exit_index=49, safety_entry_index=46),
    )
    # Two slides per color: a short one (4) ending on that color's exit and a long one (5).
    slides = [
        _make_slide(0, 4, 0),
        _make_slide(8, 5, 0),
        _make_slide(15, 4, 1),
        _make_slide(23, 5, 1),
        _make_slide(30, 4, 2),
        _make_slide(38, 5, 2),
        _make_slide(45, 4, 3),
        _make_slide(53, 5, 3),
    ]
    return Board(layouts=layouts, slides={s.start_index: s for s in slides})


BOARD = build_board()
