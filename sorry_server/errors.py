from __future__ import annotations


class GameError(ValueError):
    """Base class for rule and room errors reported back to the acting client.

    Subclassing ValueError keeps the `except ValueError` boundary used by routes and
    the gateway working for every domain error.
    """


class WrongState(GameError):
    pass


class NotYourTurn(GameError):
    pass


class InvalidSelection(GameError):
    pass


class GameNotStarted(GameError):
    pass


class GameOver(GameError):
    pass


class RoomNotFound(GameError):
    def __init__(self, room_id: str) -> None:
        super().__init__(f"Room not found: {room_id}")
        self.room_id = room_id


class RoomFull(GameError):
    def __init__(self, room_id: str) -> None:
        super().__init__(f"Room is full: {room_id}")
        self.room_id = room_id


class GameAlreadyStarted(GameError):
    def __init__(self, room_id: str) -> None:
        super().__init__(f"Game already started in room {room_id}")
        self.room_id = room_id


class AlreadySeated(GameError):
    pass


class NotSeated(GameError):
    pass


class RoomBusy(GameError):
    pass
