from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from sorry_server.errors import RoomBusy


@contextmanager
def room_lock(*, lock: threading.Lock, room_id: str, timeout_ms: int = 5_000) -> Iterator[None]:
    """Hold a room's lock for one action.

    Waits up to `timeout_ms` for a concurrent action on the same room to finish,
    then gives up with RoomBusy. Actions never block while holding it.
    """

    acquired = lock.acquire(timeout=timeout_ms / 1000)
    if not acquired:
        raise RoomBusy(f"Room {room_id} is busy")
    try:
        yield
    finally:
        lock.release()
