from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from fastapi import WebSocket

from sorry_server.gateway import Delivery

logger = logging.getLogger(__name__)


class ConnectionHub:
    """In-process WebSocket registry keyed by connection id.

    Contract:
      - register a socket via `connect(connection_id, websocket)`.
      - push gateway deliveries with `deliver(deliveries)`.

    Payloads are JSON-serializable dicts. A socket that fails to send is dropped.
    """

    def __init__(self) -> None:
        self._by_id: dict[str, WebSocket] = {}
        self._lock = asyncio.Lock()
        self._background: set[asyncio.Task[None]] = set()

    async def connect(self, connection_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._by_id[connection_id] = websocket

    async def disconnect(self, connection_id: str) -> None:
        async with self._lock:
            self._by_id.pop(connection_id, None)

    async def send(self, recipients: Iterable[str], payload: dict[str, object]) -> None:
        async with self._lock:
            targets = [(cid, self._by_id[cid]) for cid in recipients if cid in self._by_id]

        if not targets:
            return

        dead: list[str] = []
        for cid, ws in targets:
            try:
                await ws.send_json(payload)
            except Exception:
                logger.warning("[hub] dropping connection %s after failed send", cid)
                dead.append(cid)

        if dead:
            async with self._lock:
                for cid in dead:
                    self._by_id.pop(cid, None)

    async def deliver(self, deliveries: Iterable[Delivery]) -> None:
        for delivery in deliveries:
            await self.send(delivery.recipients, delivery.event.to_wire())

    def deliver_soon(self, deliveries: Iterable[Delivery]) -> None:
        """Schedule `deliveries` on their own task.

        Used from a closing socket's handler, which the server may already be cancelling.
        """

        deliveries = list(deliveries)
        if not deliveries:
            return
        task = asyncio.get_running_loop().create_task(self.deliver(deliveries))
        self._background.add(task)
        task.add_done_callback(self._background.discard)


hub = ConnectionHub()
