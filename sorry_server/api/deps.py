from __future__ import annotations

from fastapi import Depends

from sorry_server.gateway import SessionGateway
from sorry_server.room_registry import RoomRegistry


_GATEWAY: SessionGateway | None = None


def get_gateway() -> SessionGateway:
    """Process-wide gateway (and registry), created on first use."""

    global _GATEWAY
    if _GATEWAY is None:
        _GATEWAY = SessionGateway(RoomRegistry())
    return _GATEWAY


def get_registry(gateway: SessionGateway = Depends(get_gateway)) -> RoomRegistry:
    return gateway.registry