from __future__ import annotations

import logging
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status

from sorry_server.api.deps import get_gateway, get_registry
from sorry_server.api.models import GameSnapshot, RoomListResponse
from sorry_server.errors import RoomNotFound
from sorry_server.gateway import SessionGateway
from sorry_server.infra.config import scenarios_enabled
from sorry_server.room_registry import RoomRegistry
from sorry_server.session import to_snapshot
from sorry_server.websocket_hub import hub

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def game_ws(
    websocket: WebSocket,
    player_name: str | None = Query(default=None, alias="playerName"),
    gateway: SessionGateway = Depends(get_gateway),
) -> None:
    connection_id = uuid4().hex
    await hub.connect(connection_id, websocket)
    gateway.connect(connection_id, player_name)

    try:
        while True:
            text = await websocket.receive_text()
            await hub.deliver(gateway.handle_text(connection_id, text))
    except WebSocketDisconnect:
        logger.debug("[ws] conn=%s closed by client", connection_id)
    finally:
        hub.deliver_soon(gateway.disconnect(connection_id))
        await hub.disconnect(connection_id)


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/rooms", response_model=RoomListResponse)
async def list_rooms_route(registry: RoomRegistry = Depends(get_registry)) -> RoomListResponse:
    return RoomListResponse(rooms=registry.list_rooms())


@router.get("/rooms/{room_id}", response_model=GameSnapshot)
async def get_room_route(room_id: str, registry: RoomRegistry = Depends(get_registry)) -> GameSnapshot:
    try:
        session = registry.snapshot(room_id)
    except RoomNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return to_snapshot(session)


@router.post("/rooms/{room_id}/scenario/{name}", response_model=GameSnapshot)
async def load_scenario_route(
    room_id: str,
    name: str,
    gateway: SessionGateway = Depends(get_gateway),
) -> GameSnapshot:
    if not scenarios_enabled():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Scenarios are disabled")
    try:
        deliveries = gateway.load_scenario(room_id, name)
    except RoomNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    await hub.deliver(deliveries)
    return to_snapshot(gateway.registry.snapshot(room_id))
