"""Room lifecycle endpoints and the room WebSocket."""

import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from debate_engine.exceptions import DebateRoomError
from debate_engine.models import (
    AdvanceResult,
    CreatedRoom,
    Feedback,
    Participant,
    Room,
    RoomSnapshot,
)
from web.dependencies import get_room_manager, get_user_id
from web.room_manager import RoomManager
from web.room_requests import CreateRoomRequest, JoinRoomRequest, ReadyRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")
ws_router = APIRouter()


@router.post("/rooms", response_model=CreatedRoom)
async def create_room(
    request: CreateRoomRequest,
    user_id: int = Depends(get_user_id),
    manager: RoomManager = Depends(get_room_manager),
):
    """Create a new room and return its shareable code."""
    return await manager.create_room(user_id, request.format)


@router.get("/rooms", response_model=list[Room])
async def list_rooms(
    limit: int | None = None,
    offset: int = 0,
    manager: RoomManager = Depends(get_room_manager),
):
    """List rooms still waiting for participants, newest first."""
    return manager.orchestrator.list_active_rooms(limit, offset)


@router.get("/rooms/code/{room_code}", response_model=RoomSnapshot)
async def get_room_by_code(room_code: str, manager: RoomManager = Depends(get_room_manager)):
    room = manager.orchestrator.get_room_by_code(room_code)
    assert room.id is not None
    return manager.orchestrator.get_snapshot(room.id)


@router.post("/rooms/join", response_model=Participant)
async def join_room(
    request: JoinRoomRequest,
    user_id: int = Depends(get_user_id),
    manager: RoomManager = Depends(get_room_manager),
):
    return await manager.join_room(user_id, request.room_code, request.team, request.speaker_role)


@router.get("/rooms/{room_id}", response_model=RoomSnapshot)
async def get_room(room_id: int, manager: RoomManager = Depends(get_room_manager)):
    """Get everything a client needs to render the room."""
    return manager.orchestrator.get_snapshot(room_id)


@router.post("/rooms/{room_id}/leave")
async def leave_room(
    room_id: int,
    user_id: int = Depends(get_user_id),
    manager: RoomManager = Depends(get_room_manager),
):
    await manager.leave_room(user_id, room_id)
    return {"status": "left", "room_id": room_id}


@router.post("/rooms/{room_id}/ready", response_model=Participant)
async def set_ready(
    room_id: int,
    request: ReadyRequest,
    user_id: int = Depends(get_user_id),
    manager: RoomManager = Depends(get_room_manager),
):
    return await manager.set_ready(user_id, room_id, request.is_ready)


@router.post("/rooms/{room_id}/start", response_model=Room)
async def start_debate(
    room_id: int,
    user_id: int = Depends(get_user_id),
    manager: RoomManager = Depends(get_room_manager),
):
    return await manager.start_debate(user_id, room_id)


@router.post("/rooms/{room_id}/advance", response_model=AdvanceResult)
async def advance_speaker(
    room_id: int,
    user_id: int = Depends(get_user_id),
    manager: RoomManager = Depends(get_room_manager),
):
    """Move the debate on to the next speaker; creator or current speaker only."""
    return await manager.advance_speaker(user_id, room_id)


@router.post("/rooms/{room_id}/cancel", response_model=Room)
async def cancel_room(
    room_id: int,
    user_id: int = Depends(get_user_id),
    manager: RoomManager = Depends(get_room_manager),
):
    return await manager.cancel_room(user_id, room_id)


@router.get("/rooms/{room_id}/feedback", response_model=list[Feedback])
async def get_feedback(room_id: int, manager: RoomManager = Depends(get_room_manager)):
    return manager.list_feedback(room_id)


@ws_router.websocket("/ws/rooms/{room_id}")
async def room_websocket(websocket: WebSocket, room_id: int):
    """WebSocket endpoint for real-time room updates."""
    await websocket.accept()
    manager: RoomManager = websocket.app.state.room_manager

    try:
        snapshot = manager.orchestrator.get_snapshot(room_id)
    except DebateRoomError as e:
        await websocket.send_json({"type": "error", "room_id": room_id, "payload": {"error": e.message}})
        await websocket.close()
        return

    manager.add_connection(room_id, websocket)
    try:
        await websocket.send_json(
            {"type": "room_updated", "room_id": room_id, "payload": snapshot.model_dump(mode="json")}
        )

        # Keep connection alive
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug(f"WebSocket disconnected from room {room_id}")
    finally:
        manager.remove_connection(room_id, websocket)
