"""Motion generation endpoint."""

from fastapi import APIRouter, Depends

from debate_engine.models import Motion
from web.dependencies import get_room_manager, get_user_id
from web.room_manager import RoomManager
from web.room_requests import MotionRequest

router = APIRouter(prefix="/api")


@router.post("/rooms/{room_id}/motion", response_model=Motion)
async def generate_motion(
    room_id: int,
    request: MotionRequest,
    user_id: int = Depends(get_user_id),
    manager: RoomManager = Depends(get_room_manager),
):
    """Generate a fresh motion with AI and make it the room's motion."""
    return await manager.generate_motion(user_id, room_id, request.topic_area, request.difficulty)
