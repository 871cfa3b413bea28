"""Request dependencies shared by the room endpoints."""

from fastapi import Header, HTTPException, Request

from web.room_manager import RoomManager


def get_room_manager(request: Request) -> RoomManager:
    """Get the room manager created at application startup."""
    return request.app.state.room_manager


def parse_user_id(value: str | None) -> int | None:
    if value is None or not value.strip().isdigit():
        return None
    return int(value)


def get_user_id(x_user_id: str | None = Header(default=None)) -> int:
    """Caller identity, supplied by the authenticating proxy in front of the API."""
    user_id = parse_user_id(x_user_id)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Missing or invalid X-User-Id header")
    return user_id
