"""Database management module."""

from .database import RoomDatabaseManager
from .store import RoomStore

__all__ = ["RoomDatabaseManager", "RoomStore"]
