"""Database infrastructure layer."""

from .connection import get_database_engine, get_async_session_factory
from .models import Base, ReadingDB, DeviceDB, LastPositionDB
from .repositories import ReadingRepository, DeviceRepository, PositionRepository

__all__ = [
    "get_database_engine",
    "get_async_session_factory",
    "Base",
    "ReadingDB",
    "DeviceDB",
    "LastPositionDB",
    "ReadingRepository",
    "DeviceRepository",
    "PositionRepository",
]
