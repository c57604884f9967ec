"""Repository layer for database operations.

Repositories work inside a transaction owned by the caller: they flush but
never commit or roll back, so the inference service can make the whole
ingest-decide-persist sequence atomic.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from sqlalchemy import delete, distinct, func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from catlocator.domain.models import (
    Reading,
    RoomAssignment,
    RoomAverage,
    PositionState,
)
from catlocator.domain.exceptions import (
    StorageException,
    UnknownDeviceException,
)

from .models import ReadingDB, DeviceDB, LastPositionDB

logger = logging.getLogger(__name__)


class RepositoryException(StorageException):
    """Exception for repository operations."""
    pass


class ReadingRepository:
    """Repository for the per-room reading batches."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def lock_exclusive(self, timeout_seconds: float) -> bool:
        """Take an exclusive lock on the reading table for this transaction.

        Only PostgreSQL supports table locks; on other backends this is a
        no-op and the caller's in-process lock is the only serialization.

        Returns:
            bool: True if a table lock was taken
        """
        try:
            connection = await self.session.connection()
            if connection.dialect.name != "postgresql":
                return False

            timeout_ms = max(1, int(timeout_seconds * 1000))
            await self.session.execute(text(f"SET LOCAL lock_timeout = {timeout_ms}"))
            await self.session.execute(
                text(f"LOCK TABLE {ReadingDB.__tablename__} IN EXCLUSIVE MODE")
            )
            return True

        except SQLAlchemyError as e:
            logger.error(f"Failed to lock reading table: {e}")
            raise RepositoryException(
                f"Failed to lock reading table: {e}",
                "READING_LOCK_FAILED",
                {"timeout_seconds": timeout_seconds}
            ) from e

    async def replace_room_batch(self, room: str, readings: Sequence[Reading]) -> int:
        """Delete a room's previous batch and insert the new one.

        Returns:
            int: Number of readings inserted
        """
        try:
            await self.session.execute(
                delete(ReadingDB).where(ReadingDB.room == room)
            )
            self.session.add_all(
                [ReadingDB.from_domain_model(reading) for reading in readings]
            )
            await self.session.flush()

            logger.debug(f"Replaced batch for {room} with {len(readings)} readings")
            return len(readings)

        except SQLAlchemyError as e:
            logger.error(f"Failed to replace readings for {room}: {e}")
            raise RepositoryException(
                f"Failed to replace readings for {room}: {e}",
                "READING_REPLACE_FAILED",
                {"room": room, "count": len(readings)}
            ) from e

    async def count_reporting_rooms(self, start_time: datetime, end_time: datetime) -> int:
        """Count distinct rooms with a reading inside [start_time, end_time]."""
        try:
            query = select(func.count(distinct(ReadingDB.room))).where(
                ReadingDB.captured_at >= start_time,
                ReadingDB.captured_at <= end_time,
            )
            result = await self.session.execute(query)
            return result.scalar_one()

        except SQLAlchemyError as e:
            logger.error(f"Failed to count reporting rooms: {e}")
            raise RepositoryException(
                f"Failed to count reporting rooms: {e}",
                "READING_ROOM_COUNT_FAILED",
                {
                    "start_time": start_time.isoformat(),
                    "end_time": end_time.isoformat(),
                }
            ) from e

    async def get_room_averages(self) -> List[RoomAverage]:
        """Average signal strength per room over all stored readings.

        Readings without a signal are ignored by AVG, so a room holding
        only those averages to None.
        """
        try:
            query = (
                select(ReadingDB.room, func.avg(ReadingDB.signal_strength))
                .group_by(ReadingDB.room)
                .order_by(ReadingDB.room)
            )
            result = await self.session.execute(query)

            return [
                RoomAverage(
                    room=room,
                    average_signal=float(average) if average is not None else None,
                )
                for room, average in result.all()
            ]

        except SQLAlchemyError as e:
            logger.error(f"Failed to compute room averages: {e}")
            raise RepositoryException(
                f"Failed to compute room averages: {e}",
                "READING_AVERAGE_FAILED"
            ) from e

    async def get_by_room(self, room: str) -> List[Reading]:
        """Current batch for a room, oldest first."""
        try:
            query = (
                select(ReadingDB)
                .where(ReadingDB.room == room)
                .order_by(ReadingDB.id)
            )
            result = await self.session.execute(query)
            return [row.to_domain_model() for row in result.scalars().all()]

        except SQLAlchemyError as e:
            logger.error(f"Failed to get readings for {room}: {e}")
            raise RepositoryException(
                f"Failed to get readings for {room}: {e}",
                "READING_QUERY_FAILED",
                {"room": room}
            ) from e

    async def count_by_room(self) -> Dict[str, int]:
        """Number of stored readings per room."""
        try:
            query = (
                select(ReadingDB.room, func.count(ReadingDB.id))
                .group_by(ReadingDB.room)
                .order_by(ReadingDB.room)
            )
            result = await self.session.execute(query)
            return {room: count for room, count in result.all()}

        except SQLAlchemyError as e:
            logger.error(f"Failed to count readings: {e}")
            raise RepositoryException(
                f"Failed to count readings: {e}",
                "READING_COUNT_FAILED"
            ) from e


class DeviceRepository:
    """Repository for device room assignments."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, device_id: str) -> Optional[RoomAssignment]:
        try:
            db_device = await self.session.get(DeviceDB, device_id)
            return db_device.to_domain_model() if db_device else None

        except SQLAlchemyError as e:
            logger.error(f"Failed to look up device {device_id}: {e}")
            raise RepositoryException(
                f"Failed to look up device {device_id}: {e}",
                "DEVICE_LOOKUP_FAILED",
                {"device_id": device_id}
            ) from e

    async def resolve(self, device_id: str) -> RoomAssignment:
        """Look up a device's room assignment.

        Raises:
            UnknownDeviceException: If the device is not provisioned
            RepositoryException: If the lookup fails
        """
        assignment = await self.get(device_id)
        if assignment is None:
            raise UnknownDeviceException(device_id)
        return assignment

    async def save(self, assignment: RoomAssignment) -> RoomAssignment:
        """Create or reassign a device."""
        try:
            await self.session.merge(DeviceDB.from_domain_model(assignment))
            await self.session.flush()

            logger.info(f"Assigned device {assignment.device_id} to {assignment.room}")
            return assignment

        except SQLAlchemyError as e:
            logger.error(f"Failed to save device {assignment.device_id}: {e}")
            raise RepositoryException(
                f"Failed to save device {assignment.device_id}: {e}",
                "DEVICE_SAVE_FAILED",
                {"assignment": assignment.model_dump()}
            ) from e

    async def remove(self, device_id: str) -> bool:
        try:
            result = await self.session.execute(
                delete(DeviceDB).where(DeviceDB.device_id == device_id)
            )
            return result.rowcount > 0

        except SQLAlchemyError as e:
            logger.error(f"Failed to remove device {device_id}: {e}")
            raise RepositoryException(
                f"Failed to remove device {device_id}: {e}",
                "DEVICE_REMOVE_FAILED",
                {"device_id": device_id}
            ) from e

    async def list_all(self) -> List[RoomAssignment]:
        try:
            query = select(DeviceDB).order_by(DeviceDB.room, DeviceDB.device_id)
            result = await self.session.execute(query)
            return [row.to_domain_model() for row in result.scalars().all()]

        except SQLAlchemyError as e:
            logger.error(f"Failed to list devices: {e}")
            raise RepositoryException(
                f"Failed to list devices: {e}",
                "DEVICE_LIST_FAILED"
            ) from e


class PositionRepository:
    """Repository for the single-row last known room."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_current(self) -> Optional[PositionState]:
        try:
            result = await self.session.execute(select(LastPositionDB).limit(1))
            db_position = result.scalars().first()
            return db_position.to_domain_model() if db_position else None

        except SQLAlchemyError as e:
            logger.error(f"Failed to get last position: {e}")
            raise RepositoryException(
                f"Failed to get last position: {e}",
                "POSITION_QUERY_FAILED"
            ) from e

    async def clear(self) -> None:
        try:
            await self.session.execute(delete(LastPositionDB))

        except SQLAlchemyError as e:
            logger.error(f"Failed to clear last position: {e}")
            raise RepositoryException(
                f"Failed to clear last position: {e}",
                "POSITION_CLEAR_FAILED"
            ) from e

    async def replace(self, room: str) -> PositionState:
        """Make ``room`` the only last known room."""
        await self.clear()
        try:
            self.session.add(LastPositionDB(room=room))
            await self.session.flush()
            return PositionState(room=room)

        except SQLAlchemyError as e:
            logger.error(f"Failed to store last position {room}: {e}")
            raise RepositoryException(
                f"Failed to store last position {room}: {e}",
                "POSITION_STORE_FAILED",
                {"room": room}
            ) from e
