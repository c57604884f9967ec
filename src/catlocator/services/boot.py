"""Boot reporting for beacon devices."""

import logging
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..infrastructure.database.repositories import DeviceRepository

logger = logging.getLogger(__name__)


class BootNotifier(Protocol):
    async def notify_boot(self, room: str) -> bool:
        ...


class BootService:
    """Announces that a device in a room has (re)started."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: BootNotifier,
    ):
        self.session_factory = session_factory
        self.notifier = notifier

    async def report_boot(self, device_id: str) -> str:
        """Send the boot notification for a device and return its room.

        Raises:
            UnknownDeviceException: If the device is not provisioned
            RepositoryException: If the lookup fails
        """
        async with self.session_factory() as session:
            assignment = await DeviceRepository(session).resolve(device_id)

        logger.info(f"Device {device_id} booted in {assignment.room}")
        await self.notifier.notify_boot(assignment.room)
        return assignment.room
