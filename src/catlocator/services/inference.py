"""The room-inference transaction.

Every submission runs ingest, aggregate, decide and persist as one
database transaction inside a single critical section shared by all
rooms. The "has every room reported" check needs a consistent view
across rooms, so two submissions must never interleave.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Protocol, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config.settings import Settings
from ..domain.exceptions import LockTimeoutException, StorageException
from ..domain.inference import build_batch, decide, select_strongest_room
from ..domain.models import InferenceKind, InferenceResult
from ..infrastructure.database.repositories import (
    DeviceRepository,
    PositionRepository,
    ReadingRepository,
)

logger = logging.getLogger(__name__)


class LocationNotifier(Protocol):
    async def notify_location(self, result: InferenceResult) -> bool:
        ...


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InferenceService:
    """Ingests reading batches and tracks the cat's last known room."""

    def __init__(
        self,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: LocationNotifier,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings
        self.session_factory = session_factory
        self.notifier = notifier
        self.clock = clock or utc_now
        self._lock = asyncio.Lock()
        # Held from commit until the notification is out, so webhooks
        # arrive in commit order.
        self._dispatch_lock = asyncio.Lock()

    async def submit_readings(self, device_id: str, samples: Sequence[int]) -> InferenceResult:
        """Store a device's batch and re-infer the cat's room.

        The location notification, if any, is sent only after the
        transaction has committed and the critical section is released.
        Its dispatch slot is taken before the critical section is left, so
        back-to-back transitions are posted in the order they committed.

        Raises:
            UnknownDeviceException: If the device is not provisioned
            InvalidReadingException: If a sample is out of range
            StorageException: If locking or any database step fails
        """
        await self._acquire_lock(device_id)
        try:
            result = await self._run_transaction(device_id, samples)
            if result.changes_position:
                await self._dispatch_lock.acquire()
        finally:
            self._lock.release()

        if not result.changes_position:
            return result

        try:
            await self.notifier.notify_location(result)
        finally:
            self._dispatch_lock.release()

        return result

    async def _acquire_lock(self, device_id: str) -> None:
        timeout = self.settings.lock_timeout_seconds
        try:
            await asyncio.wait_for(self._lock.acquire(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(f"Lock wait exceeded {timeout}s for device {device_id}")
            raise LockTimeoutException(timeout)

    async def _run_transaction(self, device_id: str, samples: Sequence[int]) -> InferenceResult:
        async with self.session_factory() as session:
            try:
                async with session.begin():
                    return await self._infer(session, device_id, samples)
            except SQLAlchemyError as e:
                logger.error(f"Inference transaction failed for {device_id}: {e}")
                raise StorageException(
                    f"Inference transaction failed: {e}",
                    "INFERENCE_TRANSACTION_FAILED",
                    {"device_id": device_id}
                ) from e

    async def _infer(
        self, session: AsyncSession, device_id: str, samples: Sequence[int]
    ) -> InferenceResult:
        readings = ReadingRepository(session)
        devices = DeviceRepository(session)
        positions = PositionRepository(session)

        await readings.lock_exclusive(self.settings.lock_timeout_seconds)

        assignment = await devices.resolve(device_id)
        now = self.clock()

        batch = build_batch(assignment.room, samples, now)
        await readings.replace_room_batch(assignment.room, batch)

        window = timedelta(seconds=self.settings.reading_window_seconds)
        reporting = await readings.count_reporting_rooms(now - window, now + window)
        if reporting < self.settings.room_count:
            logger.debug(
                f"{reporting}/{self.settings.room_count} rooms reported, "
                f"waiting after batch from {assignment.room}"
            )
            return InferenceResult(kind=InferenceKind.WAITING)

        strongest = select_strongest_room(await readings.get_room_averages())
        prior = await positions.get_current()
        result = decide(strongest, prior.room if prior else None)

        if result.kind is InferenceKind.LOST:
            await positions.clear()
        elif result.kind in (InferenceKind.FOUND, InferenceKind.MOVED):
            await positions.replace(result.room)

        logger.info(
            f"Inference {result.kind.value}: room={result.room} "
            f"average={result.average_signal} prior={result.prior_room}"
        )
        return result
