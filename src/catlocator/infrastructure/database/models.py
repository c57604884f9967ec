"""SQLAlchemy models for the cat locator.

Table and column names follow the schema the beacon firmware deployment
already uses (``beacon``, ``devices``, ``last_position``).
"""

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    String,
    Index,
)
from sqlalchemy.orm import declarative_base

from catlocator.domain.models import (
    Reading,
    RoomAssignment,
    PositionState,
)

Base = declarative_base()


class ReadingDB(Base):
    """SQLAlchemy model for signal-strength readings.

    Maps to domain model: Reading
    Holds only the latest batch per room; rows are replaced on every ingest.
    """
    __tablename__ = "beacon"

    id = Column(Integer, primary_key=True, autoincrement=True)

    room = Column("roomname", String(100), nullable=False)
    # NULL marks "room reported, nothing detected"; AVG() skips it
    signal_strength = Column("rssi", Integer, nullable=True)
    captured_at = Column("created_at", DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_beacon_room", "roomname"),
        Index("idx_beacon_created_at", "created_at"),
    )

    def to_domain_model(self) -> Reading:
        """Convert SQLAlchemy model to domain model."""
        return Reading(
            room=self.room,
            signal_strength=self.signal_strength,
            captured_at=self.captured_at,
        )

    @classmethod
    def from_domain_model(cls, reading: Reading) -> "ReadingDB":
        """Create SQLAlchemy model from domain model."""
        return cls(
            room=reading.room,
            signal_strength=reading.signal_strength,
            captured_at=reading.captured_at,
        )


class DeviceDB(Base):
    """SQLAlchemy model for beacon device room assignments.

    Maps to domain model: RoomAssignment
    """
    __tablename__ = "devices"

    device_id = Column("macaddress", String(64), primary_key=True)
    room = Column("roomname", String(100), nullable=False)

    def to_domain_model(self) -> RoomAssignment:
        """Convert SQLAlchemy model to domain model."""
        return RoomAssignment(device_id=self.device_id, room=self.room)

    @classmethod
    def from_domain_model(cls, assignment: RoomAssignment) -> "DeviceDB":
        """Create SQLAlchemy model from domain model."""
        return cls(device_id=assignment.device_id, room=assignment.room)


class LastPositionDB(Base):
    """SQLAlchemy model for the last known room.

    Maps to domain model: PositionState
    Holds zero or one row.
    """
    __tablename__ = "last_position"

    room = Column("roomname", String(100), primary_key=True)

    def to_domain_model(self) -> PositionState:
        """Convert SQLAlchemy model to domain model."""
        return PositionState(room=self.room)
