from pydantic import BaseModel
from datetime import datetime
from typing import Optional
from enum import Enum


class InferenceKind(str, Enum):
    WAITING = "waiting"      # not every room has reported in the window yet
    FOUND = "found"
    MOVED = "moved"
    LOST = "lost"
    UNCHANGED = "unchanged"


class Reading(BaseModel):
    """Single signal-strength sample reported for a room"""
    room: str
    signal_strength: Optional[int] = None  # None: room reported, nothing detected
    captured_at: datetime

    @property
    def has_signal(self) -> bool:
        return self.signal_strength is not None


class RoomAssignment(BaseModel):
    """Beacon device provisioned into a room"""
    device_id: str
    room: str


class PositionState(BaseModel):
    """Last known room of the tracked cat"""
    room: str


class RoomAverage(BaseModel):
    """Mean signal strength of a room's current batch"""
    room: str
    average_signal: Optional[float] = None  # None when only no-signal readings exist


class InferenceResult(BaseModel):
    """Outcome of one inference transaction"""
    kind: InferenceKind
    room: Optional[str] = None
    average_signal: Optional[float] = None
    prior_room: Optional[str] = None

    @property
    def changes_position(self) -> bool:
        return self.kind in (InferenceKind.FOUND, InferenceKind.MOVED, InferenceKind.LOST)
