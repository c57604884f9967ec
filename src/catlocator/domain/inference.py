"""Pure decision rules for room inference.

Nothing here touches storage; the inference service feeds these functions
with what it read inside its critical section and persists what they
decide.
"""

from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from .exceptions import InvalidReadingException
from .models import InferenceKind, InferenceResult, Reading, RoomAverage

# RSSI as reported by BLE radios fits a signed byte.
MIN_SIGNAL_STRENGTH = -128
MAX_SIGNAL_STRENGTH = 127


def check_signal_strength(value: int) -> int:
    """Reject a sample outside the signed-byte RSSI range."""
    if not MIN_SIGNAL_STRENGTH <= value <= MAX_SIGNAL_STRENGTH:
        raise InvalidReadingException(
            str(value),
            f"outside {MIN_SIGNAL_STRENGTH}..{MAX_SIGNAL_STRENGTH}"
        )
    return value


def parse_signal_strengths(raw: Optional[str]) -> List[int]:
    """Parse a comma-delimited list of signal strengths.

    A missing or empty value is an empty batch. Trailing commas are
    ignored, so ``"-60,-72,"`` parses like ``"-60,-72"``.

    Raises:
        InvalidReadingException: If any value is not an integer or is out
            of range
    """
    raw = (raw or "").rstrip(",")
    if not raw:
        return []

    values = []
    for part in raw.split(","):
        value = part.strip()
        try:
            parsed = int(value)
        except ValueError:
            raise InvalidReadingException(part, "not an integer")
        values.append(check_signal_strength(parsed))
    return values


def build_batch(room: str, samples: Sequence[int], captured_at: datetime) -> List[Reading]:
    """Turn a device's samples into the readings stored for its room.

    An empty batch still produces one reading without a signal, so the
    room counts as having reported for this round.

    Raises:
        InvalidReadingException: If a sample is out of range
    """
    if not samples:
        return [Reading(room=room, signal_strength=None, captured_at=captured_at)]

    return [
        Reading(room=room, signal_strength=check_signal_strength(sample), captured_at=captured_at)
        for sample in samples
    ]


def select_strongest_room(averages: Iterable[RoomAverage]) -> Optional[RoomAverage]:
    """Pick the room with the highest average signal.

    Rooms without any real signal never win. Equal averages go to the
    lexicographically smallest room name. Returns None when no room has a
    signal at all.
    """
    candidates = [avg for avg in averages if avg.average_signal is not None]
    if not candidates:
        return None

    return min(candidates, key=lambda avg: (-avg.average_signal, avg.room))


def decide(strongest: Optional[RoomAverage], prior_room: Optional[str]) -> InferenceResult:
    """Compare the strongest room against the last known room."""
    if strongest is None:
        if prior_room is None:
            return InferenceResult(kind=InferenceKind.UNCHANGED)
        return InferenceResult(kind=InferenceKind.LOST, prior_room=prior_room)

    if strongest.room == prior_room:
        return InferenceResult(
            kind=InferenceKind.UNCHANGED,
            room=strongest.room,
            average_signal=strongest.average_signal,
            prior_room=prior_room,
        )

    return InferenceResult(
        kind=InferenceKind.FOUND if prior_room is None else InferenceKind.MOVED,
        room=strongest.room,
        average_signal=strongest.average_signal,
        prior_room=prior_room,
    )
