"""Text of the notifications posted to the webhooks."""

from typing import Optional

from ...domain.models import InferenceKind, InferenceResult

FOUND_ACTION = "見つかりました"
MOVED_ACTION = "移動しました"


def format_signal(value: float) -> str:
    """Shortest decimal form of an average: -70.0 -> "-70", -65.5 -> "-65.5"."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def boot_message(room: str) -> str:
    return room


def lost_message(prior_room: str) -> str:
    return f"ﾈｺﾁｬﾝを見失いました…\n最後にいた場所: {prior_room}"


def transition_message(action: str, room: str, average_signal: float) -> str:
    return f"ﾈｺﾁｬﾝが{action}: {room}\nRSSI平均値: {format_signal(average_signal)}"


def location_message(result: InferenceResult) -> Optional[str]:
    """Message for an inference result, or None if nothing should be sent."""
    if result.kind is InferenceKind.LOST:
        return lost_message(result.prior_room)
    if result.kind is InferenceKind.FOUND:
        return transition_message(FOUND_ACTION, result.room, result.average_signal)
    if result.kind is InferenceKind.MOVED:
        return transition_message(MOVED_ACTION, result.room, result.average_signal)
    return None
