"""Unit tests for notification texts."""

import pytest

from catlocator.domain.models import InferenceKind, InferenceResult
from catlocator.infrastructure.webhook.messages import (
    boot_message,
    format_signal,
    location_message,
)


@pytest.mark.parametrize(
    "value, expected",
    [(-70.0, "-70"), (-65.5, "-65.5"), (-66.25, "-66.25"), (0.0, "0")],
)
def test_format_signal(value, expected):
    assert format_signal(value) == expected


def test_boot_message_is_room_name():
    assert boot_message("living") == "living"


def test_found_message():
    result = InferenceResult(kind=InferenceKind.FOUND, room="living", average_signal=-62.5)

    assert location_message(result) == "ﾈｺﾁｬﾝが見つかりました: living\nRSSI平均値: -62.5"


def test_moved_message():
    result = InferenceResult(
        kind=InferenceKind.MOVED, room="bedroom", average_signal=-60.0, prior_room="living"
    )

    assert location_message(result) == "ﾈｺﾁｬﾝが移動しました: bedroom\nRSSI平均値: -60"


def test_lost_message_names_prior_room():
    result = InferenceResult(kind=InferenceKind.LOST, prior_room="kitchen")

    assert location_message(result) == "ﾈｺﾁｬﾝを見失いました…\n最後にいた場所: kitchen"


@pytest.mark.parametrize("kind", [InferenceKind.WAITING, InferenceKind.UNCHANGED])
def test_no_message_without_position_change(kind):
    assert location_message(InferenceResult(kind=kind, room="living")) is None
