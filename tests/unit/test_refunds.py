"""Unit tests for the cancellation refund policy."""

from datetime import datetime, timedelta, timezone

import pytest
from libs.common.config import get_settings
from services.events_service.services.refunds import (
    FULL_REFUND_PERCENT,
    NO_REFUND_PERCENT,
    full_refund_threshold,
    refund_percentage,
)

START = datetime(2026, 6, 20, 9, 0, tzinfo=timezone.utc)


@pytest.mark.unit
def test_threshold_comes_from_settings():
    expected = timedelta(hours=get_settings().REFUND_FULL_THRESHOLD_HOURS)
    assert full_refund_threshold() == expected
    assert expected == timedelta(hours=48)


@pytest.mark.unit
def test_exactly_48_hours_before_is_full_refund():
    assert refund_percentage(START - timedelta(hours=48), START) == FULL_REFUND_PERCENT


@pytest.mark.unit
def test_one_second_inside_the_window_is_no_refund():
    now = START - timedelta(hours=47, minutes=59, seconds=59)
    assert refund_percentage(now, START) == NO_REFUND_PERCENT


@pytest.mark.unit
@pytest.mark.parametrize(
    "before,expected",
    [
        (timedelta(days=3), FULL_REFUND_PERCENT),
        (timedelta(hours=49), FULL_REFUND_PERCENT),
        (timedelta(hours=2), NO_REFUND_PERCENT),
        (timedelta(0), NO_REFUND_PERCENT),
        (-timedelta(hours=1), NO_REFUND_PERCENT),
    ],
)
def test_refund_step_function(before, expected):
    assert refund_percentage(START - before, START) == expected


@pytest.mark.unit
def test_custom_threshold():
    now = START - timedelta(hours=30)
    assert refund_percentage(now, START, threshold=timedelta(hours=24)) == FULL_REFUND_PERCENT
    assert refund_percentage(now, START, threshold=timedelta(hours=36)) == NO_REFUND_PERCENT


@pytest.mark.unit
def test_naive_start_time_is_read_as_utc():
    naive_start = START.replace(tzinfo=None)
    assert refund_percentage(START - timedelta(hours=48), naive_start) == FULL_REFUND_PERCENT
