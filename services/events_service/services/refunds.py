"""Cancellation refund policy.

The refund is a percentage of what was paid; turning it into an amount is the
payments collaborator's job.
"""

from datetime import datetime, timedelta
from typing import Optional

from libs.common.config import get_settings
from libs.common.datetime_utils import ensure_utc

FULL_REFUND_PERCENT = 100
NO_REFUND_PERCENT = 0


def full_refund_threshold() -> timedelta:
    """How long before the start a cancellation still earns a full refund."""
    return timedelta(hours=get_settings().REFUND_FULL_THRESHOLD_HOURS)


def refund_percentage(
    now: datetime,
    start_time: datetime,
    threshold: Optional[timedelta] = None,
) -> int:
    """Refund percent for a cancellation made at ``now``.

    Cancelling at least ``threshold`` before ``start_time`` refunds in full;
    anything later refunds nothing. The boundary itself is a full refund.
    """
    if threshold is None:
        threshold = full_refund_threshold()

    time_remaining = ensure_utc(start_time) - ensure_utc(now)
    if time_remaining >= threshold:
        return FULL_REFUND_PERCENT
    return NO_REFUND_PERCENT
