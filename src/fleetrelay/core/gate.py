"""
Resend gate

Stateless checks deciding, from a record snapshot alone, whether a
notification may go out now.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from .schemas import RecordItem


def _as_utc(value: datetime) -> datetime:
    # Records written by older stores may carry naive UTC timestamps
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def permitted(
    item: Optional[RecordItem],
    resend_wait: timedelta,
    now: datetime,
    limited_support: bool = False
) -> bool:
    """
    Whether a firing notification may be sent for a target.

    A firing notification can be sent if:
    - nothing was ever recorded for the target
    - the record has no send time
    - the resend wait is zero
    - the resend wait elapsed since the last send

    A limited support notification is additionally held back while the
    previous one was never resolved, which happens when Alertmanager
    restarts and loses its state.
    """
    if item is None or item.last_sent_at is None:
        return True

    if limited_support and item.unresolved:
        return False

    if resend_wait <= timedelta(0):
        return True

    return _as_utc(now) - _as_utc(item.last_sent_at) >= resend_wait


def resolve_permitted(item: Optional[RecordItem]) -> bool:
    """Whether a resolve notification may be sent: only for a firing one still outstanding"""
    return item is not None and item.unresolved
