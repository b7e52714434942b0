"""Time-of-day gating for scheduled syncs.

All comparisons are done on minutes since local midnight in the configured
sync timezone.
"""

from datetime import datetime, timezone
from typing import Protocol
from zoneinfo import ZoneInfo

from solarsync.config.settings import Settings

DEFAULT_SYNC_INTERVAL_MINUTES = 15


class OrgSyncSettings(Protocol):
    auto_sync_enabled: bool
    sync_interval_minutes: int | None


def parse_clock_time(value: str) -> int:
    """Parse ``HH:MM`` into minutes since midnight.

    Raises:
        ValueError: If the value is malformed or out of range.
    """
    try:
        hours_text, minutes_text = value.strip().split(":")
        hours, minutes = int(hours_text), int(minutes_text)
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Invalid clock time: {value!r}") from e
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValueError(f"Invalid clock time: {value!r}")
    return hours * 60 + minutes


def minutes_since_midnight(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


def local_now(tz_name: str, now: datetime | None = None) -> datetime:
    """Current time (or ``now``) converted to the given timezone.

    Naive datetimes are taken to be UTC.
    """
    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(ZoneInfo(tz_name))


def is_in_restricted_window(current: int, start: int, end: int) -> bool:
    """Check whether a minute-of-day falls in the half-open window [start, end).

    Args:
        current: Minutes since midnight to test.
        start: Window start in minutes since midnight.
        end: Window end in minutes since midnight (exclusive).

    Returns:
        True if ``current`` is inside the window. A window whose start is
        after its end wraps past midnight. An empty window never matches.
    """
    if start == end:
        return False
    if start > end:
        return current >= start or current < end
    return start <= current < end


def is_sync_restricted(settings: Settings, now: datetime | None = None) -> bool:
    """Apply the configured restricted window to the current local time."""
    local = local_now(settings.sync_timezone, now)
    return is_in_restricted_window(
        minutes_since_midnight(local),
        parse_clock_time(settings.sync_window_start),
        parse_clock_time(settings.sync_window_end),
    )


def is_interval_boundary(moment: datetime, interval_minutes: int) -> bool:
    """True when the minute of ``moment`` is a multiple of the interval."""
    if interval_minutes <= 0:
        return False
    return moment.minute == (moment.minute // interval_minutes) * interval_minutes


def should_sync_org(
    org: OrgSyncSettings,
    now: datetime,
    default_interval: int = DEFAULT_SYNC_INTERVAL_MINUTES,
) -> bool:
    """Decide whether an organization is due for a scheduled sync.

    Args:
        org: Organization (or anything with its sync settings).
        now: Current time, already in the sync timezone.
        default_interval: Interval used when the organization sets none.

    Returns:
        True if auto sync is on and ``now`` lands on the org's interval boundary.
    """
    if not org.auto_sync_enabled:
        return False
    interval = org.sync_interval_minutes or default_interval
    return is_interval_boundary(now, interval)
