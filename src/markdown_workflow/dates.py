"""
Date helpers - ISO timestamps for metadata and a clock that tests can freeze.

Setting ``testing.override_current_date`` in the project config pins the
clock so that generated metadata and filenames are reproducible.
"""

import logging
from collections.abc import Callable
from datetime import UTC, date, datetime

from .config import TestingConfig

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def parse_iso(value: str | datetime | date) -> datetime:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.

    Accepts the ``Z`` suffix, naive values (assumed UTC) and the
    date/datetime objects YAML produces for unquoted timestamps.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def to_iso(value: datetime) -> str:
    """Format a datetime as ``2025-01-21T10:00:00.000Z``."""
    return parse_iso(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def current_datetime(testing: TestingConfig | None = None) -> datetime:
    """Current UTC time, or the configured override when one is set."""
    override = testing.override_current_date if testing else None
    if override:
        try:
            return parse_iso(override)
        except ValueError:
            logger.warning(f"Invalid override_current_date: {override}, using system date")
    return datetime.now(UTC)


def make_clock(testing: TestingConfig | None = None) -> Clock:
    """Build a zero-argument clock bound to the testing configuration."""
    return lambda: current_datetime(testing)


def format_date(value: datetime, pattern: str = "YYYY-MM-DD") -> str:
    """
    Format a date with the small token set used by templates and ids.

    Supported patterns: ``YYYY-MM-DD``, ``YYYYMMDD``, ``YYYY``, ``LONG``
    (e.g. "January 21, 2025"). Anything else falls back to ISO date.
    """
    if pattern == "YYYYMMDD":
        return value.strftime("%Y%m%d")
    if pattern == "YYYY":
        return value.strftime("%Y")
    if pattern == "LONG":
        return f"{value.strftime('%B')} {value.day}, {value.year}"
    return value.strftime("%Y-%m-%d")


def latest(previous: str | None, now: datetime) -> str:
    """
    Return ``now`` as ISO, never earlier than ``previous``.

    Keeps ``date_modified`` monotonic when the system clock moves backwards.
    """
    if previous:
        try:
            if parse_iso(previous) > now:
                return to_iso(parse_iso(previous))
        except ValueError:
            logger.debug(f"Ignoring unparseable previous timestamp: {previous}")
    return to_iso(now)
