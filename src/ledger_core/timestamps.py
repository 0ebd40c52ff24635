"""
Timestamp normalization: user wall-clock input <-> canonical UTC strings.

Fill timestamps are stored as ``YYYY-MM-DDTHH:MM:00.000Z`` (minute
resolution, seconds always zero). Input arrives as a local wall-clock
reading plus an IANA zone; the zone offset is resolved for that reading's
own date, so DST transitions are honoured.

Zone objects are memoized in a process-wide table keyed by identifier.
Entries are added lazily and never evicted: tz rules do not change while
the process runs.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError, available_timezones

logger = logging.getLogger("ledger.timestamps")

UTC_NAME = "UTC"

FALLBACK_TIME_ZONES = [
    "UTC",
    "America/New_York",
    "America/Chicago",
    "America/Denver",
    "America/Los_Angeles",
    "Europe/London",
    "Europe/Paris",
    "Europe/Berlin",
    "Asia/Singapore",
    "Asia/Tokyo",
    "Australia/Sydney",
]

_DASHED = re.compile(r"^(\d{4})-(\d{2})-(\d{2})[ T](\d{2}):(\d{2})$")
_COMPACT = re.compile(r"^(\d{4})(\d{2})(\d{2})-(\d{2})(\d{2})$")
_UTC_SUFFIX = re.compile(r"\s+UTC$", re.IGNORECASE)

_zones: dict[str, ZoneInfo] = {}


def get_zone(name: str | None) -> ZoneInfo:
    """Memoized zone lookup. Unknown identifiers resolve to UTC."""
    key = name or UTC_NAME
    zone = _zones.get(key)
    if zone is not None:
        return zone
    try:
        zone = ZoneInfo(key)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown time zone %r, using UTC", key)
        zone = ZoneInfo(UTC_NAME)
    _zones[key] = zone
    return zone


def available_time_zones() -> list[str]:
    zones = available_timezones()
    if zones:
        return sorted(zones)
    return list(FALLBACK_TIME_ZONES)


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso_utc(dt: datetime) -> str:
    """Canonical fill timestamp: 2023-02-01T10:00:00.000Z."""
    return _as_utc(dt).strftime("%Y-%m-%dT%H:%M:00.000Z")


def to_lite_utc(dt: datetime) -> str:
    return _as_utc(dt).strftime("%Y-%m-%d %H:%M")


def to_iso_instant(dt: datetime) -> str:
    """Millisecond ISO instant, e.g. 2023-02-01T10:00:05.123Z."""
    u = _as_utc(dt)
    return u.strftime("%Y-%m-%dT%H:%M:%S.") + f"{u.microsecond // 1000:03d}Z"


def format_in_zone(instant: datetime, time_zone: str | None) -> str:
    """Display an instant as wall-clock ``YYYY-MM-DD HH:MM`` in *time_zone*."""
    return _as_utc(instant).astimezone(get_zone(time_zone)).strftime("%Y-%m-%d %H:%M")


def parse_instant(text: object) -> datetime | None:
    """Parse an ISO-8601 instant. None when *text* is not a parseable string."""
    if not isinstance(text, str) or not text.strip():
        return None
    try:
        dt = datetime.fromisoformat(text.strip())
    except ValueError:
        return None
    return _as_utc(dt)


def _extract_parts(text: str) -> tuple[int, int, int, int, int] | None:
    for pattern in (_DASHED, _COMPACT):
        m = pattern.match(text)
        if m:
            year, month, day, hour, minute = (int(g) for g in m.groups())
            return year, month, day, hour, minute
    return None


def parse_local_input(
    text: str | None,
    time_zone: str | None = None,
    fallback: datetime | None = None,
) -> datetime | None:
    """Turn a user-entered wall-clock reading into a UTC instant.

    Recognised forms are ``YYYY-MM-DD HH:MM`` (or with ``T``) and
    ``YYYYMMDD-HHMM``, optionally followed by `` UTC``. Those are read in
    *time_zone* (UTC when omitted). Anything else goes through
    ``datetime.fromisoformat``; a naive result there is taken as UTC.
    Empty or unparsable input returns *fallback*.
    """
    if not text or not text.strip():
        return fallback
    trimmed = _UTC_SUFFIX.sub("", text.strip())

    parts = _extract_parts(trimmed)
    if parts is not None:
        year, month, day, hour, minute = parts
        tz = get_zone(time_zone) if time_zone and time_zone != UTC_NAME else timezone.utc
        try:
            local = datetime(year, month, day, hour, minute, tzinfo=tz)
        except ValueError:
            return fallback
        return local.astimezone(timezone.utc)

    parsed = parse_instant(trimmed)
    return parsed if parsed is not None else fallback
