"""
Timezone normalization between canonical UTC instants and local wall-clock values.

Persisted instants are always canonical UTC strings (``YYYY-MM-DDTHH:MM:SSZ``).
Values coming from or going to the form and rendering layers are local wall-clock
strings in the active display timezone.

Local wall times that fall on a daylight-saving transition are interpreted with
the UTC offset in effect just before the transition: a repeated wall time
resolves to its first occurrence and a skipped wall time is shifted forward by
the size of the gap. The same rule is used in both directions.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple, Union
import logging

import pytz

from babycare.core.config import settings

logger = logging.getLogger(__name__)

CANONICAL_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
INPUT_FORMAT = "%Y-%m-%dT%H:%M"
DISPLAY_DATE_FORMAT = "%Y-%m-%d"
DISPLAY_DATETIME_FORMAT = "%Y-%m-%d %H:%M"

InstantLike = Union[str, datetime, int, float]

def get_zone(identifier: str):
    """Resolve an IANA identifier to a pytz timezone, raising ValueError if unknown."""
    if not identifier or not isinstance(identifier, str):
        raise ValueError(f"Invalid timezone identifier: {identifier!r}")
    try:
        return pytz.timezone(identifier)
    except pytz.UnknownTimeZoneError:
        raise ValueError(f"Unknown timezone: {identifier}")

def is_valid_timezone(identifier: str) -> bool:
    try:
        get_zone(identifier)
        return True
    except ValueError:
        return False

def parse_instant(value: InstantLike) -> datetime:
    """
    Parse an instant into an aware UTC datetime.

    Accepts aware datetimes, ISO-8601 strings carrying an offset or a ``Z``
    suffix, and epoch milliseconds (the legacy export format). Naive values
    are rejected because their meaning depends on a timezone.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not an instant: {value!r}")

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        try:
            dt = datetime.fromtimestamp(value / 1000.0, tz=pytz.utc)
        except (OverflowError, OSError):
            raise ValueError(f"Epoch milliseconds out of range: {value!r}")
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            raise ValueError(f"Malformed instant: {value!r}")
    else:
        raise ValueError(f"Not an instant: {value!r}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        raise ValueError(f"Instant has no timezone offset: {value!r}")
    return dt.astimezone(pytz.utc)

def to_canonical(value: InstantLike) -> str:
    """Normalize an instant to the canonical UTC string (second resolution)."""
    return parse_instant(value).strftime(CANONICAL_FORMAT)

def now_canonical() -> str:
    return datetime.now(pytz.utc).strftime(CANONICAL_FORMAT)

def _utc_candidates(naive: datetime, tz):
    return [tz.localize(naive, is_dst=flag).astimezone(pytz.utc) for flag in (True, False)]

def localize_wall_time(naive: datetime, tz) -> datetime:
    """Interpret a naive wall-clock datetime in ``tz`` and return the UTC instant."""
    try:
        return tz.localize(naive, is_dst=None).astimezone(pytz.utc)
    except pytz.AmbiguousTimeError:
        # Repeated wall time: first occurrence
        return min(_utc_candidates(naive, tz))
    except pytz.NonExistentTimeError:
        # Skipped wall time: pre-transition offset
        return max(_utc_candidates(naive, tz))

def utc_to_local(value: InstantLike, identifier: str) -> datetime:
    tz = get_zone(identifier)
    return parse_instant(value).astimezone(tz)

def format_local_display(value: InstantLike, identifier: str, include_time: bool = True) -> str:
    """Format an instant for display in ``identifier``; malformed input gives ''."""
    try:
        local_dt = utc_to_local(value, identifier)
    except (ValueError, TypeError) as e:
        logger.debug(f"Cannot display instant {value!r}: {e}")
        return ""
    return local_dt.strftime(DISPLAY_DATETIME_FORMAT if include_time else DISPLAY_DATE_FORMAT)

def format_local_input(value: InstantLike, identifier: str) -> str:
    """Render an instant as a zone-naive ``YYYY-MM-DDTHH:MM`` value for local-time inputs."""
    return utc_to_local(value, identifier).strftime(INPUT_FORMAT)

def parse_local_input(local_value: str, identifier: str) -> str:
    """Interpret a zone-naive local input value in ``identifier`` and return the canonical instant."""
    tz = get_zone(identifier)
    if not isinstance(local_value, str) or not local_value.strip():
        raise ValueError(f"Malformed local time value: {local_value!r}")
    try:
        parsed = datetime.fromisoformat(local_value.strip())
    except ValueError:
        raise ValueError(f"Malformed local time value: {local_value!r}")

    # A value that already carries an offset names an instant on its own
    if parsed.tzinfo is not None:
        return to_canonical(parsed)
    return localize_wall_time(parsed.replace(second=0, microsecond=0), tz).strftime(CANONICAL_FORMAT)

def local_day_bounds(day: Union[date, str], identifier: str) -> Tuple[str, str]:
    """Canonical [start, end) instants covering one local calendar day."""
    if isinstance(day, str):
        day = date.fromisoformat(day)
    tz = get_zone(identifier)
    start = localize_wall_time(datetime.combine(day, time.min), tz)
    end = localize_wall_time(datetime.combine(day + timedelta(days=1), time.min), tz)
    return start.strftime(CANONICAL_FORMAT), end.strftime(CANONICAL_FORMAT)

def minutes_between(start: InstantLike, end: InstantLike) -> float:
    return (parse_instant(end) - parse_instant(start)).total_seconds() / 60.0

class TimezoneNormalizer:
    """
    Converts between canonical instants and the active display timezone.

    The active timezone is a user preference persisted through ``preferences``
    (any object exposing async ``get_preference`` / ``set_preference``, such as
    the store engine). Changing it never touches stored instants.
    """

    def __init__(self, preferences=None, default_timezone: str = None, preference_key: str = None):
        self._preferences = preferences
        self.default_timezone = default_timezone or settings.DEFAULT_TIMEZONE
        self.preference_key = preference_key or settings.TIMEZONE_PREFERENCE_KEY
        get_zone(self.default_timezone)
        self._timezone = self.default_timezone

    async def load(self) -> str:
        """Activate the persisted timezone preference, falling back to the default."""
        if self._preferences is None:
            return self._timezone

        stored = await self._preferences.get_preference(self.preference_key)
        if stored and is_valid_timezone(stored):
            self._timezone = stored
        else:
            if stored:
                logger.warning(f"Ignoring invalid stored timezone {stored!r}, using {self.default_timezone}")
            self._timezone = self.default_timezone
        return self._timezone

    async def set_timezone(self, identifier: str) -> None:
        get_zone(identifier)
        # Persist first so a failed write leaves the active zone unchanged
        if self._preferences is not None:
            await self._preferences.set_preference(self.preference_key, identifier)
        logger.info(f"Display timezone changed from {self._timezone} to {identifier}")
        self._timezone = identifier

    def get_timezone(self) -> str:
        return self._timezone

    def to_local_display(self, utc_instant: Optional[InstantLike], include_time: bool = True) -> str:
        if utc_instant is None:
            return ""
        return format_local_display(utc_instant, self._timezone, include_time)

    def to_local_input_value(self, utc_instant: InstantLike) -> str:
        return format_local_input(utc_instant, self._timezone)

    def from_local_input_value(self, local_value: str) -> str:
        return parse_local_input(local_value, self._timezone)

    def local_day_bounds(self, day: Union[date, str]) -> Tuple[str, str]:
        return local_day_bounds(day, self._timezone)

    def local_today(self) -> date:
        return datetime.now(get_zone(self._timezone)).date()
