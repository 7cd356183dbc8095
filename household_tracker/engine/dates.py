"""
Timezone-Aware Date Codec

Converts between stored absolute timestamps and device-local calendar
dates ("YYYY-MM-DD").

DESIGN DECISION: Calendar dates are encoded at local NOON, not midnight.
A midnight timestamp re-read under a different offset (or across a DST
change) lands on the previous or next day; noon is twelve hours away
from either edge, which no real-world offset change can cross.

IMPORTANT: Nothing here guesses. A malformed timestamp or date string
raises InvalidDateError instead of turning into "today".
"""

import os
import re
from datetime import date, datetime, time, timezone
from typing import Callable, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
from dateutil import parser as date_parser

DEFAULT_FALLBACK_TIMEZONE = "America/New_York"
DATE_FORMAT = "%Y-%m-%d"

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_LOCAL_ANCHOR = time(12, 0)

logger = structlog.get_logger(__name__)


class InvalidDateError(ValueError):
    """A timestamp or calendar date string could not be parsed."""

    def __init__(self, value: object, message: str):
        self.value = value
        super().__init__(message)


def parse_date(value: Union[str, date]) -> date:
    """
    Parse a canonical "YYYY-MM-DD" string.

    Dates pass through unchanged. Datetimes are rejected: a datetime is an
    instant, and turning it into a calendar day needs a timezone.
    """
    if isinstance(value, datetime):
        raise InvalidDateError(value, f"Expected a calendar date, got a datetime: {value!r}")
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _DATE_PATTERN.match(value.strip()):
        raise InvalidDateError(value, f"Invalid date string (expected YYYY-MM-DD): {value!r}")
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError as e:
        raise InvalidDateError(value, f"Invalid calendar date {value!r}: {e}") from e


def format_date(value: date) -> str:
    """Render a calendar date as "YYYY-MM-DD"."""
    return value.strftime(DATE_FORMAT)


def detect_device_timezone() -> Optional[str]:
    """IANA name from the TZ environment variable, if any."""
    name = os.environ.get("TZ", "").strip().lstrip(":")
    return name or None


class TimezoneDateCodec:
    """
    Encodes calendar dates to timestamps and decodes them back, in the
    device's timezone.

    The timezone is resolved on every call, in this order:
    1. The explicit timezone given to the constructor
    2. Whatever the device timezone provider returns
    3. The fallback timezone
    Unknown zone names are treated as unavailable.
    """

    def __init__(
        self,
        timezone_name: Optional[str] = None,
        fallback_timezone: str = DEFAULT_FALLBACK_TIMEZONE,
        device_timezone_provider: Optional[Callable[[], Optional[str]]] = None,
    ):
        self._timezone_name = timezone_name
        self._fallback = ZoneInfo(fallback_timezone)
        self._device_timezone_provider = device_timezone_provider or detect_device_timezone

    def resolve_timezone(self) -> ZoneInfo:
        """Resolve the timezone to use for one conversion."""
        name = self._timezone_name or self._device_timezone_provider()
        if not name:
            return self._fallback
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(
                "unknown_device_timezone",
                timezone=name,
                fallback=self._fallback.key,
            )
            return self._fallback

    def to_local_date(self, timestamp: Union[str, datetime]) -> str:
        """
        Calendar date ("YYYY-MM-DD") of an instant, in the device timezone.

        Timestamps without an offset are taken to be UTC, which is how the
        database stores them.
        """
        instant = self._parse_timestamp(timestamp)
        return format_date(instant.astimezone(self.resolve_timezone()).date())

    def to_timestamp(self, calendar_date: Union[str, date]) -> str:
        """ISO-8601 UTC timestamp for local noon of a calendar date."""
        day = parse_date(calendar_date)
        local_noon = datetime.combine(day, _LOCAL_ANCHOR, tzinfo=self.resolve_timezone())
        return local_noon.astimezone(timezone.utc).isoformat()

    def local_today(self, now: datetime) -> date:
        """The device-local calendar date at instant `now`."""
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now.astimezone(self.resolve_timezone()).date()

    @staticmethod
    def _parse_timestamp(timestamp: Union[str, datetime]) -> datetime:
        if isinstance(timestamp, datetime):
            instant = timestamp
        elif isinstance(timestamp, str) and timestamp.strip():
            try:
                instant = date_parser.isoparse(timestamp.strip())
            except (ValueError, OverflowError) as e:
                raise InvalidDateError(timestamp, f"Invalid timestamp {timestamp!r}: {e}") from e
        else:
            raise InvalidDateError(timestamp, f"Invalid timestamp: {timestamp!r}")

        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        return instant
