"""
Timezone-correct formatting of UTC instants and calendar-local date parsing.

Every slot the API returns is a UTC instant, but customers must see it on the
business's wall clock no matter where their own device is. Calendar days, on
the other hand, travel as bare ``YYYY-MM-DD`` strings and must never be run
through UTC: parsing ``"2025-03-10"`` as UTC midnight lands on March 9 in any
zone west of Greenwich.

Usage:
    format_time_in_timezone("2025-03-07T17:00:00Z", "America/New_York")  # '12:00 PM'
    format_as_yyyymmdd(parse_local_date("2025-03-10"))                   # '2025-03-10'
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from functools import lru_cache
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from storefront.utils import parse_utc_instant

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en-US"

_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")

Instant = Union[str, datetime]


class ConfigurationError(Exception):
    """Raised for invalid configuration such as an unknown timezone name."""


@dataclass(frozen=True)
class LocaleFormat:
    """Clock convention and calendar names for one display locale."""
    hour12: bool
    weekdays: tuple[str, ...]  # Monday first
    months: tuple[str, ...]
    date_pattern: str
    date_pattern_no_weekday: str
    datetime_pattern: str
    am: str
    pm: str


LOCALES: dict[str, LocaleFormat] = {
    "en-US": LocaleFormat(
        hour12=True,
        weekdays=("Monday", "Tuesday", "Wednesday", "Thursday",
                  "Friday", "Saturday", "Sunday"),
        months=("January", "February", "March", "April", "May", "June", "July",
                "August", "September", "October", "November", "December"),
        date_pattern="{weekday}, {month} {day}, {year}",
        date_pattern_no_weekday="{month} {day}, {year}",
        datetime_pattern="{date} at {time}",
        am="AM",
        pm="PM",
    ),
    "sq-AL": LocaleFormat(
        hour12=False,
        weekdays=("e hënë", "e martë", "e mërkurë", "e enjte",
                  "e premte", "e shtunë", "e diel"),
        months=("janar", "shkurt", "mars", "prill", "maj", "qershor", "korrik",
                "gusht", "shtator", "tetor", "nëntor", "dhjetor"),
        date_pattern="{weekday}, {day} {month} {year}",
        date_pattern_no_weekday="{day} {month} {year}",
        datetime_pattern="{date}, {time}",
        am="e paradites",
        pm="e pasdites",
    ),
}


@lru_cache(maxsize=64)
def resolve_timezone(name: str) -> ZoneInfo:
    """Resolve an IANA zone name.

    Raises:
        ConfigurationError: If the name is empty or not a known zone.
    """
    if not name or not name.strip():
        raise ConfigurationError("Timezone name must not be empty")
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
        raise ConfigurationError(f"Unknown timezone: {name!r}") from exc


def _coerce_tz(tz: Union[str, tzinfo]) -> tzinfo:
    if isinstance(tz, str):
        return resolve_timezone(tz)
    return tz


def get_locale_format(locale: str) -> LocaleFormat:
    """Return display rules for a locale, falling back to en-US."""
    fmt = LOCALES.get(locale)
    if fmt is None:
        logger.debug("Unknown locale '%s', falling back to %s", locale, DEFAULT_LOCALE)
        return LOCALES[DEFAULT_LOCALE]
    return fmt


def _to_zone(utc_instant: Instant, timezone: Union[str, tzinfo]) -> datetime:
    return parse_utc_instant(utc_instant).astimezone(_coerce_tz(timezone))


def _render_time(local: datetime, fmt: LocaleFormat, hour12: Optional[bool]) -> str:
    use_12h = fmt.hour12 if hour12 is None else hour12
    if use_12h:
        hour = local.hour % 12 or 12
        suffix = fmt.am if local.hour < 12 else fmt.pm
        return f"{hour}:{local.minute:02d} {suffix}"
    return f"{local.hour:02d}:{local.minute:02d}"


def _render_date(local: Union[date, datetime], fmt: LocaleFormat, weekday: bool) -> str:
    pattern = fmt.date_pattern if weekday else fmt.date_pattern_no_weekday
    return pattern.format(
        weekday=fmt.weekdays[local.weekday()],
        month=fmt.months[local.month - 1],
        day=local.day,
        year=local.year,
    )


def format_time_in_timezone(
    utc_instant: Instant,
    timezone: Union[str, tzinfo],
    locale: str = DEFAULT_LOCALE,
    *,
    hour12: Optional[bool] = None,
) -> str:
    """Render the time of day of a UTC instant on the wall clock of ``timezone``.

    Args:
        utc_instant: ISO-8601 UTC string (``Z`` suffix allowed) or datetime.
        timezone: IANA zone name or tzinfo. Never the system zone by default.
        locale: Display locale; decides 12h vs 24h unless ``hour12`` is given.
        hour12: Force (True) or suppress (False) the 12-hour clock.

    Raises:
        ConfigurationError: If ``timezone`` is not a known zone.
    """
    local = _to_zone(utc_instant, timezone)
    return _render_time(local, get_locale_format(locale), hour12)


def format_date_in_timezone(
    utc_instant: Instant,
    timezone: Union[str, tzinfo],
    locale: str = DEFAULT_LOCALE,
    *,
    weekday: bool = True,
) -> str:
    """Render the calendar date of a UTC instant as seen in ``timezone``."""
    local = _to_zone(utc_instant, timezone)
    return _render_date(local, get_locale_format(locale), weekday)


def format_datetime_in_timezone(
    utc_instant: Instant,
    timezone: Union[str, tzinfo],
    locale: str = DEFAULT_LOCALE,
) -> str:
    """Weekday, month, day, year and time of a UTC instant in ``timezone``."""
    local = _to_zone(utc_instant, timezone)
    fmt = get_locale_format(locale)
    return fmt.datetime_pattern.format(
        date=_render_date(local, fmt, weekday=True),
        time=_render_time(local, fmt, hour12=None),
    )


def format_local_date(value: Union[str, date], locale: str = DEFAULT_LOCALE) -> str:
    """Render a calendar-local day (no zone conversion) for display."""
    day = parse_local_date(value).date() if isinstance(value, str) else value
    return _render_date(day, get_locale_format(locale), weekday=True)


def parse_local_date(value: str, tz: Optional[Union[str, tzinfo]] = None) -> datetime:
    """Midnight of a ``YYYY-MM-DD`` calendar day in the caller's zone.

    Built from the year/month/day fields, never by parsing the string as a
    UTC instant. Without ``tz`` the result is naive (system local time).

    Raises:
        ValueError: If the string is not a real ``YYYY-MM-DD`` date.
    """
    match = _DATE_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Expected a YYYY-MM-DD date, got {value!r}")
    year, month, day = (int(part) for part in match.groups())
    zone = _coerce_tz(tz) if tz is not None else None
    return datetime(year, month, day, tzinfo=zone)


def format_as_yyyymmdd(value: Union[date, datetime]) -> str:
    """Format the calendar fields of a date/datetime in its own zone."""
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def local_today(tz: Optional[Union[str, tzinfo]] = None, now: Optional[datetime] = None) -> date:
    """Today's calendar day for a viewer in ``tz`` (system local when None)."""
    zone = _coerce_tz(tz) if tz else None
    if now is None:
        return datetime.now(zone).date()
    if now.tzinfo is None:
        return now.date()
    return now.astimezone(zone).date()
