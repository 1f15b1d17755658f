""" Production-day boundaries and timestamp handling.

    A production day runs from the cutover hour (6am by default) in the production
    timezone until the same hour the following day. Timestamps are stored and
    compared in UTC; only the day boundaries and display strings are local.
"""

import re
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any, Optional

import pandas as pd
import pytz

import config as conf
from util.iterables import AttrDict
from util.jsontools import make_repr

__FORMATS__ = {
    "no_seconds": "%Y-%m-%d %H:%M",
    "date": "%Y-%m-%d",
    "packet_key": "%Y%m%d%H%M%S",
    "sample_key": "%Y%m%d_%H%M%S",
}

LOCAL_FORMATS = [
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y %I:%M %p",
    "%m/%d/%Y, %I:%M:%S %p",
    "%m/%d/%Y, %I:%M %p",
]

KEY_TIMESTAMP_PATTERN = re.compile(r"^(\d{4})(\d{2})(\d{2})_?(\d{2})(\d{2})(\d{2})")


class DateTimeFormats(AttrDict):
    def __repr__(self):
        return make_repr(self.__dict__)


formats = DateTimeFormats(__FORMATS__)


def utcnow():
    """ Get the current datetime in utc as a datetime object with timezone information """
    return datetime.now().astimezone(pytz.utc)


def production_tz(name: str = None) -> tzinfo:
    return pytz.timezone(name or conf.PRODUCTION_TIMEZONE)


def ensure_utc(value: datetime) -> datetime:
    """ Interpret naive datetimes as utc and convert aware datetimes to utc """
    if value.tzinfo is None:
        return pytz.utc.localize(value)
    return value.astimezone(pytz.utc)


def to_local(value: datetime, tz: tzinfo = None) -> datetime:
    return ensure_utc(value).astimezone(tz or production_tz())


def utc_offset(value: datetime, tz: tzinfo = None) -> timedelta:
    """ UTC offset of the production timezone at the given instant (DST aware) """
    return to_local(value, tz).utcoffset()


def production_date(value: datetime, tz: tzinfo = None, start_hour: int = None) -> date:
    """ The production day a timestamp belongs to. Times before the cutover hour
        belong to the previous calendar day. """
    start_hour = conf.PRODUCTION_DAY_START_HOUR if start_hour is None else start_hour
    local = to_local(value, tz)
    d = local.date()
    if local.hour < start_hour:
        d = d - timedelta(days=1)
    return d


def production_day_start(d: date, tz: tzinfo = None, start_hour: int = None) -> datetime:
    """ UTC instant at which the given production day begins """
    tz = tz or production_tz()
    start_hour = conf.PRODUCTION_DAY_START_HOUR if start_hour is None else start_hour
    naive = datetime.combine(d, time(hour=start_hour))
    if hasattr(tz, "localize"):
        local = tz.localize(naive)
    else:
        local = naive.replace(tzinfo=tz)
    return local.astimezone(pytz.utc)


def window_end(value: datetime, tz: tzinfo = None, start_hour: int = None) -> datetime:
    """ The cutover that closes the production day containing the timestamp, in utc.
        Derived from production_date so both always name the same window. """
    d = production_date(value, tz=tz, start_hour=start_hour)
    return production_day_start(d + timedelta(days=1), tz=tz, start_hour=start_hour)


def days_between(later: Optional[datetime], earlier: Optional[datetime]) -> float:
    """ Elapsed days from earlier to later; 0 unless later is strictly after earlier """
    if later is None or earlier is None:
        return 0.0
    later, earlier = ensure_utc(later), ensure_utc(earlier)
    if later <= earlier:
        return 0.0
    return (later - earlier).total_seconds() / 86400


def format_local(value: Optional[datetime], tz: tzinfo = None) -> Optional[str]:
    """ Display format used by the dashboard: M/D/YYYY h:mm AM """
    if value is None:
        return None
    local = to_local(value, tz)
    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    return f"{local.month}/{local.day}/{local.year} {hour}:{local.minute:02d} {meridiem}"


def parse_local(value: Optional[str], tz: tzinfo = None) -> Optional[datetime]:
    """ Parse a local display string (M/D/YYYY h:mm[:ss] AM) into utc """
    if not value:
        return None
    tz = tz or production_tz()
    text = " ".join(str(value).strip().upper().split())
    for fmt in LOCAL_FORMATS:
        try:
            naive = datetime.strptime(text, fmt)
        except ValueError:
            continue
        local = tz.localize(naive) if hasattr(tz, "localize") else naive.replace(tzinfo=tz)
        return local.astimezone(pytz.utc)
    return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """ Parse an ISO-8601 string or datetime into an aware utc datetime """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    try:
        ts = pd.Timestamp(value)
    except (ValueError, TypeError):
        return None
    if pd.isna(ts):
        return None
    return ensure_utc(ts.to_pydatetime())


def parse_packet_timestamp(
    date_time_utc: Any = None, date_time: Optional[str] = None
) -> Optional[datetime]:
    """ Packets carry an ISO utc timestamp; older producers only sent the local
        display string """
    return parse_timestamp(date_time_utc) or parse_local(date_time)


def parse_key_timestamp(key: str) -> Optional[datetime]:
    """ Extract the utc timestamp embedded at the start of a packet key. Accepts both
        YYYYMMDDHHMMSS and YYYYMMDD_HHMMSS. """
    match = KEY_TIMESTAMP_PATTERN.match(key or "")
    if not match:
        return None
    try:
        return pytz.utc.localize(datetime(*[int(x) for x in match.groups()]))
    except ValueError:
        return None
