import math
import re
from typing import Optional, Union

FEET_INCHES_PATTERN = re.compile(r"^\s*(-?\d+)'\s*(\d+(?:\.\d+)?)\"?\s*$")


def round_half_up(value: float, digits: int = 0) -> float:
    """ Round halves away from zero for positive values (2.5 -> 3), unlike the
        builtin round which rounds halves to even """
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def days_to_hmm(days: Optional[float]) -> str:
    """ 0.2777 -> "6:39" """
    if not days or days <= 0:
        return "0:00"
    total_minutes = int(math.floor(days * 1440))
    return f"{total_minutes // 60}:{total_minutes % 60:02d}"


def days_to_hmmss(days: Optional[float]) -> str:
    """ 0.2777 -> "6:39:53" """
    if not days or days <= 0:
        return "0:00:00"
    total_seconds = int(math.floor(days * 86400))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours}:{minutes:02d}:{seconds:02d}"


def hmmss_to_days(value: Optional[str]) -> float:
    """ Inverse of days_to_hmmss. Accepts H:MM:SS or H:MM; anything else is 0. """
    if not value:
        return 0.0
    parts = str(value).strip().split(":")
    if len(parts) not in (2, 3):
        return 0.0
    try:
        numbers = [int(x) for x in parts] + [0] * (3 - len(parts))
    except ValueError:
        return 0.0
    hours, minutes, seconds = numbers
    return (hours * 3600 + minutes * 60 + seconds) / 86400


def inches_to_feet_inches(inches: Optional[Union[int, float]]) -> str:
    """ 71.6 -> 5'11" """
    inches = inches or 0
    feet = int(math.floor(inches / 12))
    remainder = int(math.floor(inches % 12))
    return f"{feet}'{remainder}\""


def feet_inches_to_inches(value: Optional[str]) -> Optional[float]:
    """ 5'11" -> 71.0 """
    if not value:
        return None
    match = FEET_INCHES_PATTERN.match(str(value))
    if not match:
        return None
    feet, inches = match.groups()
    return int(feet) * 12 + float(inches)


def duration_dhm(days: float) -> str:
    """ 1.5 -> "1d 12h 0m" """
    total_minutes = int(math.floor(max(days, 0) * 1440))
    d, remainder = divmod(total_minutes, 1440)
    h, m = divmod(remainder, 60)
    if d > 0:
        return f"{d}d {h}h {m}m"
    if h > 0:
        return f"{h}h {m}m"
    return f"{m}m"
