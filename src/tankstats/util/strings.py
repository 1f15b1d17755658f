import random
import re
import string
from datetime import datetime
from typing import Optional

from util.dt import ensure_utc, formats, to_local, utcnow

WHITESPACE = re.compile(r"\s+")
KEY_SUFFIX_CHARS = string.ascii_lowercase + string.digits


def clean_name(name: str) -> str:
    """ Legacy key form of a well name with all whitespace removed """
    return WHITESPACE.sub("", name or "")


def well_key(name: str) -> str:
    """ Storage key form of a well name with whitespace replaced by underscores """
    return WHITESPACE.sub("_", (name or "").strip())


def rand_suffix(length: int = 6) -> str:
    return "".join(random.choices(KEY_SUFFIX_CHARS, k=length))


def packet_key(well_name: str, at: Optional[datetime] = None, suffix: str = None) -> str:
    """ Inbox key with a sortable utc timestamp prefix: YYYYMMDDHHMMSS_<Well>_<rand> """
    at = ensure_utc(at or utcnow())
    return f"{at.strftime(formats.packet_key)}_{clean_name(well_name)}_{suffix or rand_suffix()}"  # noqa


def response_id(well_name: str, at: Optional[datetime] = None) -> str:
    at = to_local(at or utcnow())
    return f"response_{at.strftime(formats.sample_key)}_{clean_name(well_name)}"
