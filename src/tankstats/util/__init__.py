# flake8: noqa
from util import aio, dt, humanize
from util.dt import utcnow
from util.iterables import chunks, ensure_list, reduce
from util.jsontools import DateTimeEncoder, ObjectEncoder
from util.strings import clean_name, well_key
from util.types import to_bool
