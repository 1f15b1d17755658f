""" orjson helpers shared by the api and the json log formatter """

from typing import Any, Callable

import orjson


def orjson_dumps(v: Any, *, default: Callable = None) -> str:
    return orjson.dumps(v, default=default, option=orjson.OPT_NAIVE_UTC).decode()
