import itertools
from collections import OrderedDict
from typing import Any, Callable, Dict, Generator, Hashable, Iterable, List, Union


class AttrDict(dict):
    def __init__(self, *args, **kwargs):
        super(AttrDict, self).__init__(*args, **kwargs)
        self.__dict__ = self


def ensure_list(value: Any) -> List[Any]:
    """ Ensure the passed value is a list-like object. """

    if value is None:
        return []
    if isinstance(value, (set, tuple)):
        value = list(value)
    if not issubclass(type(value), list):
        return [value]
    return value


def reduce(values: List) -> Union[List[Any], Any]:
    """ Reduce a list to a scalar if length == 1 """
    while isinstance(values, list) and len(values) == 1:
        values = values[0]
    return values


def chunks(iterable: Iterable, n: int = 1000, cls=list) -> Generator:
    """ Process an infinitely nested interable in chunks of size n (default=1000) """
    it = iter(iterable)
    while True:
        chunk_it = itertools.islice(it, n)
        try:
            first_el = next(chunk_it)
        except StopIteration:
            return
        yield cls(itertools.chain((first_el,), chunk_it))


def group_by(items: Iterable, key: Callable[[Any], Hashable]) -> Dict[Hashable, List]:
    """ Group items into lists by the value returned from key, preserving the order
        in which each item was first encountered.

        Example:
            group_by([1, 2, 3, 4], key=lambda x: x % 2) => {1: [1, 3], 0: [2, 4]}
    """
    groups: Dict[Hashable, List] = OrderedDict()
    for item in items:
        groups.setdefault(key(item), []).append(item)
    return groups


def filter_by_prefix(
    d: Dict, prefix: str, tolower: bool = True, strip: bool = True
) -> Dict:
    """ Return all items with keys that begin with the given prefix.

        Example: prefix = "watchdog"

            Returns:
                {
                    "interval": 300,
                    "stale_seconds": 120,
                    "retrigger_delay": 0.2,
                }
    """

    if tolower:
        cast = str.lower
    else:
        cast = str.upper

    if not prefix.endswith("_"):
        prefix = prefix + "_"
    prefix = cast(prefix)

    result: Dict = {}

    for key, value in d.items():
        key = cast(key)
        if key.startswith(prefix):
            if strip:
                key = key.replace(prefix, "", 1)
            result[key] = value

    return result
