import asyncio
from typing import Any, List, Optional

from util.iterables import reduce

_loop: Optional[asyncio.AbstractEventLoop] = None


def get_event_loop() -> asyncio.AbstractEventLoop:
    """ Return the event loop owned by this process, creating it on first use.

        Celery workers and the cli are synchronous, but the database engine binds its
        connection pool to the loop it was created on, so every sync entrypoint has to
        drive the same loop. """
    global _loop
    if _loop is None or _loop.is_closed():
        _loop = asyncio.new_event_loop()
        asyncio.set_event_loop(_loop)
    return _loop


def async_to_sync(*coros) -> Optional[List[Any]]:
    return reduce(get_event_loop().run_until_complete(asyncio.gather(*coros)))
