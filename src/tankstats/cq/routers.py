""" Custom routing functions for Celery """

import logging

import config as conf
from const import RequestType

logger = logging.getLogger(__name__)


def request_type_router(name, args, kwargs, options, task=None, **kw):
    """ Send packet tasks to the queue for their request type. Everything else falls
        through to the default queue. """

    request_type = (kwargs or {}).get("request_type")
    if request_type is None and args and len(args) > 1:
        request_type = args[1]

    if not RequestType.has_value(request_type) or request_type == (
        RequestType.WELL_HISTORY.value
    ):
        return None

    queue = f"{conf.project}-{RequestType(request_type).value}".lower()
    logger.debug(f"{name}: {request_type} -> routed to -> {queue}")
    return {"queue": queue, "routing_key": queue}
