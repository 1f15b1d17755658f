from typing import Dict, List, Optional

from celery.utils.log import get_task_logger

import cq.signals  # noqa
import handlers
import util
from cq.worker import celery_app
from monitor import HealthMonitor, Watchdog

logger = get_task_logger(__name__)


@celery_app.task
def smoke_test():
    """ Verify an arbitrary Celery task can run """
    return "verified"


@celery_app.task
def process_packet(packet_id: str, request_type: Optional[str] = None) -> str:
    """ Hand an inbox packet to the handler for its request type """
    outcome = util.aio.async_to_sync(handlers.process(packet_id, request_type))
    logger.info(f"{packet_id}: {outcome.value}")
    return outcome.value


@celery_app.task
def dispatch_packet(packet_id: str) -> List[str]:
    """ Offer an inbox packet to every handler """
    outcomes = util.aio.async_to_sync(handlers.dispatch(packet_id))
    return [x.value for x in outcomes]


@celery_app.task
def run_watchdog() -> Dict:
    return Watchdog().run()


@celery_app.task
def run_health_check() -> Dict:
    return HealthMonitor().run()
