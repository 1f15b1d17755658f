# flake8: noqa
import functools
import logging

import config as conf
import cq.signals
import cq.tasks as tasks
from cq.worker import celery_app

logger = logging.getLogger(__name__)


@celery_app.on_after_configure.connect
def setup_periodic_tasks(sender, **kwargs):
    add_task = functools.partial(sender.add_periodic_task)

    add_task(conf.WATCHDOG_INTERVAL, tasks.run_watchdog.s(), name="watchdog")
    add_task(conf.HEALTH_CHECK_INTERVAL, tasks.run_health_check.s(), name="health")
