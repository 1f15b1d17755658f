from typing import Dict, Optional

from celery import Task
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

import config as conf


class CustomBaseTask(Task):
    # concurrent writes to the same well surface as stale versions or key conflicts
    autoretry_for = (StaleDataError, IntegrityError, OperationalError)
    retry_kwargs = {"max_retries": conf.CELERY_TASK_MAX_RETRIES}
    retry_backoff = True
    retry_backoff_max = 3600
    retry_jitter = True
    exponential_backoff = conf.CELERY_TASK_EXP_BACKOFF

    meta: Optional[Dict] = None
