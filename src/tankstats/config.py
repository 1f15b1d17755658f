""" Global app configuration

    All configuration items are 12 Factor compliant, in that their values are inherited
    via a waterfall of definition locations. The value for a configuration item will be
    determined according to following order:
        1) system environment variables
        2) environment variables exposed through a .env file in the project root
        3) inline default value, if present
    If a value isnt found in one of the three locations, the configuration item will
    raise an error.
 """

from __future__ import annotations

import socket
from typing import Dict, List, Optional, Tuple

import pandas as pd
from kombu import Queue
from sqlalchemy.engine import URL, make_url
from starlette.config import Config
from starlette.datastructures import Secret

from util.iterables import filter_by_prefix
from util.toml import project, version
from util.types import StringArray

# --- pandas ----------------------------------------------------------------- #

pd.options.display.max_rows = 1000
pd.set_option("display.float_format", lambda x: "%.2f" % x)
pd.set_option("display.large_repr", "truncate")
pd.set_option("display.precision", 2)

# --- general ---------------------------------------------------------------- #

conf: Config = Config(".env")

ENVIRONMENT_MAP: Dict[str, str] = {
    "production": "prod",
    "staging": "stage",
    "development": "dev",
}
ENV: str = conf("ENV", cast=str, default=socket.gethostname())
HOST_NAME: str = conf("HOST_NAME", cast=str, default=socket.gethostname())
TESTING: bool = conf("TESTING", cast=bool, default=False)
DEBUG: bool = conf("DEBUG", cast=bool, default=False)

# --- production day --------------------------------------------------------- #

PRODUCTION_TIMEZONE: str = conf(
    "PRODUCTION_TIMEZONE", cast=str, default="America/Chicago"
)
PRODUCTION_DAY_START_HOUR: int = conf("PRODUCTION_DAY_START_HOUR", cast=int, default=6)

# --- well defaults ---------------------------------------------------------- #

# applied when a well has no config record or the record omits a value
DEFAULT_TANKS: int = conf("DEFAULT_TANKS", cast=int, default=1)
DEFAULT_BOTTOM_LEVEL: float = conf("DEFAULT_BOTTOM_LEVEL", cast=float, default=3)  # ft
DEFAULT_PULL_BBLS: float = conf("DEFAULT_PULL_BBLS", cast=float, default=140)

# --- flow rate estimation --------------------------------------------------- #

ANOMALY_RATIO: float = conf("ANOMALY_RATIO", cast=float, default=2.0)
FLAG_RATIO: float = conf("FLAG_RATIO", cast=float, default=1.5)
ANOMALY_MIN_KNOWN: int = conf("ANOMALY_MIN_KNOWN", cast=int, default=3)
ANOMALY_RING_SIZE: int = conf("ANOMALY_RING_SIZE", cast=int, default=15)

AFR_HISTORY_LIMIT: int = conf("AFR_HISTORY_LIMIT", cast=int, default=15)
AFR_WINDOW_SIZE: int = conf("AFR_WINDOW_SIZE", cast=int, default=5)
AFR_STEP_MIN_RATES: int = conf("AFR_STEP_MIN_RATES", cast=int, default=5)
AFR_STEP_THRESHOLD: float = conf("AFR_STEP_THRESHOLD", cast=float, default=0.10)

AGGREGATE_HISTORY_LIMIT: int = conf("AGGREGATE_HISTORY_LIMIT", cast=int, default=500)
MAX_FLOW_RATE_DAYS: float = conf("MAX_FLOW_RATE_DAYS", cast=float, default=365)

# --- watchdog & health ------------------------------------------------------ #

WATCHDOG_INTERVAL: int = conf("WATCHDOG_INTERVAL", cast=int, default=300)  # seconds
WATCHDOG_STALE_SECONDS: int = conf("WATCHDOG_STALE_SECONDS", cast=int, default=120)
WATCHDOG_RETRIGGER_DELAY: float = conf(
    "WATCHDOG_RETRIGGER_DELAY", cast=float, default=0.2
)  # seconds
WATCHDOG_MAX_ATTEMPTS: int = conf("WATCHDOG_MAX_ATTEMPTS", cast=int, default=5)

HEALTH_CHECK_INTERVAL: int = conf("HEALTH_CHECK_INTERVAL", cast=int, default=600)
HEALTH_WARNING_THRESHOLD: int = conf("HEALTH_WARNING_THRESHOLD", cast=int, default=5)
HEALTH_CRITICAL_THRESHOLD: int = conf(
    "HEALTH_CRITICAL_THRESHOLD", cast=int, default=20
)

# --- database --------------------------------------------------------------- #

DATABASE_DRIVER: str = conf("DATABASE_DRIVER", cast=str, default="postgresql+asyncpg")
DATABASE_USERNAME: str = conf("DATABASE_USERNAME", cast=str, default=None)
DATABASE_PASSWORD: Secret = conf("DATABASE_PASSWORD", cast=Secret, default=None)
DATABASE_HOST: str = conf("DATABASE_HOST", cast=str, default="localhost")
DATABASE_PORT: int = conf("DATABASE_PORT", cast=int, default=5432)
DATABASE_NAME: str = conf("DATABASE_NAME", cast=str, default=project)
DATABASE_POOL_SIZE_MIN: int = conf("DATABASE_POOL_SIZE_MIN", cast=int, default=1)
DATABASE_POOL_SIZE_MAX: int = conf(
    "DATABASE_POOL_SIZE_MAX", cast=int, default=DATABASE_POOL_SIZE_MIN
)
DATABASE_ECHO: bool = conf("DATABASE_ECHO", cast=bool, default=False)

_DATABASE_URL: Optional[str] = conf("DATABASE_URL", cast=str, default=None)

DATABASE_CONFIG: URL = (
    make_url(_DATABASE_URL)
    if _DATABASE_URL
    else URL.create(
        drivername=DATABASE_DRIVER,
        username=DATABASE_USERNAME,
        password=str(DATABASE_PASSWORD) if DATABASE_PASSWORD else None,
        host=DATABASE_HOST,
        port=DATABASE_PORT,
        database=DATABASE_NAME,
    )
)

# --- logging ---------------------------------------------------------------- #

LOG_LEVEL: str = conf("LOG_LEVEL", cast=str, default="20")
LOG_FORMAT: str = conf("LOG_FORMAT", cast=str, default="json")
LOG_HANDLER: str = conf("LOG_HANDLER", cast=str, default="colorized")

# --- extensions ------------------------------------------------------------- #

SENTRY_ENABLED: bool = conf("SENTRY_ENABLED", cast=bool, default=False)
SENTRY_DSN: Optional[str] = conf("SENTRY_DSN", cast=str, default=None)
SENTRY_LEVEL: int = conf("SENTRY_LEVEL", cast=int, default=20)  # breadcrumbs
SENTRY_EVENT_LEVEL: int = conf("SENTRY_EVENT_LEVEL", cast=int, default=40)
SENTRY_ENV_NAME: str = conf(
    "SENTRY_ENV_NAME", cast=str, default=ENVIRONMENT_MAP.get(ENV, ENV)
)
SENTRY_RELEASE: str = conf("SENTRY_RELEASE", cast=str, default=f"{project}-{version}")


# --- accessors -------------------------------------------------------------- #


def items() -> Dict:
    """ Return all configuration items as a dictionary. Only items that are fully
        uppercased and do not begin with an underscore are included."""
    return {
        x: globals()[x]
        for x in globals().keys()
        if not x.startswith("_") and x.isupper()
    }


def with_prefix(prefix: str, tolower: bool = True, strip: bool = True) -> Dict:
    """ Return all configuration keys with the given prefix """
    return filter_by_prefix(items(), prefix, tolower=tolower, strip=strip)


# --- celery ----------------------------------------------------------------- #

CELERY_LOG_LEVEL: str = conf("CELERY_LOG_LEVEL", cast=str, default=LOG_LEVEL)
CELERY_LOG_FORMAT: str = conf("CELERY_LOG_FORMAT", cast=str, default=LOG_FORMAT)
CELERY_TASK_MAX_RETRIES: int = conf("CELERY_TASK_MAX_RETRIES", cast=int, default=5)
CELERY_TASK_EXP_BACKOFF: int = conf("CELERY_TASK_EXP_BACKOFF", cast=int, default=60)


class CeleryConfig:

    # --- custom ------------------------------------------------------------- #

    db_pool_min_size: int = conf("CELERY_DB_MIN_POOL_SIZE", cast=int, default=1)
    db_pool_max_size: int = conf(
        "CELERY_DB_MAX_POOL_SIZE", cast=int, default=db_pool_min_size
    )

    # --- broker ------------------------------------------------------------- #

    accept_content: List[str] = conf(
        "CELERY_ACCEPT_CONTENT", cast=StringArray, default=["json"]
    )
    broker_url: str = conf(
        "TANKSTATS_BROKER_URL", cast=str, default="redis://localhost:6379/0"
    )
    broker_connection_timeout = 2
    broker_connection_max_retries = 1

    # --- beat --------------------------------------------------------------- #

    beat_max_loop_interval: int = conf("CELERY_MAX_LOOP_INTERVAL", cast=int, default=30)

    # --- task --------------------------------------------------------------- #

    task_track_started: bool = conf(
        "CELERY_TASK_TRACK_STARTED", cast=bool, default=False
    )
    task_always_eager: bool = conf("CELERY_TASK_ALWAYS_EAGER", cast=bool, default=False)
    task_acks_late: bool = conf("CELERY_TASK_ACKS_LATE", cast=bool, default=True)
    task_time_limit: int = conf(
        "CELERY_TASK_TIME_LIMIT", cast=int, default=300
    )  # seconds
    task_serializer: str = conf("CELERY_TASK_SERIALIZER", cast=str, default="json")
    task_default_queue: str = conf(
        "CELERY_DEFAULT_QUEUE", cast=str, default=f"{project}-default"
    )
    task_create_missing_queues: bool = conf(
        "CELERY_TASK_CREATE_MISSING_QUEUES", cast=bool, default=False
    )
    task_ignore_result: bool = conf(
        "CELERY_TASK_IGNORE_RESULT", cast=bool, default=True
    )

    task_queues = (
        Queue(f"{project}-default", routing_key=f"{project}-default"),
        Queue(f"{project}-pull", routing_key=f"{project}-pull"),
        Queue(f"{project}-edit", routing_key=f"{project}-edit"),
        Queue(f"{project}-delete", routing_key=f"{project}-delete"),
    )
    task_routes: Optional[Tuple[str]] = conf(
        "CELERY_ROUTES", cast=tuple, default=("cq.routers.request_type_router",)
    )

    # --- worker ------------------------------------------------------------- #

    worker_max_tasks_per_child: int = conf(
        "CELERY_MAX_TASKS_PER_CHILD", cast=int, default=100
    )
    worker_prefetch_multiplier: int = conf(
        "CELERY_PREFETCH_MULTIPLIER", cast=int, default=1
    )
    worker_concurrency: int = conf(
        "CELERY_CONCURRENCY", cast=int, default=None
    )  # celery default = number of CPUs

    # --- results ------------------------------------------------------------ #

    result_backend: Optional[str] = conf(
        "CELERY_RESULT_BACKEND", cast=str, default=None
    )
    result_expires: int = 86400  # seconds
    result_serializer: str = "json"

    @classmethod
    def items(cls) -> Dict:
        """ Return all configuration items as a dictionary. Only items that are fully
            uppercased and do not begin with an underscore are included."""
        return {
            x: getattr(cls, x)
            for x in dir(cls)
            if not x.startswith("_") and x not in ["items"]
        }
