""" Logging configuration. Call config() once per process before logging. """

import logging
import logging.config
import sys
from typing import Any, Dict, Optional, Union

from colorama import Fore, Style
from colorama import init as colorama_init

import config as conf
from ext.orjson import orjson_dumps

LEVEL_COLORS: Dict[int, str] = {
    logging.DEBUG: Fore.CYAN,
    logging.INFO: Fore.GREEN,
    logging.WARNING: Fore.YELLOW,
    logging.ERROR: Fore.RED,
    logging.CRITICAL: Fore.MAGENTA,
}

RESERVED_ATTRS = set(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime"}


def mlevel(level: Union[int, str]) -> int:
    """ Coerce a level name or number ('20', 20, 'info') to its numeric value """
    if isinstance(level, int):
        return level
    level = str(level).strip()
    if level.isdigit():
        return int(level)
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.INFO


def mlevelname(level: Union[int, str]) -> str:
    """ Coerce a level name or number to its name """
    return logging.getLevelName(mlevel(level))


class JSONFormatter(logging.Formatter):
    """ One json document per record. Attributes passed through `extra` are kept. """

    def format(self, record: logging.LogRecord) -> str:
        doc: Dict[str, Any] = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        for k, v in record.__dict__.items():
            if k not in RESERVED_ATTRS and not k.startswith("_"):
                doc[k] = v
        if record.exc_info:
            doc["exc_info"] = self.formatException(record.exc_info)
        return orjson_dumps(doc, default=str)


class ColorizingStreamHandler(logging.StreamHandler):
    def __init__(self, stream=None):
        colorama_init()
        super().__init__(stream or sys.stdout)

    @property
    def is_tty(self) -> bool:
        return getattr(self.stream, "isatty", lambda: False)()

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if not self.is_tty:
            return message
        color = LEVEL_COLORS.get(record.levelno, "")
        return f"{color}{message}{Style.RESET_ALL}"


def config(
    level: Union[int, str] = None,
    formatter: str = None,
    logger: Optional[Union[str, logging.Logger]] = None,
    handler: str = None,
):
    """ Configure logging for the process, or for a single named logger """

    level = mlevel(level if level is not None else conf.LOG_LEVEL)
    formatter = formatter or conf.LOG_FORMAT
    handler = handler or conf.LOG_HANDLER
    if handler not in ("stream", "colorized"):
        handler = "stream"

    if isinstance(logger, logging.Logger):
        logger = logger.name or None
    logger = logger or ""

    log_config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JSONFormatter},
            "layman": {"format": "%(message)s"},
            "funcname": {
                "format": "%(funcName)s - %(levelname)s: %(message)s",
            },
            "verbose": {
                "format": "%(asctime)s - %(name)s:%(lineno)s - %(levelname)s: %(message)s",  # noqa
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "stream": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "stream": "ext://sys.stdout",
            },
            "colorized": {
                "()": ColorizingStreamHandler,
                "formatter": formatter,
            },
        },
        "loggers": {
            logger: {"level": level, "handlers": [handler], "propagate": False},
            "sqlalchemy.engine": {"level": logging.WARNING},
            "celery": {"level": level},
            "uvicorn": {"level": level},
        },
    }

    logging.config.dictConfig(log_config)
