import logging
from typing import List

import config as conf

logger = logging.getLogger(__name__)


def integrations() -> List:
    from sentry_sdk.integrations.celery import CeleryIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration

    return [
        LoggingIntegration(
            level=conf.SENTRY_LEVEL,  # capture level and above as breadcrumbs
            event_level=conf.SENTRY_EVENT_LEVEL,  # send errors as events
        ),
        CeleryIntegration(),
    ]


def load() -> bool:
    """ Initialize sentry when enabled. Configuration problems are logged, never
        raised, so a bad dsn cannot keep a worker from starting. """
    if not conf.SENTRY_ENABLED:
        logger.debug("Sentry disabled")
        return False

    if not conf.SENTRY_DSN:
        logger.warning("Sentry DSN is missing or empty")
        return False

    try:
        import sentry_sdk

        sentry_integrations = integrations()
        sentry_sdk.init(
            dsn=conf.SENTRY_DSN,
            release=conf.SENTRY_RELEASE,
            integrations=sentry_integrations,
            environment=conf.SENTRY_ENV_NAME,
        )
        s = ", ".join([x.identifier for x in sentry_integrations])
        logger.info(f"Sentry enabled with {len(sentry_integrations)} integrations: {s}")
        return True

    except Exception as e:
        logger.error(f"Failed to load Sentry configuration: {e}")
        return False
