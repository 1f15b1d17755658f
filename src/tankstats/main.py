import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import ORJSONResponse

import config as conf
import db
import ext.sentry
from api.v1 import api_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):  # nocover (implicitly tested with test client)
    """ Connect on web process startup and disconnect on shutdown. An already bound
        database (tests, embedded use) is left as is. """
    owns_connection = not db.db.is_bound
    if owns_connection:
        ext.sentry.load()
        await db.startup()
    yield
    if owns_connection:
        await db.shutdown()


app: FastAPI = FastAPI(
    title=conf.project,
    version=conf.version,
    openapi_url="/api/v1/openapi.json",
    docs_url="/swagger",
    redoc_url="/docs",
    default_response_class=ORJSONResponse,
    debug=conf.DEBUG,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api/v1")
