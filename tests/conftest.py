# flake8: noqa isort:skip_file
from starlette.config import environ

environ["TESTING"] = "True"
environ["ENV"] = "test"
environ["LOG_LEVEL"] = "10"
environ["CELERY_LOG_LEVEL"] = "10"
environ["LOG_HANDLER"] = "stream"
environ["LOG_FORMAT"] = "verbose"
environ["TANKSTATS_BROKER_URL"] = "memory://"
environ["SENTRY_ENABLED"] = "false"
environ["DATABASE_URL"] = "sqlite+aiosqlite://"
environ["PRODUCTION_TIMEZONE"] = "America/Chicago"
environ["PRODUCTION_DAY_START_HOUR"] = "6"

import os

import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine

import config
from db import db
from db.models import WellConfig
from main import app
import util
import calc  # noqa

ECHO = False

# * custom markers
pytest.mark.cionly = pytest.mark.skipif(
    not util.to_bool(os.getenv("CI")), reason="run on CI only",
)


@pytest.fixture(scope="session")
def celery_config():
    return config.CeleryConfig.items()


@pytest.fixture
def conf():
    yield config


@pytest.fixture
async def bind(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=ECHO
    )
    db.bind(engine)
    await db.create_all()
    yield engine
    await db.drop_all()
    await db.shutdown()


@pytest.fixture
async def session(bind):
    async with db.session() as s:
        yield s


@pytest.fixture
async def client(bind):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def well_config(bind):
    """ Factory persisting a well config row """

    async def create(well_name: str = "Test Well 1", **kwargs) -> WellConfig:
        values = {"tanks": 2, "bottom_level": 3, "pull_bbls": 200, **kwargs}
        async with db.session() as s:
            async with s.begin():
                obj = WellConfig(well_name=well_name, **values)
                s.add(obj)
        return obj

    yield create
