# flake8: noqa
import logging
from typing import Optional, Union

from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from config import (
    DATABASE_CONFIG,
    DATABASE_ECHO,
    DATABASE_POOL_SIZE_MAX,
    DATABASE_POOL_SIZE_MIN,
)

logger = logging.getLogger(__name__)


class Database:
    """ Holds the process-wide async engine and session factory """

    def __init__(self, url: Union[str, URL]):
        self.url: URL = make_url(url)
        self.engine: Optional[AsyncEngine] = None
        self.sessionmaker: Optional[async_sessionmaker] = None

    def __repr__(self):
        return f"Database[{self.url.render_as_string(hide_password=True)}]"

    @property
    def is_bound(self) -> bool:
        return self.engine is not None

    def bind(self, engine: AsyncEngine):
        self.engine = engine
        self.url = engine.url
        self.sessionmaker = async_sessionmaker(engine, expire_on_commit=False)

    async def startup(
        self,
        url: Union[str, URL] = None,
        pool_min_size: int = DATABASE_POOL_SIZE_MIN,
        pool_max_size: int = DATABASE_POOL_SIZE_MAX,
        echo: bool = DATABASE_ECHO,
    ):  # nocover (implicitly tested with test client)
        url = make_url(url or self.url)
        kwargs = {"echo": echo, "pool_pre_ping": True}
        if url.get_backend_name() != "sqlite":
            kwargs.update(
                pool_size=pool_min_size,
                max_overflow=max(pool_max_size - pool_min_size, 0),
            )
        self.bind(create_async_engine(url, **kwargs))
        logger.debug(f"Connected to {url.render_as_string(hide_password=True)}")

    async def shutdown(self):  # nocover (implicitly tested with test client)
        if self.engine is not None:
            await self.engine.dispose()
            logger.debug(
                f"Disconnected from {self.url.render_as_string(hide_password=True)}"
            )
        self.engine = None
        self.sessionmaker = None

    def session(self) -> AsyncSession:
        if self.sessionmaker is None:
            raise RuntimeError(f"({self}) not connected: call startup() first")
        return self.sessionmaker()

    async def create_all(self):
        from db.models import Model

        async with self.engine.begin() as conn:
            await conn.run_sync(Model.metadata.create_all)

    async def drop_all(self):
        from db.models import Model

        async with self.engine.begin() as conn:
            await conn.run_sync(Model.metadata.drop_all)


db: Database = Database(DATABASE_CONFIG)

# module level aliases
startup, shutdown = db.startup, db.shutdown
