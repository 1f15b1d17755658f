from __future__ import annotations

import logging
from enum import Enum
from timeit import default_timer as timer
from typing import Any, Dict, List, Optional

import pandas as pd
from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

import config as conf
import util
import util.jsontools


class Operation(Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    UPSERT = "upsert"


logger = logging.getLogger(__name__)

INSERT_CONSTRUCTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


class BulkIOMixin(object):
    @classmethod
    def log_prefix(cls, exc: Exception) -> str:
        return f"({cls.__name__}) {exc.__class__.__name__}"

    @classmethod
    def insert_construct(cls, session: AsyncSession):
        """ Dialect specific INSERT supporting ON CONFLICT clauses """
        dialect = session.bind.dialect.name
        try:
            return INSERT_CONSTRUCTS[dialect](cls.__table__)
        except KeyError:
            raise NotImplementedError(f"({cls.__name__}) upsert unsupported on {dialect}")

    @classmethod
    async def execute_statement(
        cls, session: AsyncSession, stmt, records: List[Dict], op_name: str
    ) -> int:
        n = len(records)
        try:
            ts = timer()
            await session.execute(stmt)
            exc_time = round(timer() - ts, 2)
            cls.log_operation(op_name, n, exc_time)

        except (IntegrityError, DBAPIError) as e:
            log_records: str = ""

            # print records to log if in debug mode
            if conf.DEBUG:
                log_records = f"\n{util.jsontools.to_string(records)}\n"

            logger.error(f"{cls.log_prefix(e)}: {e} -- {log_records}")
            raise e

        return n

    @classmethod
    async def bulk_upsert(
        cls,
        session: AsyncSession,
        records: List[Dict],
        batch_size: int = 500,
        exclude_cols: List[str] = None,
        increment_cols: List[str] = None,
        update_on_conflict: bool = True,
        ignore_on_conflict: bool = False,
    ) -> int:
        """ Insert records, resolving primary key conflicts by updating the existing
            row (default), leaving it untouched (ignore_on_conflict), or raising.

            Columns in increment_cols are inserted as given and incremented by one
            on conflict, which keeps counters atomic under concurrent writers.
        """
        batch_size = batch_size or len(records)
        exclude_cols = ["created_at"] + (exclude_cols or [])
        increment_cols = increment_cols or []
        index_elements = cls.__table__.primary_key.columns.keys()
        affected: int = 0

        for chunk in util.chunks(records, batch_size):
            stmt = cls.insert_construct(session).values(chunk)

            if ignore_on_conflict:
                stmt = stmt.on_conflict_do_nothing(index_elements=index_elements)

            elif update_on_conflict:
                set_: Dict[str, Any] = {
                    c.name: stmt.excluded[c.name]
                    for c in cls.__table__.columns
                    if not c.primary_key
                    and c.name not in exclude_cols
                    and c.name not in increment_cols
                }
                for name in increment_cols:
                    set_[name] = cls.__table__.c[name] + 1

                stmt = stmt.on_conflict_do_update(
                    index_elements=index_elements, set_=set_
                )

            affected += await cls.execute_statement(
                session, stmt, records=chunk, op_name=Operation.UPSERT.value
            )

        return affected

    @classmethod
    def log_operation(cls, method: str, n: int, exc_time: float):
        method = method.lower()

        measurements = {
            "tablename": cls.__table__.name,
            "method": method,
            f"{method}_time": exc_time,
        }

        if n > 0:
            measurements[f"{method}s"] = n

            if exc_time > 0:
                measurements[f"{method}s_per_second"] = n / exc_time or 1

        logger.debug(
            f"({cls.__name__}) {method} {n} records ({exc_time}s)", extra=measurements,
        )


class DataFrameMixin(BulkIOMixin):
    @classmethod
    async def df(
        cls,
        session: AsyncSession,
        *where,
        create_index: bool = True,
        order_by: Optional[List] = None,
    ) -> pd.DataFrame:
        stmt = select(cls).where(*where)
        if order_by is not None:
            stmt = stmt.order_by(*order_by)
        records = (await session.scalars(stmt)).all()
        df = pd.DataFrame([x.to_dict() for x in records], columns=cls.c.names)
        if create_index:
            df = df.set_index(cls.pk.names)

        return df
