from __future__ import annotations

from typing import Any, Dict, List, Union

from sqlalchemy import Column, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.schema import Constraint

import util.jsontools
from db.mixins import DataFrameMixin
from db.types import UTCDateTime
from util.deco import classproperty
from util.dt import utcnow


class Model(DeclarativeBase):
    """ Declarative registry shared by all tables """


class Base(Model, DataFrameMixin):
    """ Data model base class """

    __abstract__ = True
    _columns = None
    _agg = None
    _pk = None

    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now())
    updated_at = Column(
        UTCDateTime, default=utcnow, onupdate=utcnow, server_default=func.now(),
    )

    def __repr__(self):
        return f"{self.__class__.__name__}({self.pk_values})"

    @property
    def pk_values(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.pk.names}

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.c.names}

    @classproperty
    def c(cls) -> ColumnProxy:
        return cls.columns

    @classproperty
    def columns(cls) -> ColumnProxy:
        if cls.__dict__.get("_columns") is None:
            cls._columns = ColumnProxy(cls)
        return cls._columns

    @classproperty
    def agg(cls) -> AggregateProxy:
        if cls.__dict__.get("_agg") is None:
            cls._agg = AggregateProxy(cls)
        return cls._agg

    @classproperty
    def pk(cls) -> PrimaryKeyProxy:
        if cls.__dict__.get("_pk") is None:
            cls._pk = PrimaryKeyProxy(cls)
        return cls._pk

    @classproperty
    def constraints(cls) -> Dict[str, Constraint]:
        return {x.name: x for x in list(cls.__table__.constraints)}


class ColumnProxy:
    """ Proxy object for a data model's columns """

    def __init__(self, model: Base):
        self.model = model

    def __iter__(self):
        for col in self.columns:
            yield col

    def __repr__(self):
        return util.jsontools.make_repr(self.names)

    @property
    def columns(self) -> List[Column]:
        return list(self.model.__table__.c)

    @property
    def names(self) -> List[str]:
        return [x.name for x in self.columns]


class PrimaryKeyProxy(ColumnProxy):
    """ Proxy object for a data model's primary key attributes """

    @property
    def columns(self) -> List[Column]:
        return list(self.model.__table__.primary_key.columns)

    async def values(self, session: AsyncSession) -> Union[List[Any]]:
        values = (await session.execute(select(*self.columns))).all()
        if len(values) > 0 and len(values[0]) == 1:
            return [v[0] for v in values]
        return [tuple(v) for v in values]


class AggregateProxy:
    """ Proxy object for invoking aggregate queries against a model's underlying data """

    def __init__(self, model: Base):
        self.model: Base = model

    def __repr__(self):
        return f"AggregateProxy: {self.model.__module__}"

    async def count(self, session: AsyncSession, *where) -> int:
        stmt = select(func.count()).select_from(self.model.__table__).where(*where)
        return int(await session.scalar(stmt) or 0)
