from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

import pytz
from pydantic import BaseModel, ConfigDict, TypeAdapter

from util.deco import classproperty


class CustomBaseModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    @classproperty
    def __dataframe_columns__(cls) -> List[str]:
        """ Returns the model's field names, in declaration order.

            Useful for ensuring DataFrames yielded from a model will have a consistent
            shape whether the DataFrame is empty or not.
        """
        return list(cls.model_fields.keys())

    @staticmethod
    def localize(v: Any) -> Optional[datetime]:
        """ Coerce a value to a timezone aware datetime, assuming UTC when naive """
        if v is None or v == "":
            return None
        v = TypeAdapter(datetime).validate_python(v)
        if not v.tzinfo:
            return pytz.utc.localize(v)
        return v.astimezone(pytz.utc)


class ORMBase(CustomBaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
