from typing import Dict, Optional

from pydantic import ConfigDict

from schemas.bases import CustomBaseModel

__all__ = [
    "TaskOut",
]


class TaskBase(CustomBaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: Optional[str] = None
    qualname: Optional[str] = None
    parameters: Dict = {}


class TaskOut(TaskBase):
    pass
