from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import Field

from schemas.bases import ORMBase

__all__ = ["SystemHealthOut"]


class SystemHealthOut(ORMBase):
    name: str
    status: str
    message: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    checked_at: Optional[datetime] = Field(None, alias="checkedAt")
