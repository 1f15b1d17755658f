from __future__ import annotations

import enum
from typing import Any, Dict, List, Optional


class Enum(enum.Enum):
    """Extends Enum builtin for easier lookups and iteration """

    @classmethod
    def value_map(cls) -> Dict[Any, Enum]:
        return cls._value2member_map_  # type: ignore

    @classmethod
    def has_value(cls, value: Any) -> bool:
        """ Check if the enum has a member name matching the passed value"""
        return value in cls.values()

    @classmethod
    def values(cls) -> List[Any]:
        return [v.value for v in cls.value_map().values()]

    @classmethod
    def keys(cls) -> List[str]:
        """Get a list of the enumerated attribute names """
        return [v.name for v in cls.value_map().values()]

    @classmethod
    def coerce(cls, value: Any, default: Optional[Enum] = None) -> Optional[Enum]:
        """ Look up a member by value, returning the default for empty or unknown
            values instead of raising """
        if value is None or value == "":
            return default
        return cls.value_map().get(value, default)
