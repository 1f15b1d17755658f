from typing import Any, Callable


class classproperty:
    """ Read-only property evaluated against the class instead of an instance """

    def __init__(self, fget: Callable):
        self.fget = fget

    def __get__(self, obj: Any, owner: Any) -> Any:
        return self.fget(owner)
