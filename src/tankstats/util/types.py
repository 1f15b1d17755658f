from typing import List, NewType, Union

import pandas as pd

StringArray = NewType("StringArray", List[str])
PandasObject = Union[pd.DataFrame, pd.Series]


def to_bool(value):
    valid = {
        "true": True,
        "t": True,
        "1": True,
        "yes": True,
        "y": True,
        "no": False,
        "n": False,
        "false": False,
        "f": False,
        "0": False,
        "": False,
    }

    if value is None:
        return False

    if isinstance(value, bool):
        return value

    if isinstance(value, (int, float)):
        return bool(value)

    if not isinstance(value, str):
        raise ValueError("invalid literal for boolean. Not a string.")

    lower_value = value.strip().lower()
    if lower_value in valid:
        return valid[lower_value]
    else:
        raise ValueError('invalid literal for boolean: "%s"' % value)
