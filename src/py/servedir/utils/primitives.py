from typing import Any
from time import struct_time
from datetime import date, datetime
from pathlib import Path
from enum import Enum


TLiteral = bool | int | float | str | bytes
TComposite = (
    list[TLiteral] | dict[TLiteral, TLiteral] | set[TLiteral] | tuple[TLiteral, ...]
)
TComposite2 = (
    list[TLiteral | TComposite]
    | dict[TLiteral, TLiteral | TComposite]
    | set[TLiteral | TComposite]
    | tuple[TLiteral | TComposite, ...]
)
TPrimitive = bool | int | float | str | bytes | TComposite | TComposite2


def asPrimitive(value: Any) -> Any:
    """Converts the given value to a primitive value, that can be converted
    to JSON"""
    if value is None or type(value) in (bool, float, int, str):
        return value
    elif isinstance(value, tuple) and hasattr(value, "_fields"):
        # Named tuples become objects, unless they know better
        f = getattr(type(value), "asPrimitive", None)
        return (
            f(value)
            if f
            else {asPrimitive(k): asPrimitive(getattr(value, k)) for k in value._fields}
        )
    elif isinstance(value, list) or isinstance(value, tuple) or isinstance(value, set):
        return [asPrimitive(v) for v in value]
    elif isinstance(value, Enum):
        return asPrimitive(value.value)
    elif isinstance(value, dict):
        return {asPrimitive(k): asPrimitive(v) for k, v in value.items()}
    elif isinstance(value, Path):
        return str(value)
    elif isinstance(value, datetime) or isinstance(value, date):
        return value.isoformat()
    elif isinstance(value, struct_time):
        return tuple(value)
    else:
        return value


# EOF
