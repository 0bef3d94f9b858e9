from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

import orjson


def _default(o: Any):
    # Normalize common non-JSON-native types
    if isinstance(o, Decimal):
        return str(o)
    if isinstance(o, (datetime, date, time)):
        return o.isoformat()
    raise TypeError(f"Type is not JSON serializable: {type(o).__name__}")


def dumps_bytes(obj: Any) -> bytes:
    # Allow non-string dict keys and coerce Decimals/datetimes
    return orjson.dumps(obj, option=orjson.OPT_NON_STR_KEYS, default=_default)


def dumps(obj: Any) -> str:
    return dumps_bytes(obj).decode("utf-8")


def loads(data: str | bytes) -> Any:
    return orjson.loads(data)
