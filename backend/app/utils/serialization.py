from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
import math
import uuid


def to_jsonable(value):
    """
    Recursively convert arbitrary Python values into JSON-serializable primitives.
    Numeric(14, 4) columns come back as Decimal; the admin UI expects plain numbers.
    """
    if isinstance(value, Decimal):
        if not value.is_finite():
            return None
        if value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (list, tuple, set)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
    return value
