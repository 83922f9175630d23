# price_comparator/storage/serialization.py

"""Convert result dataclasses into JSON-ready structures."""

from dataclasses import asdict, is_dataclass
from datetime import date
from decimal import Decimal
from typing import Any


def to_jsonable(value: Any) -> Any:
    """Recursively turn dataclasses, Decimals and dates into plain types.

    Decimals become floats, dates become ISO strings.
    """
    if is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(asdict(value))
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, date):
        return value.isoformat()
    return value
