"""Convert service results (Decimal, datetime, enums) into JSON-friendly values."""
from datetime import date, datetime
from decimal import Decimal
import enum


def to_jsonable(value):
    """Recursively convert Decimal -> str, date/datetime -> ISO string, Enum -> value."""
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    return value
