"""Request payload parsing helpers (JSON body -> typed values)."""
from datetime import date, datetime, time
from typing import Optional, Type
import enum

from admin_edificios.exceptions import ValidationError
from admin_edificios.utils.number_format import parse_amount


def parse_enum(enum_cls: Type[enum.Enum], value, field: str, required: bool = False):
    """Return enum_cls member for value (member name or value, case-insensitive)."""
    if value is None or value == '':
        if required:
            raise ValidationError(f'El campo {field} es obligatorio')
        return None
    if isinstance(value, enum_cls):
        return value
    key = str(value).strip().upper()
    try:
        return enum_cls[key]
    except KeyError:
        raise ValidationError(f'Valor inválido para {field}: {value}')


def parse_datetime(value, field: str = 'fecha', required: bool = False, end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse an ISO date or datetime string.

    A bare date becomes 00:00, or 23:59:59.999 with end_of_day.
    """
    if value is None or value == '':
        if required:
            raise ValidationError(f'El campo {field} es obligatorio')
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time(23, 59, 59, 999000) if end_of_day else time.min)

    text = str(value).strip()
    try:
        if len(text) == 10:
            parsed = datetime.strptime(text, '%Y-%m-%d')
            if end_of_day:
                parsed = datetime.combine(parsed.date(), time(23, 59, 59, 999000))
            return parsed
        parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
        return parsed.replace(tzinfo=None)
    except ValueError:
        raise ValidationError(f'Fecha inválida para {field}: {value}')


def parse_money(value, field: str = 'monto', required: bool = False):
    if value is None or value == '':
        if required:
            raise ValidationError(f'El campo {field} es obligatorio')
        return None
    try:
        return parse_amount(value)
    except ValueError as e:
        raise ValidationError(str(e))


def parse_int(value, field: str, required: bool = False) -> Optional[int]:
    if value is None or value == '':
        if required:
            raise ValidationError(f'El campo {field} es obligatorio')
        return None
    try:
        return int(value)
    except (ValueError, TypeError):
        raise ValidationError(f'Valor inválido para {field}: {value}')


def parse_bool(value, default: bool = False) -> bool:
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'si', 'sí', 'on')


def require_text(value, field: str) -> str:
    text = (value or '').strip() if isinstance(value, str) or value is None else str(value).strip()
    if not text:
        raise ValidationError(f'El campo {field} es obligatorio')
    return text


def optional_text(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
