"""
Utilidades de formateo para reportes, exportaciones y respuestas JSON.
Montos con punto de miles y coma decimal, fechas cortas en español.
"""
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from datetime import date, datetime
from typing import Union, Optional
from urllib.parse import quote

Number = Union[int, float, Decimal, str, None]

MONTHS_SHORT = ['ene', 'feb', 'mar', 'abr', 'may', 'jun', 'jul', 'ago', 'sept', 'oct', 'nov', 'dic']
MONTHS_LONG = [
    'enero', 'febrero', 'marzo', 'abril', 'mayo', 'junio',
    'julio', 'agosto', 'septiembre', 'octubre', 'noviembre', 'diciembre'
]


def _to_decimal(value: Number) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        if isinstance(value, str):
            value = value.replace(",", ".")
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None


def _group_thousands(integer_part: str) -> str:
    reversed_int = integer_part[::-1]
    groups = [reversed_int[i:i+3] for i in range(0, len(reversed_int), 3)]
    return '.'.join(groups)[::-1]


def num_es(value: Number, decimals: int = 0) -> str:
    """
    Formatea un número con separador de miles (.) y decimal (,).

    Examples:
        num_es(1234) -> "1.234"
        num_es(1234.5, 2) -> "1.234,50"
        num_es(None) -> "-"
    """
    num = _to_decimal(value)
    if num is None:
        return "-"

    num = num.quantize(Decimal(10) ** -decimals, rounding=ROUND_HALF_UP)
    sign = "-" if num < 0 else ""
    text = f"{abs(num):.{decimals}f}"

    if decimals:
        integer_part, decimal_part = text.split(".")
        return f"{sign}{_group_thousands(integer_part)},{decimal_part}"
    return f"{sign}{_group_thousands(text)}"


def format_currency(value: Number) -> str:
    """
    Formatea un monto en pesos sin decimales: "$ 1.234".

    Examples:
        format_currency(1234) -> "$ 1.234"
        format_currency(1234.6) -> "$ 1.235"
        format_currency(-500) -> "-$ 500"
        format_currency(None) -> "-"
    """
    num = _to_decimal(value)
    if num is None:
        return "-"

    formatted = num_es(abs(num))
    if formatted == "0" or num.quantize(Decimal('1'), rounding=ROUND_HALF_UP) == 0:
        return "$ 0"
    sign = "-" if num < 0 else ""
    return f"{sign}$ {formatted}"


def format_date(value: Union[date, datetime, str, None]) -> str:
    """
    Fecha corta en español: "12 ene 2026".

    Acepta date, datetime o string ISO (YYYY-MM-DD o con hora).
    """
    if value is None or value == "":
        return "-"

    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            return "-"

    if not isinstance(value, (date, datetime)):
        return "-"

    return f"{value.day} {MONTHS_SHORT[value.month - 1]} {value.year}"


def date_es(value: Union[date, datetime, None]) -> str:
    """
    Fecha numérica DD/MM/YYYY.

    Examples:
        date_es(date(2026, 1, 12)) -> "12/01/2026"
    """
    if value is None:
        return "-"
    if isinstance(value, datetime):
        value = value.date()
    if not isinstance(value, date):
        return "-"
    return value.strftime("%d/%m/%Y")


def month_label(month: int, year: int) -> str:
    """Nombre del período: month_label(1, 2026) -> "enero de 2026"."""
    return f"{MONTHS_LONG[month - 1]} de {year}"


def period_label(month: int, year: int) -> str:
    """Período para títulos: period_label(1, 2026) -> "Enero 2026"."""
    return f"{MONTHS_LONG[month - 1].capitalize()} {year}"


def phone_digits(phone: Optional[str]) -> str:
    """Deja solo los dígitos de un teléfono ("+598 99 123-456" -> "59899123456")."""
    if not phone:
        return ""
    return re.sub(r'\D', '', phone)


def whatsapp_link(phone: Optional[str], message: Optional[str] = None) -> Optional[str]:
    """
    Link wa.me para un teléfono, con mensaje opcional.

    Returns:
        URL o None si el teléfono no tiene dígitos
    """
    digits = phone_digits(phone)
    if not digits:
        return None
    url = f"https://wa.me/{digits}"
    if message:
        url += f"?text={quote(message)}"
    return url


def csv_number(value: Number) -> str:
    """Número con 2 decimales y coma decimal, sin separador de miles: 1234.5 -> "1234,50"."""
    num = _to_decimal(value)
    if num is None:
        num = Decimal('0')
    num = num.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    return f"{num:.2f}".replace(".", ",")
