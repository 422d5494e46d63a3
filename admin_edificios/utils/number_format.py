"""Amount parsing for form/JSON input (1.234,56 or 1234.56)."""
import re
from decimal import Decimal, InvalidOperation

ES_NUMBER_PATTERN = re.compile(r"^-?(?:\d{1,3}(?:\.\d{3})+|\d+)(?:,\d+)?$")
PLAIN_NUMBER_PATTERN = re.compile(r"^-?\d+(?:\.\d+)?$")

INVALID_FORMAT = 'Formato de monto inválido. Usá 1.234,56 o 1234.56'


def parse_amount(value, allow_negative: bool = False) -> Decimal:
    """
    Parse a monetary value to Decimal with 2 decimals.

    Accepts numbers (int/float/Decimal), plain strings with a dot decimal
    separator ("1234.56") and strings with dot thousands and comma decimals
    ("1.234,56", "1234,5").

    Raises:
        ValueError: if the value is empty, malformed or negative
            (unless allow_negative).
    """
    if value is None:
        raise ValueError(INVALID_FORMAT)

    if isinstance(value, bool):
        raise ValueError(INVALID_FORMAT)

    if isinstance(value, (int, float, Decimal)):
        normalized = str(value)
    else:
        cleaned = str(value).strip().replace(' ', '').lstrip('$')
        if not cleaned:
            raise ValueError(INVALID_FORMAT)

        if PLAIN_NUMBER_PATTERN.match(cleaned):
            normalized = cleaned
        elif ES_NUMBER_PATTERN.match(cleaned):
            normalized = cleaned.replace('.', '').replace(',', '.')
        else:
            raise ValueError(INVALID_FORMAT)

    try:
        amount = Decimal(normalized)
    except (InvalidOperation, ValueError):
        raise ValueError(INVALID_FORMAT)

    if not amount.is_finite():
        raise ValueError(INVALID_FORMAT)

    if amount < 0 and not allow_negative:
        raise ValueError('El monto no puede ser negativo')

    return amount.quantize(Decimal('0.01'))
