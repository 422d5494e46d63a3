"""Tests for Spanish number/date formatting and amount parsing."""
from datetime import date, datetime
from decimal import Decimal

import pytest

from admin_edificios.utils.formatters import (
    num_es, format_currency, format_date, date_es, month_label, period_label,
    phone_digits, whatsapp_link, csv_number
)
from admin_edificios.utils.number_format import parse_amount, INVALID_FORMAT


class TestFormatCurrency:
    def test_thousands_separator(self):
        assert format_currency(1234) == "$ 1.234"
        assert format_currency(Decimal('1234567.40')) == "$ 1.234.567"

    def test_rounds_to_units(self):
        assert format_currency(1234.6) == "$ 1.235"

    def test_negative_and_zero(self):
        assert format_currency(-500) == "-$ 500"
        assert format_currency(0) == "$ 0"
        assert format_currency(Decimal('-0.2')) == "$ 0"

    def test_missing_value(self):
        assert format_currency(None) == "-"
        assert format_currency("abc") == "-"

    def test_accepts_strings(self):
        assert format_currency("2500.00") == "$ 2.500"


class TestNumbers:
    def test_num_es_with_decimals(self):
        assert num_es(1234.5, 2) == "1.234,50"
        assert num_es(-1234567, 0) == "-1.234.567"

    def test_csv_number(self):
        assert csv_number(1234.5) == "1234,50"
        assert csv_number(Decimal('-10')) == "-10,00"
        assert csv_number(None) == "0,00"


class TestDates:
    def test_format_date_short_month(self):
        assert format_date(date(2026, 1, 12)) == "12 ene 2026"
        assert format_date(datetime(2025, 9, 3, 15, 30)) == "3 sept 2025"

    def test_format_date_from_iso_string(self):
        assert format_date("2026-03-05") == "5 mar 2026"
        assert format_date("2026-03-05T10:00:00Z") == "5 mar 2026"

    def test_format_date_invalid(self):
        assert format_date(None) == "-"
        assert format_date("no es fecha") == "-"

    def test_date_es(self):
        assert date_es(datetime(2026, 1, 2, 8, 0)) == "02/01/2026"

    def test_month_labels(self):
        assert month_label(1, 2026) == "enero de 2026"
        assert period_label(12, 2025) == "Diciembre 2025"


class TestPhones:
    def test_phone_digits(self):
        assert phone_digits("+598 99 123-456") == "59899123456"
        assert phone_digits(None) == ""

    def test_whatsapp_link(self):
        assert whatsapp_link("099 123 456") == "https://wa.me/099123456"
        assert whatsapp_link("099123456", "Hola, ¿cómo va?") == "https://wa.me/099123456?text=Hola%2C%20%C2%BFc%C3%B3mo%20va%3F"
        assert whatsapp_link("sin número") is None


class TestParseAmount:
    @pytest.mark.parametrize('raw, expected', [
        ("1234.56", Decimal('1234.56')),
        ("1.234,56", Decimal('1234.56')),
        ("1234,5", Decimal('1234.50')),
        ("$ 2.000,00", Decimal("2000.00")),
        (150, Decimal('150.00')),
        (Decimal('10.005'), Decimal('10.00')),
    ])
    def test_valid_formats(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize('raw', ["", "abc", "1,234.56", None, True, "NaN"])
    def test_invalid_formats(self, raw):
        with pytest.raises(ValueError, match="Formato de monto"):
            parse_amount(raw)

    def test_negative_rejected_by_default(self):
        with pytest.raises(ValueError, match="negativo"):
            parse_amount("-10")
        assert parse_amount("-10", allow_negative=True) == Decimal('-10.00')

    def test_error_message_constant(self):
        assert "1.234,56" in INVALID_FORMAT
