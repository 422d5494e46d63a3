"""CSV export of the monthly report (opens directly in Excel with es locale)."""
import csv
import io
import logging
from datetime import datetime
from typing import List

from admin_edificios.utils.formatters import csv_number

logger = logging.getLogger(__name__)

BOM = "\ufeff"
SEPARATOR = ";"


def _writer(buffer: io.StringIO):
    # QUOTE_MINIMAL wraps values containing ';', '"' or newlines and doubles quotes
    return csv.writer(
        buffer,
        delimiter=SEPARATOR,
        quotechar='"',
        quoting=csv.QUOTE_MINIMAL,
        lineterminator="\n"
    )


def csv_filename(period_label: str) -> str:
    """informe-mensual-enero-2026.csv"""
    return f"informe-mensual-{'-'.join(period_label.lower().split())}.csv"


def build_monthly_report_rows(report: dict, period_label: str, generated_at: datetime = None) -> List[List[str]]:
    """Rows (list of cells) of the monthly report CSV."""
    generated_at = generated_at or datetime.now()
    totals = report['totals']
    bank = report['bank_summary']

    rows = [
        [f"Informe Mensual de Cuenta Corriente - {period_label}"],
        [f"Generado: {generated_at.day}/{generated_at.month}/{generated_at.year}"],
        [],
        ["RESUMEN GENERAL"],
        ["Concepto", "Monto"],
        ["Saldo Anterior Total", csv_number(totals['previous_balance'])],
        ["Pagos del Mes Total", csv_number(totals['month_payments'])],
        ["Gastos Comunes Total", csv_number(totals['month_common_expenses'])],
        ["Fondo Reserva Total", csv_number(totals['month_reserve_fund'])],
        ["Saldo Actual Total", csv_number(totals['current_balance'])],
        [],
        ["RESUMEN BANCARIO"],
        ["Concepto", "Monto"],
        ["Ingreso por Gastos Comunes", csv_number(bank['income_common_expenses'])],
        ["Ingreso por Fondo de Reserva", csv_number(bank['income_reserve_fund'])],
        ["Egreso por Gastos Comunes", csv_number(bank['expense_common_expenses'])],
        ["Egreso por Fondo de Reserva", csv_number(bank['expense_reserve_fund'])],
        ["Saldo Bancario Total", csv_number(bank['total_bank_balance'])],
        [],
    ]

    active_notices = [n for n in report.get('notices', []) if n.get('active')]
    if active_notices:
        rows.append(["AVISOS"])
        rows.append(["#", "Aviso"])
        for index, notice in enumerate(active_notices, start=1):
            rows.append([str(index), notice['text']])
        rows.append([])

    rows.append(["DESGLOSE POR APARTAMENTO"])
    rows.append([
        "Apartamento", "Tipo", "Saldo Anterior", "Pagos del Mes",
        "Gastos Comunes", "Fondo Reserva", "Saldo Actual",
    ])
    for apartment in report['apartments']:
        rows.append([
            apartment['number'],
            apartment['occupancy_label'],
            csv_number(apartment['previous_balance']),
            csv_number(apartment['month_payments']),
            csv_number(apartment['month_common_expenses']),
            csv_number(apartment['month_reserve_fund']),
            csv_number(apartment['current_balance']),
        ])

    rows.append([
        "TOTALES",
        "",
        csv_number(totals['previous_balance']),
        csv_number(totals['month_payments']),
        csv_number(totals['month_common_expenses']),
        csv_number(totals['month_reserve_fund']),
        csv_number(totals['current_balance']),
    ])
    return rows


def generate_monthly_report_csv(report: dict, period_label: str, generated_at: datetime = None) -> str:
    """
    Monthly report as CSV text.

    UTF-8 BOM, ';' separator and ',' decimal separator so Excel configured
    for Spanish opens it without an import wizard.
    """
    buffer = io.StringIO()
    buffer.write(BOM)
    _writer(buffer).writerows(build_monthly_report_rows(report, period_label, generated_at))

    content = buffer.getvalue()
    # No trailing newline after the TOTALES row
    if content.endswith("\n"):
        content = content[:-1]

    logger.info(f"[EXPORT] CSV informe {period_label}: {len(report['apartments'])} apartamentos")
    return content
